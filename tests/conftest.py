from __future__ import annotations

import copy

import pytest

from bqcgen import create_app
from bqcgen.extensions import db
from bqcgen.models import User
from bqcgen.security import create_access_token

GOODS_PAYLOAD = {
    "refNumber": "CPO-2024-001",
    "groupName": "1 - LPG",
    "tenderDescription": "Supply of LPG cylinder valves",
    "prReference": "PR 1000234",
    "tenderType": "Goods",
    "evaluationMethodology": "LCS",
    "divisibility": "Non-Divisible",
    "tenderPlatform": "GeM",
    "cecEstimateInclGst": 2.0,
    "cecEstimateExclGst": 1.8,
    "cecDate": "2024-03-05",
    "quantitySupplied": 100,
    "budgetDetails": "Revex 2024-25",
    "scopeOfWork": "Supply of 1,00,000 valves",
    "contractPeriodMonths": "1 year",
    "contractDurationYears": 1,
    "deliveryPeriod": "90 days",
    "warrantyPeriod": "12 months",
    "paymentTerms": "Within 30 days",
    "manufacturerTypes": ["Original Equipment Manufacturer", "Authorized Dealer"],
    "proposedBy": "A. Kumar",
    "proposedByDesignation": "Procurement Manager",
    "recommendedBy": "B. Rao",
    "recommendedByDesignation": "Procurement Leader",
    "concurredBy": "Rajesh J.",
    "concurredByDesignation": "General Manager Finance (CPO Marketing)",
    "approvedBy": "Kani Amudhan N.",
    "approvedByDesignation": "Chief Procurement Officer (CPO Marketing)",
}

SERVICE_PAYLOAD = {
    **GOODS_PAYLOAD,
    "refNumber": "CPO-2024-002",
    "tenderType": "Service",
    "tenderDescription": "Housekeeping services at Mumbai plant",
    "cecEstimateInclGst": 10.0,
    "cecEstimateExclGst": 8.5,
    "similarWorkDefinition": "Housekeeping services at industrial premises",
    "manufacturerTypes": [],
}

LOT_WISE_PAYLOAD = {
    **GOODS_PAYLOAD,
    "refNumber": "CPO-2024-003",
    "evaluationMethodology": "Lot-wise",
    "cecEstimateInclGst": 0,
    "cecEstimateExclGst": 0,
    "lots": [
        {
            "id": "lot-a",
            "lotNumber": "Lot 1",
            "description": "North region",
            "cecEstimateInclGst": 1.2,
            "cecEstimateExclGst": 1.0,
            "quantitySupplied": 100,
        },
        {
            "id": "lot-b",
            "lotNumber": "Lot 2",
            "description": "South region",
            "cecEstimateInclGst": 3.0,
            "cecEstimateExclGst": 2.5,
            "hasAmc": True,
            "amcValue": 0.5,
            "amcPeriod": "2 years",
            "quantitySupplied": 50,
        },
    ],
}


@pytest.fixture
def goods_payload():
    return copy.deepcopy(GOODS_PAYLOAD)


@pytest.fixture
def service_payload():
    return copy.deepcopy(SERVICE_PAYLOAD)


@pytest.fixture
def lot_wise_payload():
    return copy.deepcopy(LOT_WISE_PAYLOAD)


@pytest.fixture
def app():
    app = create_app("config.TestingConfig")
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(app, username: str, password: str = "secret123", is_admin: bool = False) -> dict:
    with app.app_context():
        user = User(
            username=username,
            email=f"{username}@example.com",
            full_name=username.title(),
            is_admin=is_admin,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return {"id": user.id, "username": username, "token": create_access_token(user)}


@pytest.fixture
def user(app):
    return make_user(app, "alice")


@pytest.fixture
def other_user(app):
    return make_user(app, "bob")


@pytest.fixture
def admin(app):
    return make_user(app, "root", is_admin=True)


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {user['token']}"}


@pytest.fixture
def other_headers(other_user):
    return {"Authorization": f"Bearer {other_user['token']}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {admin['token']}"}
