"""
bqcgen/models.py

Domain models for the BQC Generator.

- User: login account (password hash, admin flag)
- BQCEntry: one saved BQC form, unique per (user, ref_number)
- BQCLot: ordered lots of a lot-wise entry
- AuditLog: who changed what, with before/after snapshots

IMPORTANT:
- Scalar BQCEntry columns use the same names as ProcurementRecord attributes
  (bqcgen/docgen/record.py). The repository copies values by name.
"""

from __future__ import annotations

from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """API user authenticated with a bearer token."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    full_name = db.Column(db.String(255), nullable=True)

    is_admin = db.Column(db.Boolean, default=False, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    entries = db.relationship(
        "BQCEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
            "isAdmin": bool(self.is_admin),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.username}>"


# ---------------------------------------------------------------------
# BQC entries
# ---------------------------------------------------------------------
class BQCEntry(db.Model):
    """A saved BQC form. Lot-wise entries keep their estimates in `lots`."""

    __tablename__ = "bqc_entries"
    __table_args__ = (
        db.UniqueConstraint("user_id", "ref_number", name="uq_bqc_entries_user_ref"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ref_number = db.Column(db.String(120), nullable=False, index=True)

    # Classification
    group_name = db.Column(db.String(120), nullable=True, index=True)
    subject = db.Column(db.Text, nullable=True)
    item_name = db.Column(db.String(255), nullable=True)
    tender_description = db.Column(db.Text, nullable=True)
    pr_reference = db.Column(db.String(255), nullable=True)
    note_to = db.Column(db.String(255), nullable=True)
    tender_type = db.Column(db.String(20), nullable=False, default="Goods", index=True)
    evaluation_methodology = db.Column(db.String(30), nullable=False, default="LCS", index=True)
    divisibility = db.Column(db.String(20), nullable=False, default="Non-Divisible")
    tender_platform = db.Column(db.String(60), nullable=True)

    # Estimates (Crore)
    cec_estimate_incl_gst = db.Column(db.Float, nullable=False, default=0.0)
    cec_estimate_excl_gst = db.Column(db.Float, nullable=False, default=0.0)
    total_cec_incl_gst = db.Column(db.Float, nullable=False, default=0.0)
    total_cec_excl_gst = db.Column(db.Float, nullable=False, default=0.0)
    cec_date = db.Column(db.String(20), nullable=True)
    quantity_supplied = db.Column(db.Float, nullable=False, default=0.0)
    budget_details = db.Column(db.Text, nullable=True)
    correction_factor = db.Column(db.Float, nullable=False, default=0.0)
    annualized_value = db.Column(db.Float, nullable=False, default=0.0)

    has_amc = db.Column(db.Boolean, nullable=False, default=False)
    amc_value = db.Column(db.Float, nullable=False, default=0.0)
    amc_period = db.Column(db.String(255), nullable=True)
    has_om = db.Column(db.Boolean, nullable=False, default=False)
    om_value = db.Column(db.Float, nullable=False, default=0.0)
    om_period = db.Column(db.String(255), nullable=True)

    # Scope
    scope_of_work = db.Column(db.Text, nullable=True)
    contract_period_months = db.Column(db.String(120), nullable=True)
    contract_duration_years = db.Column(db.Float, nullable=False, default=1.0)
    delivery_period = db.Column(db.String(255), nullable=True)
    bid_validity_period = db.Column(db.String(120), nullable=True)
    warranty_period = db.Column(db.String(255), nullable=True)
    payment_terms = db.Column(db.Text, nullable=True)

    # Qualification criteria
    manufacturer_types = db.Column(db.JSON, nullable=False, default=list)
    supplying_capacity = db.Column(db.JSON, nullable=True)
    mse_relaxation = db.Column(db.Boolean, nullable=False, default=False)
    past_performance_mse_relaxation = db.Column(db.Boolean, nullable=False, default=False)
    similar_work_definition = db.Column(db.Text, nullable=True)
    escalation_clause = db.Column(db.Text, nullable=True)
    additional_details = db.Column(db.Text, nullable=True)
    commercial_evaluation_method = db.Column(db.JSON, nullable=False, default=list)

    performance_security = db.Column(db.Float, nullable=False, default=5.0)
    has_performance_security = db.Column(db.Boolean, nullable=False, default=False)

    # Approval chain
    proposed_by = db.Column(db.String(255), nullable=True)
    proposed_by_designation = db.Column(db.String(255), nullable=True)
    recommended_by = db.Column(db.String(255), nullable=True)
    recommended_by_designation = db.Column(db.String(255), nullable=True)
    concurred_by = db.Column(db.String(255), nullable=True)
    concurred_by_designation = db.Column(db.String(255), nullable=True)
    approved_by = db.Column(db.String(255), nullable=True)
    approved_by_designation = db.Column(db.String(255), nullable=True)

    # Explanatory notes (inline HTML)
    has_experience_note = db.Column(db.Boolean, nullable=False, default=False)
    experience_note = db.Column(db.Text, nullable=True)
    has_additional_note = db.Column(db.Boolean, nullable=False, default=False)
    additional_note = db.Column(db.Text, nullable=True)
    has_financial_note = db.Column(db.Boolean, nullable=False, default=False)
    financial_note = db.Column(db.Text, nullable=True)
    has_emd_note = db.Column(db.Boolean, nullable=False, default=False)
    emd_note = db.Column(db.Text, nullable=True)
    has_past_performance_note = db.Column(db.Boolean, nullable=False, default=False)
    past_performance_note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", back_populates="entries")

    lots = db.relationship(
        "BQCLot",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="BQCLot.position",
        lazy=True,
    )

    def __repr__(self):
        return f"<BQCEntry {self.ref_number}>"


class BQCLot(db.Model):
    """One lot of a lot-wise BQC entry."""

    __tablename__ = "bqc_lots"

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(
        db.Integer,
        db.ForeignKey("bqc_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    lot_key = db.Column(db.String(64), nullable=True)
    lot_number = db.Column(db.String(60), nullable=True)
    description = db.Column(db.Text, nullable=True)
    cec_estimate_incl_gst = db.Column(db.Float, nullable=False, default=0.0)
    cec_estimate_excl_gst = db.Column(db.Float, nullable=False, default=0.0)
    contract_period_months = db.Column(db.Float, nullable=False, default=12.0)
    has_amc = db.Column(db.Boolean, nullable=False, default=False)
    amc_value = db.Column(db.Float, nullable=False, default=0.0)
    amc_period = db.Column(db.String(255), nullable=True)
    mse_relaxation = db.Column(db.Boolean, nullable=False, default=False)
    quantity_supplied = db.Column(db.Float, nullable=False, default=0.0)

    entry = db.relationship("BQCEntry", back_populates="lots")


# ---------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------
class AuditLog(db.Model):
    """Audit trail of mutations."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    username_snapshot = db.Column(db.String(150), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship("User", backref=db.backref("audit_entries", lazy=True))
