"""
Authentication Routes

Provides:
- POST /api/auth/register
- POST /api/auth/login
- GET  /api/auth/me
- POST /api/auth/logout

Rules:
- Only active users may log in.
- Credentials are validated via password hash; tokens are stateless, so
  logout is an acknowledgement and the client discards its token.
"""

from __future__ import annotations

import re

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from ...audit import log_action
from ...extensions import db
from ...models import User
from ...security import create_access_token, json_error

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


def _registration_errors(data: dict) -> list:
    errors = []
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    confirm = data.get("confirmPassword")
    email = (data.get("email") or "").strip()
    full_name = (data.get("fullName") or "").strip()

    if not username:
        errors.append({"field": "username", "message": "Username is required"})
    elif len(username) < MIN_USERNAME_LENGTH:
        errors.append({"field": "username", "message": "Username must be at least 3 characters long"})

    if not password:
        errors.append({"field": "password", "message": "Password is required"})
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors.append({"field": "password", "message": "Password must be at least 6 characters long"})

    if confirm is not None and confirm != password:
        errors.append({"field": "confirmPassword", "message": "Passwords do not match"})

    if not email:
        errors.append({"field": "email", "message": "Email is required"})
    elif not EMAIL_RE.match(email):
        errors.append({"field": "email", "message": "Please enter a valid email address"})

    if not full_name:
        errors.append({"field": "fullName", "message": "Full name is required"})

    return errors


def _session_payload(user: User) -> dict:
    return {"user": user.to_dict(), "token": create_access_token(user)}


# ============================================================
# REGISTER
# ============================================================

@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    errors = _registration_errors(data)
    if errors:
        return json_error("Validation failed", 400, errors=errors)

    username = data["username"].strip()
    if User.query.filter_by(username=username).first() is not None:
        return json_error("Username already exists", 409)

    user = User(
        username=username,
        email=data["email"].strip(),
        full_name=data["fullName"].strip(),
        is_admin=username in current_app.config.get("ADMIN_USERNAMES", []),
        is_active=True,
    )
    user.set_password(data["password"])

    try:
        db.session.add(user)
        db.session.flush()
        log_action(user, "REGISTER", after={"username": user.username, "email": user.email}, actor=user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Registration failed for %s", username)
        return json_error("Registration failed", 500)

    current_app.logger.info("Registered user %s", user.username)
    return jsonify({"success": True, "data": _session_payload(user), "message": "Registration successful"}), 201


# ============================================================
# LOGIN
# ============================================================

@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""

    if not username or not password:
        return json_error("Username and password are required", 400)

    user = User.query.filter_by(username=username).first()
    if user is None or not user.check_password(password):
        current_app.logger.info("Failed login for %s", username)
        return json_error("Invalid username or password", 401)

    if not user.is_active:
        return json_error("Account is inactive", 403)

    log_action(user, "LOGIN", actor=user)
    db.session.commit()

    return jsonify({"success": True, "data": _session_payload(user), "message": "Login successful"})


# ============================================================
# CURRENT USER / LOGOUT
# ============================================================

@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"success": True, "data": {"user": current_user.to_dict()}})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    return jsonify({"success": True, "message": "Logged out successfully"})
