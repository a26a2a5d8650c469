"""
bqcgen/security.py

Access control helpers for the BQC Generator API.

Key rules:
- Every /api/bqc and /api/admin route requires a verified user; the
  document pipeline itself performs no authorisation.
- Clients authenticate with "Authorization: Bearer <token>". Tokens are
  HS256 JWTs (python-jose) resolved through Flask-Login's request_loader,
  so routes use @login_required / current_user as usual.
- Admin: User.is_admin or username listed in ADMIN_USERNAMES.

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint collisions.
  We use functools.wraps everywhere.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import current_app, g, jsonify
from flask_login import current_user
from jose import JWTError, jwt

from .extensions import db
from .models import User

BEARER_PREFIX = "bearer "


def json_error(message: str, status: int, **extra: Any):
    """Consistent JSON error envelope."""
    body: Dict[str, Any] = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


# ---------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------
def create_access_token(user: User, expires_minutes: Optional[int] = None) -> str:
    config = current_app.config
    minutes = expires_minutes if expires_minutes is not None else config["JWT_EXPIRES_MINUTES"]
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, config["JWT_SECRET_KEY"], algorithm=config["JWT_ALGORITHM"])


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a token. Raises JWTError when invalid or expired."""
    config = current_app.config
    return jwt.decode(token, config["JWT_SECRET_KEY"], algorithms=[config["JWT_ALGORITHM"]])


def load_user_from_request(request) -> Optional[User]:
    """Flask-Login request_loader: resolve the bearer token to an active user."""
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        return None

    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        return None

    try:
        claims = decode_access_token(token)
        user_id = int(claims["sub"])
    except (JWTError, KeyError, ValueError) as exc:
        current_app.logger.info("Rejected bearer token: %s", exc)
        g.auth_error = "Invalid or expired token"
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        g.auth_error = "Invalid or expired token"
        return None
    return user


def unauthorized():
    """Flask-Login unauthorized handler (JSON instead of a login redirect)."""
    message = g.get("auth_error") or "Access token required"
    return json_error(message, 401)


# ---------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------
def is_admin() -> bool:
    """Return True if current user is authenticated and admin."""
    if not current_user.is_authenticated:
        return False
    if getattr(current_user, "is_admin", False):
        return True
    return current_user.username in current_app.config.get("ADMIN_USERNAMES", [])


def admin_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: authenticated admin only (401 without a token, 403 otherwise)."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        if not current_user.is_authenticated:
            return unauthorized()
        if not is_admin():
            return json_error("Admin access required", 403)
        return view_func(*args, **kwargs)

    return wrapper
