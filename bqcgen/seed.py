"""
bqcgen/seed.py

Account bootstrap used by the CLI.

Rules:
- seed_admin() is safe to run multiple times (no-op once any user exists).
- create_user() refuses duplicate usernames.
"""

from __future__ import annotations

from typing import Optional

import click

from .extensions import db
from .models import User


def create_user(
    username: str,
    password: str,
    *,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    is_admin: bool = False,
) -> User:
    username = (username or "").strip()
    if not username or not password:
        raise click.UsageError("Username and password are required.")
    if User.query.filter_by(username=username).first() is not None:
        raise click.UsageError(f"User '{username}' already exists.")

    user = User(
        username=username,
        email=email,
        full_name=full_name or username,
        is_admin=is_admin,
        is_active=True,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def seed_admin(username: str, password: str) -> Optional[User]:
    """Create the first admin of the system, or return None if users exist."""
    if User.query.count() > 0:
        return None
    return create_user(username, password, full_name="System Administrator", is_admin=True)
