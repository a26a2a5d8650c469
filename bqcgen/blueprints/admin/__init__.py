"""
Admin blueprint package.

Exposes the Blueprint object; routes live in routes.py.
"""

from .routes import admin_bp  # noqa: F401
