"""
BQC blueprint package.

Exposes the Blueprint object; routes live in routes.py.
"""

from .routes import bqc_bp  # noqa: F401
