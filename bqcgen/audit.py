"""
bqcgen/audit.py

Audit logging helpers.

Goals:
- Capture WHO did WHAT to WHICH entity, with BEFORE/AFTER snapshots.
- Store username snapshot to preserve identity even if username changes later.
- Store IP address for traceability.

IMPORTANT:
- This helper ADDS AuditLog entries to the current SQLAlchemy session.
  The calling route controls transaction boundaries (commit/rollback).
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import request
from flask_login import current_user

from .extensions import db
from .models import AuditLog

# Never written to the audit trail.
EXCLUDED_COLUMNS = {"password_hash"}


def _snapshot_value(value: Any) -> Any:
    """JSON-safe value: JSON columns stay structured, everything else becomes text."""
    if value is None or isinstance(value, (bool, int, float, str, list, dict)):
        return value
    return str(value)


def serialize_model(instance: Any) -> Dict[str, Any]:
    """
    Snapshot of a model's scalar columns (relationships are not followed).
    """
    return {
        column.name: _snapshot_value(getattr(instance, column.name))
        for column in instance.__table__.columns
        if column.name not in EXCLUDED_COLUMNS
    }


def log_action(
    entity: Any,
    action: str,
    *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    actor: Any = None,
) -> AuditLog:
    """
    Add an AuditLog entry to the current db session.

    Parameters:
        entity: model instance with .id (flush first for new rows)
        action: CREATE / UPDATE / DELETE / LOGIN / REGISTER
        before: dict snapshot (optional)
        after: dict snapshot (optional)
        actor: user to record when current_user is not set yet (login, register)
    """
    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError("log_action entity must have an 'id' attribute (after flush).")

    if actor is None and current_user.is_authenticated:
        actor = current_user
    entry = AuditLog(
        user_id=actor.id if actor is not None else None,
        username_snapshot=actor.username if actor is not None else None,
        entity_type=entity.__class__.__name__,
        entity_id=int(entity_id),
        action=str(action),
        before_data=json.dumps(before, ensure_ascii=False) if before else None,
        after_data=json.dumps(after, ensure_ascii=False) if after else None,
        ip_address=request.remote_addr,
    )
    db.session.add(entry)
    return entry
