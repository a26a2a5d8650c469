"""
BQC Routes

Provides (all require a bearer token):
- POST   /api/bqc/save          upsert on (user, refNumber)
- GET    /api/bqc/load/<id>
- GET    /api/bqc/list
- DELETE /api/bqc/delete/<id>
- POST   /api/bqc/validate
- POST   /api/bqc/generate      .docx download

Rules:
- Users only ever see and change their own entries (404 otherwise).
- Mutations follow: validate -> mutate -> flush -> audit -> commit.
- Document generation reads the posted form data and never touches the database.
"""

from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from ...audit import log_action, serialize_model
from ...docgen import (
    DocumentGenerationError,
    UnsupportedFormatError,
    from_payload,
    generate_document,
    to_payload,
    validate_record,
)
from ...extensions import db
from ...repository import BQCRepository
from ...security import json_error

bqc_bp = Blueprint("bqc", __name__, url_prefix="/api/bqc")


def _repository() -> BQCRepository:
    return BQCRepository(db.session)


def _iso(value):
    return value.isoformat() if value else None


# ============================================================
# SAVE / LOAD / LIST / DELETE
# ============================================================

@bqc_bp.route("/save", methods=["POST"])
@login_required
def save():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return json_error("Invalid request body", 400)

    record = from_payload(payload)
    if not record.ref_number:
        return json_error("Reference number is required", 400)

    repo = _repository()
    try:
        existing = repo.find_by_ref(current_user.id, record.ref_number)
        before = serialize_model(existing) if existing is not None else None

        entry_id = repo.upsert(current_user.id, record.ref_number, record)
        entry = repo.get_entry(current_user.id, entry_id)
        log_action(entry, "UPDATE" if before else "CREATE", before=before, after=serialize_model(entry))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to save BQC %s", record.ref_number)
        return json_error("Failed to save data", 500)

    current_app.logger.info("Saved BQC %s (id=%s) for %s", record.ref_number, entry_id, current_user.username)
    return jsonify({"success": True, "data": {"id": entry_id}, "message": "Data saved successfully"})


@bqc_bp.route("/load/<int:entry_id>", methods=["GET"])
@login_required
def load(entry_id: int):
    repo = _repository()
    entry = repo.get_entry(current_user.id, entry_id)
    if entry is None:
        return json_error("BQC entry not found", 404)

    data = to_payload(repo.to_record(entry))
    data["createdAt"] = _iso(entry.created_at)
    data["updatedAt"] = _iso(entry.updated_at)
    return jsonify({"success": True, "data": data})


@bqc_bp.route("/list", methods=["GET"])
@login_required
def list_entries():
    return jsonify({"success": True, "data": _repository().list(current_user.id)})


@bqc_bp.route("/delete/<int:entry_id>", methods=["DELETE"])
@login_required
def delete(entry_id: int):
    repo = _repository()
    entry = repo.get_entry(current_user.id, entry_id)
    if entry is None:
        return json_error("BQC entry not found", 404)

    before = serialize_model(entry)
    try:
        repo.delete(current_user.id, entry_id)
        log_action(entry, "DELETE", before=before)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to delete BQC id=%s", entry_id)
        return json_error("Failed to delete entry", 500)

    return jsonify({"success": True, "message": "Entry deleted successfully"})


# ============================================================
# VALIDATE / GENERATE
# ============================================================

@bqc_bp.route("/validate", methods=["POST"])
@login_required
def validate():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    data = payload.get("data", payload) if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        return json_error("Invalid request body", 400)

    errors = validate_record(from_payload(data))
    return jsonify({"success": True, "data": {"isValid": not errors, "errors": errors}})


@bqc_bp.route("/generate", methods=["POST"])
@login_required
def generate():
    payload = request.get_json(silent=True)
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        return json_error("BQC data is required", 400)

    record = from_payload(data)
    try:
        document = generate_document(record, output_format=payload.get("format"))
    except UnsupportedFormatError as exc:
        return json_error(str(exc), 400)
    except DocumentGenerationError:
        return json_error("Failed to generate document", 500)

    response = Response(document.content, mimetype=document.content_type)
    response.headers["Content-Disposition"] = f'attachment; filename="{document.filename}"'
    response.headers["Content-Length"] = str(document.size)
    return response
