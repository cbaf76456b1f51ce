"""
Text Production Blueprint ("Texterstellung").

HTTP endpoints for the per-project text production workflow.

Endpoints:
    POST   /api/v1/projects/<pid>/text-production
           Body: { "content_units": [{"id", "name", "content"}, ...],
                   "general_unit": {"id", "name", "content"}? }
           Returns: 201 with the new run (items included).

    GET    /api/v1/projects/<pid>/text-production
           Returns: 200 with run, items (by content unit name), versions
                    (newest first) and status summary.

    DELETE /api/v1/text-production/<run_id>                       (admin)
    POST   /api/v1/text-production/<run_id>/complete-all
    PUT    /api/v1/text-production/items/<item_id>/draft           Body: { "content" }
    POST   /api/v1/text-production/items/<item_id>/complete
    POST   /api/v1/text-production/items/<item_id>/incomplete
    PUT    /api/v1/text-production/items/<item_id>/note            Body: { "note" | null }
    POST   /api/v1/text-production/versions/<version_id>/decision
           Body: { "decision": "APPROVED|CHANGES_REQUESTED", "comment"? }

Layer contract:
    - Blueprint: parse + validate input shape, hand the request actor to the
      service, render the result.
    - NO db.session calls and NO role checks here — text_production_service
      owns both.
"""

import logging

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import HTTPException

from agency_ops.blueprints import current_actor
from agency_ops.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from agency_ops.models.text_production import CUSTOMER_DECISIONS
from agency_ops.services import text_production_service as tps
from agency_ops.utils.errors import E, api_error, exception_response

logger = logging.getLogger(__name__)

text_production_bp = Blueprint("text_production", __name__, url_prefix="/api/v1")


# ── Error handlers ────────────────────────────────────────────────────────────


@text_production_bp.errorhandler(PermissionDeniedError)
@text_production_bp.errorhandler(NotFoundError)
@text_production_bp.errorhandler(ConflictError)
@text_production_bp.errorhandler(ValidationError)
def _handle_domain_error(error):
    return exception_response(error)


@text_production_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return error
    logger.exception("Unexpected error in text_production_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error")


# ── Helpers ───────────────────────────────────────────────────────────────────


def _validate_unit(unit, label: str):
    """Return an error response if ``unit`` is not a {"id", "name", "content"} object."""
    if not isinstance(unit, dict):
        return api_error(E.VALIDATION_INVALID, f"{label} must be an object")
    if not unit.get("id") or not isinstance(unit.get("name"), str) or not unit["name"].strip():
        return api_error(E.VALIDATION_REQUIRED, f"{label} requires 'id' and 'name'")
    content = unit.get("content")
    if content is not None and not isinstance(content, str):
        return api_error(E.VALIDATION_INVALID, f"{label}.content must be a string")
    return None


def _run_payload(run) -> dict:
    payload = run.to_dict(include_items=True)
    payload["summary"] = tps.get_run_summary(run)
    return payload


# ═════════════════════════════════════════════════════════════════════════
# Run lifecycle
# ═════════════════════════════════════════════════════════════════════════


@text_production_bp.route("/projects/<int:project_id>/text-production", methods=["POST"])
def start_text_production(project_id: int):
    """Start text production from the submitted bullet points."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")

    units = data.get("content_units")
    if units is None:
        units = []
    if not isinstance(units, list):
        return api_error(E.VALIDATION_INVALID, "content_units must be a list")
    for index, unit in enumerate(units):
        err = _validate_unit(unit, f"content_units[{index}]")
        if err:
            return err

    general_unit = data.get("general_unit")
    if general_unit is not None:
        err = _validate_unit(general_unit, "general_unit")
        if err:
            return err

    run = tps.initialize_run(project_id, units, general_unit, actor=current_actor())
    return jsonify(_run_payload(run)), 201


@text_production_bp.route("/projects/<int:project_id>/text-production", methods=["GET"])
def get_text_production(project_id: int):
    run = tps.get_run_for_project(project_id, current_actor())
    return jsonify(_run_payload(run)), 200


@text_production_bp.route("/text-production/<run_id>", methods=["DELETE"])
def reset_text_production(run_id: str):
    """Irreversibly delete the run with all items and versions (admin only)."""
    tps.reset_run(run_id, current_actor())
    return jsonify({"deleted": True, "run_id": run_id}), 200


@text_production_bp.route("/text-production/<run_id>/complete-all", methods=["POST"])
def complete_all(run_id: str):
    count = tps.mark_all_complete(run_id, current_actor())
    return jsonify({"count": count, "run_id": run_id}), 200


# ═════════════════════════════════════════════════════════════════════════
# Items
# ═════════════════════════════════════════════════════════════════════════


@text_production_bp.route("/text-production/items/<item_id>/draft", methods=["PUT"])
def save_draft(item_id: str):
    """Save the item's text; returns the version now holding it."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    content = data.get("content")
    if not isinstance(content, str):
        return api_error(E.VALIDATION_REQUIRED, "Field 'content' is required.")

    version = tps.save_draft(item_id, content, current_actor())
    return jsonify({"version": version.to_dict(), "item": version.item.to_dict()}), 200


@text_production_bp.route("/text-production/items/<item_id>/complete", methods=["POST"])
def mark_complete(item_id: str):
    item = tps.mark_complete(item_id, current_actor())
    return jsonify({"item": item.to_dict(), "run": item.run.to_dict()}), 200


@text_production_bp.route("/text-production/items/<item_id>/incomplete", methods=["POST"])
def mark_incomplete(item_id: str):
    item = tps.mark_incomplete(item_id, current_actor())
    return jsonify({"item": item.to_dict(), "run": item.run.to_dict()}), 200


@text_production_bp.route("/text-production/items/<item_id>/note", methods=["PUT"])
def set_note(item_id: str):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    note = data.get("note")
    if note is not None and not isinstance(note, str):
        return api_error(E.VALIDATION_INVALID, "note must be a string or null")

    item = tps.set_note(item_id, note, current_actor())
    return jsonify({"item": item.to_dict()}), 200


# ═════════════════════════════════════════════════════════════════════════
# Versions
# ═════════════════════════════════════════════════════════════════════════


@text_production_bp.route("/text-production/versions/<version_id>/decision", methods=["POST"])
def record_decision(version_id: str):
    """Record the client's decision on a version (locks it against overwrite)."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    decision = (data.get("decision") or "").strip()
    if not decision:
        return api_error(E.VALIDATION_REQUIRED, "Field 'decision' is required.")
    if decision not in CUSTOMER_DECISIONS:
        return api_error(
            E.VALIDATION_INVALID,
            f"Invalid decision '{decision}'.",
            details={"valid_decisions": sorted(CUSTOMER_DECISIONS)},
        )

    version = tps.record_customer_decision(
        version_id, decision, current_actor(), comment=data.get("comment"),
    )
    return jsonify({"version": version.to_dict()}), 200
