"""
Project Blueprint — minimal project endpoints.

Endpoints:
    POST   /api/v1/projects                Body: { "name", "client_name"?, "textit"? }
    GET    /api/v1/projects/<pid>

Layer contract:
    - Blueprint: parse + validate input, call service, return JSON.
    - NO db.session calls here — all writes owned by project_service.
"""

import logging

from flask import Blueprint, jsonify, request

from agency_ops.core.exceptions import NotFoundError, ValidationError
from agency_ops.services import project_service
from agency_ops.utils.errors import E, api_error, exception_response

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")


@project_bp.errorhandler(NotFoundError)
@project_bp.errorhandler(ValidationError)
def _handle_domain_error(error):
    return exception_response(error)


@project_bp.route("/projects", methods=["POST"])
def create_project():
    """Create a project. Returns 201 with the project."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return api_error(E.VALIDATION_REQUIRED, "Field 'name' is required.")
    if len(name) > 200:
        return api_error(E.VALIDATION_INVALID, "name must be ≤ 200 characters")

    project = project_service.create_project(data)
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id: int):
    project = project_service.get_project(project_id)
    return jsonify(project.to_dict()), 200
