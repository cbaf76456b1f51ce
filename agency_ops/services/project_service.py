"""
Project service — minimal project CRUD plus the textit flag sink.

The text-production rollup calls ``set_project_content_flag`` when a run
completes; nothing in the workflow reads the flag back.
"""

from __future__ import annotations

import logging

from agency_ops.core.exceptions import NotFoundError, ValidationError
from agency_ops.models import db
from agency_ops.models.project import TEXTIT_NONE, VALID_TEXTIT_FLAGS, Project

logger = logging.getLogger(__name__)


def get_project(project_id: int) -> Project:
    """Return the project or raise NotFoundError."""
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def create_project(data: dict) -> Project:
    """Create a project.

    Args:
        data: {"name": str, "client_name": str?, "textit": str?}

    Raises:
        ValidationError: unknown textit flag.
    """
    textit = data.get("textit") or TEXTIT_NONE
    if textit not in VALID_TEXTIT_FLAGS:
        raise ValidationError(
            f"Invalid textit flag '{textit}'",
            details={"textit": sorted(VALID_TEXTIT_FLAGS)},
        )

    project = Project(
        name=data["name"].strip(),
        client_name=(data.get("client_name") or "").strip() or None,
        textit=textit,
    )
    db.session.add(project)
    db.session.commit()
    logger.info("Project created id=%s", project.id, extra={"project_id": project.id})
    return project


def set_project_content_flag(project_id: int, value: str) -> None:
    """Write the project's textit flag. Does not commit — caller owns the transaction."""
    if value not in VALID_TEXTIT_FLAGS:
        raise ValidationError(f"Invalid textit flag '{value}'")
    project = get_project(project_id)
    previous = project.textit
    project.textit = value
    logger.info(
        "Project textit flag %s → %s",
        previous,
        value,
        extra={"project_id": project_id},
    )
