"""
Role checks for text-production operations.

The actor (id, display name, role) is resolved upstream from the bearer
token; this module only decides whether that role may perform an action.

Roles:
    admin   — everything, including resetting a run and ingesting client decisions
    editor  — author texts, complete items, start a run
    viewer  — read-only

Usage:
    from agency_ops.services.permission import check_permission

    check_permission(actor, "text_save_draft")   # raises PermissionDeniedError
"""

from __future__ import annotations

from dataclasses import dataclass

from agency_ops.core.exceptions import PermissionDeniedError

ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"
ROLE_VIEWER = "viewer"

VALID_ROLES = frozenset({ROLE_ADMIN, ROLE_EDITOR, ROLE_VIEWER})

_AUTHORS = frozenset({ROLE_ADMIN, ROLE_EDITOR})

# action → roles allowed to perform it
PERMISSION_MATRIX: dict[str, frozenset[str]] = {
    "text_view": VALID_ROLES,
    "text_start": _AUTHORS,
    "text_save_draft": _AUTHORS,
    "text_mark_complete": _AUTHORS,
    "text_mark_incomplete": _AUTHORS,
    "text_mark_all_complete": _AUTHORS,
    "text_set_note": _AUTHORS,
    "text_record_decision": frozenset({ROLE_ADMIN}),
    "text_reset": frozenset({ROLE_ADMIN}),
}


@dataclass(frozen=True)
class Actor:
    """The user performing a request, as supplied by the auth layer."""

    id: str
    name: str | None
    role: str

    @property
    def display_name(self) -> str:
        return self.name or "Unbekannt"


def has_permission(actor: Actor | None, action: str) -> bool:
    """Return True if the actor's role grants ``action``."""
    if actor is None:
        return False
    return actor.role in PERMISSION_MATRIX.get(action, frozenset())


def check_permission(actor: Actor | None, action: str) -> Actor:
    """Raise PermissionDeniedError unless the actor may perform ``action``.

    Returns the actor so callers can write ``actor = check_permission(...)``.
    """
    if not has_permission(actor, action):
        raise PermissionDeniedError(
            action,
            actor_id=actor.id if actor else None,
            role=actor.role if actor else None,
        )
    return actor
