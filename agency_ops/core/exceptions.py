"""
Platform-wide exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes everywhere. Every exception carries a
machine-readable ``kind`` plus the identifiers it concerns, never
formatted UI text.

Usage:
    from agency_ops.core.exceptions import NotFoundError, NoContentError

    raise NotFoundError(resource="TextItem", resource_id=item_id)
    raise NoContentError(item_id=item.id)
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Project", "TextItem").
        resource_id: The PK that was looked up. Included in logs and response.
    """

    kind = "not_found"

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)

    @property
    def context(self) -> dict:
        return {"resource": self.resource, "resource_id": self.resource_id}


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint) — this
    exception signals that the data was well-formed but violated a business
    rule. Maps to HTTP 422.

    Args:
        message: Explanation of what failed.
        details: Optional structured context (field names, ids).
    """

    kind = "validation"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)

    @property
    def context(self) -> dict:
        return dict(self.details)


class ConflictError(Exception):
    """Raised when an operation would violate a uniqueness rule. Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    kind = "conflict"

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)

    @property
    def context(self) -> dict:
        return {"resource": self.resource, "field": self.field, "value": self.value}


class PermissionDeniedError(Exception):
    """Raised when the acting user's role does not allow the operation.

    ``actor_id`` is None when no actor could be resolved at all; the HTTP
    layer maps that case to 401 and the role mismatch to 403.
    """

    kind = "unauthorized"

    def __init__(self, action: str, actor_id: str | None = None, role: str | None = None) -> None:
        self.action = action
        self.actor_id = actor_id
        self.role = role
        if actor_id is None:
            msg = f"Authentication required for '{action}'"
        else:
            msg = f"Actor {actor_id} (role={role}) may not perform '{action}'"
        super().__init__(msg)

    @property
    def context(self) -> dict:
        return {"action": self.action, "actor_id": self.actor_id, "role": self.role}


# ── Text production workflow ────────────────────────────────────────────────


class AlreadyInitializedError(ConflictError):
    """A text-production run already exists for the project."""

    kind = "already_initialized"

    def __init__(self, project_id: int, run_id: str | None = None) -> None:
        self.project_id = project_id
        self.run_id = run_id
        super().__init__("TextProductionRun", "project_id", str(project_id))

    @property
    def context(self) -> dict:
        return {"project_id": self.project_id, "run_id": self.run_id}


class EmptyInputError(ValidationError):
    """Neither content units nor a general unit were supplied."""

    kind = "empty_input"

    def __init__(self, project_id: int) -> None:
        super().__init__(
            "At least one content unit or a general unit is required",
            details={"project_id": project_id},
        )


class NoContentError(ValidationError):
    """Completion attempted on an item that has no versions."""

    kind = "no_content"

    def __init__(self, item_id: str) -> None:
        super().__init__(
            "Item has no text version and cannot be completed",
            details={"item_id": item_id},
        )


class NothingToCompleteError(ValidationError):
    """Bulk completion found no eligible draft items."""

    kind = "nothing_to_complete"

    def __init__(self, run_id: str) -> None:
        super().__init__(
            "No draft items with content to complete",
            details={"run_id": run_id},
        )
