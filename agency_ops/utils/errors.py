"""Standardised API error responses.

Usage
-----
    from agency_ops.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Project not found")
    return api_error(E.VALIDATION_REQUIRED, "content is required")
    return exception_response(exc)      # any agency_ops.core.exceptions error
"""

from __future__ import annotations

from flask import jsonify

from agency_ops.core.exceptions import (
    AlreadyInitializedError,
    ConflictError,
    EmptyInputError,
    NoContentError,
    NotFoundError,
    NothingToCompleteError,
    PermissionDeniedError,
    ValidationError,
)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400 (malformed input) / 422 (business rule)
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_RULE = "ERR_VALIDATION_RULE"

    # Auth – HTTP 401 / 403
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    ALREADY_INITIALIZED = "ERR_ALREADY_INITIALIZED"

    # Text production workflow – HTTP 422
    EMPTY_INPUT = "ERR_EMPTY_INPUT"
    NO_CONTENT = "ERR_NO_CONTENT"
    NOTHING_TO_COMPLETE = "ERR_NOTHING_TO_COMPLETE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.ALREADY_INITIALIZED: 409,
    E.EMPTY_INPUT: 422,
    E.NO_CONTENT: 422,
    E.NOTHING_TO_COMPLETE: 422,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}

# Most specific class first: subclasses before their bases.
_EXCEPTION_CODES: tuple[tuple[type[Exception], str], ...] = (
    (AlreadyInitializedError, E.ALREADY_INITIALIZED),
    (EmptyInputError, E.EMPTY_INPUT),
    (NoContentError, E.NO_CONTENT),
    (NothingToCompleteError, E.NOTHING_TO_COMPLETE),
    (NotFoundError, E.NOT_FOUND),
    (ConflictError, E.CONFLICT_DUPLICATE),
    (ValidationError, E.VALIDATION_RULE),
)


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (item id, run id, ...).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def exception_response(exc: Exception):
    """Map a platform exception to its standard JSON error response."""
    if isinstance(exc, PermissionDeniedError):
        code = E.UNAUTHENTICATED if exc.actor_id is None else E.FORBIDDEN
        return api_error(code, str(exc), details={"kind": exc.kind, **exc.context})

    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(exc, exc_type):
            return api_error(code, str(exc), details={"kind": exc.kind, **exc.context})

    return api_error(E.INTERNAL, "Internal server error")
