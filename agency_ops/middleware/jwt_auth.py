"""
JWT Auth Middleware — parses the bearer token, sets g.actor.

Login and session handling live in the external auth service; this hook
only verifies the token and exposes (id, display name, role) to the
request. A missing or invalid token leaves g.actor = None, and the
service layer turns that into a 401 for any protected operation.
"""

import logging

import jwt as pyjwt
from flask import g, request

from agency_ops.services.jwt_service import decode_access_token
from agency_ops.services.permission import VALID_ROLES, Actor

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def actor_from_payload(payload: dict) -> Actor | None:
    """Build an Actor from token claims; None if the claims are unusable."""
    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or role not in VALID_ROLES:
        return None
    return Actor(id=str(sub), name=payload.get("name"), role=role)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.actor = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired access token on %s", path)
            return
        except pyjwt.InvalidTokenError as exc:
            logger.warning("Rejected access token on %s: %s", path, exc)
            return

        g.actor = actor_from_payload(payload)
