"""
Agency Ops
Blueprint registry.
"""

from flask import g


def current_actor():
    """Actor resolved by the JWT middleware for this request (or None)."""
    return getattr(g, "actor", None)
