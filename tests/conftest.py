"""
Shared pytest fixtures for the Agency Ops test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - admin / editor / viewer: Actor objects per role
    - auth_headers: factory building Bearer headers for an Actor
    - project: Pre-created Project with text production in scope
"""

import pytest

from agency_ops import create_app
from agency_ops.models import db as _db
from agency_ops.models.project import Project
from agency_ops.services.jwt_service import generate_access_token
from agency_ops.services.permission import Actor


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Actors ───────────────────────────────────────────────────────────────


@pytest.fixture()
def admin():
    return Actor(id="u-admin", name="Anna Admin", role="admin")


@pytest.fixture()
def editor():
    return Actor(id="u-editor", name="Erik Texter", role="editor")


@pytest.fixture()
def viewer():
    return Actor(id="u-viewer", name="Vera Vertrieb", role="viewer")


@pytest.fixture()
def auth_headers():
    """Return a function building Authorization headers for an Actor."""

    def _headers(actor: Actor) -> dict:
        token = generate_access_token(actor.id, actor.name, actor.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def project():
    """Project with text production in scope (bullet points delivered)."""
    p = Project(name="Website Bäckerei Müller", client_name="Bäckerei Müller", textit="JA_NEIN")
    _db.session.add(p)
    _db.session.commit()
    return p
