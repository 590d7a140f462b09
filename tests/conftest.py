"""
Shared pytest fixtures for the Authorization Pack Service test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - org_headers: X-Organization-ID header for the default test organization
"""

import pytest

from authpack import create_app
from authpack.models import db as _db
from authpack.services.template_sync_service import reset_sync_state

TEST_ORG = "test-org"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


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
        # tables are recreated per test, so the once-per-process catalog
        # sync has to run again
        reset_sync_state()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
        reset_sync_state()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def org_headers():
    return {"X-Organization-ID": TEST_ORG, "X-User-ID": "user-1"}
