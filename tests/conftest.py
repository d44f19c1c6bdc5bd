"""
Shared pytest fixtures for the NetOps Console test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - site / equipment / technician / admin / manager: pre-created records
"""

import pytest

from netops import create_app
from netops.models import db as _db
from netops.models.network import Equipment, Profile, Site


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
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── ORM helpers ──────────────────────────────────────────────────────────


def _make_site(code: str = "TUN-001", name: str = "Tunis Central", status: str = "active") -> Site:
    s = Site(code=code, name=name, status=status, region="North")
    _db.session.add(s)
    _db.session.commit()
    return s


def _make_equipment(site_id: str, name: str = "BTS Cabinet", status: str = "operational") -> Equipment:
    e = Equipment(site_id=site_id, name=name, type="bts", status=status)
    _db.session.add(e)
    _db.session.commit()
    return e


def _make_profile(role: str = "technician", email: str | None = None, name: str | None = None) -> Profile:
    p = Profile(
        full_name=name or f"Test {role.title()}",
        email=email or f"{role}@netops.test",
        role=role,
    )
    _db.session.add(p)
    _db.session.commit()
    return p


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def site():
    return _make_site()


@pytest.fixture()
def equipment(site):
    return _make_equipment(site.id)


@pytest.fixture()
def technician():
    return _make_profile("technician")


@pytest.fixture()
def admin():
    return _make_profile("admin")


@pytest.fixture()
def manager():
    return _make_profile("manager")
