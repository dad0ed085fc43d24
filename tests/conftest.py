"""
Shared fixtures.

Every test gets its own in-memory SQLite store (tables created, bootstrap
superadmin seeded) behind a CommandRouter whose clock is pinned to
2025-01-20, plus one active user per role.
"""

from datetime import date

import pytest
from sqlalchemy.pool import StaticPool

from db import init_db, make_engine, make_session_factory
from models import User, UserRole
from app.services.auth import hash_password
from app.services.commands import CommandRouter
from app.settings import Settings

TODAY = date(2025, 1, 20)
PASSWORD = "Passw0rd!"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        backup_dir=str(tmp_path / "backups"),
        session_secret="test-secret",
    )


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def router(engine, settings):
    return CommandRouter(engine=engine, settings=settings, clock=lambda: TODAY)


@pytest.fixture
def db_session(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


def _add_user(session, username, role, is_active=True):
    user = User(
        username=username,
        password_hash=hash_password(PASSWORD),
        role=role,
        is_active=is_active,
        must_change_password=False,
    )
    session.add(user)
    session.commit()
    return user.id


@pytest.fixture
def superadmin_id(db_session):
    return db_session.query(User).filter(User.username == "admin").one().id


@pytest.fixture
def admin_id(db_session):
    return _add_user(db_session, "alice", UserRole.ADMIN)


@pytest.fixture
def viewer_id(db_session):
    return _add_user(db_session, "victor", UserRole.VIEWER)


@pytest.fixture
def inactive_id(db_session):
    return _add_user(db_session, "ivan", UserRole.ADMIN, is_active=False)


@pytest.fixture
def expense_category(router, admin_id):
    result = router.dispatch(
        "createCategory",
        admin_id,
        {"name": "Groceries", "type": "expense", "color": "#ef4444"},
    )
    assert result.success, result.message
    return result.data["category"]


@pytest.fixture
def income_category(router, admin_id):
    result = router.dispatch("createCategory", admin_id, {"name": "Salary", "type": "income"})
    assert result.success, result.message
    return result.data["category"]
