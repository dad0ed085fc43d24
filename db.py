# db.py
# Role: Database bootstrap for LocalFinTrack.
#       Defines the SQLAlchemy engine factory, session factory, and declarative Base.
#       Also ensures the on-disk database directory exists and seeds the first superadmin.

"""
Database setup for LocalFinTrack.

- Uses the SQLite database configured in app.settings (default: <project_root>/database/localfintrack.db)
- Ensures the database folder exists.
- Creates tables and the bootstrap superadmin on first run.
"""

import os

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from app.settings import get_settings

logger = structlog.get_logger(__name__)

# Declarative base class for ORM models
Base = declarative_base()


def make_engine(database_url: str | None = None, **kwargs) -> Engine:
    """
    Create the long-lived engine for the configured store.

    For SQLite we need check_same_thread=False (FastAPI serves requests
    from a thread pool) and foreign keys switched on per connection.
    """
    url = database_url or get_settings().database_url

    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args

        db_path = url[len("sqlite:///"):]
        if db_path and db_path != ":memory:":
            # Folder for SQLite DB (created on startup if missing)
            os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)

    engine = create_engine(url, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    """Standard session factory; one session per command dispatch."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def init_db(engine: Engine) -> None:
    """
    Create tables (only if they don't exist yet) and seed the superadmin.

    Safe to run on every startup.
    """
    # models must be imported so their tables are registered on Base.metadata
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    session = make_session_factory(engine)()
    try:
        create_superadmin_user(session)
    finally:
        session.close()


def create_superadmin_user(session: Session) -> bool:
    """
    Create the bootstrap superadmin if it doesn't exist.

    The account starts with a temporary password and must change it
    on first login. Returns True when a user was created.
    """
    from models import User, UserRole
    from app.services.auth import hash_password

    settings = get_settings()

    existing = session.query(User).filter(User.username == settings.bootstrap_username).first()
    if existing:
        return False

    user = User(
        username=settings.bootstrap_username,
        password_hash=hash_password(settings.bootstrap_password),
        role=UserRole.SUPERADMIN,
        is_active=True,
        must_change_password=True,
    )
    session.add(user)
    session.commit()

    logger.info("superadmin_created", username=user.username)
    return True
