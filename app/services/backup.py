# app/services/backup.py
#
# Backup / restore of the SQLite store file.

import os
import shutil
from datetime import datetime

import structlog
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from models import utcnow
from app.services.errors import NotFound, OperationFailed, ValidationError

logger = structlog.get_logger(__name__)

BACKUP_PREFIX = "localfintrack-backup-"
INVALID_BACKUP_MESSAGE = "Backup file is not a valid LocalFinTrack database"

# a store without these tables cannot be served after a restore
REQUIRED_TABLES = ("users", "categories", "transactions", "audit_entries")


def backup_file_name(now: datetime | None = None) -> str:
    now = now or utcnow()
    return f"{BACKUP_PREFIX}{now:%Y%m%d-%H%M%S}.db"


def backup_database(db_path: str | None, backup_dir: str, now: datetime | None = None) -> str:
    """
    Copy the store file into backup_dir. Returns the backup's path.
    """
    if not db_path:
        raise OperationFailed("Backup is only supported for a file-based SQLite database")
    if not os.path.exists(db_path):
        raise OperationFailed("Database file not found")

    os.makedirs(backup_dir, exist_ok=True)
    target = os.path.join(backup_dir, backup_file_name(now))
    shutil.copy2(db_path, target)

    logger.info("database_backed_up", source=db_path, target=target)
    return target


def list_backups(backup_dir: str) -> list[str]:
    """Backup files in backup_dir, newest first."""
    if not os.path.isdir(backup_dir):
        return []
    names = [n for n in os.listdir(backup_dir) if n.startswith(BACKUP_PREFIX) and n.endswith(".db")]
    return [os.path.join(backup_dir, n) for n in sorted(names, reverse=True)]


def check_backup_file(backup_path: str) -> None:
    """
    Open the candidate read-only and make sure it is an intact store.

    Raises ValidationError for non-SQLite files, corrupt databases and
    databases without the LocalFinTrack tables.
    """
    engine = create_engine(f"sqlite:///file:{backup_path}?mode=ro&uri=true", poolclass=NullPool)
    try:
        with engine.connect() as conn:
            integrity = conn.exec_driver_sql("PRAGMA integrity_check").scalar()
            tables = set(inspect(conn).get_table_names())
    except SQLAlchemyError as e:
        logger.warning("backup_unreadable", path=backup_path, error=str(e))
        raise ValidationError(INVALID_BACKUP_MESSAGE) from e
    finally:
        engine.dispose()

    missing = [t for t in REQUIRED_TABLES if t not in tables]
    if integrity != "ok" or missing:
        logger.warning("backup_rejected", path=backup_path, integrity=integrity, missing_tables=missing)
        raise ValidationError(INVALID_BACKUP_MESSAGE)


def check_restore(db_path: str | None, backup_path: str) -> None:
    """Raise before any connection is dropped if a restore cannot work."""
    if not db_path:
        raise OperationFailed("Restore is only supported for a file-based SQLite database")
    if not os.path.isfile(backup_path):
        raise NotFound("Backup file not found")
    check_backup_file(backup_path)


def restore_database(db_path: str | None, backup_path: str) -> None:
    """
    Overwrite the store file with backup_path.

    The caller must release every connection to the store first;
    the app has to be restarted afterwards.
    """
    check_restore(db_path, backup_path)

    shutil.copy2(backup_path, db_path)
    logger.warning("database_restored", source=backup_path, target=db_path)
