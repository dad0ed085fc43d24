# app/services/audit.py
"""
Audit Recorder

Appends one immutable AuditEntry per mutating command.

The write is best-effort: it happens in its own commit after the
primary mutation has already committed. If it fails, the failure is
logged and the mutation stands.
"""

import json
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import AuditEntry, User

logger = structlog.get_logger(__name__)


def _to_json(details: Any) -> str | None:
    if details is None:
        return None
    return json.dumps(details, default=str, sort_keys=True)


class AuditRecorder:
    """Writes audit rows and reads them back for the audit panel."""

    def record(
        self,
        db: Session,
        actor_id: int,
        action: str,
        entity: str,
        entity_id: int | None,
        details: Any = None,
    ) -> bool:
        """
        Append one entry and commit it.

        Returns False (after logging) if the write failed.
        """
        entry = AuditEntry(
            user_id=actor_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            details=_to_json(details),
        )
        try:
            db.add(entry)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                "audit_write_failed",
                action=action,
                entity=entity,
                entity_id=entity_id,
                error=str(e),
            )
            return False

        logger.info(
            "audit_recorded",
            actor_id=actor_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
        )
        return True

    def list_entries(self, db: Session) -> list[tuple[AuditEntry, str | None]]:
        """All entries newest first, each paired with the actor's username (None if deleted)."""
        return (
            db.query(AuditEntry, User.username)
            .outerjoin(User, User.id == AuditEntry.user_id)
            .order_by(AuditEntry.timestamp.desc(), AuditEntry.id.desc())
            .all()
        )
