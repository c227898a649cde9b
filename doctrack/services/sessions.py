import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from doctrack.core import sessions as session_rules
from doctrack.core.exceptions import CollaboratorUnavailable
from doctrack.core.sessions import SessionRecord
from doctrack.models.tracking import UserSession
from doctrack.services.common import coerce_uuid
from doctrack.services.directory import People

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "user_sessions"


def _record(row: UserSession | None) -> SessionRecord | None:
    if row is None:
        return None
    return SessionRecord.model_validate(row)


def _publish(record: SessionRecord) -> None:
    try:
        from doctrack.tasks.events import broadcast_change

        broadcast_change.delay(
            table=SESSIONS_TABLE,
            event_type="UPDATE",
            record=record.model_dump(mode="json"),
        )
    except Exception as e:
        logger.exception("Failed to publish session change: %s", e)


class Sessions:
    @staticmethod
    def get(db: Session, person_id: str) -> SessionRecord:
        record = _record(db.get(UserSession, coerce_uuid(person_id)))
        if record is None:
            return SessionRecord(person_id=person_id)
        return record

    @staticmethod
    def _save(db: Session, row: UserSession | None, record: SessionRecord) -> None:
        if row is None:
            row = UserSession(person_id=coerce_uuid(record.person_id))
            db.add(row)
        row.token = record.token
        row.is_active = record.is_active
        row.updated_at = record.updated_at
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to persist session for %s: %s", record.person_id, e)
            raise CollaboratorUnavailable("persistence", "The session store rejected the write")

    @staticmethod
    def begin(db: Session, person_id: str, now: datetime | None = None) -> SessionRecord:
        """Log a person in, superseding whatever session they held."""
        People.actor(db, person_id)
        row = db.get(UserSession, coerce_uuid(person_id))
        record = session_rules.begin(
            str(coerce_uuid(person_id)),
            _record(row),
            now or datetime.now(timezone.utc),
        )
        Sessions._save(db, row, record)
        logger.info("Began session %d for %s", record.token, record.person_id)
        _publish(record)
        return record

    @staticmethod
    def end(
        db: Session, person_id: str, token: int, now: datetime | None = None
    ) -> SessionRecord:
        row = db.get(UserSession, coerce_uuid(person_id))
        current = _record(row)
        if current is None:
            return SessionRecord(person_id=person_id)
        record = session_rules.end(current, token, now)
        if record == current:
            logger.info("Ignored logout of stale session %d for %s", token, person_id)
            return current
        Sessions._save(db, row, record)
        logger.info("Ended session %d for %s", token, record.person_id)
        _publish(record)
        return record

    @staticmethod
    def must_terminate(db: Session, person_id: str, token: int) -> bool:
        return session_rules.must_terminate(Sessions.get(db, person_id), token)


sessions = Sessions()
