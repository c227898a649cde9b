from __future__ import annotations

import logging
from contextlib import nullcontext
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from doctrack.config import settings
from doctrack.core import control_number, state_machine, visibility
from doctrack.core.enums import Classification, CommunicationUrgency, DocumentStatus
from doctrack.core.exceptions import (
    AllocationCollision,
    CollaboratorUnavailable,
    InvalidTransition,
    StaleSnapshot,
)
from doctrack.core.reconcile import ChangeTable, ChangeType
from doctrack.core.records import (
    CHECKPOINT_TITLE,
    Actor,
    DocumentDraft,
    DocumentSnapshot,
    as_utc,
)
from doctrack.models.tracking import DocumentLog, Person, TrackedDocument
from doctrack.schemas.tracking import DocumentCreate, DocumentRead, PurgeResult
from doctrack.services import metrics
from doctrack.services.common import coerce_uuid
from doctrack.services.directory import Departments, People
from doctrack.services.event import document_record, log_record, publish_change
from doctrack.services.summarizer import summarizer

logger = logging.getLogger(__name__)

CHECKPOINT_DESCRIPTION = "Hidden system record to maintain control number continuity."
CHECKPOINT_ASSIGNEE = "SYSTEM"


def to_read(document: DocumentSnapshot) -> DocumentRead:
    return DocumentRead.model_validate(
        {**document.model_dump(), "is_returned": visibility.is_returned(document)}
    )


def _snapshot(row: TrackedDocument) -> DocumentSnapshot:
    return DocumentSnapshot.model_validate(row)


def _log_row(document_id, entry) -> DocumentLog:
    return DocumentLog(
        id=coerce_uuid(entry.id),
        document_id=coerce_uuid(document_id),
        timestamp=entry.timestamp,
        action=entry.action,
        kind=entry.kind,
        acting_department=entry.acting_department,
        acting_user_name=entry.acting_user_name,
        resulting_status=entry.resulting_status,
        remarks=entry.remarks,
    )


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to persist document change: %s", e)
        raise CollaboratorUnavailable("persistence", "The document store rejected the write")


def _publish(document: DocumentSnapshot, entries, event_type: ChangeType) -> None:
    publish_change(ChangeTable.documents, event_type, document_record(document))
    for entry in entries:
        publish_change(
            ChangeTable.document_logs, ChangeType.insert, log_record(document.id, entry)
        )


def report_collisions(collisions: dict[str, list[str]]) -> list[AllocationCollision]:
    reported = []
    for reference_number, document_ids in collisions.items():
        collision = AllocationCollision(reference_number, document_ids)
        logger.error("%s: %s", collision.message, ", ".join(collision.document_ids))
        metrics.ALLOCATION_COLLISIONS.inc()
        reported.append(collision)
    return reported


class Documents:
    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _row(db: Session, document_id: str) -> TrackedDocument:
        row = db.get(TrackedDocument, coerce_uuid(document_id))
        if not row or row.title == CHECKPOINT_TITLE:
            raise HTTPException(status_code=404, detail="Document not found")
        return row

    @staticmethod
    def all(db: Session) -> list[DocumentSnapshot]:
        rows = db.scalars(
            select(TrackedDocument).options(selectinload(TrackedDocument.logs))
        ).all()
        return [_snapshot(row) for row in rows]

    @staticmethod
    def get(db: Session, document_id: str, actor: Actor) -> DocumentSnapshot:
        document = _snapshot(Documents._row(db, document_id))
        if not visibility.can_view(document, actor):
            raise HTTPException(status_code=404, detail="Document not found")
        return document

    @staticmethod
    def list_visible(
        db: Session,
        actor: Actor,
        search: str | None = None,
        status: DocumentStatus | None = None,
    ) -> list[DocumentSnapshot]:
        return visibility.visible_documents(
            Documents.all(db), actor, search=search, status=status
        )

    @staticmethod
    def list_incoming(db: Session, actor: Actor) -> list[DocumentSnapshot]:
        return visibility.incoming_documents(Documents.all(db), actor)

    @staticmethod
    def list_outgoing(db: Session, actor: Actor) -> list[DocumentSnapshot]:
        return visibility.outgoing_documents(
            Documents.all(db), actor, People.departments_by_id(db)
        )

    @staticmethod
    def list_archive(
        db: Session,
        actor: Actor,
        search: str | None = None,
        status: DocumentStatus | None = None,
    ) -> list[DocumentSnapshot]:
        return visibility.archive_documents(
            Documents.all(db),
            actor,
            People.departments_by_id(db),
            search=search,
            status=status,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @staticmethod
    def _analyze(payload: DocumentCreate) -> tuple[str | None, Classification | None]:
        if not payload.analyze or not summarizer.enabled:
            return None, payload.classification
        try:
            analysis = summarizer.analyze(payload.title, payload.description)
        except CollaboratorUnavailable as e:
            metrics.SUMMARIZER_FAILURES.inc()
            logger.warning("Creating document without summary: %s", e.message)
            return None, payload.classification
        return analysis.summary, payload.classification or analysis.classification

    @staticmethod
    def create(
        db: Session,
        payload: DocumentCreate,
        actor: Actor,
        now: datetime | None = None,
    ) -> DocumentSnapshot:
        recipient = payload.recipient.strip()
        if recipient and recipient not in Departments.names(db):
            raise HTTPException(status_code=404, detail="Recipient department not found")

        summary, classification = Documents._analyze(payload)
        draft = DocumentDraft(
            title=payload.title,
            description=payload.description,
            remarks=payload.remarks,
            recipient=recipient,
            classification=classification,
            communication_urgency=payload.communication_urgency,
            summary=summary,
        )

        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        zone = ZoneInfo(settings.control_number_timezone)
        prefix = control_number.scope_prefix(
            state_machine.control_number_department(actor, recipient),
            now,
            state_machine.control_number_format(actor),
            zone,
        )
        guard = (
            control_number.arbiter.hold(prefix)
            if settings.serialize_control_numbers
            else nullcontext()
        )
        with guard:
            existing = db.scalars(
                select(TrackedDocument.reference_number).where(
                    TrackedDocument.reference_number.startswith(prefix, autoescape=True)
                )
            ).all()
            try:
                result = state_machine.create(
                    draft, actor, existing, now=now, tz=zone
                )
            except InvalidTransition:
                metrics.REJECTED_TRANSITIONS.labels(action="create").inc()
                raise
            document = result.document
            row = TrackedDocument(
                id=coerce_uuid(document.id),
                reference_number=document.reference_number,
                title=document.title,
                description=document.description,
                remarks=document.remarks,
                summary=document.summary,
                classification=document.classification,
                communication_urgency=document.communication_urgency,
                status=document.status,
                return_pending=document.return_pending,
                assigned_to=document.assigned_to,
                created_by=coerce_uuid(document.created_by),
                created_at=document.created_at,
                updated_at=document.updated_at,
            )
            db.add(row)
            for entry in result.entries:
                db.add(_log_row(document.id, entry))
            _commit(db)

        metrics.TRANSITIONS.labels(action="create").inc()
        logger.info(
            "Created document %s (%s) for %s",
            document.id,
            document.reference_number,
            document.assigned_to,
        )
        Documents._check_reference(db, document.reference_number)
        _publish(document, result.entries, ChangeType.insert)
        return document

    @staticmethod
    def _check_reference(db: Session, reference_number: str) -> None:
        shared = db.scalar(
            select(func.count())
            .select_from(TrackedDocument)
            .where(TrackedDocument.reference_number == reference_number)
        )
        if shared and shared > 1:
            ids = db.scalars(
                select(TrackedDocument.id).where(
                    TrackedDocument.reference_number == reference_number
                )
            ).all()
            report_collisions({reference_number: [str(i) for i in ids]})

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @staticmethod
    def _check_stale(
        document: DocumentSnapshot, expected_updated_at: datetime | None
    ) -> None:
        if expected_updated_at is None:
            return
        if as_utc(expected_updated_at) == document.updated_at:
            return
        if settings.reject_stale_writes:
            raise StaleSnapshot(
                f"Document {document.id} changed since it was read",
                expected_updated_at=as_utc(expected_updated_at).isoformat(),
                updated_at=document.updated_at.isoformat() if document.updated_at else None,
            )
        logger.warning(
            "Overwriting document %s from a stale snapshot (expected %s, stored %s)",
            document.id,
            expected_updated_at,
            document.updated_at,
        )

    @staticmethod
    def _creator_department(db: Session, document: DocumentSnapshot) -> str | None:
        creator = db.get(Person, coerce_uuid(document.created_by))
        return creator.department if creator else None

    @staticmethod
    def _transition(
        db: Session,
        document_id: str,
        action: str,
        apply,
        expected_updated_at: datetime | None = None,
    ) -> DocumentSnapshot:
        row = Documents._row(db, document_id)
        current = _snapshot(row)
        Documents._check_stale(current, expected_updated_at)
        try:
            result = apply(current)
        except InvalidTransition as e:
            metrics.REJECTED_TRANSITIONS.labels(action=action).inc()
            logger.info("Rejected %s on document %s: %s", action, current.id, e.message)
            raise

        document = result.document
        row.status = document.status
        row.assigned_to = document.assigned_to
        row.remarks = document.remarks
        row.return_pending = document.return_pending
        row.updated_at = document.updated_at
        for entry in result.entries:
            db.add(_log_row(document.id, entry))
        _commit(db)

        metrics.TRANSITIONS.labels(action=action).inc()
        logger.info(
            "Applied %s to document %s: %s, assigned to %s",
            action,
            document.id,
            document.status.value,
            document.assigned_to,
        )
        _publish(document, result.entries, ChangeType.update)
        return document

    @staticmethod
    def receive(
        db: Session,
        document_id: str,
        actor: Actor,
        expected_updated_at: datetime | None = None,
    ) -> DocumentSnapshot:
        return Documents._transition(
            db,
            document_id,
            "receive",
            lambda doc: state_machine.receive(doc, actor),
            expected_updated_at,
        )

    @staticmethod
    def forward(
        db: Session,
        document_id: str,
        actor: Actor,
        destination: str,
        remarks: str | None = None,
        expected_updated_at: datetime | None = None,
    ) -> DocumentSnapshot:
        if destination.strip() and destination.strip() not in Departments.names(db):
            raise HTTPException(status_code=404, detail="Destination department not found")
        return Documents._transition(
            db,
            document_id,
            "forward",
            lambda doc: state_machine.forward(doc, actor, destination, remarks),
            expected_updated_at,
        )

    @staticmethod
    def return_to_origin(
        db: Session,
        document_id: str,
        actor: Actor,
        reason: str,
        expected_updated_at: datetime | None = None,
    ) -> DocumentSnapshot:
        return Documents._transition(
            db,
            document_id,
            "return",
            lambda doc: state_machine.return_to_origin(
                doc, actor, reason, Documents._creator_department(db, doc)
            ),
            expected_updated_at,
        )

    @staticmethod
    def mark_done(
        db: Session,
        document_id: str,
        actor: Actor,
        expected_updated_at: datetime | None = None,
    ) -> DocumentSnapshot:
        return Documents._transition(
            db,
            document_id,
            "complete",
            lambda doc: state_machine.mark_done(doc, actor),
            expected_updated_at,
        )

    @staticmethod
    def archive(
        db: Session,
        document_id: str,
        actor: Actor,
        expected_updated_at: datetime | None = None,
    ) -> DocumentSnapshot:
        return Documents._transition(
            db,
            document_id,
            "archive",
            lambda doc: state_machine.archive(
                doc, actor, Documents._creator_department(db, doc)
            ),
            expected_updated_at,
        )

    @staticmethod
    def update_remarks(
        db: Session,
        document_id: str,
        actor: Actor,
        remarks: str,
        expected_updated_at: datetime | None = None,
    ) -> DocumentSnapshot:
        return Documents._transition(
            db,
            document_id,
            "update_remarks",
            lambda doc: state_machine.update_remarks(doc, actor, remarks),
            expected_updated_at,
        )

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @staticmethod
    def collisions(db: Session) -> dict[str, list[str]]:
        rows = db.execute(
            select(TrackedDocument.id, TrackedDocument.reference_number)
        ).all()
        return control_number.find_collisions(
            (str(document_id), reference) for document_id, reference in rows
        )

    @staticmethod
    def purge(db: Session, actor: Actor) -> PurgeResult:
        """Delete every document and log, keeping one checkpoint per series.

        For each reference prefix the row with the highest series survives as
        a checkpoint, so the allocator keeps counting from where it was.
        """
        if not actor.is_admin:
            raise HTTPException(status_code=403, detail="Only administrators can purge")

        rows = db.scalars(
            select(TrackedDocument).options(selectinload(TrackedDocument.logs))
        ).all()
        keepers: dict[str, tuple[int, TrackedDocument]] = {}
        for row in rows:
            split = control_number.series_prefix(row.reference_number)
            if split is None:
                continue
            prefix, series = split
            if prefix not in keepers or series > keepers[prefix][0]:
                keepers[prefix] = (series, row)
        keep_ids = {row.id for _, row in keepers.values()}

        now = datetime.now(timezone.utc)
        deleted_documents = []
        deleted_logs = []
        checkpoints = []
        for row in rows:
            deleted_logs.extend(str(log.id) for log in row.logs)
            if row.id not in keep_ids:
                deleted_documents.append(str(row.id))
                db.delete(row)
                continue
            row.logs.clear()
            row.title = CHECKPOINT_TITLE
            row.description = CHECKPOINT_DESCRIPTION
            row.status = DocumentStatus.archived
            row.assigned_to = CHECKPOINT_ASSIGNEE
            row.summary = ""
            row.remarks = ""
            row.return_pending = False
            row.classification = Classification.simple
            row.communication_urgency = CommunicationUrgency.regular
            row.updated_at = now
            checkpoints.append(row)
        _commit(db)

        logger.warning(
            "Purged %d documents and %d logs by %s; kept %d checkpoints",
            len(deleted_documents),
            len(deleted_logs),
            actor.id,
            len(checkpoints),
        )
        for log_id in deleted_logs:
            publish_change(ChangeTable.document_logs, ChangeType.delete, {"id": log_id})
        for document_id in deleted_documents:
            publish_change(ChangeTable.documents, ChangeType.delete, {"id": document_id})
        for row in checkpoints:
            publish_change(
                ChangeTable.documents, ChangeType.update, document_record(_snapshot(row))
            )
        return PurgeResult(
            deleted_documents=len(deleted_documents),
            deleted_logs=len(deleted_logs),
            checkpoints=sorted(row.reference_number for row in checkpoints),
        )


documents = Documents()
