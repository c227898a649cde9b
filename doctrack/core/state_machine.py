"""Document lifecycle transitions.

Every operation takes the current snapshot and returns a
:class:`Transition` holding the new snapshot and the audit entries it
appended. A failed precondition raises :class:`InvalidTransition` and
leaves the caller's snapshot untouched.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from doctrack.core import audit_trail
from doctrack.core.control_number import ControlNumberFormat, allocate
from doctrack.core.enums import AuditAction, Classification, DocumentStatus
from doctrack.core.exceptions import InvalidTransition
from doctrack.core.records import (
    Actor,
    AuditEntry,
    DocumentDraft,
    DocumentSnapshot,
    as_utc,
)

MAX_DESCRIPTION_LENGTH = 200
MAX_REMARKS_LENGTH = 100
ORIGIN_FALLBACK = "Origin"


@dataclass(frozen=True)
class Transition:
    document: DocumentSnapshot
    entries: tuple[AuditEntry, ...]


def _require(condition: bool, action: str, message: str, **details) -> None:
    if not condition:
        raise InvalidTransition(action, message, **details)


def _require_status(
    document: DocumentSnapshot, action: str, *allowed: DocumentStatus
) -> None:
    _require(
        document.status in allowed,
        action,
        f"Cannot {action} a document in status {document.status.value}",
        status=document.status.value,
        allowed=[s.value for s in allowed],
    )


def _check_remarks(action: str, remarks: str | None) -> None:
    _require(
        remarks is None or len(remarks) <= MAX_REMARKS_LENGTH,
        action,
        f"Remarks must be at most {MAX_REMARKS_LENGTH} characters",
    )


def _apply(
    document: DocumentSnapshot,
    actor: Actor,
    *,
    now: datetime | None,
    action: str,
    kind: AuditAction,
    status: DocumentStatus,
    entry_remarks: str | None,
    **changes,
) -> Transition:
    stamp = audit_trail.next_timestamp(document.log, now)
    entry = audit_trail.new_entry(
        timestamp=stamp,
        action=action,
        kind=kind,
        acting_department=actor.department,
        acting_user_name=actor.name,
        resulting_status=status,
        remarks=entry_remarks,
    )
    updated = document.model_copy(
        update={
            **changes,
            "status": status,
            "updated_at": stamp,
            "log": audit_trail.append(document.log, entry),
        }
    )
    return Transition(document=updated, entries=(entry,))


def control_number_format(actor: Actor) -> ControlNumberFormat:
    if actor.is_dispatch:
        return ControlNumberFormat.dispatch
    return ControlNumberFormat.standard


def control_number_department(actor: Actor, recipient: str) -> str:
    """Department that scopes the series: destination for dispatch, else origin."""
    if actor.is_dispatch:
        return recipient
    return actor.department


def create(
    draft: DocumentDraft,
    actor: Actor,
    existing_references: Iterable[str],
    now: datetime | None = None,
    document_id: str | None = None,
    tz: tzinfo | None = None,
) -> Transition:
    title = (draft.title or "").strip()
    recipient = (draft.recipient or "").strip()
    _require(bool(title), "create", "Title is required")
    _require(
        len(draft.description or "") <= MAX_DESCRIPTION_LENGTH,
        "create",
        f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
    )
    _check_remarks("create", draft.remarks)
    _require(bool(recipient), "create", "A recipient department is required")
    _require(
        recipient != actor.department,
        "create",
        "Recipient department must differ from the originating department",
        department=recipient,
    )

    created_at = as_utc(now) if now is not None else datetime.now(timezone.utc)
    reference_number = allocate(
        control_number_department(actor, recipient),
        existing_references,
        control_number_format(actor),
        created_at,
        tz,
    )

    created = audit_trail.new_entry(
        timestamp=created_at,
        action="Document Created",
        kind=AuditAction.created,
        acting_department=actor.department,
        acting_user_name=actor.name,
        resulting_status=DocumentStatus.outgoing,
        remarks="Initial document creation",
    )
    forwarded = audit_trail.new_entry(
        timestamp=created_at + audit_trail.TIMESTAMP_STEP,
        action=f"Forwarded to {recipient}",
        kind=AuditAction.forwarded,
        acting_department=actor.department,
        acting_user_name=actor.name,
        resulting_status=DocumentStatus.incoming,
        remarks=draft.remarks,
    )
    document = DocumentSnapshot(
        id=document_id or str(uuid.uuid4()),
        reference_number=reference_number,
        title=title,
        description=draft.description or "",
        remarks=draft.remarks,
        summary=draft.summary,
        classification=draft.classification or Classification.simple,
        communication_urgency=draft.communication_urgency,
        status=DocumentStatus.incoming,
        assigned_to=recipient,
        created_by=actor.id,
        created_at=created_at,
        updated_at=forwarded.timestamp,
        log=(created, forwarded),
    )
    return Transition(document=document, entries=(created, forwarded))


def receive(
    document: DocumentSnapshot, actor: Actor, now: datetime | None = None
) -> Transition:
    _require_status(document, "receive", DocumentStatus.incoming)
    # Rows written before the flag existed only carry the log label.
    coming_back = document.return_pending or audit_trail.last_action_is_return(
        document.log
    )
    if coming_back:
        return _apply(
            document,
            actor,
            now=now,
            action="Received (Returned)",
            kind=AuditAction.received_returned,
            status=DocumentStatus.returned,
            entry_remarks="Document received back from return.",
            return_pending=False,
        )
    return _apply(
        document,
        actor,
        now=now,
        action="Received Document",
        kind=AuditAction.received,
        status=DocumentStatus.processing,
        entry_remarks="Document physically received.",
        return_pending=False,
    )


def forward(
    document: DocumentSnapshot,
    actor: Actor,
    destination: str,
    remarks: str | None = None,
    now: datetime | None = None,
) -> Transition:
    _require_status(document, "forward", DocumentStatus.processing)
    destination = (destination or "").strip()
    _require(bool(destination), "forward", "A destination department is required")
    _require(
        destination != actor.department,
        "forward",
        "Cannot forward a document to your own department",
        department=destination,
    )
    _check_remarks("forward", remarks)
    return _apply(
        document,
        actor,
        now=now,
        action=f"Forwarded to {destination}",
        kind=AuditAction.forwarded,
        status=DocumentStatus.incoming,
        entry_remarks=remarks or "Forwarded for action",
        assigned_to=destination,
    )


def return_to_origin(
    document: DocumentSnapshot,
    actor: Actor,
    reason: str,
    creator_department: str | None,
    now: datetime | None = None,
) -> Transition:
    """Send a document back to the creator's current department.

    The return reason replaces the document-level remarks.
    """
    _require_status(document, "return", DocumentStatus.processing)
    reason = (reason or "").strip()
    _require(bool(reason), "return", "A return reason is required")
    _check_remarks("return", reason)
    origin = creator_department or ORIGIN_FALLBACK
    return _apply(
        document,
        actor,
        now=now,
        action=f"Returned to {origin}",
        kind=AuditAction.returned,
        status=DocumentStatus.incoming,
        entry_remarks=reason,
        assigned_to=origin,
        remarks=reason,
        return_pending=True,
    )


def mark_done(
    document: DocumentSnapshot, actor: Actor, now: datetime | None = None
) -> Transition:
    _require_status(document, "complete", DocumentStatus.processing)
    return _apply(
        document,
        actor,
        now=now,
        action="Process Completed",
        kind=AuditAction.completed,
        status=DocumentStatus.completed,
        entry_remarks="Transaction ended.",
    )


def archive(
    document: DocumentSnapshot,
    actor: Actor,
    creator_department: str | None,
    now: datetime | None = None,
) -> Transition:
    # The creator's department is looked up at call time, so a creator who
    # changes department moves archive rights with them.
    _require_status(document, "archive", DocumentStatus.completed)
    _require(
        actor.is_admin
        or (creator_department is not None and actor.department == creator_department),
        "archive",
        "Only the originating department or an administrator can archive",
        department=actor.department,
        originating_department=creator_department,
    )
    return _apply(
        document,
        actor,
        now=now,
        action="Document Archived",
        kind=AuditAction.archived,
        status=DocumentStatus.archived,
        entry_remarks="Document archived.",
    )


def update_remarks(
    document: DocumentSnapshot,
    actor: Actor,
    remarks: str,
    now: datetime | None = None,
) -> Transition:
    remarks = remarks or ""
    _check_remarks("update_remarks", remarks)
    return _apply(
        document,
        actor,
        now=now,
        action="Remarks Updated",
        kind=AuditAction.remarks_updated,
        status=document.status,
        entry_remarks=f"Notes updated: {remarks}",
        remarks=remarks,
    )
