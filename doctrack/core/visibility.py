"""Which documents a viewer sees, and in which tab.

Nothing here is stored: every answer is derived from the document's current
state and its audit trail. ``creator_departments`` maps a creator's person id
to the department that person belongs to *now*.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from doctrack.core import audit_trail
from doctrack.core.enums import DocumentStatus
from doctrack.core.records import Actor, DocumentSnapshot

_NOT_INCOMING = {DocumentStatus.completed, DocumentStatus.returned}


def can_view(document: DocumentSnapshot, viewer: Actor) -> bool:
    if document.is_checkpoint:
        return False
    if viewer.is_admin:
        return True
    return (
        document.created_by == viewer.id
        or document.assigned_to in (viewer.id, viewer.department)
        or audit_trail.mentions_user(document.log, viewer.name)
    )


def can_view_in_archive(
    document: DocumentSnapshot,
    viewer: Actor,
    creator_departments: Mapping[str, str],
) -> bool:
    if document.is_checkpoint:
        return False
    if viewer.is_admin:
        return True
    return creator_departments.get(document.created_by) == viewer.department


def is_incoming(document: DocumentSnapshot, viewer: Actor) -> bool:
    return (
        not document.is_checkpoint
        and document.assigned_to == viewer.department
        and document.status not in _NOT_INCOMING
    )


def is_outgoing(
    document: DocumentSnapshot,
    viewer: Actor,
    creator_departments: Mapping[str, str],
) -> bool:
    if document.is_checkpoint or document.assigned_to == viewer.department:
        return False
    created_here = creator_departments.get(document.created_by) == viewer.department
    return created_here or audit_trail.forwarded_by(document.log, viewer.department)


def is_returned(document: DocumentSnapshot) -> bool:
    """Either back with its origin, or still travelling back to it."""
    return document.status == DocumentStatus.returned or (
        document.status == DocumentStatus.incoming and document.return_pending
    )


def _created_key(document: DocumentSnapshot) -> tuple[int, float]:
    created: datetime | None = document.created_at
    if created is None:
        return (1, 0.0)
    return (0, -created.timestamp())


def sort_documents(documents: Iterable[DocumentSnapshot]) -> list[DocumentSnapshot]:
    """Urgent first, then newest first; unknown creation times go last."""
    return sorted(
        documents,
        key=lambda d: (-d.communication_urgency.weight, *_created_key(d)),
    )


def _matches(
    document: DocumentSnapshot,
    search: str | None,
    status: DocumentStatus | None,
) -> bool:
    if status is not None and document.status != status:
        return False
    if search:
        needle = search.lower()
        return (
            needle in document.title.lower()
            or needle in document.reference_number.lower()
        )
    return True


def visible_documents(
    documents: Iterable[DocumentSnapshot],
    viewer: Actor,
    *,
    search: str | None = None,
    status: DocumentStatus | None = None,
) -> list[DocumentSnapshot]:
    return sort_documents(
        d for d in documents if can_view(d, viewer) and _matches(d, search, status)
    )


def archive_documents(
    documents: Iterable[DocumentSnapshot],
    viewer: Actor,
    creator_departments: Mapping[str, str],
    *,
    search: str | None = None,
    status: DocumentStatus | None = None,
) -> list[DocumentSnapshot]:
    return sort_documents(
        d
        for d in documents
        if can_view_in_archive(d, viewer, creator_departments)
        and _matches(d, search, status)
    )


def incoming_documents(
    documents: Iterable[DocumentSnapshot], viewer: Actor
) -> list[DocumentSnapshot]:
    return sort_documents(d for d in documents if is_incoming(d, viewer))


def outgoing_documents(
    documents: Iterable[DocumentSnapshot],
    viewer: Actor,
    creator_departments: Mapping[str, str],
) -> list[DocumentSnapshot]:
    return sort_documents(
        d for d in documents if is_outgoing(d, viewer, creator_departments)
    )
