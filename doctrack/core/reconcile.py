"""Merging change-feed events into a client's local view.

Clients apply their own writes optimistically and then receive every
committed write back through the change feed, possibly twice and possibly
out of order. :func:`merge` is a pure function that gives the same view
regardless of duplicates or delivery order:

* document rows are last-writer-wins on ``updated_at`` with a deterministic
  tie-break, and never lose log entries already seen;
* log rows are deduplicated by id and kept in ``(timestamp, id)`` order;
  a log row that arrives before its document waits in ``orphan_logs``;
* a delete leaves a tombstone so a late insert cannot resurrect the row.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

from doctrack.core.records import AuditEntry, DocumentSnapshot

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ChangeTable(enum.Enum):
    documents = "documents"
    document_logs = "document_logs"


class ChangeType(enum.Enum):
    insert = "INSERT"
    update = "UPDATE"
    delete = "DELETE"


class ChangeEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    table: ChangeTable
    event_type: ChangeType
    record: dict[str, Any]


@dataclass(frozen=True)
class LocalView:
    documents: dict[str, DocumentSnapshot] = field(default_factory=dict)
    orphan_logs: dict[str, tuple[AuditEntry, ...]] = field(default_factory=dict)
    deleted: frozenset[str] = frozenset()
    unconfirmed: frozenset[str] = frozenset()
    failed: frozenset[str] = frozenset()

    def get(self, document_id: str) -> DocumentSnapshot | None:
        return self.documents.get(str(document_id))

    def is_confirmed(self, document_id: str) -> bool:
        document_id = str(document_id)
        return document_id not in self.unconfirmed and document_id not in self.failed


def _log_key(entry: AuditEntry) -> tuple[datetime, str]:
    return (entry.timestamp, entry.id)


def union_logs(
    *logs, exclude: frozenset[str] = frozenset()
) -> tuple[AuditEntry, ...]:
    by_id: dict[str, AuditEntry] = {}
    for log in logs:
        for entry in log:
            if entry.id not in exclude:
                by_id.setdefault(entry.id, entry)
    return tuple(sorted(by_id.values(), key=_log_key))


def _version(document: DocumentSnapshot) -> tuple[datetime, str]:
    return (
        document.updated_at or _EPOCH,
        document.model_dump_json(exclude={"log"}),
    )


def _parse_document(record: dict, existing: DocumentSnapshot | None) -> DocumentSnapshot:
    fields = {k: v for k, v in record.items() if k not in ("log", "logs")}
    if existing is not None:
        # Tolerate partial update rows by filling the gaps from what we hold.
        fields = {**existing.model_dump(exclude={"log"}), **fields}
    nested = record.get("log", record.get("logs")) or ()
    return DocumentSnapshot.model_validate({**fields, "log": tuple(nested)})


def _merge_document(view: LocalView, record: dict) -> LocalView:
    document_id = str(record["id"])
    if document_id in view.deleted:
        return view
    existing = view.documents.get(document_id)
    incoming = _parse_document(record, existing)

    winner = incoming
    confirmed = True
    if existing is not None and _version(existing) > _version(incoming):
        logger.info(
            "Ignoring stale snapshot of document %s (remote %s < local %s)",
            document_id,
            incoming.updated_at,
            existing.updated_at,
        )
        winner = existing
        confirmed = False

    log = union_logs(
        existing.log if existing else (),
        incoming.log,
        view.orphan_logs.get(document_id, ()),
        exclude=view.deleted,
    )
    documents = {**view.documents, document_id: winner.model_copy(update={"log": log})}
    orphans = {k: v for k, v in view.orphan_logs.items() if k != document_id}
    unconfirmed, failed = view.unconfirmed, view.failed
    if confirmed:
        unconfirmed = unconfirmed - {document_id}
        failed = failed - {document_id}
    return replace(
        view,
        documents=documents,
        orphan_logs=orphans,
        unconfirmed=unconfirmed,
        failed=failed,
    )


def _merge_log(view: LocalView, record: dict) -> LocalView:
    entry = AuditEntry.model_validate(record)
    document_id = str(record["document_id"])
    if entry.id in view.deleted or document_id in view.deleted:
        return view
    document = view.documents.get(document_id)
    if document is None:
        parked = union_logs(view.orphan_logs.get(document_id, ()), (entry,))
        return replace(view, orphan_logs={**view.orphan_logs, document_id: parked})
    log = union_logs(document.log, (entry,))
    if log == document.log:
        return view
    documents = {**view.documents, document_id: document.model_copy(update={"log": log})}
    return replace(view, documents=documents)


def _delete_document(view: LocalView, record: dict) -> LocalView:
    document_id = str(record["id"])
    return replace(
        view,
        documents={k: v for k, v in view.documents.items() if k != document_id},
        orphan_logs={k: v for k, v in view.orphan_logs.items() if k != document_id},
        deleted=view.deleted | {document_id},
        unconfirmed=view.unconfirmed - {document_id},
        failed=view.failed - {document_id},
    )


def _delete_log(view: LocalView, record: dict) -> LocalView:
    entry_id = str(record["id"])

    def without(log):
        return tuple(e for e in log if e.id != entry_id)

    return replace(
        view,
        documents={
            k: v.model_copy(update={"log": without(v.log)})
            for k, v in view.documents.items()
        },
        orphan_logs={k: without(v) for k, v in view.orphan_logs.items()},
        deleted=view.deleted | {entry_id},
    )


def merge(view: LocalView, event: ChangeEvent | dict) -> LocalView:
    if not isinstance(event, ChangeEvent):
        event = ChangeEvent.model_validate(event)
    if event.table == ChangeTable.documents:
        if event.event_type == ChangeType.delete:
            return _delete_document(view, event.record)
        return _merge_document(view, event.record)
    if event.event_type == ChangeType.delete:
        return _delete_log(view, event.record)
    return _merge_log(view, event.record)


def merge_all(view: LocalView, events) -> LocalView:
    for event in events:
        view = merge(view, event)
    return view


def apply_local(view: LocalView, document: DocumentSnapshot) -> LocalView:
    """Show a write before the store confirms it."""
    return replace(
        view,
        documents={**view.documents, document.id: document},
        unconfirmed=view.unconfirmed | {document.id},
        failed=view.failed - {document.id},
    )


def mark_failed(view: LocalView, document_id: str) -> LocalView:
    """Record that the store rejected a local write; the snapshot stays visible."""
    document_id = str(document_id)
    return replace(
        view,
        unconfirmed=view.unconfirmed - {document_id},
        failed=view.failed | {document_id},
    )
