"""Append-only audit trail helpers.

Entries are written with strictly increasing timestamps, but entries that
arrive through the change feed may be stored in any order. Anything that
asks "what happened last" goes through :func:`chronological` first.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from doctrack.core.enums import AuditAction, DocumentStatus
from doctrack.core.records import AuditEntry, DocumentSnapshot, as_utc

TIMESTAMP_STEP = timedelta(milliseconds=1)


def chronological(log: Iterable[AuditEntry]) -> tuple[AuditEntry, ...]:
    # sorted() is stable: entries sharing a timestamp keep their append order.
    return tuple(sorted(log, key=lambda entry: entry.timestamp))


def last_entry(log: Iterable[AuditEntry]) -> AuditEntry | None:
    ordered = chronological(log)
    return ordered[-1] if ordered else None


def next_timestamp(log: Iterable[AuditEntry], now: datetime | None = None) -> datetime:
    """Return a timestamp strictly after every entry already in ``log``."""
    stamp = as_utc(now) if now is not None else datetime.now(timezone.utc)
    latest = last_entry(log)
    if latest is not None and stamp <= latest.timestamp:
        stamp = latest.timestamp + TIMESTAMP_STEP
    return stamp


def new_entry(
    *,
    timestamp: datetime,
    action: str,
    kind: AuditAction,
    acting_department: str,
    acting_user_name: str,
    resulting_status: DocumentStatus,
    remarks: str | None = None,
) -> AuditEntry:
    return AuditEntry(
        id=str(uuid.uuid4()),
        timestamp=timestamp,
        action=action,
        kind=kind,
        acting_department=acting_department,
        acting_user_name=acting_user_name,
        resulting_status=resulting_status,
        remarks=remarks,
    )


def append(log: tuple[AuditEntry, ...], *entries: AuditEntry) -> tuple[AuditEntry, ...]:
    known = {entry.id for entry in log}
    for entry in entries:
        if entry.id in known:
            raise ValueError(f"Audit entry {entry.id} is already in the log")
        known.add(entry.id)
    return log + tuple(entries)


def is_consistent(document: DocumentSnapshot) -> bool:
    """The last entry must describe the document's current status."""
    latest = last_entry(document.log)
    return latest is not None and latest.resulting_status == document.status


def last_action_is_return(log: Iterable[AuditEntry]) -> bool:
    latest = last_entry(log)
    return latest is not None and latest.kind == AuditAction.returned


def mentions_user(log: Iterable[AuditEntry], user_name: str) -> bool:
    return any(entry.acting_user_name == user_name for entry in log)


def forwarded_by(log: Iterable[AuditEntry], department: str) -> bool:
    return any(
        entry.kind == AuditAction.forwarded and entry.acting_department == department
        for entry in log
    )
