"""Control-number allocation.

Two layouts exist:

* standard: ``"{origin} {YY}{MM}{SSS}"`` e.g. ``RICTMD 2512001``
* dispatch: ``"{destination}-{YY}-{MM}-{SSS}"`` e.g. ``RICTMD-25-12-001``

The next series is found by scanning the reference numbers that already
exist. There is no central sequence, so two writers that scan the same
snapshot will hand out the same number. :class:`AllocationArbiter`
serializes allocation inside one process; duplicates across processes are
only detected afterwards with :func:`find_collisions`.
"""

from __future__ import annotations

import enum
import re
import threading
from collections import defaultdict
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone, tzinfo

SERIES_WIDTH = 3

_LEADING_DIGITS = re.compile(r"\s*\+?(\d+)")


class ControlNumberFormat(enum.Enum):
    standard = "standard"
    dispatch = "dispatch"


def scope_prefix(
    department: str,
    when: datetime,
    fmt: ControlNumberFormat,
    tz: tzinfo | None = None,
) -> str:
    """Year and month are read on the clock of ``tz`` when one is given."""
    if tz is not None:
        when = when.astimezone(tz)
    year = f"{when.year % 100:02d}"
    month = f"{when.month:02d}"
    if fmt == ControlNumberFormat.dispatch:
        return f"{department}-{year}-{month}-"
    return f"{department} {year}{month}"


def parse_series(reference_number: str, prefix: str) -> int | None:
    """Series number following ``prefix``, or None when there is none.

    Only the leading digits of the remainder count, so ``"IT 2501007b"``
    still yields 7 for prefix ``"IT 2501"``.
    """
    if not reference_number.startswith(prefix):
        return None
    match = _LEADING_DIGITS.match(reference_number[len(prefix):])
    if not match:
        return None
    return int(match.group(1))


def next_series(prefix: str, existing: Iterable[str]) -> int:
    highest = 0
    for reference_number in existing:
        if not reference_number:
            continue
        series = parse_series(reference_number, prefix)
        if series is not None and series > highest:
            highest = series
    return highest + 1


def format_reference(prefix: str, series: int) -> str:
    return f"{prefix}{series:0{SERIES_WIDTH}d}"


def allocate(
    department: str,
    existing: Iterable[str],
    fmt: ControlNumberFormat = ControlNumberFormat.standard,
    when: datetime | None = None,
    tz: tzinfo | None = None,
) -> str:
    when = when or datetime.now(timezone.utc)
    prefix = scope_prefix(department, when, fmt, tz)
    return format_reference(prefix, next_series(prefix, existing))


def series_prefix(reference_number: str) -> tuple[str, int] | None:
    """Split a reference into ``(prefix, series)`` using its last three characters.

    Used by the purge, which has to recover the scope of a reference
    without knowing which layout produced it. A series past 999 is split
    in the wrong place (``"IT 25011000"`` gives ``("IT 25011", 0)``), so such
    a month keeps a second checkpoint under that prefix. :func:`parse_series`
    still reads 1000 from it, so numbering continues.
    """
    if len(reference_number) <= SERIES_WIDTH:
        return None
    tail = reference_number[-SERIES_WIDTH:]
    if not tail.isdigit():
        return None
    return reference_number[:-SERIES_WIDTH], int(tail)


def find_collisions(
    documents: Iterable[tuple[str, str]],
) -> dict[str, list[str]]:
    """Map each reference number used more than once to its document ids.

    ``documents`` yields ``(document_id, reference_number)`` pairs.
    """
    by_reference: dict[str, list[str]] = defaultdict(list)
    for document_id, reference_number in documents:
        by_reference[reference_number].append(str(document_id))
    return {
        reference: sorted(ids)
        for reference, ids in by_reference.items()
        if len(ids) > 1
    }


class AllocationArbiter:
    """Serializes scan-and-insert for one prefix within this process."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, prefix: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(prefix)
            if lock is None:
                lock = self._locks[prefix] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, prefix: str) -> Iterator[None]:
        lock = self._lock_for(prefix)
        with lock:
            yield


arbiter = AllocationArbiter()
