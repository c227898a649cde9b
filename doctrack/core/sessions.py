"""Single active session per person.

Each login takes the next token for the person. A client remembers the
token it was issued and leaves only when it sees a *newer* token, or its own
token marked inactive. Seeing its own login echoed back, or an older record
delivered late, never logs it out.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator

from doctrack.core.records import as_utc


class SessionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    person_id: str
    token: int = 0
    is_active: bool = False
    updated_at: datetime | None = None

    @field_validator("person_id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @field_validator("updated_at", mode="after")
    @classmethod
    def _utc(cls, value):
        return as_utc(value)


def begin(
    person_id: str, current: SessionRecord | None, now: datetime | None = None
) -> SessionRecord:
    token = current.token + 1 if current is not None else 1
    return SessionRecord(
        person_id=person_id,
        token=token,
        is_active=True,
        updated_at=now or datetime.now(timezone.utc),
    )


def end(
    current: SessionRecord, token: int, now: datetime | None = None
) -> SessionRecord:
    """Close the session holding ``token``; a stale token changes nothing."""
    if token != current.token or not current.is_active:
        return current
    return current.model_copy(
        update={"is_active": False, "updated_at": now or datetime.now(timezone.utc)}
    )


def must_terminate(observed: SessionRecord, held_token: int) -> bool:
    if observed.token > held_token:
        return True
    return observed.token == held_token and not observed.is_active
