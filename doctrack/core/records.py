from __future__ import annotations

from datetime import datetime, timezone

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)

from doctrack.core.enums import (
    AuditAction,
    Classification,
    CommunicationUrgency,
    DocumentStatus,
    Role,
)

CHECKPOINT_TITLE = "_SYSTEM_CHECKPOINT_"


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _lenient_datetime(value):
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return value


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)


class AuditEntry(_Record):
    """One historical fact in a document's audit trail."""

    id: str
    timestamp: datetime
    action: str
    kind: AuditAction | None = Field(default=None, validate_default=True)
    acting_department: str = ""
    acting_user_name: str = ""
    resulting_status: DocumentStatus
    remarks: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @field_validator("timestamp", mode="after")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("kind", mode="after")
    @classmethod
    def _derive_kind(cls, value, info: ValidationInfo):
        if value is not None:
            return value
        return AuditAction.from_label(info.data.get("action", ""))


class DocumentSnapshot(_Record):
    """Immutable view of a tracked document and its audit trail."""

    id: str
    reference_number: str
    title: str
    description: str = ""
    remarks: str | None = None
    summary: str | None = None
    classification: Classification = Classification.simple
    communication_urgency: CommunicationUrgency = CommunicationUrgency.regular
    status: DocumentStatus
    return_pending: bool = False
    assigned_to: str
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    log: tuple[AuditEntry, ...] = Field(
        default=(), validation_alias=AliasChoices("log", "logs")
    )

    @field_validator("id", "created_by", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return str(value)

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value):
        return value or ""

    @field_validator("classification", mode="before")
    @classmethod
    def _default_classification(cls, value):
        return value or Classification.simple

    @field_validator("communication_urgency", mode="before")
    @classmethod
    def _default_urgency(cls, value):
        return value or CommunicationUrgency.regular

    @field_validator("return_pending", mode="before")
    @classmethod
    def _default_return_pending(cls, value):
        return bool(value)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_timestamps(cls, value):
        return _lenient_datetime(value)

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _utc_timestamps(cls, value):
        return as_utc(value)

    @property
    def is_checkpoint(self) -> bool:
        return self.title == CHECKPOINT_TITLE


class Actor(_Record):
    """The acting principal as supplied by the credential collaborator."""

    id: str
    name: str
    role: Role = Role.user
    department: str

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin

    @property
    def is_dispatch(self) -> bool:
        return self.role == Role.message_center


class DocumentDraft(BaseModel):
    title: str
    description: str = ""
    remarks: str | None = None
    recipient: str
    classification: Classification | None = None
    communication_urgency: CommunicationUrgency = CommunicationUrgency.regular
    summary: str | None = None
