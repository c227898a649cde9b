from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from doctrack.core.enums import (
    AuditAction,
    Classification,
    CommunicationUrgency,
    DocumentStatus,
    Role,
)
from doctrack.core.state_machine import MAX_DESCRIPTION_LENGTH, MAX_REMARKS_LENGTH


# ---------------------------------------------------------------------------
# Department
# ---------------------------------------------------------------------------


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)


class DepartmentRead(DepartmentCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime


# ---------------------------------------------------------------------------
# Person
# ---------------------------------------------------------------------------


class PersonBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    role: Role = Role.user
    department: str = Field(min_length=1, max_length=120)
    is_active: bool = True


class PersonCreate(PersonBase):
    pass


class PersonUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    role: Role | None = None
    department: str | None = Field(default=None, max_length=120)
    is_active: bool | None = None


class PersonRead(PersonBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    remarks: str | None = Field(default=None, max_length=MAX_REMARKS_LENGTH)
    recipient: str = Field(min_length=1, max_length=120)
    classification: Classification | None = None
    communication_urgency: CommunicationUrgency = CommunicationUrgency.regular
    analyze: bool = True


class TransitionRequest(BaseModel):
    # updated_at the caller last saw; used only to detect stale writes.
    expected_updated_at: datetime | None = None


class ForwardRequest(TransitionRequest):
    destination: str = Field(min_length=1, max_length=120)
    remarks: str | None = Field(default=None, max_length=MAX_REMARKS_LENGTH)


class ReturnRequest(TransitionRequest):
    reason: str = Field(min_length=1, max_length=MAX_REMARKS_LENGTH)


class RemarksUpdate(TransitionRequest):
    remarks: str = Field(max_length=MAX_REMARKS_LENGTH)


class AuditEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    timestamp: datetime
    action: str
    kind: AuditAction | None = None
    acting_department: str
    acting_user_name: str
    resulting_status: DocumentStatus
    remarks: str | None = None


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reference_number: str
    title: str
    description: str
    remarks: str | None = None
    summary: str | None = None
    classification: Classification
    communication_urgency: CommunicationUrgency
    status: DocumentStatus
    return_pending: bool
    is_returned: bool = False
    assigned_to: str
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    log: list[AuditEntryRead] = []


class CollisionRead(BaseModel):
    reference_number: str
    document_ids: list[str]


class PurgeResult(BaseModel):
    deleted_documents: int
    deleted_logs: int
    checkpoints: list[str]
