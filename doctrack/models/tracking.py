import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from doctrack.core.enums import (
    AuditAction,
    Classification,
    CommunicationUrgency,
    DocumentStatus,
    Role,
)
from doctrack.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # Store the enum values ("INCOMING", "Simple Transaction") rather than
    # the member names, so rows stay readable by existing clients.
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


_STATUS_ENUM = _enum(DocumentStatus, "documentstatus")


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Documents and logs refer to departments by name.
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )


class Person(Base):
    __tablename__ = "people"
    __table_args__ = (Index("ix_people_department", "department"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[Role] = mapped_column(_enum(Role, "personrole"), default=Role.user)
    department: Mapped[str] = mapped_column(String(120), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


# ---------------------------------------------------------------------------
# Tracked documents
# ---------------------------------------------------------------------------


class TrackedDocument(Base):
    __tablename__ = "documents"
    __table_args__ = (
        # Deliberately not unique: duplicates are detected, not prevented.
        Index("ix_documents_reference_number", "reference_number"),
        Index("ix_documents_assigned_to", "assigned_to"),
        Index("ix_documents_created_by", "created_by"),
        Index("ix_documents_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    reference_number: Mapped[str] = mapped_column(String(120), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    remarks: Mapped[str | None] = mapped_column(Text)
    summary: Mapped[str | None] = mapped_column(Text)
    classification: Mapped[Classification] = mapped_column(
        _enum(Classification, "documentclassification"),
        default=Classification.simple,
    )
    communication_urgency: Mapped[CommunicationUrgency] = mapped_column(
        _enum(CommunicationUrgency, "communicationurgency"),
        default=CommunicationUrgency.regular,
    )
    status: Mapped[DocumentStatus] = mapped_column(
        _STATUS_ENUM, default=DocumentStatus.incoming
    )
    return_pending: Mapped[bool] = mapped_column(Boolean, default=False)
    assigned_to: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    creator = relationship("Person", foreign_keys=[created_by])
    logs = relationship(
        "DocumentLog",
        back_populates="document",
        order_by="DocumentLog.timestamp",
        cascade="all, delete-orphan",
    )


class DocumentLog(Base):
    __tablename__ = "document_logs"
    __table_args__ = (Index("ix_document_logs_document_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id"), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[AuditAction | None] = mapped_column(
        _enum(AuditAction, "auditaction")
    )
    acting_department: Mapped[str] = mapped_column(String(120), nullable=False)
    acting_user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    resulting_status: Mapped[DocumentStatus] = mapped_column(
        _STATUS_ENUM, nullable=False
    )
    remarks: Mapped[str | None] = mapped_column(Text)

    document = relationship("TrackedDocument", back_populates="logs")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class UserSession(Base):
    __tablename__ = "user_sessions"

    person_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), primary_key=True
    )
    token: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    person = relationship("Person")
