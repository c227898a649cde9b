"""document tracking schema

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "3f1c9a2b7d10"
down_revision = None
branch_labels = None
depends_on = None

_STATUSES = ("INCOMING", "PROCESSING", "OUTGOING", "COMPLETED", "ARCHIVED", "RETURNED")


def upgrade() -> None:
    # --- Enums ---
    documentstatus = sa.Enum(*_STATUSES, name="documentstatus")
    personrole = sa.Enum("ADMIN", "USER", "MESSAGE CENTER", name="personrole")
    documentclassification = sa.Enum(
        "Simple Transaction",
        "Complex Transaction",
        "Highly Technical Transaction",
        name="documentclassification",
    )
    communicationurgency = sa.Enum(
        "Regular", "Priority", "Urgent", name="communicationurgency"
    )
    auditaction = sa.Enum(
        "created",
        "forwarded",
        "received",
        "received_returned",
        "returned",
        "remarks_updated",
        "completed",
        "archived",
        name="auditaction",
    )
    for enum in (
        documentstatus,
        personrole,
        documentclassification,
        communicationurgency,
        auditaction,
    ):
        enum.create(op.get_bind(), checkfirst=True)

    # --- Directory ---
    op.create_table(
        "departments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_departments_name"),
    )

    op.create_table(
        "people",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column(
            "role", sa.Enum(name="personrole", create_type=False), nullable=True
        ),
        sa.Column("department", sa.String(length=120), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_people_email"),
    )
    op.create_index("ix_people_department", "people", ["department"])

    # --- Documents ---
    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("reference_number", sa.String(length=120), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column(
            "classification",
            sa.Enum(name="documentclassification", create_type=False),
            nullable=True,
        ),
        sa.Column(
            "communication_urgency",
            sa.Enum(name="communicationurgency", create_type=False),
            nullable=True,
        ),
        sa.Column(
            "status", sa.Enum(name="documentstatus", create_type=False), nullable=True
        ),
        sa.Column("return_pending", sa.Boolean(), nullable=True),
        sa.Column("assigned_to", sa.String(length=255), nullable=False),
        sa.Column("created_by", sa.UUID(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    # Not unique: duplicate reference numbers are detected after the fact.
    op.create_index(
        "ix_documents_reference_number", "documents", ["reference_number"]
    )
    op.create_index("ix_documents_assigned_to", "documents", ["assigned_to"])
    op.create_index("ix_documents_created_by", "documents", ["created_by"])
    op.create_index("ix_documents_status", "documents", ["status"])

    op.create_table(
        "document_logs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column(
            "kind", sa.Enum(name="auditaction", create_type=False), nullable=True
        ),
        sa.Column("acting_department", sa.String(length=120), nullable=False),
        sa.Column("acting_user_name", sa.String(length=255), nullable=False),
        sa.Column(
            "resulting_status",
            sa.Enum(name="documentstatus", create_type=False),
            nullable=False,
        ),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_document_logs_document_id", "document_logs", ["document_id"]
    )

    # --- Sessions ---
    op.create_table(
        "user_sessions",
        sa.Column("person_id", sa.UUID(), nullable=False),
        sa.Column("token", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("person_id"),
    )


def downgrade() -> None:
    op.drop_table("user_sessions")

    op.drop_index("ix_document_logs_document_id", table_name="document_logs")
    op.drop_table("document_logs")

    op.drop_index("ix_documents_status", table_name="documents")
    op.drop_index("ix_documents_created_by", table_name="documents")
    op.drop_index("ix_documents_assigned_to", table_name="documents")
    op.drop_index("ix_documents_reference_number", table_name="documents")
    op.drop_table("documents")

    op.drop_index("ix_people_department", table_name="people")
    op.drop_table("people")
    op.drop_table("departments")

    for name in (
        "auditaction",
        "communicationurgency",
        "documentclassification",
        "personrole",
        "documentstatus",
    ):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
