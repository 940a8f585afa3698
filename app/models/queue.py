"""Walk-in queue tables using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Table,
    Text,
    func,
)

from app.models.base import metadata

queue_entries = Table(
    "queue_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("queue_number", Integer, nullable=False, unique=True),
    # Walk-ins are registered by name, not linked to a patient record
    Column("patient_name", Text, nullable=False),
    Column("status", Text, nullable=False, server_default="waiting", index=True),
    Column("priority", Text, nullable=False, server_default="normal", index=True),
    Column("reason", Text, nullable=True),
    Column("notes", Text, nullable=True),
    Column(
        "assigned_doctor_id",
        Integer,
        ForeignKey("doctors.id", ondelete="SET NULL"),
        nullable=True,
    ),
    # Lifecycle timestamps
    Column("called_at", DateTime, nullable=True),
    Column("completed_at", DateTime, nullable=True),
    Column("cancelled_at", DateTime, nullable=True),
    Column("cancelled_by", Text, nullable=True),
    Column("cancellation_reason", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
    CheckConstraint(
        "status IN ('waiting', 'with_doctor', 'completed', 'cancelled', 'no_show')",
        name="status_check",
    ),
    CheckConstraint(
        "priority IN ('normal', 'urgent', 'emergency')",
        name="priority_check",
    ),
)

# Single-row counter; queue numbers are handed out from here and never reused
queue_sequence = Table(
    "queue_sequence",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("last_number", Integer, nullable=False),
)
