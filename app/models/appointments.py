"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Table,
    Text,
    func,
    text,
)

from app.models.base import metadata

# Name is matched when translating IntegrityError into a slot conflict
SLOT_UNIQUE_INDEX = "uq_appointments_doctor_slot_scheduled"

appointments = Table(
    "appointments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # References
    Column(
        "patient_id",
        Integer,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "doctor_id",
        Integer,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Clinic-local wall time, minute precision
    Column("appointment_at", DateTime, nullable=False, index=True),
    Column("type", Text, nullable=False, server_default="consultation"),
    Column("status", Text, nullable=False, server_default="scheduled", index=True),
    # Informational only; not used for conflict detection
    Column("duration_minutes", Integer, nullable=False, server_default=text("30")),
    Column("cost", Numeric(10, 2), nullable=True),
    Column("reason", Text, nullable=True),
    Column("notes", Text, nullable=True),
    # Cancellation
    Column("cancellation_reason", Text, nullable=True),
    Column("cancelled_by", Text, nullable=True),
    Column("cancelled_at", DateTime, nullable=True),
    Column("completed_at", DateTime, nullable=True),
    # Audit fields
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show')",
        name="status_check",
    ),
    CheckConstraint(
        "type IN ('consultation', 'follow_up', 'emergency', 'routine_checkup', 'specialist_visit')",
        name="type_check",
    ),
    CheckConstraint("duration_minutes > 0", name="duration_check"),
)

# At most one scheduled appointment per doctor and minute
Index(
    SLOT_UNIQUE_INDEX,
    appointments.c.doctor_id,
    appointments.c.appointment_at,
    unique=True,
    postgresql_where=appointments.c.status == "scheduled",
    sqlite_where=appointments.c.status == "scheduled",
)
