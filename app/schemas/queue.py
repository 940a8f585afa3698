"""Walk-in queue schemas for request/response validation."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from app.utils.time_slots import clinic_now


class QueueStatus(str, Enum):
    """Queue entry status enumeration."""

    WAITING = "waiting"
    WITH_DOCTOR = "with_doctor"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class QueuePriority(str, Enum):
    """Queue priority enumeration."""

    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"


# Higher rank is seen first
PRIORITY_RANK = {
    QueuePriority.NORMAL.value: 0,
    QueuePriority.URGENT.value: 1,
    QueuePriority.EMERGENCY.value: 2,
}


class QueueEntryCreate(BaseModel):
    """Schema for registering a walk-in patient."""

    name: str = Field(..., min_length=1, max_length=200)
    priority: QueuePriority = QueuePriority.NORMAL
    reason: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)


class QueueEntryUpdate(BaseModel):
    """Schema for a partial queue entry update."""

    status: QueueStatus | None = None
    priority: QueuePriority | None = None
    reason: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)
    assigned_doctor_id: int | None = Field(None, ge=1)


class QueueStatusUpdate(BaseModel):
    """Schema for moving a queue entry through its lifecycle."""

    status: QueueStatus
    cancellation_reason: str | None = Field(None, max_length=500)


class QueueDoctorAssignment(BaseModel):
    """Schema for assigning a doctor to a queue entry."""

    doctor_id: int = Field(..., ge=1)


class QueueEntryResponse(BaseModel):
    """Schema for queue entry response."""

    id: int
    queue_number: int
    patient_name: str
    status: QueueStatus
    priority: QueuePriority
    reason: str | None = None
    notes: str | None = None
    assigned_doctor_id: int | None = None
    called_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def wait_time_minutes(self) -> int:
        """Whole minutes since registration."""
        return max(int((clinic_now() - self.created_at).total_seconds() // 60), 0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_active(self) -> bool:
        """Waiting or currently with a doctor."""
        return self.status in (QueueStatus.WAITING, QueueStatus.WITH_DOCTOR)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def can_be_cancelled(self) -> bool:
        """Only waiting entries may be cancelled from the front desk."""
        return self.status == QueueStatus.WAITING

    @computed_field  # type: ignore[prop-decorator]
    @property
    def can_be_completed(self) -> bool:
        """Only entries with a doctor may be completed."""
        return self.status == QueueStatus.WITH_DOCTOR


class QueueEntryEnvelope(BaseModel):
    """Single queue entry with a status message."""

    message: str
    queue_entry: QueueEntryResponse | None


class QueueListResponse(BaseModel):
    """Ordered queue entries with a status message."""

    message: str
    queue: list[QueueEntryResponse]


class QueueStats(BaseModel):
    """Queue counts by status."""

    total: int
    waiting: int
    with_doctor: int
    completed: int


class QueueStatsResponse(BaseModel):
    """Queue statistics with a status message."""

    message: str
    stats: QueueStats
