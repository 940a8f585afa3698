"""Appointment schemas for request/response validation."""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from app.schemas.patients import PatientSummary
from app.utils.time_slots import clinic_now

# Hours of notice required for a scheduled appointment to be cancellable
CANCELLATION_NOTICE_HOURS = 24

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentType(str, Enum):
    """Appointment type enumeration."""

    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"
    EMERGENCY = "emergency"
    ROUTINE_CHECKUP = "routine_checkup"
    SPECIALIST_VISIT = "specialist_visit"


class AppointmentSortField(str, Enum):
    """Columns an appointment listing may be sorted by."""

    APPOINTMENT_AT = "appointment_at"
    CREATED_AT = "created_at"
    STATUS = "status"
    TYPE = "type"
    ID = "id"


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    patient_id: int = Field(..., ge=1)
    doctor_id: int = Field(..., ge=1)
    appointment_date: str = Field(..., pattern=DATE_PATTERN, examples=["2024-06-01"])
    appointment_time: str = Field(..., min_length=4, max_length=10, examples=["10:00", "02:30 PM"])
    type: AppointmentType = AppointmentType.CONSULTATION
    reason: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)
    duration_minutes: int = Field(default=30, ge=5, le=480)
    cost: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)


class AppointmentUpdate(BaseModel):
    """Schema for a partial appointment update."""

    patient_id: int | None = Field(None, ge=1)
    doctor_id: int | None = Field(None, ge=1)
    appointment_date: str | None = Field(None, pattern=DATE_PATTERN)
    appointment_time: str | None = Field(None, min_length=4, max_length=10)
    type: AppointmentType | None = None
    status: AppointmentStatus | None = None
    reason: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)
    duration_minutes: int | None = Field(None, ge=5, le=480)
    cost: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    cancellation_reason: str | None = Field(None, max_length=500)


class AppointmentCancel(BaseModel):
    """Schema for cancelling an appointment."""

    cancellation_reason: str = Field(..., min_length=1, max_length=500)


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment to another slot."""

    new_date: str = Field(..., pattern=DATE_PATTERN)
    new_time: str = Field(..., min_length=4, max_length=10)


class DoctorSummary(BaseModel):
    """Doctor fields joined onto appointment responses."""

    id: int
    first_name: str
    last_name: str
    specialization: str | None = None

    model_config = {"from_attributes": True}


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: int
    patient_id: int
    doctor_id: int
    appointment_at: datetime
    type: AppointmentType
    status: AppointmentStatus
    duration_minutes: int
    cost: Decimal | None = None
    reason: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    patient: PatientSummary | None = None
    doctor: DoctorSummary | None = None

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_upcoming(self) -> bool:
        """Scheduled and still in the future."""
        return self.appointment_at > clinic_now() and self.status == AppointmentStatus.SCHEDULED

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_past(self) -> bool:
        """Appointment time has passed."""
        return self.appointment_at < clinic_now()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def can_be_cancelled(self) -> bool:
        """Scheduled with more than the required notice remaining."""
        notice = timedelta(hours=CANCELLATION_NOTICE_HOURS)
        return (
            self.status == AppointmentStatus.SCHEDULED
            and self.appointment_at - clinic_now() > notice
        )


class AppointmentEnvelope(BaseModel):
    """Single appointment with a status message."""

    message: str
    appointment: AppointmentResponse


class AppointmentCollection(BaseModel):
    """Unpaginated appointment list with a status message."""

    message: str
    appointments: list[AppointmentResponse]


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    total_pages: int
    items: list[AppointmentResponse]


class AppointmentStats(BaseModel):
    """Appointment counts by status."""

    total: int
    scheduled: int
    completed: int
    cancelled: int


class AppointmentStatsResponse(BaseModel):
    """Appointment statistics with a status message."""

    message: str
    stats: AppointmentStats


class AvailableSlotsResponse(BaseModel):
    """Free slots for a doctor on a date."""

    message: str
    doctor_id: int
    date: str
    slots: list[str]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    patient_id: int | None = None
    doctor_id: int | None = None
    status: AppointmentStatus | None = None
    type: AppointmentType | None = None
    date: str | None = Field(None, pattern=DATE_PATTERN)
    sort_by: AppointmentSortField = AppointmentSortField.APPOINTMENT_AT
    sort_order: SortOrder = SortOrder.ASC
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)
