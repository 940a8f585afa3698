"""Appointment endpoints."""

from fastapi import APIRouter, Query, status

from app.config import settings
from app.dependencies import DatabaseSession, FrontDeskUser
from app.schemas.appointments import (
    AppointmentCancel,
    AppointmentCollection,
    AppointmentCreate,
    AppointmentEnvelope,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentSortField,
    AppointmentStatsResponse,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
    AvailableSlotsResponse,
    SortOrder,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """
    Book an appointment for an existing patient.

    Time may be given as ``HH:MM`` or ``HH:MM AM/PM``.
    """
    service = AppointmentService(db)
    appointment = await service.create_appointment(data, current_user.actor)
    return AppointmentEnvelope(message="Appointment created successfully", appointment=appointment)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    current_user: FrontDeskUser,
    db: DatabaseSession,
    patient_id: int | None = Query(None, ge=1),
    doctor_id: int | None = Query(None, ge=1),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    type_filter: AppointmentType | None = Query(None, alias="type"),
    date: str | None = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    sort_by: AppointmentSortField = Query(AppointmentSortField.APPOINTMENT_AT),
    sort_order: SortOrder = Query(SortOrder.ASC),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments with filtering, sorting and pagination.

    Args:
        current_user: Authenticated front desk user
        db: Database session
        patient_id: Filter by patient
        doctor_id: Filter by doctor
        status_filter: Filter by status
        type_filter: Filter by appointment type
        date: Only appointments on this day
        sort_by: Sort column
        sort_order: Sort direction
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        patient_id=patient_id,
        doctor_id=doctor_id,
        status=status_filter,
        type=type_filter,
        date=date,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    return await service.list_appointments(filters)


@router.get(
    "/today",
    response_model=AppointmentCollection,
    tags=["Appointments"],
    summary="Today's appointments",
)
async def get_today_appointments(
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AppointmentCollection:
    """Scheduled appointments for the clinic's current day, earliest first."""
    service = AppointmentService(db)
    appointments = await service.get_today_appointments()
    return AppointmentCollection(
        message="Today's appointments retrieved successfully",
        appointments=appointments,
    )


@router.get(
    "/upcoming",
    response_model=AppointmentCollection,
    tags=["Appointments"],
    summary="Upcoming appointments",
)
async def get_upcoming_appointments(
    current_user: FrontDeskUser,
    db: DatabaseSession,
    days: int = Query(settings.upcoming_days_default, ge=1, le=365),
) -> AppointmentCollection:
    """Scheduled appointments from now through the next ``days`` days."""
    service = AppointmentService(db)
    appointments = await service.get_upcoming_appointments(days)
    return AppointmentCollection(
        message="Upcoming appointments retrieved successfully",
        appointments=appointments,
    )


@router.get(
    "/stats",
    response_model=AppointmentStatsResponse,
    tags=["Appointments"],
    summary="Appointment statistics",
)
async def get_appointment_stats(
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AppointmentStatsResponse:
    """Appointment counts by status."""
    service = AppointmentService(db)
    stats = await service.get_appointment_stats()
    return AppointmentStatsResponse(
        message="Appointment statistics retrieved successfully",
        stats=stats,
    )


@router.get(
    "/available-slots/{doctor_id}/{date}",
    response_model=AvailableSlotsResponse,
    tags=["Appointments"],
    summary="Available slots for a doctor",
)
async def get_available_slots(
    doctor_id: int,
    date: str,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AvailableSlotsResponse:
    """Free 30-minute slots between 09:00 and 17:00 for one doctor and day."""
    service = AppointmentService(db)
    slots = await service.get_available_slots(doctor_id, date)
    return AvailableSlotsResponse(
        message="Available slots retrieved successfully",
        doctor_id=doctor_id,
        date=date,
        slots=slots,
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentEnvelope,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: int,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """
    Get a specific appointment with its patient and doctor.

    Raises:
        NotFoundException: If appointment not found
    """
    service = AppointmentService(db)
    appointment = await service.get_appointment(appointment_id)
    return AppointmentEnvelope(message="Appointment retrieved successfully", appointment=appointment)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentEnvelope,
    tags=["Appointments"],
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """Partially update an appointment; moving it re-checks the slot."""
    service = AppointmentService(db)
    appointment = await service.update_appointment(appointment_id, data, current_user.actor)
    return AppointmentEnvelope(message="Appointment updated successfully", appointment=appointment)


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentEnvelope,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: int,
    data: AppointmentCancel,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """Cancel an appointment on behalf of the calling user."""
    service = AppointmentService(db)
    appointment = await service.cancel_appointment(
        appointment_id, data.cancellation_reason, current_user.actor
    )
    return AppointmentEnvelope(message="Appointment cancelled successfully", appointment=appointment)


@router.patch(
    "/{appointment_id}/reschedule",
    response_model=AppointmentEnvelope,
    tags=["Appointments"],
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: int,
    data: AppointmentReschedule,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """Move an appointment to a new date and time."""
    service = AppointmentService(db)
    appointment = await service.reschedule_appointment(
        appointment_id, data.new_date, data.new_time, current_user.actor
    )
    return AppointmentEnvelope(
        message="Appointment rescheduled successfully", appointment=appointment
    )


@router.patch(
    "/{appointment_id}/complete",
    response_model=AppointmentEnvelope,
    tags=["Appointments"],
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: int,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> AppointmentEnvelope:
    """Mark an appointment completed; repeating the call is harmless."""
    service = AppointmentService(db)
    appointment = await service.complete_appointment(appointment_id, current_user.actor)
    return AppointmentEnvelope(message="Appointment completed successfully", appointment=appointment)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: int,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> None:
    """Permanently delete an appointment."""
    service = AppointmentService(db)
    await service.delete_appointment(appointment_id, current_user.actor)
