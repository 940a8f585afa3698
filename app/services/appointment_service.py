"""Appointment service for business logic."""

import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyCancelledException,
    AlreadyInTerminalStateException,
    CannotRescheduleCancelledException,
    InvalidStatusTransitionException,
    NotFoundException,
    SlotConflictException,
)
from app.database import integrity_error_message, write_transaction
from app.models.appointments import SLOT_UNIQUE_INDEX, appointments
from app.models.doctors import doctors
from app.models.patients import patients
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStats,
    AppointmentStatus,
    AppointmentUpdate,
    SortOrder,
)
from app.services.doctor_service import DoctorService
from app.services.patient_service import PatientService
from app.utils.time_slots import (
    clinic_now,
    combine_date_time,
    day_bounds,
    day_slots,
    split_date_time,
)

logger = structlog.get_logger()

# Legal status changes; setting the current status again is a no-op
STATUS_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.IN_PROGRESS: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

# Appointments joined with the patient and doctor they reference
_JOINED_COLUMNS = (
    appointments,
    patients.c.first_name.label("patient_first_name"),
    patients.c.last_name.label("patient_last_name"),
    patients.c.email.label("patient_email"),
    patients.c.phone.label("patient_phone"),
    doctors.c.first_name.label("doctor_first_name"),
    doctors.c.last_name.label("doctor_last_name"),
    doctors.c.specialization.label("doctor_specialization"),
)


def _joined_select():
    return select(*_JOINED_COLUMNS).select_from(
        appointments.outerjoin(patients, appointments.c.patient_id == patients.c.id).outerjoin(
            doctors, appointments.c.doctor_id == doctors.c.id
        )
    )


def _to_response(row: Any) -> AppointmentResponse:
    data = dict(row._mapping)

    patient_fields = {
        "id": data["patient_id"],
        "first_name": data.pop("patient_first_name"),
        "last_name": data.pop("patient_last_name"),
        "email": data.pop("patient_email"),
        "phone": data.pop("patient_phone"),
    }
    doctor_fields = {
        "id": data["doctor_id"],
        "first_name": data.pop("doctor_first_name"),
        "last_name": data.pop("doctor_last_name"),
        "specialization": data.pop("doctor_specialization"),
    }

    data["patient"] = patient_fields if patient_fields["first_name"] is not None else None
    data["doctor"] = doctor_fields if doctor_fields["first_name"] is not None else None

    return AppointmentResponse.model_validate(data)


def _slot_conflict(exc: IntegrityError) -> SlotConflictException | None:
    """Translate a violation of the doctor/slot unique index."""
    message = integrity_error_message(exc)
    # PostgreSQL names the index; SQLite lists the indexed columns
    if SLOT_UNIQUE_INDEX in message or "appointments.doctor_id, appointments.appointment_at" in message:
        return SlotConflictException()
    return None


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    # ------------------------------------------------------------------
    # Conflict checking
    # ------------------------------------------------------------------

    async def has_conflict(
        self,
        doctor_id: int,
        appointment_at: datetime,
        exclude_appointment_id: int | None = None,
    ) -> bool:
        """
        Check whether the doctor already has a scheduled appointment at this minute.

        Only exact timestamp equality counts; duration is not considered.

        Args:
            doctor_id: Doctor being booked
            appointment_at: Proposed timestamp
            exclude_appointment_id: Appointment being moved, ignored in the check

        Returns:
            True if the slot is taken
        """
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.appointment_at == appointment_at,
            appointments.c.status == AppointmentStatus.SCHEDULED.value,
        ]
        if exclude_appointment_id is not None:
            conditions.append(appointments.c.id != exclude_appointment_id)

        stmt = select(appointments.c.id).where(and_(*conditions)).limit(1)
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def _ensure_slot_free(
        self,
        doctor_id: int,
        appointment_at: datetime,
        exclude_appointment_id: int | None = None,
    ) -> None:
        if await self.has_conflict(doctor_id, appointment_at, exclude_appointment_id):
            raise SlotConflictException()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _get_row(self, appointment_id: int) -> dict:
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException(f"Appointment with ID {appointment_id} not found")

        return dict(row)

    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        """
        Get appointment by ID with patient and doctor joined.

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = _joined_select().where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException(f"Appointment with ID {appointment_id} not found")

        return _to_response(row)

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering, sorting and pagination.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments
        """
        conditions = []

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.type:
            conditions.append(appointments.c.type == filters.type.value)

        if filters.date:
            start, end = day_bounds(filters.date)
            conditions.append(appointments.c.appointment_at >= start)
            conditions.append(appointments.c.appointment_at < end)

        where = and_(*conditions) if conditions else True

        # Count total
        count_stmt = select(func.count()).select_from(appointments).where(where)
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        sort_column = appointments.c[filters.sort_by.value]
        ordering = sort_column.desc() if filters.sort_order == SortOrder.DESC else sort_column.asc()

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            _joined_select()
            .where(where)
            .order_by(ordering, appointments.c.id.asc())
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = [_to_response(row) for row in result.fetchall()]

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            total_pages=math.ceil(total / filters.page_size) if total else 0,
            items=items,
        )

    async def _list_scheduled_between(
        self,
        start: datetime,
        end: datetime,
        include_end: bool,
    ) -> list[AppointmentResponse]:
        upper = (
            appointments.c.appointment_at <= end if include_end else appointments.c.appointment_at < end
        )
        stmt = (
            _joined_select()
            .where(
                and_(
                    appointments.c.status == AppointmentStatus.SCHEDULED.value,
                    appointments.c.appointment_at >= start,
                    upper,
                )
            )
            .order_by(appointments.c.appointment_at.asc(), appointments.c.id.asc())
        )
        result = await self.db.execute(stmt)
        return [_to_response(row) for row in result.fetchall()]

    async def get_today_appointments(self) -> list[AppointmentResponse]:
        """Scheduled appointments on the clinic's current calendar day, earliest first."""
        start, end = day_bounds(clinic_now().date())
        return await self._list_scheduled_between(start, end, include_end=False)

    async def get_upcoming_appointments(self, days: int = 7) -> list[AppointmentResponse]:
        """Scheduled appointments from now through ``days`` days ahead, earliest first."""
        now = clinic_now()
        return await self._list_scheduled_between(now, now + timedelta(days=days), include_end=True)

    async def get_available_slots(self, doctor_id: int, day: str) -> list[str]:
        """
        Free slots for a doctor on a date.

        Args:
            doctor_id: Doctor ID
            day: ISO date

        Returns:
            ``HH:MM`` slots not taken by a scheduled appointment
        """
        start, end = day_bounds(day)
        stmt = select(appointments.c.appointment_at).where(
            and_(
                appointments.c.doctor_id == doctor_id,
                appointments.c.status == AppointmentStatus.SCHEDULED.value,
                appointments.c.appointment_at >= start,
                appointments.c.appointment_at < end,
            )
        )
        result = await self.db.execute(stmt)
        booked = [moment.strftime("%H:%M") for moment in result.scalars().all()]

        return day_slots(booked)

    async def get_appointment_stats(self) -> AppointmentStats:
        """Appointment counts by status."""
        stmt = select(appointments.c.status, func.count()).group_by(appointments.c.status)
        result = await self.db.execute(stmt)
        counts = {status: count for status, count in result.all()}

        return AppointmentStats(
            total=sum(counts.values()),
            scheduled=counts.get(AppointmentStatus.SCHEDULED.value, 0),
            completed=counts.get(AppointmentStatus.COMPLETED.value, 0),
            cancelled=counts.get(AppointmentStatus.CANCELLED.value, 0),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_appointment(self, data: AppointmentCreate, actor: str) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            data: Appointment creation data
            actor: Identity of the caller

        Returns:
            Created appointment

        Raises:
            InvalidTimeFormatException: Unrecognised time
            InvalidDateTimeException: Malformed or non-existent date
            PatientNotFoundException: Unknown patient
            NotFoundException: Unknown doctor
            SlotConflictException: Doctor already booked at this time
        """
        appointment_at = combine_date_time(data.appointment_date, data.appointment_time)

        await PatientService(self.db).ensure_exists(data.patient_id)
        await DoctorService(self.db).ensure_exists(data.doctor_id)
        await self._ensure_slot_free(data.doctor_id, appointment_at)

        now = clinic_now()
        values = {
            "patient_id": data.patient_id,
            "doctor_id": data.doctor_id,
            "appointment_at": appointment_at,
            "type": data.type.value,
            "status": AppointmentStatus.SCHEDULED.value,
            "duration_minutes": data.duration_minutes,
            "cost": data.cost,
            "reason": data.reason,
            "notes": data.notes,
            "created_at": now,
            "updated_at": now,
        }

        async with write_transaction(self.db, on_integrity_error=_slot_conflict):
            result = await self.db.execute(
                insert(appointments).values(**values).returning(appointments.c.id)
            )
            appointment_id = result.scalar_one()

        logger.info(
            "appointment_created",
            appointment_id=appointment_id,
            doctor_id=data.doctor_id,
            appointment_at=appointment_at.isoformat(),
            actor=actor,
        )
        return await self.get_appointment(appointment_id)

    async def update_appointment(
        self,
        appointment_id: int,
        data: AppointmentUpdate,
        actor: str,
    ) -> AppointmentResponse:
        """
        Apply a partial update.

        A new date or time is combined with the stored value for the part not
        supplied. Moving an appointment that stays scheduled (date, time or doctor)
        re-runs the conflict check excluding itself. Status changes follow
        ``STATUS_TRANSITIONS``. Every check runs before anything is written.

        Raises:
            NotFoundException: If appointment or new doctor not found
            PatientNotFoundException: If new patient not found
            SlotConflictException: If the new slot is taken
            InvalidStatusTransitionException: If the status change is not allowed
        """
        current = await self._get_row(appointment_id)

        patch = {
            field: _plain(value)
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None
        }
        new_date = patch.pop("appointment_date", None)
        new_time = patch.pop("appointment_time", None)
        new_status = patch.pop("status", None)
        # Only kept when this update cancels the appointment
        cancellation_reason = patch.pop("cancellation_reason", None)

        update_values: dict[str, Any] = {}
        appointment_at = current["appointment_at"]
        doctor_id = patch.get("doctor_id", current["doctor_id"])
        target_status = new_status or current["status"]

        if new_date or new_time:
            current_date, current_time = split_date_time(current["appointment_at"])
            appointment_at = combine_date_time(new_date or current_date, new_time or current_time)
            update_values["appointment_at"] = appointment_at

        if "patient_id" in patch and patch["patient_id"] != current["patient_id"]:
            await PatientService(self.db).ensure_exists(patch["patient_id"])

        doctor_changed = doctor_id != current["doctor_id"]
        if doctor_changed:
            await DoctorService(self.db).ensure_exists(doctor_id)

        now = clinic_now()
        if new_status is not None and new_status != current["status"]:
            update_values.update(
                self._status_change_values(
                    AppointmentStatus(current["status"]),
                    AppointmentStatus(new_status),
                    actor,
                    now,
                    cancellation_reason,
                )
            )

        # Only scheduled appointments hold a slot
        moved = "appointment_at" in update_values or doctor_changed
        if moved and target_status == AppointmentStatus.SCHEDULED.value:
            await self._ensure_slot_free(doctor_id, appointment_at, appointment_id)

        update_values.update(patch)

        if not update_values:
            # No changes, return current state
            return await self.get_appointment(appointment_id)

        update_values["updated_at"] = now

        async with write_transaction(self.db, on_integrity_error=_slot_conflict):
            await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(**update_values)
            )

        logger.info(
            "appointment_updated",
            appointment_id=appointment_id,
            fields=sorted(update_values),
            actor=actor,
        )
        return await self.get_appointment(appointment_id)

    @staticmethod
    def _status_change_values(
        current: AppointmentStatus,
        target: AppointmentStatus,
        actor: str,
        now: datetime,
        cancellation_reason: str | None = None,
    ) -> dict[str, Any]:
        if target not in STATUS_TRANSITIONS[current]:
            raise InvalidStatusTransitionException(current.value, target.value)

        values: dict[str, Any] = {"status": target.value}
        if target == AppointmentStatus.CANCELLED:
            values["cancelled_at"] = now
            values["cancelled_by"] = actor
            if cancellation_reason:
                values["cancellation_reason"] = cancellation_reason
        elif target == AppointmentStatus.COMPLETED:
            values["completed_at"] = now

        return values

    async def cancel_appointment(
        self,
        appointment_id: int,
        cancellation_reason: str,
        actor: str,
    ) -> AppointmentResponse:
        """
        Cancel an appointment, recording the reason and who cancelled it.

        Raises:
            NotFoundException: If appointment not found
            AlreadyCancelledException: If it is already cancelled
            InvalidStatusTransitionException: If it is completed or a no-show
        """
        current = await self._get_row(appointment_id)

        if current["status"] == AppointmentStatus.CANCELLED.value:
            raise AlreadyCancelledException()

        values = self._status_change_values(
            AppointmentStatus(current["status"]),
            AppointmentStatus.CANCELLED,
            actor,
            clinic_now(),
            cancellation_reason,
        )
        values["updated_at"] = values["cancelled_at"]

        async with write_transaction(self.db):
            await self.db.execute(
                update(appointments).where(appointments.c.id == appointment_id).values(**values)
            )

        logger.info("appointment_cancelled", appointment_id=appointment_id, actor=actor)
        return await self.get_appointment(appointment_id)

    async def reschedule_appointment(
        self,
        appointment_id: int,
        new_date: str,
        new_time: str,
        actor: str,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new date and time; nothing else changes.

        Raises:
            NotFoundException: If appointment not found
            CannotRescheduleCancelledException: If it is cancelled
            SlotConflictException: If the new slot is taken
        """
        current = await self._get_row(appointment_id)

        if current["status"] == AppointmentStatus.CANCELLED.value:
            raise CannotRescheduleCancelledException()

        appointment_at = combine_date_time(new_date, new_time)
        await self._ensure_slot_free(current["doctor_id"], appointment_at, appointment_id)

        async with write_transaction(self.db, on_integrity_error=_slot_conflict):
            await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(appointment_at=appointment_at, updated_at=clinic_now())
            )

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            previous=current["appointment_at"].isoformat(),
            appointment_at=appointment_at.isoformat(),
            actor=actor,
        )
        return await self.get_appointment(appointment_id)

    async def complete_appointment(self, appointment_id: int, actor: str) -> AppointmentResponse:
        """
        Mark an appointment completed.

        Completing an already completed appointment succeeds without changes.

        Raises:
            NotFoundException: If appointment not found
            AlreadyInTerminalStateException: If it is cancelled or a no-show
        """
        current = await self._get_row(appointment_id)
        status = AppointmentStatus(current["status"])

        if status == AppointmentStatus.COMPLETED:
            return await self.get_appointment(appointment_id)

        if status in (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW):
            raise AlreadyInTerminalStateException(
                f"Cannot complete an appointment with status '{status.value}'"
            )

        values = self._status_change_values(
            status, AppointmentStatus.COMPLETED, actor, clinic_now()
        )
        values["updated_at"] = values["completed_at"]

        async with write_transaction(self.db):
            await self.db.execute(
                update(appointments).where(appointments.c.id == appointment_id).values(**values)
            )

        logger.info("appointment_completed", appointment_id=appointment_id, actor=actor)
        return await self.get_appointment(appointment_id)

    async def delete_appointment(self, appointment_id: int, actor: str) -> None:
        """
        Permanently delete an appointment regardless of status.

        Raises:
            NotFoundException: If appointment not found
        """
        await self._get_row(appointment_id)

        async with write_transaction(self.db):
            await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))

        logger.info("appointment_deleted", appointment_id=appointment_id, actor=actor)
