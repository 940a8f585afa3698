"""Tests for appointment service rules that sit below the HTTP layer."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidStatusTransitionException, SlotConflictException
from app.models.appointments import appointments
from app.schemas.appointments import AppointmentCreate, AppointmentStatus, AppointmentUpdate
from app.services.appointment_service import STATUS_TRANSITIONS, AppointmentService


def make_create(patient: dict, doctor: dict, at: str = "10:00") -> AppointmentCreate:
    return AppointmentCreate(
        patient_id=patient["id"],
        doctor_id=doctor["id"],
        appointment_date="2030-05-01",
        appointment_time=at,
    )


@pytest.mark.asyncio
async def test_unique_index_backs_conflict_check(
    db_session: AsyncSession,
    test_patient: dict,
    test_doctor: dict,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that a booking racing past the pre-check is still refused by the database."""
    service = AppointmentService(db_session)
    await service.create_appointment(make_create(test_patient, test_doctor), "frontdesk")

    async def no_conflict(*args, **kwargs) -> bool:
        return False

    monkeypatch.setattr(service, "has_conflict", no_conflict)

    with pytest.raises(SlotConflictException):
        await service.create_appointment(make_create(test_patient, test_doctor), "frontdesk")

    result = await db_session.execute(select(func.count()).select_from(appointments))
    assert result.scalar_one() == 1


@pytest.mark.asyncio
async def test_has_conflict_ignores_excluded_appointment(
    db_session: AsyncSession,
    test_patient: dict,
    test_doctor: dict,
) -> None:
    """Test that an appointment never conflicts with itself."""
    service = AppointmentService(db_session)
    created = await service.create_appointment(make_create(test_patient, test_doctor), "frontdesk")

    assert await service.has_conflict(test_doctor["id"], created.appointment_at)
    assert not await service.has_conflict(test_doctor["id"], created.appointment_at, created.id)


@pytest.mark.asyncio
async def test_same_status_update_is_a_no_op(
    db_session: AsyncSession,
    test_patient: dict,
    test_doctor: dict,
) -> None:
    """Test that re-sending the current status changes nothing."""
    service = AppointmentService(db_session)
    created = await service.create_appointment(make_create(test_patient, test_doctor), "frontdesk")

    updated = await service.update_appointment(
        created.id,
        AppointmentUpdate(status=AppointmentStatus.SCHEDULED),
        "frontdesk",
    )
    assert updated.status == AppointmentStatus.SCHEDULED
    assert updated.updated_at == created.updated_at


@pytest.mark.asyncio
async def test_rejected_transition_writes_nothing(
    db_session: AsyncSession,
    test_patient: dict,
    test_doctor: dict,
) -> None:
    """Test that a refused status change also drops the other fields of the patch."""
    service = AppointmentService(db_session)
    created = await service.create_appointment(make_create(test_patient, test_doctor), "frontdesk")
    await service.complete_appointment(created.id, "frontdesk")

    with pytest.raises(InvalidStatusTransitionException):
        await service.update_appointment(
            created.id,
            AppointmentUpdate(status=AppointmentStatus.CANCELLED, notes="should not stick"),
            "frontdesk",
        )

    current = await service.get_appointment(created.id)
    assert current.status == AppointmentStatus.COMPLETED
    assert current.notes is None


def test_terminal_statuses_have_no_exits():
    """Test that finished appointments cannot move anywhere."""
    for status in (
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ):
        assert STATUS_TRANSITIONS[status] == frozenset()
    assert AppointmentStatus.SCHEDULED not in STATUS_TRANSITIONS[AppointmentStatus.CONFIRMED]
