"""Walk-in queue service for business logic."""

from datetime import datetime
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyInTerminalStateException,
    ConflictException,
    InvalidStatusTransitionException,
    NotFoundException,
)
from app.database import integrity_error_message, write_transaction
from app.models.queue import queue_entries, queue_sequence
from app.schemas.queue import (
    PRIORITY_RANK,
    QueueEntryCreate,
    QueueEntryResponse,
    QueueEntryUpdate,
    QueuePriority,
    QueueStats,
    QueueStatus,
)
from app.services.doctor_service import DoctorService
from app.utils.time_slots import clinic_now

logger = structlog.get_logger()

SEQUENCE_ROW_ID = 1

# Legal status changes; setting the current status again is a no-op
STATUS_TRANSITIONS: dict[QueueStatus, frozenset[QueueStatus]] = {
    QueueStatus.WAITING: frozenset(
        {QueueStatus.WITH_DOCTOR, QueueStatus.CANCELLED, QueueStatus.NO_SHOW}
    ),
    QueueStatus.WITH_DOCTOR: frozenset(
        {QueueStatus.COMPLETED, QueueStatus.WAITING, QueueStatus.NO_SHOW}
    ),
    QueueStatus.COMPLETED: frozenset(),
    QueueStatus.CANCELLED: frozenset(),
    QueueStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in STATUS_TRANSITIONS.items() if not targets
)

# Emergency first, then urgent, then normal; equal priority by arrival
_priority_rank = case(PRIORITY_RANK, value=queue_entries.c.priority, else_=0)
QUEUE_ORDER = (_priority_rank.desc(), queue_entries.c.queue_number.asc())


def _queue_number_taken(exc: IntegrityError) -> ConflictException | None:
    message = integrity_error_message(exc)
    if "queue_number" in message or "queue_sequence" in message:
        return ConflictException("Queue number already assigned, please retry")
    return None


class QueueService:
    """Service for managing the walk-in queue."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _next_queue_number(self) -> int:
        """
        Take the next number from the queue counter.

        The counter row is created on first use, starting after the highest
        number already in the table.
        """
        result = await self.db.execute(
            update(queue_sequence)
            .where(queue_sequence.c.id == SEQUENCE_ROW_ID)
            .values(last_number=queue_sequence.c.last_number + 1)
            .returning(queue_sequence.c.last_number)
        )
        number = result.scalar_one_or_none()
        if number is not None:
            return number

        highest = await self.db.execute(
            select(func.coalesce(func.max(queue_entries.c.queue_number), 0))
        )
        number = highest.scalar_one() + 1
        await self.db.execute(
            insert(queue_sequence).values(id=SEQUENCE_ROW_ID, last_number=number)
        )
        return number

    async def create_entry(self, data: QueueEntryCreate, actor: str) -> QueueEntryResponse:
        """
        Register a walk-in patient at the back of their priority band.

        Args:
            data: Walk-in details
            actor: Identity of the caller

        Returns:
            Created queue entry in status waiting
        """
        now = clinic_now()

        async with write_transaction(self.db, on_integrity_error=_queue_number_taken):
            queue_number = await self._next_queue_number()
            result = await self.db.execute(
                insert(queue_entries)
                .values(
                    queue_number=queue_number,
                    patient_name=data.name.strip(),
                    status=QueueStatus.WAITING.value,
                    priority=data.priority.value,
                    reason=data.reason,
                    notes=data.notes,
                    created_at=now,
                    updated_at=now,
                )
                .returning(queue_entries)
            )
            row = result.mappings().one()

        logger.info(
            "queue_entry_created",
            queue_entry_id=row["id"],
            queue_number=queue_number,
            priority=data.priority.value,
            actor=actor,
        )
        return QueueEntryResponse.model_validate(dict(row))

    async def _list(self, *conditions: Any) -> list[QueueEntryResponse]:
        stmt = select(queue_entries).where(*conditions).order_by(*QUEUE_ORDER)
        result = await self.db.execute(stmt)
        return [QueueEntryResponse.model_validate(dict(row)) for row in result.mappings().all()]

    async def find_all(self) -> list[QueueEntryResponse]:
        """Every queue entry in calling order."""
        return await self._list()

    async def find_active(self) -> list[QueueEntryResponse]:
        """Waiting entries in calling order."""
        return await self._list(queue_entries.c.status == QueueStatus.WAITING.value)

    async def get_by_status(self, status: QueueStatus) -> list[QueueEntryResponse]:
        """Entries with one status in calling order."""
        return await self._list(queue_entries.c.status == status.value)

    async def get_by_priority(self, priority: QueuePriority) -> list[QueueEntryResponse]:
        """Entries with one priority in calling order."""
        return await self._list(queue_entries.c.priority == priority.value)

    async def get_next_patient(self) -> QueueEntryResponse | None:
        """The waiting entry to call next, if any."""
        stmt = (
            select(queue_entries)
            .where(queue_entries.c.status == QueueStatus.WAITING.value)
            .order_by(*QUEUE_ORDER)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        return QueueEntryResponse.model_validate(dict(row)) if row else None

    async def _get_row(self, entry_id: int) -> dict:
        result = await self.db.execute(select(queue_entries).where(queue_entries.c.id == entry_id))
        row = result.mappings().first()

        if not row:
            raise NotFoundException(f"Queue entry with ID {entry_id} not found")

        return dict(row)

    async def find_one(self, entry_id: int) -> QueueEntryResponse:
        """
        Get queue entry by ID.

        Raises:
            NotFoundException: If entry not found
        """
        return QueueEntryResponse.model_validate(await self._get_row(entry_id))

    async def get_queue_stats(self) -> QueueStats:
        """Queue counts by status."""
        stmt = select(queue_entries.c.status, func.count()).group_by(queue_entries.c.status)
        result = await self.db.execute(stmt)
        counts = {status: count for status, count in result.all()}

        return QueueStats(
            total=sum(counts.values()),
            waiting=counts.get(QueueStatus.WAITING.value, 0),
            with_doctor=counts.get(QueueStatus.WITH_DOCTOR.value, 0),
            completed=counts.get(QueueStatus.COMPLETED.value, 0),
        )

    @staticmethod
    def _status_change_values(
        current: QueueStatus,
        target: QueueStatus,
        actor: str,
        now: datetime,
        cancellation_reason: str | None = None,
    ) -> dict[str, Any]:
        if target not in STATUS_TRANSITIONS[current]:
            raise InvalidStatusTransitionException(current.value, target.value)

        values: dict[str, Any] = {"status": target.value}
        if target == QueueStatus.WITH_DOCTOR:
            values["called_at"] = now
        elif target == QueueStatus.COMPLETED:
            values["completed_at"] = now
        elif target == QueueStatus.CANCELLED:
            values["cancelled_at"] = now
            values["cancelled_by"] = actor
            if cancellation_reason:
                values["cancellation_reason"] = cancellation_reason

        return values

    async def _ensure_assignable(self, current: dict, doctor_id: int) -> None:
        if QueueStatus(current["status"]) in TERMINAL_STATUSES:
            raise AlreadyInTerminalStateException(
                f"Cannot assign a doctor to a queue entry with status '{current['status']}'"
            )
        await DoctorService(self.db).ensure_exists(doctor_id)

    async def _apply(self, entry_id: int, values: dict[str, Any]) -> QueueEntryResponse:
        values["updated_at"] = clinic_now()

        async with write_transaction(self.db):
            result = await self.db.execute(
                update(queue_entries)
                .where(queue_entries.c.id == entry_id)
                .values(**values)
                .returning(queue_entries)
            )
            row = result.mappings().one()

        return QueueEntryResponse.model_validate(dict(row))

    async def update_entry(
        self,
        entry_id: int,
        data: QueueEntryUpdate,
        actor: str,
    ) -> QueueEntryResponse:
        """
        Apply a partial update; status changes follow ``STATUS_TRANSITIONS``.

        Raises:
            NotFoundException: If entry or doctor not found
            InvalidStatusTransitionException: If the status change is not allowed
            AlreadyInTerminalStateException: If assigning a doctor to a finished entry
        """
        current = await self._get_row(entry_id)

        patch = {
            field: value.value if isinstance(value, Enum) else value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None
        }
        new_status = patch.pop("status", None)

        values: dict[str, Any] = {}
        if new_status is not None and new_status != current["status"]:
            values.update(
                self._status_change_values(
                    QueueStatus(current["status"]),
                    QueueStatus(new_status),
                    actor,
                    clinic_now(),
                )
            )

        doctor_id = patch.get("assigned_doctor_id")
        if doctor_id is not None and doctor_id != current["assigned_doctor_id"]:
            await self._ensure_assignable(current, doctor_id)

        values.update(patch)
        if not values:
            return QueueEntryResponse.model_validate(current)

        entry = await self._apply(entry_id, values)
        logger.info("queue_entry_updated", queue_entry_id=entry_id, fields=sorted(values), actor=actor)
        return entry

    async def update_status(
        self,
        entry_id: int,
        status: QueueStatus,
        actor: str,
        cancellation_reason: str | None = None,
    ) -> QueueEntryResponse:
        """
        Move a queue entry to a new status.

        Raises:
            NotFoundException: If entry not found
            InvalidStatusTransitionException: If the status change is not allowed
        """
        current = await self._get_row(entry_id)
        if current["status"] == status.value:
            return QueueEntryResponse.model_validate(current)

        values = self._status_change_values(
            QueueStatus(current["status"]),
            status,
            actor,
            clinic_now(),
            cancellation_reason,
        )
        entry = await self._apply(entry_id, values)

        logger.info(
            "queue_status_changed",
            queue_entry_id=entry_id,
            previous=current["status"],
            status=status.value,
            actor=actor,
        )
        return entry

    async def assign_doctor(self, entry_id: int, doctor_id: int, actor: str) -> QueueEntryResponse:
        """
        Assign a doctor without changing status.

        Raises:
            NotFoundException: If entry or doctor not found
            AlreadyInTerminalStateException: If the entry is finished
        """
        current = await self._get_row(entry_id)
        await self._ensure_assignable(current, doctor_id)

        entry = await self._apply(entry_id, {"assigned_doctor_id": doctor_id})
        logger.info("queue_doctor_assigned", queue_entry_id=entry_id, doctor_id=doctor_id, actor=actor)
        return entry

    async def delete_entry(self, entry_id: int, actor: str) -> None:
        """
        Remove a queue entry; its number is not handed out again.

        Raises:
            NotFoundException: If entry not found
        """
        await self._get_row(entry_id)

        async with write_transaction(self.db):
            await self.db.execute(delete(queue_entries).where(queue_entries.c.id == entry_id))

        logger.info("queue_entry_deleted", queue_entry_id=entry_id, actor=actor)
