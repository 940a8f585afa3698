"""Walk-in queue endpoints."""

from fastapi import APIRouter, status

from app.dependencies import DatabaseSession, FrontDeskUser
from app.schemas.queue import (
    QueueDoctorAssignment,
    QueueEntryCreate,
    QueueEntryEnvelope,
    QueueEntryUpdate,
    QueueListResponse,
    QueuePriority,
    QueueStatsResponse,
    QueueStatus,
    QueueStatusUpdate,
)
from app.services.queue_service import QueueService

router = APIRouter()


@router.post(
    "/",
    response_model=QueueEntryEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["Queue"],
    summary="Add walk-in patient",
)
async def create_queue_entry(
    data: QueueEntryCreate,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> QueueEntryEnvelope:
    """
    Register a walk-in patient and hand out the next queue number.

    Args:
        data: Walk-in details
        current_user: Authenticated front desk user
        db: Database session

    Returns:
        Created queue entry
    """
    service = QueueService(db)
    entry = await service.create_entry(data, current_user.actor)
    return QueueEntryEnvelope(message="Patient added to queue successfully", queue_entry=entry)


@router.get("/", response_model=QueueListResponse, tags=["Queue"], summary="List queue")
async def list_queue(current_user: FrontDeskUser, db: DatabaseSession) -> QueueListResponse:
    """All queue entries, highest priority first, then by queue number."""
    service = QueueService(db)
    return QueueListResponse(
        message="Queue retrieved successfully",
        queue=await service.find_all(),
    )


@router.get("/active", response_model=QueueListResponse, tags=["Queue"], summary="Waiting patients")
async def list_active_queue(current_user: FrontDeskUser, db: DatabaseSession) -> QueueListResponse:
    """Waiting entries in the order they will be called."""
    service = QueueService(db)
    return QueueListResponse(
        message="Active queue retrieved successfully",
        queue=await service.find_active(),
    )


@router.get("/stats", response_model=QueueStatsResponse, tags=["Queue"], summary="Queue statistics")
async def get_queue_stats(current_user: FrontDeskUser, db: DatabaseSession) -> QueueStatsResponse:
    """Queue counts by status."""
    service = QueueService(db)
    return QueueStatsResponse(
        message="Queue statistics retrieved successfully",
        stats=await service.get_queue_stats(),
    )


@router.get("/next", response_model=QueueEntryEnvelope, tags=["Queue"], summary="Next patient")
async def get_next_patient(current_user: FrontDeskUser, db: DatabaseSession) -> QueueEntryEnvelope:
    """The waiting patient to call next; ``queue_entry`` is null when nobody waits."""
    service = QueueService(db)
    entry = await service.get_next_patient()
    message = "Next patient retrieved successfully" if entry else "No patients waiting"
    return QueueEntryEnvelope(message=message, queue_entry=entry)


@router.get(
    "/status/{queue_status}",
    response_model=QueueListResponse,
    tags=["Queue"],
    summary="Queue entries by status",
)
async def list_by_status(
    queue_status: QueueStatus,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> QueueListResponse:
    """Entries with the given status in calling order."""
    service = QueueService(db)
    return QueueListResponse(
        message="Queue entries retrieved successfully",
        queue=await service.get_by_status(queue_status),
    )


@router.get(
    "/priority/{priority}",
    response_model=QueueListResponse,
    tags=["Queue"],
    summary="Queue entries by priority",
)
async def list_by_priority(
    priority: QueuePriority,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> QueueListResponse:
    """Entries with the given priority in calling order."""
    service = QueueService(db)
    return QueueListResponse(
        message="Queue entries retrieved successfully",
        queue=await service.get_by_priority(priority),
    )


@router.get("/{entry_id}", response_model=QueueEntryEnvelope, tags=["Queue"], summary="Get entry")
async def get_queue_entry(
    entry_id: int,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> QueueEntryEnvelope:
    """Get a queue entry by ID."""
    service = QueueService(db)
    entry = await service.find_one(entry_id)
    return QueueEntryEnvelope(message="Queue entry retrieved successfully", queue_entry=entry)


@router.patch("/{entry_id}", response_model=QueueEntryEnvelope, tags=["Queue"], summary="Update entry")
async def update_queue_entry(
    entry_id: int,
    data: QueueEntryUpdate,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> QueueEntryEnvelope:
    """Partially update a queue entry; status changes must be legal transitions."""
    service = QueueService(db)
    entry = await service.update_entry(entry_id, data, current_user.actor)
    return QueueEntryEnvelope(message="Queue entry updated successfully", queue_entry=entry)


@router.patch(
    "/{entry_id}/status",
    response_model=QueueEntryEnvelope,
    tags=["Queue"],
    summary="Change entry status",
)
async def update_queue_status(
    entry_id: int,
    data: QueueStatusUpdate,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> QueueEntryEnvelope:
    """Call, complete, cancel or mark a queue entry as no-show."""
    service = QueueService(db)
    entry = await service.update_status(
        entry_id, data.status, current_user.actor, data.cancellation_reason
    )
    return QueueEntryEnvelope(message="Queue status updated successfully", queue_entry=entry)


@router.patch(
    "/{entry_id}/assign-doctor",
    response_model=QueueEntryEnvelope,
    tags=["Queue"],
    summary="Assign doctor",
)
async def assign_doctor(
    entry_id: int,
    data: QueueDoctorAssignment,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> QueueEntryEnvelope:
    """Assign a doctor to a queue entry without changing its status."""
    service = QueueService(db)
    entry = await service.assign_doctor(entry_id, data.doctor_id, current_user.actor)
    return QueueEntryEnvelope(message="Doctor assigned successfully", queue_entry=entry)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Queue"],
    summary="Remove entry",
)
async def delete_queue_entry(
    entry_id: int,
    current_user: FrontDeskUser,
    db: DatabaseSession,
) -> None:
    """Remove a queue entry; remaining numbers are not renumbered."""
    service = QueueService(db)
    await service.delete_entry(entry_id, current_user.actor)
