"""Tests for walk-in queue endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.queue import queue_entries
from app.schemas.queue import QueueEntryCreate, QueuePriority, QueueStatus
from app.services.queue_service import QueueService


async def add_walk_in(
    client: AsyncClient,
    headers: dict,
    name: str,
    priority: str = "normal",
) -> dict:
    response = await client.post(
        "/api/v1/queue/",
        json={"name": name, "priority": priority, "reason": "Walk-in"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["queue_entry"]


@pytest.mark.asyncio
async def test_create_queue_entry(client: AsyncClient, auth_headers: dict) -> None:
    """Test registering a walk-in patient."""
    response = await client.post(
        "/api/v1/queue/",
        json={"name": "  Ada Lovelace ", "priority": "urgent"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Patient added to queue successfully"

    entry = data["queue_entry"]
    assert entry["queue_number"] == 1
    assert entry["patient_name"] == "Ada Lovelace"
    assert entry["status"] == "waiting"
    assert entry["priority"] == "urgent"
    assert entry["is_active"] is True
    assert entry["can_be_cancelled"] is True
    assert entry["wait_time_minutes"] == 0


@pytest.mark.asyncio
async def test_create_queue_entry_requires_name(client: AsyncClient, auth_headers: dict) -> None:
    """Test that a blank name fails validation."""
    response = await client.post("/api/v1/queue/", json={"name": ""}, headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_active_queue_orders_by_priority(client: AsyncClient, auth_headers: dict) -> None:
    """Test that emergencies are called before urgent and normal walk-ins."""
    first = await add_walk_in(client, auth_headers, "A", "normal")
    second = await add_walk_in(client, auth_headers, "B", "emergency")
    third = await add_walk_in(client, auth_headers, "C", "urgent")

    response = await client.get("/api/v1/queue/active", headers=auth_headers)
    assert response.status_code == 200
    assert [entry["id"] for entry in response.json()["queue"]] == [
        second["id"],
        third["id"],
        first["id"],
    ]


@pytest.mark.asyncio
async def test_equal_priority_keeps_arrival_order(client: AsyncClient, auth_headers: dict) -> None:
    """Test that ties are broken by queue number."""
    names = ["D", "E", "F"]
    for name in names:
        await add_walk_in(client, auth_headers, name, "urgent")
    await add_walk_in(client, auth_headers, "G", "normal")

    response = await client.get("/api/v1/queue/active", headers=auth_headers)
    assert [entry["patient_name"] for entry in response.json()["queue"]] == ["D", "E", "F", "G"]


@pytest.mark.asyncio
async def test_queue_numbers_are_never_reused(client: AsyncClient, auth_headers: dict) -> None:
    """Test that deleting the newest entry does not free its number."""
    await add_walk_in(client, auth_headers, "First")
    newest = await add_walk_in(client, auth_headers, "Second")
    assert newest["queue_number"] == 2

    response = await client.delete(f"/api/v1/queue/{newest['id']}", headers=auth_headers)
    assert response.status_code == 204

    replacement = await add_walk_in(client, auth_headers, "Third")
    assert replacement["queue_number"] == 3


@pytest.mark.asyncio
async def test_counter_starts_after_existing_numbers(
    db_session: AsyncSession,
) -> None:
    """Test that the counter seeds from the highest number already issued."""
    await db_session.execute(
        insert(queue_entries).values(
            queue_number=41,
            patient_name="Imported",
            status="completed",
            priority="normal",
        )
    )
    await db_session.commit()

    service = QueueService(db_session)
    numbers = [
        (await service.create_entry(QueueEntryCreate(name=name), "frontdesk")).queue_number
        for name in ("One", "Two")
    ]
    assert numbers == [42, 43]


@pytest.mark.asyncio
async def test_next_patient(client: AsyncClient, auth_headers: dict) -> None:
    """Test fetching the next patient to call."""
    response = await client.get("/api/v1/queue/next", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "No patients waiting", "queue_entry": None}

    await add_walk_in(client, auth_headers, "Normal")
    urgent = await add_walk_in(client, auth_headers, "Urgent", "urgent")

    response = await client.get("/api/v1/queue/next", headers=auth_headers)
    assert response.json()["queue_entry"]["id"] == urgent["id"]


@pytest.mark.asyncio
async def test_status_lifecycle(client: AsyncClient, auth_headers: dict, test_doctor: dict) -> None:
    """Test calling and completing a walk-in."""
    entry = await add_walk_in(client, auth_headers, "Lifecycle")
    url = f"/api/v1/queue/{entry['id']}/status"

    response = await client.patch(url, json={"status": "with_doctor"}, headers=auth_headers)
    assert response.status_code == 200
    called = response.json()["queue_entry"]
    assert called["status"] == "with_doctor"
    assert called["called_at"] is not None
    assert called["is_active"] is True
    assert called["can_be_completed"] is True

    # A patient with a doctor is no longer waiting
    response = await client.get("/api/v1/queue/active", headers=auth_headers)
    assert response.json()["queue"] == []

    response = await client.patch(url, json={"status": "completed"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["queue_entry"]["completed_at"] is not None

    response = await client.patch(url, json={"status": "waiting"}, headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "InvalidStatusTransitionException"


@pytest.mark.asyncio
async def test_waiting_cannot_skip_to_completed(client: AsyncClient, auth_headers: dict) -> None:
    """Test that a walk-in must be seen before being completed."""
    entry = await add_walk_in(client, auth_headers, "Impatient")

    response = await client.patch(
        f"/api/v1/queue/{entry['id']}/status",
        json={"status": "completed"},
        headers=auth_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancel_queue_entry(client: AsyncClient, auth_headers: dict) -> None:
    """Test cancelling a waiting walk-in records who did it."""
    entry = await add_walk_in(client, auth_headers, "Leaving")

    response = await client.patch(
        f"/api/v1/queue/{entry['id']}/status",
        json={"status": "cancelled", "cancellation_reason": "Left the clinic"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    cancelled = response.json()["queue_entry"]
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelled_by"] == "frontdesk"
    assert cancelled["cancellation_reason"] == "Left the clinic"
    assert cancelled["is_active"] is False


@pytest.mark.asyncio
async def test_assign_doctor(client: AsyncClient, auth_headers: dict, test_doctor: dict) -> None:
    """Test assigning a doctor leaves the status alone."""
    entry = await add_walk_in(client, auth_headers, "Needs doctor")

    response = await client.patch(
        f"/api/v1/queue/{entry['id']}/assign-doctor",
        json={"doctor_id": test_doctor["id"]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assigned = response.json()["queue_entry"]
    assert assigned["assigned_doctor_id"] == test_doctor["id"]
    assert assigned["status"] == "waiting"

    response = await client.patch(
        f"/api/v1/queue/{entry['id']}/assign-doctor",
        json={"doctor_id": 999},
        headers=auth_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assign_doctor_to_finished_entry_fails(
    client: AsyncClient,
    auth_headers: dict,
    test_doctor: dict,
) -> None:
    """Test that finished entries cannot be assigned."""
    entry = await add_walk_in(client, auth_headers, "Gone")
    await client.patch(
        f"/api/v1/queue/{entry['id']}/status",
        json={"status": "no_show"},
        headers=auth_headers,
    )

    response = await client.patch(
        f"/api/v1/queue/{entry['id']}/assign-doctor",
        json={"doctor_id": test_doctor["id"]},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "AlreadyInTerminalStateException"


@pytest.mark.asyncio
async def test_update_queue_entry(client: AsyncClient, auth_headers: dict) -> None:
    """Test a partial update that raises priority."""
    await add_walk_in(client, auth_headers, "Earlier", "urgent")
    entry = await add_walk_in(client, auth_headers, "Worsening")

    response = await client.patch(
        f"/api/v1/queue/{entry['id']}",
        json={"priority": "emergency", "notes": "Chest pain"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    updated = response.json()["queue_entry"]
    assert updated["priority"] == "emergency"
    assert updated["notes"] == "Chest pain"

    response = await client.get("/api/v1/queue/next", headers=auth_headers)
    assert response.json()["queue_entry"]["id"] == entry["id"]


@pytest.mark.asyncio
async def test_filter_by_status_and_priority(client: AsyncClient, auth_headers: dict) -> None:
    """Test the status and priority listings."""
    urgent = await add_walk_in(client, auth_headers, "Urgent", "urgent")
    normal = await add_walk_in(client, auth_headers, "Normal")
    await client.patch(
        f"/api/v1/queue/{normal['id']}/status",
        json={"status": "with_doctor"},
        headers=auth_headers,
    )

    response = await client.get("/api/v1/queue/status/with_doctor", headers=auth_headers)
    assert [entry["id"] for entry in response.json()["queue"]] == [normal["id"]]

    response = await client.get("/api/v1/queue/priority/urgent", headers=auth_headers)
    assert [entry["id"] for entry in response.json()["queue"]] == [urgent["id"]]

    response = await client.get("/api/v1/queue/priority/critical", headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_queue_stats(client: AsyncClient, auth_headers: dict) -> None:
    """Test queue counts by status."""
    await add_walk_in(client, auth_headers, "Waiting")
    seen = await add_walk_in(client, auth_headers, "Seen")
    done = await add_walk_in(client, auth_headers, "Done")

    for entry, steps in ((seen, ["with_doctor"]), (done, ["with_doctor", "completed"])):
        for step in steps:
            await client.patch(
                f"/api/v1/queue/{entry['id']}/status",
                json={"status": step},
                headers=auth_headers,
            )

    response = await client.get("/api/v1/queue/stats", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["stats"] == {
        "total": 3,
        "waiting": 1,
        "with_doctor": 1,
        "completed": 1,
    }


@pytest.mark.asyncio
async def test_get_missing_queue_entry(client: AsyncClient, auth_headers: dict) -> None:
    """Test that unknown entries return 404."""
    response = await client.get("/api/v1/queue/999", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_same_status_is_a_no_op(db_session: AsyncSession) -> None:
    """Test that moving an entry to its current status changes nothing."""
    service = QueueService(db_session)
    entry = await service.create_entry(
        QueueEntryCreate(name="Steady", priority=QueuePriority.NORMAL), "frontdesk"
    )

    unchanged = await service.update_status(entry.id, QueueStatus.WAITING, "frontdesk")
    assert unchanged.updated_at == entry.updated_at
