"""Tests for patient lookup."""

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.patients import patients


@pytest_asyncio.fixture
async def namesakes(db_session: AsyncSession) -> None:
    """Two patients sharing a name plus one with a similar surname."""
    await db_session.execute(
        insert(patients),
        [
            {"first_name": "John", "last_name": "Smith", "email": "john1@example.com", "phone": "1"},
            {"first_name": "John", "last_name": "Smith", "email": "john2@example.com", "phone": "2"},
            {"first_name": "Mary", "last_name": "Smithers", "email": "mary@example.com", "phone": "3"},
        ],
    )
    await db_session.commit()


@pytest.mark.asyncio
async def test_exact_name_returns_every_namesake(
    client: AsyncClient,
    auth_headers: dict,
    namesakes: None,
) -> None:
    """Test that an ambiguous name returns all candidates instead of picking one."""
    response = await client.get(
        "/api/v1/patients/search",
        params={"name": "john  SMITH"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["match"] == "exact"
    assert len(data["candidates"]) == 2
    assert {candidate["email"] for candidate in data["candidates"]} == {
        "john1@example.com",
        "john2@example.com",
    }


@pytest.mark.asyncio
async def test_partial_name_match(
    client: AsyncClient,
    auth_headers: dict,
    namesakes: None,
) -> None:
    """Test substring matching when nothing matches exactly."""
    response = await client.get(
        "/api/v1/patients/search",
        params={"name": "smith"},
        headers=auth_headers,
    )
    data = response.json()
    assert data["match"] == "partial"
    assert len(data["candidates"]) == 3


@pytest.mark.asyncio
async def test_no_match(client: AsyncClient, auth_headers: dict, namesakes: None) -> None:
    """Test that unknown names return an empty candidate list."""
    response = await client.get(
        "/api/v1/patients/search",
        params={"name": "Nobody"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"query": "Nobody", "match": "none", "candidates": []}
