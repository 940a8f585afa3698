"""Doctor lookups used by scheduling and the queue."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.doctors import doctors


class DoctorService:
    """Read-only access to doctor records."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_doctor_by_id(self, doctor_id: int) -> dict | None:
        """Get doctor by ID."""
        query = select(doctors).where(doctors.c.id == doctor_id)
        result = await self.db.execute(query)
        doctor = result.mappings().first()

        return dict(doctor) if doctor else None

    async def ensure_exists(self, doctor_id: int) -> dict:
        """Get doctor by ID or raise NotFoundException."""
        doctor = await self.get_doctor_by_id(doctor_id)
        if doctor is None:
            raise NotFoundException(f"Doctor with ID {doctor_id} not found")
        return doctor
