"""Patient lookups used by scheduling."""

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PatientNotFoundException
from app.models.patients import patients

CANDIDATE_LIMIT = 20


class PatientService:
    """Read-only access to patient records."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_patient(self, patient_id: int) -> dict | None:
        """Get patient by ID."""
        query = select(patients).where(patients.c.id == patient_id)
        result = await self.db.execute(query)
        patient = result.mappings().first()

        return dict(patient) if patient else None

    async def ensure_exists(self, patient_id: int) -> dict:
        """
        Get patient by ID or fail.

        Raises:
            PatientNotFoundException: If no patient has this ID
        """
        patient = await self.get_patient(patient_id)
        if patient is None:
            raise PatientNotFoundException(patient_id)
        return patient

    async def find_candidates(self, name: str) -> tuple[str, list[dict]]:
        """
        Find patients whose name could match free text.

        Tries an exact full-name match, then first/last name parts, then a
        substring match. Stops at the first strategy that finds anyone and
        returns every match; callers must pick one explicitly.

        Args:
            name: Free-text patient name

        Returns:
            Strategy that matched ("exact", "name_parts", "partial" or "none")
            and the candidate rows
        """
        term = " ".join(name.split()).lower()
        if not term:
            return "none", []

        first = func.lower(patients.c.first_name)
        last = func.lower(patients.c.last_name)
        full_name = func.lower(patients.c.first_name + " " + patients.c.last_name)

        strategies = [("exact", full_name == term)]

        parts = term.split(" ")
        if len(parts) > 1:
            strategies.append(("name_parts", and_(first == parts[0], last == parts[-1])))

        strategies.append(
            (
                "partial",
                or_(
                    first.contains(term, autoescape=True),
                    last.contains(term, autoescape=True),
                    full_name.contains(term, autoescape=True),
                ),
            )
        )

        for label, condition in strategies:
            query = (
                select(patients)
                .where(condition)
                .order_by(patients.c.last_name, patients.c.first_name, patients.c.id)
                .limit(CANDIDATE_LIMIT)
            )
            result = await self.db.execute(query)
            rows = [dict(row) for row in result.mappings().all()]
            if rows:
                return label, rows

        return "none", []
