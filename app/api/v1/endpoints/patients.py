"""Patient lookup endpoints."""

from fastapi import APIRouter, Query

from app.dependencies import DatabaseSession, FrontDeskUser
from app.schemas.patients import PatientCandidatesResponse, PatientSummary
from app.services.patient_service import PatientService

router = APIRouter()


@router.get(
    "/search",
    response_model=PatientCandidatesResponse,
    tags=["Patients"],
    summary="Find patients by name",
)
async def search_patients(
    current_user: FrontDeskUser,
    db: DatabaseSession,
    name: str = Query(..., min_length=1, max_length=200),
) -> PatientCandidatesResponse:
    """
    List patients that may match a free-text name.

    Several patients can share a name, so this never picks one; book
    appointments with the chosen candidate's ``id``.
    """
    service = PatientService(db)
    match, rows = await service.find_candidates(name)
    return PatientCandidatesResponse(
        query=name,
        match=match,
        candidates=[PatientSummary.model_validate(row) for row in rows],
    )
