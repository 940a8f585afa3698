"""Patient schemas used by scheduling."""

from pydantic import BaseModel


class PatientSummary(BaseModel):
    """Patient fields joined onto appointment responses and lookups."""

    id: int
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None

    model_config = {"from_attributes": True}


class PatientCandidatesResponse(BaseModel):
    """Possible patient matches for a free-text name."""

    query: str
    match: str
    candidates: list[PatientSummary]
