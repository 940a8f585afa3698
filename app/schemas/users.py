"""Caller identity schemas."""

from enum import Enum

from pydantic import BaseModel


class UserRole(str, Enum):
    """Roles issued by the identity provider."""

    ADMIN = "admin"
    STAFF = "staff"


class AuthenticatedUser(BaseModel):
    """Identity extracted from a validated access token."""

    id: str
    role: str
    username: str | None = None

    @property
    def actor(self) -> str:
        """Label recorded on audit columns such as ``cancelled_by``."""
        return self.username or self.id
