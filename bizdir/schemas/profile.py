"""Profile schemas."""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from bizdir.core.plans import Role
from bizdir.schemas.catalog import not_null


class ProfileView(BaseModel):
    """Profile as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    role: Role
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProfileCreate(BaseModel):
    """New profile; the id comes from the authentication provider."""

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID | None = None
    role: Role = Role.VISITOR
    email: str
    full_name: str | None = None
    avatar_url: str | None = None


class ProfileUpdate(BaseModel):
    """Partial profile update."""

    model_config = ConfigDict(extra="forbid")

    role: Role | None = None
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None

    @field_validator("role", "email", mode="before")
    @classmethod
    def reject_null(cls, v):
        return not_null(v)
