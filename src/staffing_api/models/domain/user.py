"""Authenticated caller domain model."""

from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Identity of the caller extracted from the access token."""

    id: UUID
    email: str | None = None
