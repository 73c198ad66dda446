"""Client and job description schemas."""

import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class CreateClientRequest(BaseModel):
    """Body for POST /clients."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)
    contact_email: str = Field(..., max_length=255)
    active_positions: int = 0
    technologies: list[str] = Field(..., min_length=1)


class ClientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    contact_email: str
    active_positions: int
    technologies: list[str]


class JobDescriptionResponse(BaseModel):
    """Job description metadata. The stored file is referenced, not inlined."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    client: str
    technology: str
    resource_type: str
    received_date: date
    deadline: date
    description: str
    file_ref: str | None = None
    file_name: str | None = None
