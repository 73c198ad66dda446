"""Clients API router (sales catalogue)."""

import uuid

from fastapi import APIRouter

from talent_pipeline.api.deps import CurrentSession, DbSession
from talent_pipeline.core.responses import DataResponse
from talent_pipeline.schemas.catalog import ClientResponse, CreateClientRequest
from talent_pipeline.services import catalog_service
from talent_pipeline.services.catalog_service import ClientInput

router = APIRouter()


@router.get("")
async def list_clients(
    _session: CurrentSession,
    db: DbSession,
) -> DataResponse[list[ClientResponse]]:
    clients = await catalog_service.list_clients(db)
    return DataResponse(data=[ClientResponse.model_validate(c) for c in clients])


@router.post("", status_code=201)
async def create_client(
    request: CreateClientRequest,
    session: CurrentSession,
    db: DbSession,
) -> DataResponse[ClientResponse]:
    """Add a client. Names are unique (409 DUPLICATE_CLIENT)."""
    client = await catalog_service.create_client(
        db,
        session,
        ClientInput(
            name=request.name,
            contact_email=request.contact_email,
            active_positions=request.active_positions,
            technologies=request.technologies,
        ),
    )
    return DataResponse(data=ClientResponse.model_validate(client))


@router.delete("/{client_id}", status_code=204)
async def delete_client(
    client_id: uuid.UUID,
    session: CurrentSession,
    db: DbSession,
) -> None:
    await catalog_service.delete_client(db, session, client_id)
