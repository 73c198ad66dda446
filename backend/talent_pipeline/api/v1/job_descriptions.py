"""Job descriptions API router (sales catalogue).

Descriptions may carry one PDF, validated by declared type and content.
"""

import datetime as dt
import uuid
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile

from talent_pipeline.api.deps import CurrentSession, DbSession, Store
from talent_pipeline.core.file_validation import read_upload
from talent_pipeline.core.responses import DataResponse
from talent_pipeline.schemas.catalog import JobDescriptionResponse
from talent_pipeline.services import catalog_service
from talent_pipeline.services.catalog_service import JobDescriptionInput

router = APIRouter()


@router.get("")
async def list_job_descriptions(
    _session: CurrentSession,
    db: DbSession,
    client: Annotated[str | None, Query()] = None,
) -> DataResponse[list[JobDescriptionResponse]]:
    job_descriptions = await catalog_service.list_job_descriptions(db, client=client)
    return DataResponse(
        data=[JobDescriptionResponse.model_validate(j) for j in job_descriptions]
    )


@router.post("", status_code=201)
async def create_job_description(
    title: Annotated[str, Form()],
    client: Annotated[str, Form()],
    technology: Annotated[str, Form()],
    resource_type: Annotated[str, Form()],
    received_date: Annotated[dt.date, Form()],
    deadline: Annotated[dt.date, Form()],
    description: Annotated[str, Form()],
    session: CurrentSession,
    db: DbSession,
    store: Store,
    file: Annotated[UploadFile | None, File()] = None,
) -> DataResponse[JobDescriptionResponse]:
    """Create a job description, optionally with its PDF.

    Raises:
        ValidationError: deadline not after received_date (400).
        UnsupportedFileTypeError: File is not a PDF (415).
    """
    upload = await read_upload(file) if file is not None else None
    job_description = await catalog_service.create_job_description(
        db,
        session,
        JobDescriptionInput(
            title=title,
            client=client,
            technology=technology,
            resource_type=resource_type,
            received_date=received_date,
            deadline=deadline,
            description=description,
        ),
        file=upload,
        store=store,
    )
    return DataResponse(data=JobDescriptionResponse.model_validate(job_description))


@router.delete("/{job_description_id}", status_code=204)
async def delete_job_description(
    job_description_id: uuid.UUID,
    session: CurrentSession,
    db: DbSession,
    store: Store,
) -> None:
    await catalog_service.delete_job_description(
        db, session, job_description_id, store=store
    )
