"""Candidates API router.

Self-service registration and resume upload for employees, candidate
reads for every team, and closing a candidate for sales.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile

from talent_pipeline.api.deps import CurrentSession, DbSession, Dispatcher, Store
from talent_pipeline.core.file_validation import read_upload
from talent_pipeline.core.responses import DataResponse
from talent_pipeline.schemas.pipeline import (
    CandidateResponse,
    ClientInterviewResponse,
    CloseCandidateRequest,
    RegisterCandidateRequest,
    TransitionResponse,
)
from talent_pipeline.services import pipeline_queries, transition_engine

router = APIRouter()


@router.get("")
async def list_candidates(
    _session: CurrentSession,
    db: DbSession,
    technology: Annotated[str | None, Query()] = None,
    resource_type: Annotated[str | None, Query()] = None,
    stage: Annotated[str | None, Query()] = None,
) -> DataResponse[list[CandidateResponse]]:
    """List candidates with derived stage.

    Filters accept "all" (or omission) for no filter; technology and
    resource type match case-insensitively.
    """
    views = await pipeline_queries.list_candidates(
        db, technology=technology, resource_type=resource_type, stage=stage
    )
    return DataResponse(data=[CandidateResponse.from_view(v) for v in views])


@router.post("", status_code=201)
async def register_candidate(
    request: RegisterCandidateRequest,
    session: CurrentSession,
    db: DbSession,
    dispatcher: Dispatcher,
) -> DataResponse[TransitionResponse]:
    """Register the caller as a pipeline candidate."""
    result = await transition_engine.register_candidate(
        db,
        session,
        emp_id=request.emp_id,
        full_name=request.full_name,
        technology=request.technology,
        resource_type=request.resource_type,
        email=request.email,
        dispatcher=dispatcher,
    )
    return DataResponse(data=TransitionResponse.from_result(result))


@router.get("/by-emp-id/{emp_id}")
async def get_candidate_by_emp_id(
    emp_id: str,
    _session: CurrentSession,
    db: DbSession,
) -> DataResponse[CandidateResponse]:
    view = await pipeline_queries.get_candidate_by_emp_id(db, emp_id)
    return DataResponse(data=CandidateResponse.from_view(view))


@router.get("/{candidate_id}")
async def get_candidate(
    candidate_id: uuid.UUID,
    _session: CurrentSession,
    db: DbSession,
) -> DataResponse[CandidateResponse]:
    view = await pipeline_queries.get_candidate(db, candidate_id)
    return DataResponse(data=CandidateResponse.from_view(view))


@router.post("/{candidate_id}/resumes", status_code=201)
async def submit_resume(
    candidate_id: uuid.UUID,
    file: Annotated[UploadFile, File(...)],
    session: CurrentSession,
    db: DbSession,
    store: Store,
    dispatcher: Dispatcher,
    job_description_id: Annotated[uuid.UUID | None, Form()] = None,
) -> DataResponse[TransitionResponse]:
    """Upload a PDF resume for the caller's own candidate record.

    Raises:
        UnsupportedFileTypeError: File is not a PDF (415).
        AuthorizationError: Record belongs to someone else (403).
    """
    resume = await read_upload(file)
    result = await transition_engine.submit_resume(
        db,
        session,
        candidate_id=candidate_id,
        resume=resume,
        job_description_id=job_description_id,
        store=store,
        dispatcher=dispatcher,
    )
    return DataResponse(data=TransitionResponse.from_result(result))


@router.post("/{candidate_id}/close")
async def close_candidate(
    candidate_id: uuid.UUID,
    request: CloseCandidateRequest,
    session: CurrentSession,
    db: DbSession,
    dispatcher: Dispatcher,
) -> DataResponse[TransitionResponse]:
    """Mark a candidate rejected or withdrawn (terminal)."""
    result = await transition_engine.close_candidate(
        db,
        session,
        candidate_id=candidate_id,
        outcome=request.outcome,
        expected_version=request.expected_version,
        dispatcher=dispatcher,
    )
    return DataResponse(data=TransitionResponse.from_result(result))


@router.get("/{candidate_id}/client-interviews")
async def list_client_interviews(
    candidate_id: uuid.UUID,
    _session: CurrentSession,
    db: DbSession,
) -> DataResponse[list[ClientInterviewResponse]]:
    """Client interviews for one candidate, ordered by level."""
    interviews = await pipeline_queries.get_client_interviews_by_candidate(
        db, candidate_id
    )
    return DataResponse(
        data=[ClientInterviewResponse.from_snapshot(ci) for ci in interviews]
    )
