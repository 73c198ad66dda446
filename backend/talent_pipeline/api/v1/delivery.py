"""Delivery team API router.

Mock interview scheduling, feedback, hand-off to sales, and the delivery
dashboards (interview lists, performance, ready-for-deployment).
"""

import datetime as dt
import uuid
from typing import Annotated, Literal

from fastapi import APIRouter, File, Form, Query, UploadFile

from talent_pipeline.api.deps import CurrentSession, DbSession, Dispatcher, Store
from talent_pipeline.core.file_validation import read_upload
from talent_pipeline.core.responses import DataResponse
from talent_pipeline.schemas.pipeline import (
    CandidateResponse,
    MockInterviewResponse,
    MockPerformanceResponse,
    TransitionResponse,
    VersionedRequest,
)
from talent_pipeline.services import pipeline_queries, transition_engine

router = APIRouter()


# =============================================================================
# Mock interviews
# =============================================================================


@router.post("/mock-interviews", status_code=201)
async def schedule_mock_interview(
    candidate_id: Annotated[uuid.UUID, Form()],
    date: Annotated[dt.date, Form()],
    time: Annotated[dt.time, Form()],
    interviewer_id: Annotated[str, Form()],
    session: CurrentSession,
    db: DbSession,
    store: Store,
    dispatcher: Dispatcher,
    files: Annotated[list[UploadFile] | None, File()] = None,
    expected_version: Annotated[int | None, Form()] = None,
) -> DataResponse[TransitionResponse]:
    """Schedule a mock interview with optional pdf/jpeg/png attachments.

    Raises:
        DuplicateScheduleError: Candidate already has an open mock (409).
    """
    attachments = [await read_upload(f) for f in files or []]
    result = await transition_engine.schedule_mock(
        db,
        session,
        candidate_id=candidate_id,
        interview_date=date,
        interview_time=time,
        interviewer_id=interviewer_id,
        attachments=attachments,
        expected_version=expected_version,
        store=store,
        dispatcher=dispatcher,
    )
    return DataResponse(data=TransitionResponse.from_result(result))


@router.get("/mock-interviews")
async def list_mock_interviews(
    _session: CurrentSession,
    db: DbSession,
    status: Annotated[Literal["upcoming", "completed"] | None, Query()] = None,
) -> DataResponse[list[MockInterviewResponse]]:
    """List mock interviews: upcoming (awaiting feedback), completed, or all."""
    upcoming = None if status is None else status == "upcoming"
    mocks = await pipeline_queries.list_mock_interviews(db, upcoming=upcoming)
    return DataResponse(data=[MockInterviewResponse.from_snapshot(m) for m in mocks])


@router.get("/mock-interviews/performance")
async def mock_interview_performance(
    _session: CurrentSession,
    db: DbSession,
) -> DataResponse[list[MockPerformanceResponse]]:
    """Latest completed mock result per candidate, by emp_id."""
    performances = await pipeline_queries.get_mock_performance(db)
    return DataResponse(
        data=[MockPerformanceResponse.from_performance(p) for p in performances]
    )


@router.put("/mock-interviews/{mock_id}/feedback")
async def submit_mock_feedback(
    mock_id: uuid.UUID,
    technical_feedback: Annotated[str, Form()],
    communication_feedback: Annotated[str, Form()],
    technical_score: Annotated[int, Form()],
    communication_score: Annotated[int, Form()],
    session: CurrentSession,
    db: DbSession,
    store: Store,
    dispatcher: Dispatcher,
    sent_to_sales: Annotated[bool, Form()] = False,
    file: Annotated[UploadFile | None, File()] = None,
    expected_version: Annotated[int | None, Form()] = None,
) -> DataResponse[TransitionResponse]:
    """Submit or edit mock interview feedback; completes the interview."""
    feedback_file = await read_upload(file) if file is not None else None
    result = await transition_engine.submit_mock_feedback(
        db,
        session,
        mock_id=mock_id,
        technical_feedback=technical_feedback,
        communication_feedback=communication_feedback,
        technical_score=technical_score,
        communication_score=communication_score,
        sent_to_sales=sent_to_sales,
        feedback_file=feedback_file,
        expected_version=expected_version,
        store=store,
        dispatcher=dispatcher,
    )
    return DataResponse(data=TransitionResponse.from_result(result))


@router.post("/mock-interviews/{mock_id}/send-to-sales")
async def send_to_sales(
    mock_id: uuid.UUID,
    session: CurrentSession,
    db: DbSession,
    dispatcher: Dispatcher,
    request: VersionedRequest | None = None,
) -> DataResponse[TransitionResponse]:
    """Forward a completed mock interview to the sales queue.

    Raises:
        IncompleteFeedbackError: Feedback is missing (422).
    """
    result = await transition_engine.send_to_sales(
        db,
        session,
        mock_id=mock_id,
        expected_version=request.expected_version if request else None,
        dispatcher=dispatcher,
    )
    return DataResponse(data=TransitionResponse.from_result(result))


@router.patch("/mock-interviews/{mock_id}/status")
async def update_interview_status(
    mock_id: uuid.UUID,
    session: CurrentSession,
    db: DbSession,
    dispatcher: Dispatcher,
) -> DataResponse[TransitionResponse]:
    """Mark a scheduled mock interview as held (idempotent)."""
    result = await transition_engine.update_interview_status(
        db, session, mock_id=mock_id, dispatcher=dispatcher
    )
    return DataResponse(data=TransitionResponse.from_result(result))


# =============================================================================
# Dashboards
# =============================================================================


@router.get("/ready-for-deployment")
async def ready_for_deployment(
    _session: CurrentSession,
    dispatcher: Dispatcher,
) -> DataResponse[list[CandidateResponse]]:
    """Candidates whose latest mock meets the deployment threshold."""
    views = pipeline_queries.get_ready_for_deployment(dispatcher)
    return DataResponse(data=[CandidateResponse.from_view(v) for v in views])
