"""Sales team API router.

Sales queue, client interview scheduling, search and outcomes, deployed
roster, and the resume library.
"""

import datetime as dt
import uuid
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile

from talent_pipeline.api.deps import (
    CurrentSession,
    DbSession,
    Dispatcher,
    SalesGate,
    Store,
)
from talent_pipeline.core.file_validation import read_upload
from talent_pipeline.core.responses import DataResponse
from talent_pipeline.schemas.pipeline import (
    CandidateResponse,
    ClientInterviewResponse,
    CountersResponse,
    InterviewCountResponse,
    ResumeResponse,
    TransitionResponse,
)
from talent_pipeline.services import pipeline_queries, transition_engine

router = APIRouter()


# =============================================================================
# Views
# =============================================================================


@router.get("/queue")
async def sales_queue(
    _session: CurrentSession,
    dispatcher: Dispatcher,
) -> DataResponse[list[CandidateResponse]]:
    """Candidates forwarded by delivery and not yet terminal."""
    views = pipeline_queries.get_sales_queue(dispatcher)
    return DataResponse(data=[CandidateResponse.from_view(v) for v in views])


@router.get("/deployed")
async def deployed_roster(
    _session: CurrentSession,
    dispatcher: Dispatcher,
) -> DataResponse[list[CandidateResponse]]:
    views = pipeline_queries.get_deployed_roster(dispatcher)
    return DataResponse(data=[CandidateResponse.from_view(v) for v in views])


@router.get("/counters")
async def counters(
    _session: CurrentSession,
    dispatcher: Dispatcher,
) -> DataResponse[CountersResponse]:
    """Sent-to-sales and deployed counts for the dashboard header."""
    return DataResponse(data=CountersResponse.from_counters(dispatcher.counters()))


@router.get("/resumes")
async def list_resumes(
    _session: CurrentSession,
    db: DbSession,
    technology: Annotated[str | None, Query()] = None,
    resource_type: Annotated[str | None, Query()] = None,
) -> DataResponse[list[ResumeResponse]]:
    """Stored resumes; "all" (or omitted) disables a filter."""
    entries = await pipeline_queries.list_resumes(
        db, technology=technology, resource_type=resource_type
    )
    return DataResponse(data=[ResumeResponse.model_validate(e) for e in entries])


# =============================================================================
# Client interviews
# =============================================================================


@router.get("/client-interviews")
async def search_client_interviews(
    _session: CurrentSession,
    db: DbSession,
    search: Annotated[str | None, Query(max_length=255)] = None,
) -> DataResponse[list[ClientInterviewResponse]]:
    interviews = await pipeline_queries.search_client_interviews(db, search)
    return DataResponse(
        data=[ClientInterviewResponse.from_snapshot(i) for i in interviews]
    )


@router.get("/client-interviews/count")
async def count_client_interviews(
    _session: CurrentSession,
    db: DbSession,
    status: Annotated[str | None, Query()] = None,
) -> DataResponse[InterviewCountResponse]:
    """Client interviews ever scheduled, or only those in one status."""
    count = await pipeline_queries.count_client_interviews(db, status=status)
    return DataResponse(data=InterviewCountResponse(count=count))


@router.get("/client-interviews/{interview_id}")
async def get_client_interview(
    interview_id: uuid.UUID,
    _session: CurrentSession,
    db: DbSession,
) -> DataResponse[ClientInterviewResponse]:
    interview = await pipeline_queries.get_client_interview(db, interview_id)
    return DataResponse(data=ClientInterviewResponse.from_snapshot(interview))


@router.post("/client-interviews", status_code=201)
async def schedule_client_interview(
    candidate_id: Annotated[uuid.UUID, Form()],
    client: Annotated[str, Form()],
    date: Annotated[dt.date, Form()],
    time: Annotated[dt.time, Form()],
    level: Annotated[int, Form()],
    job_description_title: Annotated[str, Form()],
    meeting_link: Annotated[str, Form()],
    interviewer_email: Annotated[str, Form()],
    file: Annotated[UploadFile, File(...)],
    _sales: SalesGate,
    session: CurrentSession,
    db: DbSession,
    store: Store,
    dispatcher: Dispatcher,
    expected_version: Annotated[int | None, Form()] = None,
) -> DataResponse[TransitionResponse]:
    """Schedule a client interview with exactly one pdf/jpeg/png attachment.

    Raises:
        InvalidStateError: Candidate not sent to sales (422).
        DuplicateScheduleError: An interview is still open, or this level
            exists (409).
        ValidationError: Level not above the highest level reached (400).
        UnsupportedFileTypeError: Attachment type not allowed (415).
    """
    attachment = await read_upload(file)
    result = await transition_engine.schedule_client_interview(
        db,
        session,
        candidate_id=candidate_id,
        client=client,
        interview_date=date,
        interview_time=time,
        level=level,
        job_description_title=job_description_title,
        meeting_link=meeting_link,
        interviewer_email=interviewer_email,
        attachment=attachment,
        expected_version=expected_version,
        store=store,
        dispatcher=dispatcher,
    )
    return DataResponse(data=TransitionResponse.from_result(result))


@router.put("/client-interviews/{interview_id}")
async def update_client_interview(
    interview_id: uuid.UUID,
    result: Annotated[str, Form()],
    feedback: Annotated[str, Form()],
    technical_score: Annotated[str, Form()],
    communication_score: Annotated[str, Form()],
    _sales: SalesGate,
    session: CurrentSession,
    db: DbSession,
    store: Store,
    dispatcher: Dispatcher,
    deployed_status: Annotated[bool, Form()] = False,
    file: Annotated[UploadFile | None, File()] = None,
    expected_version: Annotated[int | None, Form()] = None,
) -> DataResponse[TransitionResponse]:
    """Record a client interview outcome; deploys when deployed_status is set.

    Scores are sent as text so one decimal place survives form encoding.
    """
    feedback_file = await read_upload(file) if file is not None else None
    transition = await transition_engine.update_client_interview(
        db,
        session,
        interview_id=interview_id,
        result=result,
        feedback=feedback,
        technical_score=technical_score,
        communication_score=communication_score,
        deployed_status=deployed_status,
        feedback_file=feedback_file,
        expected_version=expected_version,
        store=store,
        dispatcher=dispatcher,
    )
    return DataResponse(data=TransitionResponse.from_result(transition))
