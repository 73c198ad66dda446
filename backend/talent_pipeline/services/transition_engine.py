"""Candidate progression transitions.

Every mutation of a candidate or the records it owns goes through one of
the transitions below. Each transition:

1. checks the caller's role,
2. validates the payload (including attachment type and content),
3. takes the candidate's record lock and re-reads stored state,
4. checks preconditions against that state,
5. uploads attachments, writes exactly one record, and verifies the
   derived stage only moves forward (or along an allowed regression),
6. commits, then hands the fresh snapshot to the dispatcher.

Any failure after an upload deletes the uploaded objects and rolls back,
so a transition is all-or-nothing.
"""

import logging
import re
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from talent_pipeline.core.auth import Role, SessionContext, require_role
from talent_pipeline.core.errors import (
    AuthorizationError,
    ConflictError,
    DependencyUnavailableError,
    DuplicateScheduleError,
    IncompleteFeedbackError,
    InvalidStateError,
    NotFoundError,
    StaleStateError,
    ValidationError,
)
from talent_pipeline.core.file_validation import (
    ATTACHMENT_MIMES,
    DOCUMENT_MIMES,
    Attachment,
    validate_attachment,
)
from talent_pipeline.models.base import utcnow
from talent_pipeline.models.candidate import Candidate
from talent_pipeline.models.interview import ClientInterview, MockInterview
from talent_pipeline.repositories.candidate_repository import (
    CandidateRepository,
    ResumeRepository,
    candidate_snapshot,
)
from talent_pipeline.repositories.interview_repository import (
    ClientInterviewRepository,
    MockInterviewRepository,
)
from talent_pipeline.services.candidate_stage import (
    current_level,
    derive_stage,
    is_allowed_progression,
    is_sent_to_sales,
    open_client_interview,
    open_mock,
)
from talent_pipeline.services.handoff_dispatcher import (
    Handoff,
    HandoffDispatcher,
    get_dispatcher,
)
from talent_pipeline.services.object_store import (
    ObjectStore,
    ObjectStoreError,
    get_object_store,
)
from talent_pipeline.services.pipeline_types import (
    CandidateSnapshot,
    CandidateStage,
    ClientResult,
    ClosedOutcome,
    InterviewStatus,
    ResourceType,
    Technology,
)
from talent_pipeline.services.record_locks import record_locks

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MOCK_SCORE_MIN = 0
MOCK_SCORE_MAX = 10
CLIENT_SCORE_MIN = Decimal("0.0")
CLIENT_SCORE_MAX = Decimal("10.0")

_CANDIDATE = "Candidate"
_MOCK_INTERVIEW = "MockInterview"
_CLIENT_INTERVIEW = "ClientInterview"


# =============================================================================
# Result
# =============================================================================


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a transition.

    Attributes:
        candidate: Candidate snapshot after the transition.
        stage: Derived stage after the transition.
        record_id: Primary key of the record written (or inspected for no-ops).
        changed: False when the transition was an idempotent no-op.
        handoffs: Dispatcher events caused by the transition.
    """

    candidate: CandidateSnapshot
    stage: CandidateStage
    record_id: uuid.UUID
    changed: bool = True
    handoffs: tuple[Handoff, ...] = ()


# =============================================================================
# Payload validation
# =============================================================================


def _require_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


def _require_date(value: object, field: str) -> date:
    if not isinstance(value, date):
        raise ValidationError(f"{field} must be a date", field=field)
    return value


def _require_time(value: object, field: str) -> time:
    if not isinstance(value, time):
        raise ValidationError(f"{field} must be a time of day", field=field)
    return value


def _require_email(value: str | None, field: str) -> str:
    email = _require_text(value, field)
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError(f"{field} must be a valid email address", field=field)
    return email


def _require_link(value: str | None, field: str) -> str:
    link = _require_text(value, field)
    if not link.lower().startswith(("http://", "https://")):
        raise ValidationError(f"{field} must be an http(s) URL", field=field)
    return link


def _mock_score(value: object, field: str) -> int:
    """Integer score 0-10. Booleans and fractional values are rejected."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number", field=field)
    if not MOCK_SCORE_MIN <= value <= MOCK_SCORE_MAX:
        raise ValidationError(
            f"{field} must be between {MOCK_SCORE_MIN} and {MOCK_SCORE_MAX}",
            field=field,
        )
    return value


def _client_score(value: object, field: str) -> Decimal:
    """Score 0.0-10.0 with at most one decimal place."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} is required", field=field)
    try:
        score = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"{field} must be a number", field=field) from exc
    if not score.is_finite():
        raise ValidationError(f"{field} must be a number", field=field)
    if not CLIENT_SCORE_MIN <= score <= CLIENT_SCORE_MAX:
        raise ValidationError(
            f"{field} must be between {CLIENT_SCORE_MIN} and {CLIENT_SCORE_MAX}",
            field=field,
        )
    if score.as_tuple().exponent < -1:  # type: ignore[operator]
        raise ValidationError(
            f"{field} accepts at most one decimal place", field=field
        )
    return score.quantize(Decimal("0.1"))


def _require_enum(enum_cls: type[E], value: str | None, field: str) -> E:
    text = _require_text(value, field)
    try:
        return enum_cls.from_string(text)  # type: ignore[attr-defined]
    except ValueError as exc:
        raise ValidationError(str(exc), field=field) from exc


def _check_version(
    resource: str,
    record: Candidate | MockInterview | ClientInterview,
    expected_version: int | None,
) -> None:
    if expected_version is not None and record.version != expected_version:
        raise StaleStateError(
            resource, str(record.id), expected_version, record.version
        )


def _reject_terminal(snapshot: CandidateSnapshot, action: str) -> None:
    stage = derive_stage(snapshot)
    if stage.is_terminal:
        raise InvalidStateError(
            f"Cannot {action}: candidate {snapshot.emp_id} is {stage.value}"
        )


# =============================================================================
# Object store + transaction plumbing
# =============================================================================


async def _upload(
    store: ObjectStore,
    attachment: Attachment,
    mime_type: str,
    uploaded: list[str],
) -> str:
    try:
        ref = await store.put(attachment.content, mime_type, attachment.filename)
    except ObjectStoreError as exc:
        raise DependencyUnavailableError("object_store") from exc
    uploaded.append(ref)
    return ref


async def _discard(store: ObjectStore, refs: Sequence[str]) -> None:
    """Best-effort delete of objects no row points at any more."""
    for ref in refs:
        try:
            await store.delete(ref)
        except ObjectStoreError:
            logger.warning("Could not delete orphaned attachment %s", ref)


@asynccontextmanager
async def _all_or_nothing(
    db: AsyncSession,
    *,
    resource: str,
    resource_id: uuid.UUID,
    store: ObjectStore | None = None,
    uploaded: list[str] | None = None,
) -> AsyncIterator[None]:
    """Roll back and delete uploads if the block fails.

    Maps a lost optimistic-concurrency race to StaleStateError.
    """
    try:
        yield
    except StaleDataError as exc:
        await db.rollback()
        if store is not None and uploaded:
            await _discard(store, uploaded)
        raise StaleStateError(resource, str(resource_id)) from exc
    except Exception:
        await db.rollback()
        if store is not None and uploaded:
            await _discard(store, uploaded)
        raise


async def _load_candidate(
    db: AsyncSession,
    candidate_id: uuid.UUID,
) -> Candidate:
    candidate = await CandidateRepository.get_by_id(db, candidate_id, for_update=True)
    if candidate is None:
        raise NotFoundError(_CANDIDATE, str(candidate_id))
    return candidate


async def _load_mock(db: AsyncSession, mock_id: uuid.UUID) -> MockInterview:
    mock = await MockInterviewRepository.get_by_id(db, mock_id, for_update=True)
    if mock is None:
        raise NotFoundError(_MOCK_INTERVIEW, str(mock_id))
    return mock


async def _load_client_interview(
    db: AsyncSession, interview_id: uuid.UUID
) -> ClientInterview:
    interview = await ClientInterviewRepository.get_by_id(
        db, interview_id, for_update=True
    )
    if interview is None:
        raise NotFoundError(_CLIENT_INTERVIEW, str(interview_id))
    return interview


async def _mock_owner(db: AsyncSession, mock_id: uuid.UUID) -> uuid.UUID:
    """Candidate owning a mock interview, read without a row lock.

    The candidate lock is taken afterwards; a row lock here could invert
    the lock order with a concurrent transition.
    """
    mock = await MockInterviewRepository.get_by_id(db, mock_id)
    if mock is None:
        raise NotFoundError(_MOCK_INTERVIEW, str(mock_id))
    return mock.candidate_id


async def _client_interview_owner(
    db: AsyncSession, interview_id: uuid.UUID
) -> uuid.UUID:
    interview = await ClientInterviewRepository.get_by_id(db, interview_id)
    if interview is None:
        raise NotFoundError(_CLIENT_INTERVIEW, str(interview_id))
    return interview.candidate_id


async def _commit(
    db: AsyncSession,
    *,
    action: str,
    candidate_id: uuid.UUID,
    before: CandidateSnapshot,
    record_id: uuid.UUID,
    dispatcher: HandoffDispatcher,
) -> TransitionResult:
    """Verify stage order, commit, and notify the dispatcher."""
    await db.flush()
    after = candidate_snapshot(await _load_candidate(db, candidate_id))
    previous, current = derive_stage(before), derive_stage(after)
    if not is_allowed_progression(previous, current):
        raise InvalidStateError(
            f"{action} would move candidate {after.emp_id} "
            f"from {previous.value} to {current.value}"
        )
    await db.commit()

    handoffs = dispatcher.apply(after)
    logger.info(
        "%s accepted for candidate %s (%s -> %s)",
        action,
        after.emp_id,
        previous.value,
        current.value,
    )
    return TransitionResult(
        candidate=after,
        stage=current,
        record_id=record_id,
        handoffs=tuple(handoffs),
    )


# =============================================================================
# Employee transitions
# =============================================================================


async def register_candidate(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    emp_id: str,
    full_name: str,
    technology: str,
    resource_type: str,
    email: str | None = None,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Create a candidate in the registered stage.

    Raises:
        AuthorizationError: Caller is not EMPLOYEE or ADMIN.
        ValidationError: Missing field or unknown technology/resource type.
        ConflictError: emp_id already registered (DUPLICATE_EMP_ID).
    """
    require_role(ctx, [Role.EMPLOYEE], "register candidates")
    emp_id = _require_text(emp_id, "emp_id")
    full_name = _require_text(full_name, "full_name")
    tech = _require_enum(Technology, technology, "technology")
    resource = _require_enum(ResourceType, resource_type, "resource_type")
    if email is not None and email.strip():
        email = _require_email(email, "email")
    else:
        email = None
    dispatcher = dispatcher or get_dispatcher()

    if await CandidateRepository.get_by_emp_id(db, emp_id) is not None:
        raise ConflictError(
            "DUPLICATE_EMP_ID", f"Candidate with emp_id '{emp_id}' already exists"
        )

    try:
        candidate = await CandidateRepository.create(
            db,
            emp_id=emp_id,
            full_name=full_name,
            technology=tech.value,
            resource_type=resource.value,
            email=email,
            user_id=ctx.user_id,
        )
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(
            "DUPLICATE_EMP_ID", f"Candidate with emp_id '{emp_id}' already exists"
        ) from exc

    loaded = await CandidateRepository.get_by_id(db, candidate.id)
    snapshot = candidate_snapshot(loaded)  # type: ignore[arg-type]
    handoffs = dispatcher.apply(snapshot)
    logger.info("Registered candidate %s (%s)", emp_id, tech.value)
    return TransitionResult(
        candidate=snapshot,
        stage=derive_stage(snapshot),
        record_id=candidate.id,
        handoffs=tuple(handoffs),
    )


async def submit_resume(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    candidate_id: uuid.UUID,
    resume: Attachment | None,
    job_description_id: uuid.UUID | None = None,
    store: ObjectStore | None = None,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Attach a PDF resume to the caller's own candidate record.

    Raises:
        AuthorizationError: Not EMPLOYEE/ADMIN, or not the record's owner.
        ValidationError: No file or empty file.
        UnsupportedFileTypeError: File is not a PDF.
        NotFoundError: Candidate does not exist.
        InvalidStateError: Candidate is terminal.
    """
    require_role(ctx, [Role.EMPLOYEE], "submit resumes")
    if resume is None:
        raise ValidationError("A resume file is required", field="resume")
    mime_type = validate_attachment(resume, DOCUMENT_MIMES, field="resume")
    store = store or get_object_store()
    dispatcher = dispatcher or get_dispatcher()

    uploaded: list[str] = []
    async with record_locks.hold("candidate", candidate_id):
        async with _all_or_nothing(
            db,
            resource=_CANDIDATE,
            resource_id=candidate_id,
            store=store,
            uploaded=uploaded,
        ):
            candidate = await _load_candidate(db, candidate_id)
            if not ctx.is_admin and candidate.user_id != ctx.user_id:
                raise AuthorizationError(
                    "Resumes can only be submitted for your own record"
                )
            before = candidate_snapshot(candidate)
            _reject_terminal(before, "submit a resume")

            ref = await _upload(store, resume, mime_type, uploaded)
            record = await ResumeRepository.create(
                db,
                candidate_id=candidate_id,
                file_ref=ref,
                file_name=resume.filename,
                job_description_id=job_description_id,
            )
            return await _commit(
                db,
                action="submit_resume",
                candidate_id=candidate_id,
                before=before,
                record_id=record.id,
                dispatcher=dispatcher,
            )


# =============================================================================
# Delivery transitions
# =============================================================================


async def schedule_mock(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    candidate_id: uuid.UUID,
    interview_date: date,
    interview_time: time,
    interviewer_id: str,
    attachments: Sequence[Attachment] = (),
    expected_version: int | None = None,
    store: ObjectStore | None = None,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Schedule a mock interview for a candidate.

    Args:
        db: Async database session.
        ctx: Caller session (DELIVERY).
        candidate_id: Candidate to interview.
        interview_date: Interview date.
        interview_time: Interview time of day.
        interviewer_id: Delivery team interviewer.
        attachments: Zero or more pdf/jpeg/png files, stored in order.
        expected_version: Candidate version the caller last saw.
        store: Object store for attachments.
        dispatcher: View dispatcher.

    Returns:
        TransitionResult with the new MockInterview id.

    Raises:
        AuthorizationError: Caller is not DELIVERY.
        ValidationError: Missing or malformed field.
        UnsupportedFileTypeError: Attachment is not pdf/jpeg/png.
        NotFoundError: Candidate does not exist.
        InvalidStateError: Candidate is terminal.
        DuplicateScheduleError: A mock is already scheduled and open.
        StaleStateError: expected_version does not match.
        DependencyUnavailableError: Object store failed.
    """
    require_role(ctx, [Role.DELIVERY], "schedule mock interviews")
    interview_date = _require_date(interview_date, "date")
    interview_time = _require_time(interview_time, "time")
    interviewer_id = _require_text(interviewer_id, "interviewer_id")
    mime_types = [
        validate_attachment(a, ATTACHMENT_MIMES, field="attachments")
        for a in attachments
    ]
    store = store or get_object_store()
    dispatcher = dispatcher or get_dispatcher()

    uploaded: list[str] = []
    async with record_locks.hold("candidate", candidate_id):
        async with _all_or_nothing(
            db,
            resource=_CANDIDATE,
            resource_id=candidate_id,
            store=store,
            uploaded=uploaded,
        ):
            candidate = await _load_candidate(db, candidate_id)
            _check_version(_CANDIDATE, candidate, expected_version)
            before = candidate_snapshot(candidate)
            _reject_terminal(before, "schedule a mock interview")
            existing = open_mock(before)
            if existing is not None:
                raise DuplicateScheduleError(
                    f"Candidate {before.emp_id} already has a scheduled mock interview",
                    existing_id=str(existing.id),
                )

            refs = [
                await _upload(store, attachment, mime_type, uploaded)
                for attachment, mime_type in zip(attachments, mime_types, strict=True)
            ]
            mock = await MockInterviewRepository.create(
                db,
                candidate_id=candidate_id,
                interview_date=interview_date,
                interview_time=interview_time,
                interviewer_id=interviewer_id,
                attachment_refs=refs,
            )
            return await _commit(
                db,
                action="schedule_mock",
                candidate_id=candidate_id,
                before=before,
                record_id=mock.id,
                dispatcher=dispatcher,
            )


async def submit_mock_feedback(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    mock_id: uuid.UUID,
    technical_feedback: str,
    communication_feedback: str,
    technical_score: int,
    communication_score: int,
    sent_to_sales: bool = False,
    feedback_file: Attachment | None = None,
    expected_version: int | None = None,
    store: ObjectStore | None = None,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Record (or re-record) mock interview feedback and complete it.

    Re-submitting the same payload leaves the record unchanged apart from
    its timestamps. Once set, sent_to_sales stays set: withdrawing a
    candidate from sales goes through close_candidate.

    Raises:
        AuthorizationError: Caller is not DELIVERY.
        ValidationError: Missing feedback or score outside 0-10.
        UnsupportedFileTypeError: Feedback file is not pdf/jpeg/png.
        NotFoundError: Mock interview does not exist.
        StaleStateError: expected_version does not match.
    """
    require_role(ctx, [Role.DELIVERY], "submit mock interview feedback")
    technical_feedback = _require_text(technical_feedback, "technical_feedback")
    communication_feedback = _require_text(
        communication_feedback, "communication_feedback"
    )
    technical_score = _mock_score(technical_score, "technical_score")
    communication_score = _mock_score(communication_score, "communication_score")
    if not isinstance(sent_to_sales, bool):
        raise ValidationError(
            "sent_to_sales must be true or false", field="sent_to_sales"
        )
    file_mime = (
        validate_attachment(feedback_file, ATTACHMENT_MIMES, field="feedback_file")
        if feedback_file is not None
        else None
    )
    store = store or get_object_store()
    dispatcher = dispatcher or get_dispatcher()

    candidate_id = await _mock_owner(db, mock_id)
    uploaded: list[str] = []
    superseded: list[str] = []
    async with record_locks.hold("candidate", candidate_id):
        async with _all_or_nothing(
            db,
            resource=_MOCK_INTERVIEW,
            resource_id=mock_id,
            store=store,
            uploaded=uploaded,
        ):
            candidate = await _load_candidate(db, candidate_id)
            mock = await _load_mock(db, mock_id)
            _check_version(_MOCK_INTERVIEW, mock, expected_version)
            before = candidate_snapshot(candidate)

            if feedback_file is not None and file_mime is not None:
                ref = await _upload(store, feedback_file, file_mime, uploaded)
                if mock.feedback_file_ref:
                    superseded.append(mock.feedback_file_ref)
                mock.feedback_file_ref = ref

            mock.technical_feedback = technical_feedback
            mock.communication_feedback = communication_feedback
            mock.technical_score = technical_score
            mock.communication_score = communication_score
            mock.status = InterviewStatus.COMPLETED.value
            mock.sent_to_sales = mock.sent_to_sales or sent_to_sales

            result = await _commit(
                db,
                action="submit_mock_feedback",
                candidate_id=candidate_id,
                before=before,
                record_id=mock_id,
                dispatcher=dispatcher,
            )
    await _discard(store, superseded)
    return result


async def send_to_sales(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    mock_id: uuid.UUID,
    expected_version: int | None = None,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Forward a completed mock interview to the sales team.

    Idempotent: a mock already sent is returned unchanged.

    Raises:
        AuthorizationError: Caller is not DELIVERY.
        NotFoundError: Mock interview does not exist.
        IncompleteFeedbackError: Mock is not completed with full feedback.
        InvalidStateError: Candidate is terminal.
        StaleStateError: expected_version does not match.
    """
    require_role(ctx, [Role.DELIVERY], "send candidates to sales")
    dispatcher = dispatcher or get_dispatcher()

    candidate_id = await _mock_owner(db, mock_id)
    async with record_locks.hold("candidate", candidate_id):
        async with _all_or_nothing(db, resource=_MOCK_INTERVIEW, resource_id=mock_id):
            candidate = await _load_candidate(db, candidate_id)
            mock = await _load_mock(db, mock_id)
            _check_version(_MOCK_INTERVIEW, mock, expected_version)
            before = candidate_snapshot(candidate)

            missing = [
                name
                for name in (
                    "technical_feedback",
                    "communication_feedback",
                    "technical_score",
                    "communication_score",
                )
                if getattr(mock, name) is None
            ]
            if mock.status != InterviewStatus.COMPLETED.value and not missing:
                missing = ["status"]
            if missing:
                raise IncompleteFeedbackError(str(mock_id), missing)

            if mock.sent_to_sales:
                await db.rollback()
                return TransitionResult(
                    candidate=before,
                    stage=derive_stage(before),
                    record_id=mock_id,
                    changed=False,
                )

            _reject_terminal(before, "send to sales")
            mock.sent_to_sales = True
            return await _commit(
                db,
                action="send_to_sales",
                candidate_id=candidate_id,
                before=before,
                record_id=mock_id,
                dispatcher=dispatcher,
            )


async def update_interview_status(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    mock_id: uuid.UUID,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Mark a scheduled mock interview as held.

    Sets held_at without completing the interview; completion needs
    scores and happens in submit_mock_feedback. No-op when the interview
    is already held or completed.

    Raises:
        AuthorizationError: Caller is not DELIVERY.
        NotFoundError: Mock interview does not exist.
    """
    require_role(ctx, [Role.DELIVERY], "update mock interview status")
    dispatcher = dispatcher or get_dispatcher()

    candidate_id = await _mock_owner(db, mock_id)
    async with record_locks.hold("candidate", candidate_id):
        async with _all_or_nothing(db, resource=_MOCK_INTERVIEW, resource_id=mock_id):
            candidate = await _load_candidate(db, candidate_id)
            mock = await _load_mock(db, mock_id)
            before = candidate_snapshot(candidate)

            if mock.status == InterviewStatus.COMPLETED.value or mock.held_at:
                await db.rollback()
                return TransitionResult(
                    candidate=before,
                    stage=derive_stage(before),
                    record_id=mock_id,
                    changed=False,
                )

            mock.held_at = utcnow()
            return await _commit(
                db,
                action="update_interview_status",
                candidate_id=candidate_id,
                before=before,
                record_id=mock_id,
                dispatcher=dispatcher,
            )


# =============================================================================
# Sales transitions
# =============================================================================


async def schedule_client_interview(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    candidate_id: uuid.UUID,
    client: str,
    interview_date: date,
    interview_time: time,
    level: int,
    job_description_title: str,
    meeting_link: str,
    interviewer_email: str,
    attachment: Attachment | None,
    expected_version: int | None = None,
    store: ObjectStore | None = None,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Schedule a client interview at a given level.

    Allowed once delivery has sent the candidate to sales, or when the
    candidate already has a client interview (next level / re-interview).
    Levels only increase, and a new level waits until every earlier
    client interview has an outcome.

    Raises:
        AuthorizationError: Caller is not SALES.
        ValidationError: Missing or malformed field, no attachment, or
            level not above the highest level reached.
        UnsupportedFileTypeError: Attachment is not pdf/jpeg/png.
        NotFoundError: Candidate does not exist.
        InvalidStateError: Candidate not sent to sales, or terminal.
        DuplicateScheduleError: A client interview is still scheduled, or
            one at this level already exists.
        StaleStateError: expected_version does not match.
        DependencyUnavailableError: Object store failed.
    """
    require_role(ctx, [Role.SALES], "schedule client interviews")
    client = _require_text(client, "client")
    interview_date = _require_date(interview_date, "date")
    interview_time = _require_time(interview_time, "time")
    if isinstance(level, bool) or not isinstance(level, int) or level < 1:
        raise ValidationError(
            "level must be a whole number of at least 1", field="level"
        )
    job_description_title = _require_text(
        job_description_title, "job_description_title"
    )
    meeting_link = _require_link(meeting_link, "meeting_link")
    interviewer_email = _require_email(interviewer_email, "interviewer_email")
    if attachment is None:
        raise ValidationError(
            "Exactly one attachment is required", field="attachment"
        )
    mime_type = validate_attachment(attachment, ATTACHMENT_MIMES, field="attachment")
    store = store or get_object_store()
    dispatcher = dispatcher or get_dispatcher()

    uploaded: list[str] = []
    async with record_locks.hold("candidate", candidate_id):
        async with _all_or_nothing(
            db,
            resource=_CANDIDATE,
            resource_id=candidate_id,
            store=store,
            uploaded=uploaded,
        ):
            candidate = await _load_candidate(db, candidate_id)
            _check_version(_CANDIDATE, candidate, expected_version)
            before = candidate_snapshot(candidate)
            _reject_terminal(before, "schedule a client interview")
            if not is_sent_to_sales(before) and not before.client_interviews:
                raise InvalidStateError(
                    f"Candidate {before.emp_id} has not been sent to sales"
                )
            pending = open_client_interview(before)
            if pending is not None:
                raise DuplicateScheduleError(
                    f"Candidate {before.emp_id} already has a scheduled level "
                    f"{pending.level} client interview",
                    existing_id=str(pending.id),
                )
            for existing in before.client_interviews:
                if existing.level == level:
                    raise DuplicateScheduleError(
                        f"Candidate {before.emp_id} already has a level {level} "
                        "client interview",
                        existing_id=str(existing.id),
                    )
            reached = current_level(before)
            if reached is not None and level <= reached:
                raise ValidationError(
                    f"level must be greater than {reached}, the highest level "
                    "already interviewed",
                    field="level",
                )

            ref = await _upload(store, attachment, mime_type, uploaded)
            try:
                interview = await ClientInterviewRepository.create(
                    db,
                    candidate_id=candidate_id,
                    client=client,
                    level=level,
                    job_description_title=job_description_title,
                    meeting_link=meeting_link,
                    interviewer_email=interviewer_email,
                    interview_date=interview_date,
                    interview_time=interview_time,
                    attachment_ref=ref,
                )
            except IntegrityError as exc:
                raise DuplicateScheduleError(
                    f"Candidate {before.emp_id} already has a level {level} "
                    "client interview"
                ) from exc
            return await _commit(
                db,
                action="schedule_client_interview",
                candidate_id=candidate_id,
                before=before,
                record_id=interview.id,
                dispatcher=dispatcher,
            )


async def update_client_interview(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    interview_id: uuid.UUID,
    result: str,
    feedback: str,
    technical_score: Decimal | float | int | str,
    communication_score: Decimal | float | int | str,
    deployed_status: bool = False,
    feedback_file: Attachment | None = None,
    expected_version: int | None = None,
    store: ObjectStore | None = None,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Record the outcome of a client interview.

    Raises:
        AuthorizationError: Caller is not SALES.
        ValidationError: Bad result, missing feedback, score out of range or
            too precise, or deployment without selection.
        UnsupportedFileTypeError: Feedback file is not pdf/jpeg/png.
        NotFoundError: Client interview does not exist.
        InvalidStateError: Reverting a deployment, or deploying a closed
            candidate.
        StaleStateError: expected_version does not match.
    """
    require_role(ctx, [Role.SALES], "update client interviews")
    outcome = _require_enum(ClientResult, result, "result")
    feedback = _require_text(feedback, "feedback")
    technical = _client_score(technical_score, "technical_score")
    communication = _client_score(communication_score, "communication_score")
    if not isinstance(deployed_status, bool):
        raise ValidationError(
            "deployed_status must be true or false", field="deployed_status"
        )
    if deployed_status and outcome is not ClientResult.SELECTED:
        raise ValidationError(
            "Only a selected candidate can be deployed", field="deployed_status"
        )
    file_mime = (
        validate_attachment(feedback_file, ATTACHMENT_MIMES, field="feedback_file")
        if feedback_file is not None
        else None
    )
    store = store or get_object_store()
    dispatcher = dispatcher or get_dispatcher()

    candidate_id = await _client_interview_owner(db, interview_id)
    uploaded: list[str] = []
    superseded: list[str] = []
    async with record_locks.hold("candidate", candidate_id):
        async with _all_or_nothing(
            db,
            resource=_CLIENT_INTERVIEW,
            resource_id=interview_id,
            store=store,
            uploaded=uploaded,
        ):
            candidate = await _load_candidate(db, candidate_id)
            interview = await _load_client_interview(db, interview_id)
            _check_version(_CLIENT_INTERVIEW, interview, expected_version)
            before = candidate_snapshot(candidate)
            if interview.deployed_status and not deployed_status:
                raise InvalidStateError(
                    f"Client interview {interview_id} is deployed; "
                    "deployment cannot be reverted"
                )

            if feedback_file is not None and file_mime is not None:
                ref = await _upload(store, feedback_file, file_mime, uploaded)
                if interview.feedback_file_ref:
                    superseded.append(interview.feedback_file_ref)
                interview.feedback_file_ref = ref

            interview.status = InterviewStatus.COMPLETED.value
            interview.result = outcome.value
            interview.feedback = feedback
            interview.technical_score = technical
            interview.communication_score = communication
            interview.deployed_status = deployed_status

            transition = await _commit(
                db,
                action="update_client_interview",
                candidate_id=candidate_id,
                before=before,
                record_id=interview_id,
                dispatcher=dispatcher,
            )
    await _discard(store, superseded)
    return transition


async def close_candidate(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    candidate_id: uuid.UUID,
    outcome: str,
    expected_version: int | None = None,
    dispatcher: HandoffDispatcher | None = None,
) -> TransitionResult:
    """Move a candidate to a terminal rejected or withdrawn stage.

    Raises:
        AuthorizationError: Caller is not SALES.
        ValidationError: Outcome is not rejected/withdrawn.
        NotFoundError: Candidate does not exist.
        InvalidStateError: Candidate is already terminal.
        StaleStateError: expected_version does not match.
    """
    require_role(ctx, [Role.SALES], "close candidates")
    closed = _require_enum(ClosedOutcome, outcome, "outcome")
    dispatcher = dispatcher or get_dispatcher()

    async with record_locks.hold("candidate", candidate_id):
        async with _all_or_nothing(db, resource=_CANDIDATE, resource_id=candidate_id):
            candidate = await _load_candidate(db, candidate_id)
            _check_version(_CANDIDATE, candidate, expected_version)
            before = candidate_snapshot(candidate)
            _reject_terminal(before, "close the candidate")

            candidate.closed_outcome = closed.value
            candidate.closed_at = utcnow()
            return await _commit(
                db,
                action="close_candidate",
                candidate_id=candidate_id,
                before=before,
                record_id=candidate_id,
                dispatcher=dispatcher,
            )
