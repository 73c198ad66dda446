"""Repository for MockInterview and ClientInterview records.

Write methods flush but never commit; the transition engine owns the
transaction boundary.
"""

import uuid
from datetime import date, time

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from talent_pipeline.models.candidate import Candidate
from talent_pipeline.models.interview import ClientInterview, MockInterview
from talent_pipeline.services.pipeline_types import (
    ClientInterviewSnapshot,
    MockInterviewSnapshot,
)


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def mock_interview_snapshot(mock: MockInterview) -> MockInterviewSnapshot:
    """Copy a MockInterview row into an immutable snapshot."""
    return MockInterviewSnapshot(
        id=mock.id,
        candidate_id=mock.candidate_id,
        date=mock.date,
        time=mock.time,
        interviewer_id=mock.interviewer_id,
        status=mock.status,
        technical_score=mock.technical_score,
        communication_score=mock.communication_score,
        technical_feedback=mock.technical_feedback,
        communication_feedback=mock.communication_feedback,
        sent_to_sales=mock.sent_to_sales,
        held_at=mock.held_at,
        attachment_refs=tuple(mock.attachment_refs or ()),
        feedback_file_ref=mock.feedback_file_ref,
        version=mock.version,
    )


def client_interview_snapshot(interview: ClientInterview) -> ClientInterviewSnapshot:
    """Copy a ClientInterview row into an immutable snapshot."""
    return ClientInterviewSnapshot(
        id=interview.id,
        candidate_id=interview.candidate_id,
        client=interview.client,
        level=interview.level,
        job_description_title=interview.job_description_title,
        date=interview.date,
        time=interview.time,
        status=interview.status,
        result=interview.result,
        technical_score=interview.technical_score,
        communication_score=interview.communication_score,
        feedback=interview.feedback,
        deployed_status=interview.deployed_status,
        meeting_link=interview.meeting_link,
        interviewer_email=interview.interviewer_email,
        attachment_ref=interview.attachment_ref,
        feedback_file_ref=interview.feedback_file_ref,
        version=interview.version,
    )


class MockInterviewRepository:
    """Stateless repository for MockInterview operations."""

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        interview_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> MockInterview | None:
        """Fetch a mock interview by primary key.

        Args:
            db: Async database session.
            interview_id: MockInterview primary key.
            for_update: Take a row lock and re-read stored values.

        Returns:
            MockInterview if found, None otherwise.
        """
        stmt = (
            select(MockInterview)
            .where(MockInterview.id == interview_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_all(
        db: AsyncSession,
        *,
        status: str | None = None,
    ) -> list[MockInterview]:
        """List mock interviews ordered by date and time.

        Args:
            db: Async database session.
            status: Only return interviews with this status.

        Returns:
            Matching mock interviews.
        """
        stmt = select(MockInterview)
        if status is not None:
            stmt = stmt.where(MockInterview.status == status)
        stmt = stmt.order_by(MockInterview.date, MockInterview.time, MockInterview.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        candidate_id: uuid.UUID,
        interview_date: date,
        interview_time: time,
        interviewer_id: str,
        attachment_refs: list[str],
    ) -> MockInterview:
        mock = MockInterview(
            candidate_id=candidate_id,
            date=interview_date,
            time=interview_time,
            interviewer_id=interviewer_id,
            attachment_refs=list(attachment_refs),
            status="scheduled",
            sent_to_sales=False,
        )
        db.add(mock)
        await db.flush()
        return mock


class ClientInterviewRepository:
    """Stateless repository for ClientInterview operations."""

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        interview_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> ClientInterview | None:
        """Fetch a client interview by primary key.

        Args:
            db: Async database session.
            interview_id: ClientInterview primary key.
            for_update: Take a row lock and re-read stored values.

        Returns:
            ClientInterview if found, None otherwise.
        """
        stmt = (
            select(ClientInterview)
            .where(ClientInterview.id == interview_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_candidate(
        db: AsyncSession, candidate_id: uuid.UUID
    ) -> list[ClientInterview]:
        """Client interviews for one candidate, ordered by level."""
        stmt = (
            select(ClientInterview)
            .where(ClientInterview.candidate_id == candidate_id)
            .order_by(ClientInterview.level, ClientInterview.date)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def search(
        db: AsyncSession,
        term: str | None = None,
    ) -> list[ClientInterview]:
        """Client interviews matching a free-text term, ordered by date and time.

        The term is matched case-insensitively as a substring of the client,
        job description title, interviewer email, and the candidate's emp_id
        or name.

        Args:
            db: Async database session.
            term: Search text. None or blank returns every interview.

        Returns:
            Matching client interviews.
        """
        stmt = select(ClientInterview)
        if term:
            pattern = f"%{_escape_like(term)}%"
            stmt = stmt.join(Candidate, Candidate.id == ClientInterview.candidate_id)
            columns = (
                ClientInterview.client,
                ClientInterview.job_description_title,
                ClientInterview.interviewer_email,
                Candidate.emp_id,
                Candidate.full_name,
            )
            stmt = stmt.where(or_(*(c.ilike(pattern, escape="\\") for c in columns)))
        stmt = stmt.order_by(
            ClientInterview.date, ClientInterview.time, ClientInterview.level
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count(db: AsyncSession, *, status: str | None = None) -> int:
        stmt = select(func.count()).select_from(ClientInterview)
        if status is not None:
            stmt = stmt.where(ClientInterview.status == status)
        result = await db.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        candidate_id: uuid.UUID,
        client: str,
        level: int,
        job_description_title: str,
        meeting_link: str,
        interviewer_email: str,
        interview_date: date,
        interview_time: time,
        attachment_ref: str,
    ) -> ClientInterview:
        interview = ClientInterview(
            candidate_id=candidate_id,
            client=client,
            level=level,
            job_description_title=job_description_title,
            meeting_link=meeting_link,
            interviewer_email=interviewer_email,
            date=interview_date,
            time=interview_time,
            attachment_ref=attachment_ref,
            status="scheduled",
            deployed_status=False,
        )
        db.add(interview)
        await db.flush()
        return interview
