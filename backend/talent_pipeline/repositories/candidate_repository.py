"""Repository for Candidate and Resume records.

Candidates are always loaded together with every record they own, in one
round of statements (selectinload), so a snapshot reflects one instant.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, selectinload

from talent_pipeline.models.candidate import Candidate, Resume
from talent_pipeline.repositories.interview_repository import (
    client_interview_snapshot,
    mock_interview_snapshot,
)
from talent_pipeline.services.pipeline_types import CandidateSnapshot

_OWNED_RECORDS = (
    selectinload(Candidate.resumes),
    selectinload(Candidate.mock_interviews),
    selectinload(Candidate.client_interviews),
)


def candidate_snapshot(candidate: Candidate) -> CandidateSnapshot:
    """Copy a fully loaded Candidate into an immutable snapshot.

    Args:
        candidate: Candidate loaded with resumes and both interview lists.

    Returns:
        CandidateSnapshot detached from the session.
    """
    return CandidateSnapshot(
        id=candidate.id,
        emp_id=candidate.emp_id,
        full_name=candidate.full_name,
        technology=candidate.technology,
        resource_type=candidate.resource_type,
        email=candidate.email,
        user_id=candidate.user_id,
        closed_outcome=candidate.closed_outcome,
        resume_count=len(candidate.resumes),
        mock_interviews=tuple(
            mock_interview_snapshot(m) for m in candidate.mock_interviews
        ),
        client_interviews=tuple(
            client_interview_snapshot(ci) for ci in candidate.client_interviews
        ),
        version=candidate.version,
    )


class CandidateRepository:
    """Stateless repository for Candidate operations.

    All methods are static with no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        candidate_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Candidate | None:
        """Fetch a candidate with all owned records.

        Args:
            db: Async database session.
            candidate_id: Candidate primary key.
            for_update: Take a row lock (SELECT ... FOR UPDATE). Always
                re-reads stored values over any already in the session.

        Returns:
            Candidate if found, None otherwise.
        """
        stmt = (
            select(Candidate)
            .where(Candidate.id == candidate_id)
            .options(*_OWNED_RECORDS)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_emp_id(db: AsyncSession, emp_id: str) -> Candidate | None:
        """Fetch a candidate by business key."""
        stmt = (
            select(Candidate)
            .where(Candidate.emp_id == emp_id)
            .options(*_OWNED_RECORDS)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_all(
        db: AsyncSession,
        *,
        technology: str | None = None,
        resource_type: str | None = None,
    ) -> list[Candidate]:
        """List candidates with owned records, ordered by emp_id.

        Args:
            db: Async database session.
            technology: Exact Technology value to filter on.
            resource_type: Exact ResourceType value to filter on.

        Returns:
            Matching candidates.
        """
        stmt = select(Candidate).options(*_OWNED_RECORDS)
        if technology is not None:
            stmt = stmt.where(Candidate.technology == technology)
        if resource_type is not None:
            stmt = stmt.where(Candidate.resource_type == resource_type)
        stmt = stmt.order_by(Candidate.emp_id).execution_options(
            populate_existing=True
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        emp_id: str,
        full_name: str,
        technology: str,
        resource_type: str,
        email: str | None = None,
        user_id: str | None = None,
    ) -> Candidate:
        """Insert a new candidate and flush.

        Returns:
            Created Candidate with id and version populated.
        """
        candidate = Candidate(
            emp_id=emp_id,
            full_name=full_name,
            technology=technology,
            resource_type=resource_type,
            email=email,
            user_id=user_id,
        )
        db.add(candidate)
        await db.flush()
        return candidate


class ResumeRepository:
    """Stateless repository for Resume operations."""

    @staticmethod
    async def list_with_candidates(
        db: AsyncSession,
        *,
        technology: str | None = None,
        resource_type: str | None = None,
    ) -> list[Resume]:
        """List resumes with their candidate loaded.

        Args:
            db: Async database session.
            technology: Exact Technology value of the candidate.
            resource_type: Exact ResourceType value of the candidate.

        Returns:
            Resumes ordered by candidate emp_id, then upload time.
        """
        stmt = (
            select(Resume)
            .join(Resume.candidate)
            .options(contains_eager(Resume.candidate))
        )
        if technology is not None:
            stmt = stmt.where(Candidate.technology == technology)
        if resource_type is not None:
            stmt = stmt.where(Candidate.resource_type == resource_type)
        stmt = stmt.order_by(Candidate.emp_id, Resume.uploaded_at, Resume.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        candidate_id: uuid.UUID,
        file_ref: str,
        file_name: str,
        job_description_id: uuid.UUID | None = None,
    ) -> Resume:
        resume = Resume(
            candidate_id=candidate_id,
            file_ref=file_ref,
            file_name=file_name,
            job_description_id=job_description_id,
        )
        db.add(resume)
        await db.flush()
        return resume
