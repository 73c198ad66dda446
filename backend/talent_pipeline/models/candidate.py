"""Candidate models - the pipeline subject and its resumes.

Candidate stage is never stored: it is derived from the records the
candidate owns (see services/candidate_stage.py).
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talent_pipeline.models.base import Base, TimestampMixin, utcnow
from talent_pipeline.services.pipeline_types import (
    ClosedOutcome,
    ResourceType,
    Technology,
)

if TYPE_CHECKING:
    from talent_pipeline.models.interview import ClientInterview, MockInterview


def _in_clause(column: str, values: list[str]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Candidate(Base, TimestampMixin):
    """A person moving through the interview pipeline.

    Never deleted; made terminal by deployment or close_candidate.
    Owns its resumes, mock interviews and client interviews.
    """

    __tablename__ = "candidates"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    emp_id: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    # Account that registered / owns this record (EMPLOYEE self-service)
    user_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    technology: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    resource_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    # Explicit terminal outcome (deployment is derived from client interviews)
    closed_outcome: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            _in_clause("technology", [t.value for t in Technology]),
            name="ck_candidate_technology",
        ),
        CheckConstraint(
            _in_clause("resource_type", [r.value for r in ResourceType]),
            name="ck_candidate_resource_type",
        ),
        CheckConstraint(
            _in_clause("closed_outcome", [o.value for o in ClosedOutcome])
            + " OR closed_outcome IS NULL",
            name="ck_candidate_closed_outcome",
        ),
    )

    # Relationships
    resumes: Mapped[list["Resume"]] = relationship(
        "Resume",
        back_populates="candidate",
        cascade="all, delete-orphan",
        order_by="Resume.uploaded_at",
    )
    mock_interviews: Mapped[list["MockInterview"]] = relationship(
        "MockInterview",
        back_populates="candidate",
        cascade="all, delete-orphan",
        order_by="[MockInterview.date, MockInterview.time]",
    )
    client_interviews: Mapped[list["ClientInterview"]] = relationship(
        "ClientInterview",
        back_populates="candidate",
        cascade="all, delete-orphan",
        order_by="ClientInterview.level",
    )


class Resume(Base, TimestampMixin):
    """Resume uploaded by a candidate, optionally against a job description.

    job_description_id is a soft link: deleting the JD leaves the resume.
    """

    __tablename__ = "resumes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    job_description_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
    )
    file_ref: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    candidate: Mapped["Candidate"] = relationship(
        "Candidate",
        back_populates="resumes",
    )
