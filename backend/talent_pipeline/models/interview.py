"""Interview models - delivery mock interviews and sales client interviews.

Both carry a version column used as an optimistic-concurrency token: every
UPDATE is issued as "... WHERE version = :old", and a miss surfaces as
StaleStateError in the transition engine.
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talent_pipeline.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from talent_pipeline.models.candidate import Candidate

_STATUS_CHECK = "status IN ('scheduled', 'completed')"


class MockInterview(Base, TimestampMixin):
    """Internal assessment run by the delivery team.

    Scores and feedback text are both-or-neither; completed implies scores;
    sent_to_sales implies completed.
    """

    __tablename__ = "mock_interviews"

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
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    interviewer_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    # Opaque object-store references, in upload order
    attachment_refs: Mapped[list] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default="scheduled",
        nullable=False,
    )
    # Set when delivery marks the interview as held, before feedback lands
    held_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    technical_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    communication_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    technical_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    communication_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_to_sales: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
    )
    feedback_file_ref: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(_STATUS_CHECK, name="ck_mock_interview_status"),
        CheckConstraint(
            "technical_score IS NULL OR technical_score BETWEEN 0 AND 10",
            name="ck_mock_interview_technical_score",
        ),
        CheckConstraint(
            "communication_score IS NULL OR communication_score BETWEEN 0 AND 10",
            name="ck_mock_interview_communication_score",
        ),
        CheckConstraint(
            "(technical_score IS NULL AND communication_score IS NULL"
            " AND technical_feedback IS NULL AND communication_feedback IS NULL)"
            " OR (technical_score IS NOT NULL AND communication_score IS NOT NULL"
            " AND technical_feedback IS NOT NULL"
            " AND communication_feedback IS NOT NULL)",
            name="ck_mock_interview_feedback_complete",
        ),
        CheckConstraint(
            "status <> 'completed' OR technical_score IS NOT NULL",
            name="ck_mock_interview_completed_scored",
        ),
        CheckConstraint(
            "NOT sent_to_sales OR status = 'completed'",
            name="ck_mock_interview_sent_requires_completed",
        ),
    )

    candidate: Mapped["Candidate"] = relationship(
        "Candidate",
        back_populates="mock_interviews",
    )


class ClientInterview(Base, TimestampMixin):
    """External interview on behalf of a hiring client, one per level.

    client and job_description_title are soft references by name/title.
    """

    __tablename__ = "client_interviews"

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
    client: Mapped[str] = mapped_column(String(255), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    job_description_title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    meeting_link: Mapped[str] = mapped_column(String(1000), nullable=False)
    interviewer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    attachment_ref: Mapped[str] = mapped_column(String(500), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default="scheduled",
        nullable=False,
    )
    result: Mapped[str | None] = mapped_column(String(20), nullable=True)
    # One decimal place, 0.0 - 10.0
    technical_score: Mapped[Decimal | None] = mapped_column(
        Numeric(3, 1),
        nullable=True,
    )
    communication_score: Mapped[Decimal | None] = mapped_column(
        Numeric(3, 1),
        nullable=True,
    )
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    feedback_file_ref: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    deployed_status: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("candidate_id", "level", name="uq_client_interview_level"),
        CheckConstraint(_STATUS_CHECK, name="ck_client_interview_status"),
        CheckConstraint("level >= 1", name="ck_client_interview_level"),
        CheckConstraint(
            "result IS NULL OR (result IN ('selected', 'rejected')"
            " AND status = 'completed')",
            name="ck_client_interview_result",
        ),
        CheckConstraint(
            "status <> 'completed' OR (technical_score IS NOT NULL"
            " AND communication_score IS NOT NULL)",
            name="ck_client_interview_completed_scored",
        ),
        CheckConstraint(
            "NOT deployed_status OR result = 'selected'",
            name="ck_client_interview_deployed_selected",
        ),
    )

    candidate: Mapped["Candidate"] = relationship(
        "Candidate",
        back_populates="client_interviews",
    )
