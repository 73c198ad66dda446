"""Interview question bank.

Questions are shared reference material tagged by technology. They have
no link to candidates or interviews.
"""

import uuid

from sqlalchemy import CheckConstraint, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from talent_pipeline.models.base import Base, TimestampMixin
from talent_pipeline.services.pipeline_types import Technology


class InterviewQuestion(Base, TimestampMixin):
    """A question someone was asked, or expects to be asked."""

    __tablename__ = "interview_questions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    technology: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    # Display name typed by the contributor
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    # Account that added the question
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "technology IN ("
            + ", ".join(f"'{t.value}'" for t in Technology)
            + ")",
            name="ck_interview_question_technology",
        ),
    )
