"""Interview question bank.

Anyone signed in may add a question for a technology track and browse the
bank. Questions are reference material only and never affect a candidate's
stage.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from talent_pipeline.core.auth import SessionContext
from talent_pipeline.core.errors import ValidationError
from talent_pipeline.models.question import InterviewQuestion
from talent_pipeline.services.pipeline_types import Technology
from talent_pipeline.services.scoring import FILTER_ALL

logger = logging.getLogger(__name__)

MAX_QUESTION_LENGTH = 5000
MAX_AUTHOR_LENGTH = 255


def _technology(value: str | None) -> str:
    if value is None or not value.strip():
        raise ValidationError("technology is required", field="technology")
    try:
        return Technology.from_string(value).value
    except ValueError as exc:
        raise ValidationError(str(exc), field="technology") from exc


def _bounded_text(value: str | None, field: str, limit: int) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required", field=field)
    if len(text) > limit:
        raise ValidationError(
            f"{field} must be at most {limit} characters", field=field
        )
    return text


async def add_question(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    technology: str,
    question: str,
    author: str,
) -> InterviewQuestion:
    """Add a question to the bank.

    Args:
        db: Async database session.
        ctx: Caller; recorded as the question's creator.
        technology: Technology track (case-insensitive).
        question: Question text. Line breaks are kept.
        author: Display name shown next to the question.

    Returns:
        The stored question.

    Raises:
        ValidationError: Unknown technology, or blank/oversized text.
    """
    entry = InterviewQuestion(
        technology=_technology(technology),
        question=_bounded_text(question, "question", MAX_QUESTION_LENGTH),
        author=_bounded_text(author, "author", MAX_AUTHOR_LENGTH),
        created_by=ctx.user_id,
    )
    db.add(entry)
    await db.commit()
    logger.info("Added %s interview question %s", entry.technology, entry.id)
    return entry


async def list_questions(
    db: AsyncSession,
    *,
    technology: str | None = None,
) -> list[InterviewQuestion]:
    """Questions newest first, optionally for one technology.

    None, "" and "all" list every track.

    Raises:
        ValidationError: Unknown technology.
    """
    stmt = select(InterviewQuestion)
    if technology is not None and technology.strip().lower() not in ("", FILTER_ALL):
        stmt = stmt.where(InterviewQuestion.technology == _technology(technology))
    stmt = stmt.order_by(InterviewQuestion.created_at.desc(), InterviewQuestion.id)
    result = await db.execute(stmt)
    return list(result.scalars().all())
