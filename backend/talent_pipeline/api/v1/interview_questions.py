"""Interview question bank API router."""

from typing import Annotated

from fastapi import APIRouter, Query

from talent_pipeline.api.deps import CurrentSession, DbSession
from talent_pipeline.core.responses import DataResponse
from talent_pipeline.schemas.question import (
    AddQuestionRequest,
    InterviewQuestionResponse,
)
from talent_pipeline.services import question_bank

router = APIRouter()


@router.get("")
async def list_questions(
    _session: CurrentSession,
    db: DbSession,
    technology: Annotated[str | None, Query()] = None,
) -> DataResponse[list[InterviewQuestionResponse]]:
    """Questions newest first; technology "all" (or omitted) lists every track."""
    questions = await question_bank.list_questions(db, technology=technology)
    return DataResponse(
        data=[InterviewQuestionResponse.model_validate(q) for q in questions]
    )


@router.post("", status_code=201)
async def add_question(
    request: AddQuestionRequest,
    session: CurrentSession,
    db: DbSession,
) -> DataResponse[InterviewQuestionResponse]:
    question = await question_bank.add_question(
        db,
        session,
        technology=request.technology,
        question=request.question,
        author=request.author,
    )
    return DataResponse(data=InterviewQuestionResponse.model_validate(question))
