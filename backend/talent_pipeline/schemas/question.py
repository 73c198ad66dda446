"""Interview question bank schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AddQuestionRequest(BaseModel):
    """Body for POST /interview-questions."""

    model_config = ConfigDict(extra="forbid")

    technology: str
    question: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)


class InterviewQuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    technology: str
    question: str
    author: str
    created_at: datetime
