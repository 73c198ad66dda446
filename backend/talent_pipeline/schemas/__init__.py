"""Pydantic request/response schemas for API endpoints."""

from talent_pipeline.schemas.catalog import (
    ClientResponse,
    CreateClientRequest,
    JobDescriptionResponse,
)
from talent_pipeline.schemas.pipeline import (
    CandidateResponse,
    ClientInterviewResponse,
    CloseCandidateRequest,
    CountersResponse,
    GroupAverageResponse,
    HandoffResponse,
    InterviewCountResponse,
    LeaderboardEntryResponse,
    MockInterviewResponse,
    MockPerformanceResponse,
    RegisterCandidateRequest,
    ResumeResponse,
    TransitionResponse,
    VersionedRequest,
)
from talent_pipeline.schemas.question import (
    AddQuestionRequest,
    InterviewQuestionResponse,
)

__all__ = [
    # Sales catalogue
    "ClientResponse",
    "CreateClientRequest",
    "JobDescriptionResponse",
    # Pipeline requests
    "CloseCandidateRequest",
    "RegisterCandidateRequest",
    "VersionedRequest",
    # Pipeline responses
    "CandidateResponse",
    "ClientInterviewResponse",
    "HandoffResponse",
    "InterviewCountResponse",
    "MockInterviewResponse",
    "ResumeResponse",
    "TransitionResponse",
    # Scoring
    "CountersResponse",
    "GroupAverageResponse",
    "LeaderboardEntryResponse",
    "MockPerformanceResponse",
    # Question bank
    "AddQuestionRequest",
    "InterviewQuestionResponse",
]
