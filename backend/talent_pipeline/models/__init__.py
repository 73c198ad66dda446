"""SQLAlchemy ORM models for the talent pipeline.

All models are exported from this module for convenient imports:
    from talent_pipeline.models import Candidate, MockInterview, ...

Models are organized by domain:
- candidate.py: Candidate, Resume
- interview.py: MockInterview, ClientInterview
- client.py: Client, JobDescription
- question.py: InterviewQuestion
"""

from talent_pipeline.models.base import Base, TimestampMixin
from talent_pipeline.models.candidate import Candidate, Resume
from talent_pipeline.models.client import Client, JobDescription
from talent_pipeline.models.interview import ClientInterview, MockInterview
from talent_pipeline.models.question import InterviewQuestion

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Pipeline subject
    "Candidate",
    "Resume",
    # Interview records
    "MockInterview",
    "ClientInterview",
    # Sales catalogue
    "Client",
    "JobDescription",
    # Question bank
    "InterviewQuestion",
]
