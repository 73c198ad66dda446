"""API v1 router aggregator.

All v1 endpoint routers are included here, mounted under /api/v1.
"""

from fastapi import APIRouter

from talent_pipeline.api.v1 import (
    candidates,
    clients,
    delivery,
    interview_questions,
    job_descriptions,
    leaderboard,
    sales,
)

router = APIRouter()

# =============================================================================
# Pipeline
# =============================================================================

router.include_router(candidates.router, prefix="/candidates", tags=["candidates"])
router.include_router(delivery.router, prefix="/delivery", tags=["delivery"])
router.include_router(sales.router, prefix="/sales", tags=["sales"])

# =============================================================================
# Sales catalogue
# =============================================================================

router.include_router(clients.router, prefix="/clients", tags=["clients"])
router.include_router(
    job_descriptions.router,
    prefix="/job-descriptions",
    tags=["job-descriptions"],
)

# =============================================================================
# Scoring
# =============================================================================

router.include_router(leaderboard.router, prefix="/leaderboard", tags=["leaderboard"])

# =============================================================================
# Question bank
# =============================================================================

router.include_router(
    interview_questions.router,
    prefix="/interview-questions",
    tags=["interview-questions"],
)
