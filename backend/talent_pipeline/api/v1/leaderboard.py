"""Leaderboard API router.

Ranks candidates by their latest completed mock interview and reports
per-group score averages.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from talent_pipeline.api.deps import CurrentSession, DbSession
from talent_pipeline.core.responses import DataResponse
from talent_pipeline.schemas.pipeline import (
    GroupAverageResponse,
    LeaderboardEntryResponse,
)
from talent_pipeline.services import pipeline_queries

router = APIRouter()


@router.get("")
async def get_leaderboard(
    _session: CurrentSession,
    db: DbSession,
    technology: Annotated[str | None, Query()] = None,
    resource_type: Annotated[str | None, Query()] = None,
) -> DataResponse[list[LeaderboardEntryResponse]]:
    """Ranked leaderboard; filters are case-insensitive and "all" disables them."""
    entries = await pipeline_queries.get_leaderboard(
        db, technology=technology, resource_type=resource_type
    )
    return DataResponse(data=[LeaderboardEntryResponse.from_entry(e) for e in entries])


@router.get("/technology-averages")
async def technology_averages(
    _session: CurrentSession,
    db: DbSession,
) -> DataResponse[list[GroupAverageResponse]]:
    averages = await pipeline_queries.get_technology_averages(db)
    return DataResponse(
        data=[GroupAverageResponse.from_average(a) for a in averages.values()]
    )


@router.get("/resource-type-averages")
async def resource_type_averages(
    _session: CurrentSession,
    db: DbSession,
) -> DataResponse[list[GroupAverageResponse]]:
    averages = await pipeline_queries.get_resource_type_averages(db)
    return DataResponse(
        data=[GroupAverageResponse.from_average(a) for a in averages.values()]
    )
