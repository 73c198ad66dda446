"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Exception handlers for API errors
- API v1 router mounting
- Dispatcher warm-up on startup
- Health check endpoint
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talent_pipeline.api.v1.router import router as v1_router
from talent_pipeline.core.config import settings
from talent_pipeline.core.database import async_session_factory
from talent_pipeline.core.errors import APIError
from talent_pipeline.core.responses import ErrorDetail, ErrorResponse
from talent_pipeline.services.pipeline_queries import warm_dispatcher

logger = structlog.get_logger()


def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError in the error envelope.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        JSONResponse with error envelope and the error's status code.
    """
    if exc.status_code >= 500:
        logger.warning(
            "Request failed", code=exc.code, path=str(request.url.path)
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        ).model_dump(),
    )


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI's validation errors to the VALIDATION_ERROR envelope."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                details=[
                    {
                        "field": ".".join(str(part) for part in e["loc"][1:])
                        or str(e["loc"][0]),
                        "error": e["type"],
                        "msg": e["msg"],
                    }
                    for e in exc.errors()
                ],
            )
        ).model_dump(),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 INTERNAL_ERROR without exposing stack traces; the full
    exception is logged.
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
            )
        ).model_dump(),
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Rebuild the dispatcher views from stored candidates before serving."""
    async with async_session_factory() as db:
        await warm_dispatcher(db)
    logger.info("Pipeline views warmed", environment=settings.environment)
    yield


def create_app(*, warm_views: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        warm_views: Rebuild dispatcher views on startup. Tests that manage
            their own database pass False.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Talent Pipeline API",
        version="1.0.0",
        description="Candidate progression from registration to deployment",
        lifespan=lifespan if warm_views else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    # Register exception handlers
    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        validation_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, internal_error_handler)

    # Include v1 router at /api/v1
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    return app


# Create the application instance
# Used by uvicorn: uvicorn talent_pipeline.main:app
app = create_app()
