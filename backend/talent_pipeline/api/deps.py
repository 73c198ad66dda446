"""Shared dependencies for API endpoints.

Local-first mode builds the session from DEFAULT_USER_ID / DEFAULT_ROLE;
hosted mode validates a bearer JWT carrying "sub" and "role" claims.
Every transition receives the resulting SessionContext explicitly.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from talent_pipeline.core.auth import (
    Role,
    SessionContext,
    decode_session_token,
    normalize_role,
    require_role,
)
from talent_pipeline.core.config import settings
from talent_pipeline.core.database import get_db
from talent_pipeline.core.errors import UnauthorizedError
from talent_pipeline.services.handoff_dispatcher import (
    HandoffDispatcher,
    get_dispatcher,
)
from talent_pipeline.services.object_store import ObjectStore, get_object_store

_BEARER_PREFIX = "bearer "


def get_current_session(request: Request) -> SessionContext:
    """Build the caller's SessionContext.

    Validation steps (hosted mode):
    1. Read the Authorization: Bearer header
    2. Decode + verify signature (HS256), exp, aud, iss
    3. Normalize the role claim into the Role enum

    Args:
        request: HTTP request (injected by FastAPI).

    Returns:
        SessionContext for the authenticated caller.

    Raises:
        UnauthorizedError: Missing or invalid credentials.
    """
    if not settings.auth_enabled:
        # Local-first mode: identity comes from the environment
        if settings.default_user_id is None:
            raise UnauthorizedError()
        return SessionContext(
            role=normalize_role(settings.default_role),
            user_id=settings.default_user_id,
        )

    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        raise UnauthorizedError()
    token = header[len(_BEARER_PREFIX) :].strip()
    return decode_session_token(token, settings.auth_secret.get_secret_value())


# Type aliases for cleaner endpoint signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentSession = Annotated[SessionContext, Depends(get_current_session)]
Store = Annotated[ObjectStore, Depends(get_object_store)]
Dispatcher = Annotated[HandoffDispatcher, Depends(get_dispatcher)]


def require_sales_role(session: CurrentSession) -> None:
    """Reject non-sales callers before the request body is validated.

    Dependencies resolve ahead of form fields, so an EMPLOYEE posting an
    incomplete form gets 403 rather than 400. The transition repeats the
    check for callers outside the HTTP layer.

    Raises:
        AuthorizationError: Caller is neither SALES nor ADMIN.
    """
    require_role(session, [Role.SALES], "use the sales desk")


SalesGate = Annotated[None, Depends(require_sales_role)]
