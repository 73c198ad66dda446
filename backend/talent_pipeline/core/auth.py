"""Session context and role gating.

Every transition receives an explicit SessionContext instead of reading
ambient global state. External role strings are normalized into the closed
Role enum here, at the boundary; the core never sees "ROLE_" prefixes or
team-name variants.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

import jwt

from talent_pipeline.core.config import settings
from talent_pipeline.core.errors import AuthorizationError, UnauthorizedError

logger = logging.getLogger(__name__)

# Default JWT expiration: 1 hour
_DEFAULT_EXPIRATION = timedelta(hours=1)


class Role(Enum):
    """Closed set of caller roles."""

    EMPLOYEE = "EMPLOYEE"
    DELIVERY = "DELIVERY"
    SALES = "SALES"
    ADMIN = "ADMIN"


# Lower-cased aliases seen from upstream identity providers.
_ROLE_ALIASES: dict[str, Role] = {
    "employee": Role.EMPLOYEE,
    "role_employee": Role.EMPLOYEE,
    "delivery": Role.DELIVERY,
    "delivery_team": Role.DELIVERY,
    "role_delivery": Role.DELIVERY,
    "role_delivery_team": Role.DELIVERY,
    "sales": Role.SALES,
    "sales_team": Role.SALES,
    "role_sales": Role.SALES,
    "role_sales_team": Role.SALES,
    "admin": Role.ADMIN,
    "role_admin": Role.ADMIN,
}


def normalize_role(value: str | Role) -> Role:
    """Map an external role string into the Role enum.

    Args:
        value: Raw role claim (e.g. "ROLE_DELIVERY", "delivery_team").

    Returns:
        The matching Role.

    Raises:
        UnauthorizedError: If the string is not a known role.
    """
    if isinstance(value, Role):
        return value
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    role = _ROLE_ALIASES.get(key)
    if role is None:
        logger.warning("Rejected unknown role claim: %r", value)
        raise UnauthorizedError("Unknown role")
    return role


@dataclass(frozen=True)
class SessionContext:
    """Who is calling.

    Attributes:
        role: Normalized caller role.
        user_id: Opaque identifier of the authenticated account.
    """

    role: Role
    user_id: str

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def require_role(ctx: SessionContext, allowed: Iterable[Role], action: str) -> None:
    """Reject the call unless the caller holds one of the allowed roles.

    ADMIN passes every gate.

    Raises:
        AuthorizationError: Role not permitted for this action.
    """
    allowed_roles = list(allowed)
    if ctx.role is Role.ADMIN or ctx.role in allowed_roles:
        return
    logger.info(
        "Denied %s for role %s (user %s)", action, ctx.role.value, ctx.user_id
    )
    raise AuthorizationError(
        f"Role {ctx.role.value} may not {action}",
        required_roles=[r.value for r in allowed_roles],
    )


def create_jwt(
    *,
    user_id: str,
    role: Role,
    secret: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session JWT with sub + role claims.

    Args:
        user_id: Account identifier for the sub claim.
        role: Role for the role claim.
        secret: HMAC signing secret.
        expires_delta: Time until expiration. Defaults to 1 hour.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "role": role.value,
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or _DEFAULT_EXPIRATION),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def decode_session_token(token: str, secret: str) -> SessionContext:
    """Verify a session JWT and build the SessionContext from it.

    Raises:
        UnauthorizedError: Bad signature, expired, or missing claims.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
        )
        user_id = str(payload["sub"])
        raw_role = str(payload["role"])
    except (jwt.InvalidTokenError, KeyError) as exc:
        raise UnauthorizedError() from exc
    return SessionContext(role=normalize_role(raw_role), user_id=user_id)
