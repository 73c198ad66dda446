"""API error classes.

Every failure of a pipeline transition is one of these. Each carries a
machine-readable code, a human-readable message, the HTTP status the REST
layer maps it to, and optional field-level details so the UI can render a
specific message.

None of these are retried inside the core. DependencyUnavailableError is the
only one a caller may retry automatically (with backoff).
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Payload field missing or outside its declared range/enum (400).

    Args:
        message: Human-readable summary.
        field: Offending payload field, added to details when given.
        details: Explicit details list (overrides field).
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: list[dict] | None = None,
    ) -> None:
        if details is None and field is not None:
            details = [{"field": field, "error": "INVALID_VALUE"}]
        self.field = field
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid session credentials were provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class AuthorizationError(APIError):
    """Caller's role may not perform this transition (403).

    Surfaced to the UI as a permission-denied state, never retried.
    """

    def __init__(
        self,
        message: str = "Access denied",
        *,
        required_roles: list[str] | None = None,
    ) -> None:
        details = None
        if required_roles:
            details = [{"field": "role", "allowed": required_roles}]
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
            details=details,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class DuplicateScheduleError(ConflictError):
    """A conflicting open interview already exists (409).

    The caller must complete or reschedule the existing one first.
    """

    def __init__(self, message: str, existing_id: str | None = None) -> None:
        details = None
        if existing_id:
            details = [{"field": "interview", "existing_id": existing_id}]
        super().__init__(
            code="DUPLICATE_SCHEDULE",
            message=message,
            details=details,
        )


class StaleStateError(ConflictError):
    """Record changed since the caller last read it (409).

    Optimistic concurrency: the caller must re-fetch and retry.
    """

    def __init__(
        self,
        resource: str,
        resource_id: str,
        expected_version: int | None = None,
        current_version: int | None = None,
    ) -> None:
        details = None
        if expected_version is not None:
            details = [
                {
                    "field": "expected_version",
                    "expected": expected_version,
                    "current": current_version,
                }
            ]
        super().__init__(
            code="STALE_STATE",
            message=(
                f"{resource} '{resource_id}' was modified by another request. "
                "Re-fetch and retry."
            ),
            details=details,
        )


class UnsupportedFileTypeError(APIError):
    """Attachment MIME type is not allowed (415)."""

    def __init__(
        self,
        mime_type: str | None,
        allowed: list[str],
        field: str = "file",
    ) -> None:
        super().__init__(
            code="UNSUPPORTED_FILE_TYPE",
            message=f"Invalid file type. Allowed: {', '.join(allowed)}.",
            status_code=415,
            details=[{"field": field, "mime_type": mime_type, "allowed": allowed}],
        )


class IncompleteFeedbackError(APIError):
    """Mock interview feedback is missing required fields (422)."""

    def __init__(self, interview_id: str, missing: list[str]) -> None:
        super().__init__(
            code="INCOMPLETE_FEEDBACK",
            message=(
                f"Mock interview '{interview_id}' has incomplete feedback: "
                f"{', '.join(missing)}"
            ),
            status_code=422,
            details=[{"field": name, "error": "MISSING"} for name in missing],
        )


class InvalidStateError(APIError):
    """Business rule violation (422).

    Use when request is syntactically valid but the record's current state
    does not allow the transition.
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            code="INVALID_STATE_TRANSITION",
            message=message,
            status_code=422,
        )


class DependencyUnavailableError(APIError):
    """Upstream collaborator (object store) failed (503).

    Nothing was committed. The caller may retry with backoff.
    """

    def __init__(self, dependency: str, message: str | None = None) -> None:
        super().__init__(
            code="DEPENDENCY_UNAVAILABLE",
            message=message or f"{dependency} is temporarily unavailable",
            status_code=503,
            details=[{"dependency": dependency}],
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
