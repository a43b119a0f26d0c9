"""API error classes.

Every error the service raises on purpose derives from APIError. The
exception handlers in app.main render them as RFC 7807 problem details,
so services and repositories raise these and never build responses.

Subclasses fix ``code`` and ``status_code`` as class attributes and only
vary the message (and, for 422, the field errors).
"""


class APIError(Exception):
    """Base class for API errors.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message (problem "detail").
        status_code: HTTP status code to return.
        errors: Optional field-level messages, keyed by wire field name.
    """

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(
        self,
        code: str | None = None,
        message: str = "An unexpected error occurred",
        status_code: int | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        self.errors = errors
        super().__init__(message)


class ValidationError(APIError):
    """Request violates a field rule or business rule (422)."""

    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(
        self,
        message: str = "One or more validation errors occurred.",
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message=message, errors=errors)

    @classmethod
    def field_error(cls, field: str, message: str) -> "ValidationError":
        """One message for one wire field, e.g. ``field_error("mileage", ...)``."""
        return cls(errors={field: [message]})


class UnauthorizedError(APIError):
    """No valid access token was presented (401)."""

    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message=message)


class ForbiddenError(APIError):
    """Authenticated, but not allowed to act on the resource (403).

    Raised only after the resource is known to exist.
    """

    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message=message)


class NotFoundError(APIError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: object | None = None) -> None:
        if resource_id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message=message)


class ConflictError(APIError):
    """Duplicate username or email, or a concurrent write collision (409)."""

    status_code = 409

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code=code, message=message)


class RouteResolutionError(APIError):
    """A hypermedia link could not be built (500).

    A programming error: a resource kind or route name that the router does
    not know. The message is logged, never sent to the client.
    """

    code = "ROUTE_RESOLUTION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message=message)


class InternalError(APIError):
    """Unexpected server error (500). Never carries internal details."""

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(message=message)
