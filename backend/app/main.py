"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Problem-details exception handlers for every error path
- Security headers and CORS (exposing Pagination, ETag and Location)
- the v1 router under /api/v1 and an unversioned /health probe
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from http import HTTPStatus

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.api.envelopes import PAGINATION_HEADER
from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.database import dispose_engine
from app.core.errors import APIError, RouteResolutionError
from app.core.logging_config import configure_logging
from app.core.rate_limiting import limiter, rate_limit_exceeded_handler
from app.core.responses import ProblemDetails

logger = structlog.get_logger()

_PROBLEM_MEDIA_TYPE = "application/problem+json"

# Problem type URIs per status, as ASP.NET-style clients expect them.
_PROBLEM_TYPES: dict[int, str] = {
    400: "https://tools.ietf.org/html/rfc9110#section-15.5.1",
    401: "https://tools.ietf.org/html/rfc9110#section-15.5.2",
    403: "https://tools.ietf.org/html/rfc9110#section-15.5.4",
    404: "https://tools.ietf.org/html/rfc9110#section-15.5.5",
    405: "https://tools.ietf.org/html/rfc9110#section-15.5.6",
    409: "https://tools.ietf.org/html/rfc9110#section-15.5.10",
    422: "https://tools.ietf.org/html/rfc4918#section-11.2",
    500: "https://tools.ietf.org/html/rfc9110#section-15.6.1",
}

_REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})
_VALUE_ERROR_PREFIX = "Value error, "


def problem_response(
    status_code: int,
    detail: str | None = None,
    errors: dict[str, list[str]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render an RFC 7807 problem-details response."""
    try:
        title = HTTPStatus(status_code).phrase
    except ValueError:
        title = "Error"
    problem = ProblemDetails(
        type=_PROBLEM_TYPES.get(status_code, "about:blank"),
        title=title,
        status=status_code,
        detail=detail,
        errors=errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type=_PROBLEM_MEDIA_TYPE,
        headers=headers,
    )


_SECURITY_HEADERS: dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Cross-Origin-Resource-Policy": "same-origin",
}

_HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp the fixed security headers on every response.

    API responses without an ETag are marked ``no-store``; ETag responses
    keep their revalidation semantics. HSTS is only sent in production,
    where TLS terminates at the reverse proxy.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers.update(_SECURITY_HEADERS)
        if request.url.path.startswith("/api/") and "ETag" not in response.headers:
            response.headers["Cache-Control"] = "no-store, max-age=0"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = _HSTS
        return response


def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError as problem details.

    RouteResolutionError is a programming error: logged in full, sent as a
    generic 500.
    """
    if isinstance(exc, RouteResolutionError):
        logger.error(
            "route_resolution_failed",
            error=exc.message,
            path=str(request.url.path),
        )
        return problem_response(500, "An unexpected error occurred")
    return problem_response(exc.status_code, exc.message, exc.errors)


def _error_field(loc: tuple[str | int, ...]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in _REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts) or "request"


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI validation errors to a 422 with per-field messages.

    Keys are the wire (camelCase) field names; model-level rules land under
    ``request``.
    """
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        message = str(error["msg"]).removeprefix(_VALUE_ERROR_PREFIX)
        errors.setdefault(_error_field(tuple(error["loc"])), []).append(message)
    return problem_response(
        422, "One or more validation errors occurred.", errors=errors
    )


def http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Unknown routes, wrong methods and framework-raised HTTP errors."""
    detail = exc.detail if isinstance(exc.detail, str) else None
    return problem_response(exc.status_code, detail, headers=exc.headers)


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unhandled and answer with a generic 500 problem."""
    logger.exception("unhandled_exception", exc_info=exc, path=str(request.url.path))
    return problem_response(500, "An unexpected error occurred")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    logger.info("api_starting", environment=settings.environment)
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Build the application: logging, middleware, error handlers, routes."""
    configure_logging()

    app = FastAPI(
        title="Playlist & Fleet API",
        version="1.0.0",
        description="Music catalog and family vehicle fleet tracking",
        lifespan=lifespan,
    )

    # Starlette runs the last-added middleware first; CORS must see
    # preflight requests before anything else.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization", "If-None-Match"],
        expose_headers=[PAGINATION_HEADER, "ETag", "Location"],
    )

    for exc_class, handler in (
        (APIError, api_error_handler),
        (RequestValidationError, validation_error_handler),
        (StarletteHTTPException, http_exception_handler),
        (RateLimitExceeded, rate_limit_exceeded_handler),
        (Exception, internal_error_handler),
    ):
        app.add_exception_handler(exc_class, handler)

    app.state.limiter = limiter
    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health", include_in_schema=False)
    def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


# uvicorn app.main:app
app = create_app()
