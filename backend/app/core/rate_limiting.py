"""Rate limiting configuration using slowapi.

Limits login and registration attempts. Requests carrying a valid bearer
token are keyed per user; everything else falls back to the client address.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("/login")
    @limiter.limit(lambda: settings.rate_limit_login)
    async def login(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.auth import decode_access_token
from app.core.config import settings
from app.core.responses import ProblemDetails

_BEARER_PREFIX = "bearer "


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Valid bearer token: "user:{sub}"
    - Otherwise: "{ip}"

    Only the sub claim matters here; full auth happens in api.deps.
    """
    header = request.headers.get("Authorization", "")
    if header.lower().startswith(_BEARER_PREFIX):
        try:
            claims = decode_access_token(header[len(_BEARER_PREFIX) :].strip())
            return f"user:{claims.user_id}"
        except (jwt.InvalidTokenError, KeyError):
            pass
    return get_remote_address(request)


# In-memory storage (single instance). For several instances configure a
# shared backend via RATELIMIT_STORAGE_URL.
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Return 429 as problem details with a Retry-After header."""
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content=ProblemDetails(
            type="https://tools.ietf.org/html/rfc6585#section-4",
            title="Too Many Requests",
            status=429,
            detail=f"Rate limit exceeded: {exc.detail}",
        ).model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers={"Retry-After": retry_after},
    )
