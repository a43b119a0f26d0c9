"""Typed async client for the Playlist & Fleet API."""

from app.client.api import (
    ApiClient,
    ApiClientError,
    ApiForbiddenError,
    ApiNotFoundError,
    ApiValidationError,
    PaginationInfo,
)
from app.client.tokens import (
    SessionExpiredError,
    TokenBundle,
    TokenManager,
    TokenState,
    UserInfo,
)

__all__ = [
    "ApiClient",
    "ApiClientError",
    "ApiForbiddenError",
    "ApiNotFoundError",
    "ApiValidationError",
    "PaginationInfo",
    "SessionExpiredError",
    "TokenBundle",
    "TokenManager",
    "TokenState",
    "UserInfo",
]
