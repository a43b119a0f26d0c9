"""Async HTTP client for the Playlist & Fleet API.

Attaches the bearer token from a TokenManager, retries a request exactly
once after a 401 (refreshing through ``POST /accessToken``), and decodes
responses into the same typed envelopes the server emits. Problem-details
errors become ApiClientError subclasses.

Usage:
    async with ApiClient("http://localhost:8000/api/v1") as api:
        await api.login("alice", "S3cret!pass")
        page, pagination = await api.get_page("/vehicles", VehicleDTO)
"""

import json
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from app.client.tokens import SessionExpiredError, TokenBundle, TokenManager, UserInfo
from app.core.responses import (
    CamelModel,
    PageEnvelope,
    ProblemDetails,
    ResourceEnvelope,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_DEFAULT_TIMEOUT = 10.0


class ApiClientError(Exception):
    """Non-success response from the API.

    Attributes:
        status_code: HTTP status.
        problem: Parsed problem-details body, when the server sent one.
    """

    def __init__(self, status_code: int, problem: ProblemDetails | None = None) -> None:
        self.status_code = status_code
        self.problem = problem
        detail = problem.detail if problem and problem.detail else f"HTTP {status_code}"
        super().__init__(detail)


class ApiForbiddenError(ApiClientError):
    pass


class ApiNotFoundError(ApiClientError):
    pass


class ApiValidationError(ApiClientError):
    @property
    def field_errors(self) -> dict[str, list[str]]:
        return (self.problem.errors if self.problem else None) or {}


_ERRORS_BY_STATUS: dict[int, type[ApiClientError]] = {
    403: ApiForbiddenError,
    404: ApiNotFoundError,
    422: ApiValidationError,
}


class PaginationInfo(CamelModel):
    """Decoded ``Pagination`` response header."""

    total_count: int
    page_size: int
    current_page: int
    total_pages: int
    previous_page_link: str | None = None
    next_page_link: str | None = None


def _raise_for_problem(response: httpx.Response) -> None:
    if response.is_success:
        return
    problem = None
    try:
        problem = ProblemDetails.model_validate(response.json())
    except (ValueError, TypeError):
        # Non-JSON body or a body that isn't a problem document.
        pass
    error_cls = _ERRORS_BY_STATUS.get(response.status_code, ApiClientError)
    raise error_cls(response.status_code, problem)


def _token_bundle(payload: dict[str, Any]) -> TokenBundle:
    info = payload.get("userInfo")
    user_info = (
        UserInfo(
            username=info.get("username", ""),
            email=info.get("email", ""),
            role=info.get("role"),
        )
        if info
        else None
    )
    return TokenBundle(access_token=payload["accessToken"], user_info=user_info)


class ApiClient:
    """Typed client with single-flight token refresh.

    Args:
        base_url: API root including the version prefix.
        transport: Optional httpx transport (tests use MockTransport).
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
        )
        self.tokens = TokenManager(self._refresh)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -----------------------------------------------------------------
    # Session
    # -----------------------------------------------------------------

    async def login(self, username: str, password: str) -> TokenBundle:
        """Log in; the refresh cookie lands in the client's cookie jar."""
        response = await self._http.post(
            "/login", json={"username": username, "password": password}
        )
        _raise_for_problem(response)
        bundle = _token_bundle(response.json())
        self.tokens.set_tokens(bundle)
        return bundle

    async def logout(self) -> None:
        """Revoke the session server-side and forget local tokens."""
        try:
            token = await self.tokens.acquire_valid_token()
        except SessionExpiredError:
            self.tokens.clear()
            return
        response = await self._http.post(
            "/logout", headers={"Authorization": f"Bearer {token}"}
        )
        self.tokens.clear()
        _raise_for_problem(response)

    async def _refresh(self) -> TokenBundle:
        response = await self._http.post("/accessToken")
        _raise_for_problem(response)
        return _token_bundle(response.json())

    # -----------------------------------------------------------------
    # Requests
    # -----------------------------------------------------------------

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request, refreshing and retrying once on 401.

        Raises:
            SessionExpiredError: If the token could not be refreshed.
            ApiClientError: For any other non-success status.
        """
        token = await self.tokens.acquire_valid_token()
        response = await self._send(method, path, token, **kwargs)
        if response.status_code == 401:
            logger.debug("Access token rejected for %s %s, refreshing", method, path)
            self.tokens.invalidate(token)
            token = await self.tokens.acquire_valid_token()
            response = await self._send(method, path, token, **kwargs)
            if response.status_code == 401:
                self.tokens.clear()
                raise SessionExpiredError("Access token rejected after refresh")
        _raise_for_problem(response)
        return response

    async def _send(
        self, method: str, path: str, token: str, **kwargs: Any
    ) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token}"
        return await self._http.request(method, path, headers=headers, **kwargs)

    async def get_resource(
        self, path: str, model: type[ModelT]
    ) -> ResourceEnvelope[ModelT]:
        response = await self.request("GET", path)
        return _resource(model, response)

    async def get_page(
        self,
        path: str,
        model: type[ModelT],
        *,
        page_number: int | None = None,
        page_size: int | None = None,
        params: dict[str, Any] | None = None,
    ) -> tuple[PageEnvelope[ModelT], PaginationInfo | None]:
        query = dict(params or {})
        if page_number is not None:
            query["pageNumber"] = page_number
        if page_size is not None:
            query["pageSize"] = page_size
        response = await self.request("GET", path, params=query)
        envelope = PageEnvelope[model]  # type: ignore[valid-type]
        page = envelope.model_validate(response.json())
        header = response.headers.get("Pagination")
        pagination = (
            PaginationInfo.model_validate(json.loads(header)) if header else None
        )
        return page, pagination

    async def create(
        self, path: str, body: BaseModel | dict[str, Any], model: type[ModelT]
    ) -> ResourceEnvelope[ModelT]:
        response = await self.request("POST", path, json=_dump(body))
        return _resource(model, response)

    async def update(
        self, path: str, body: BaseModel | dict[str, Any], model: type[ModelT]
    ) -> ResourceEnvelope[ModelT]:
        response = await self.request("PUT", path, json=_dump(body))
        return _resource(model, response)

    async def delete(self, path: str) -> None:
        await self.request("DELETE", path)


def _resource(
    model: type[ModelT], response: httpx.Response
) -> ResourceEnvelope[ModelT]:
    envelope = ResourceEnvelope[model]  # type: ignore[valid-type]
    return envelope.model_validate(response.json())


def _dump(body: BaseModel | dict[str, Any]) -> dict[str, Any]:
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json", by_alias=True, exclude_unset=True)
    return body
