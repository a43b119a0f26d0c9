"""Access-token manager with single-flight refresh.

Holds the current access token and coalesces concurrent refreshes: the
first caller that needs a new token starts the refresh and every other
caller waits on the same result. If the refresh fails, every waiter gets
SessionExpiredError and the manager forgets the token.

State machine:
    IDLE        --acquire_valid_token() with no token--> REFRESHING
    REFRESHING  --refresh ok / refresh failed----------> IDLE
"""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class SessionExpiredError(Exception):
    """The refresh token was rejected; the user must log in again."""


class TokenState(enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class UserInfo:
    username: str
    email: str
    role: str | None = None


@dataclass(frozen=True)
class TokenBundle:
    """Result of a login or refresh call."""

    access_token: str
    user_info: UserInfo | None = None


RefreshCallable = Callable[[], Awaitable[TokenBundle]]


class TokenManager:
    """Owns the access token and the refresh queue.

    Args:
        refresh: Coroutine function performing one refresh round trip
            (e.g. ``POST /accessToken`` with the refresh cookie).
        access_token: Initial token, e.g. from a login response.
    """

    def __init__(
        self,
        refresh: RefreshCallable,
        access_token: str | None = None,
    ) -> None:
        self._refresh = refresh
        self._token = access_token
        self._user_info: UserInfo | None = None
        self._state = TokenState.IDLE
        self._waiters: list[asyncio.Future[str]] = []
        self._refresh_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> TokenState:
        return self._state

    @property
    def user_info(self) -> UserInfo | None:
        return self._user_info

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def set_tokens(self, bundle: TokenBundle) -> None:
        """Store a token obtained outside the manager (login)."""
        self._token = bundle.access_token
        if bundle.user_info is not None:
            self._user_info = bundle.user_info

    def clear(self) -> None:
        """Forget the token and user info (logout)."""
        self._token = None
        self._user_info = None

    def invalidate(self, token: str) -> None:
        """Mark a token the server rejected as stale.

        Only drops the token if it is still the current one, so a late 401
        from an old request doesn't discard a freshly refreshed token.
        """
        if self._token == token:
            self._token = None

    async def acquire_valid_token(self) -> str:
        """Return a usable access token, refreshing once if needed.

        Raises:
            SessionExpiredError: If the refresh failed.
        """
        if self._token is not None and self._state is TokenState.IDLE:
            return self._token

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[str] = loop.create_future()
        self._waiters.append(waiter)

        if self._state is TokenState.IDLE:
            self._state = TokenState.REFRESHING
            # The refresh task outlives any single waiter.
            self._refresh_task = loop.create_task(self._run_refresh())

        return await waiter

    async def _run_refresh(self) -> None:
        token: str | None = None
        cause: BaseException | None = None
        try:
            bundle = await self._refresh()
            self.set_tokens(bundle)
            token = bundle.access_token
        except Exception as exc:
            logger.info("Token refresh failed: %s", type(exc).__name__)
            self.clear()
            cause = exc
        finally:
            # Also reached on cancellation; waiters must never be left pending.
            self._finish(token=token, cause=cause)

    def _finish(
        self,
        *,
        token: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        waiters, self._waiters = self._waiters, []
        self._state = TokenState.IDLE
        for waiter in waiters:
            if waiter.done():
                continue
            if token is None:
                error = SessionExpiredError("Session expired")
                error.__cause__ = cause
                waiter.set_exception(error)
            else:
                waiter.set_result(token)
