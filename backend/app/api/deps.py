"""Shared dependencies for API endpoints.

Authentication reads a bearer access token from the Authorization header.
Roles come from the token; the family group comes from the user row, so a
user moved into another family is re-scoped on the next request.
"""

import uuid
from collections.abc import Awaitable, Callable
from typing import Annotated

import jwt
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import decode_access_token
from app.core.database import get_db
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.links import LinkAssembler
from app.core.pagination import PaginationParams, pagination_params
from app.models import User
from app.services.authorization import FLEET_ROLES, Principal

_BEARER_PREFIX = "bearer "

DbSession = Annotated[AsyncSession, Depends(get_db)]


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


async def get_optional_principal(
    request: Request,
    db: DbSession,
) -> Principal | None:
    """Resolve the caller, or None for anonymous requests.

    A present but invalid token is still an error: clients must not be
    silently downgraded to anonymous.

    Raises:
        UnauthorizedError: Token present but invalid, or user deleted.
    """
    token = _bearer_token(request)
    if token is None:
        return None

    # Security: the 401 never says why the token was rejected.
    try:
        claims = decode_access_token(token)
        user_id = uuid.UUID(claims.user_id)
    except (jwt.InvalidTokenError, ValueError) as exc:
        raise UnauthorizedError() from exc

    result = await db.execute(
        select(User.username, User.family_group_id).where(User.id == user_id)
    )
    row = result.one_or_none()
    if row is None:
        raise UnauthorizedError()

    return Principal(
        user_id=str(user_id),
        roles=claims.roles,
        group_id=row.family_group_id,
        username=row.username,
    )


async def get_current_principal(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
) -> Principal:
    """Resolve the caller; anonymous requests get 401.

    Raises:
        UnauthorizedError: No valid bearer token.
    """
    if principal is None:
        raise UnauthorizedError()
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]


def require_roles(*roles: str) -> Callable[[Principal], Awaitable[Principal]]:
    """Build a dependency that admits only callers holding one of ``roles``.

    Usage:
        Manager = Annotated[Principal, Depends(require_roles(*FAMILY_MANAGER_ROLES))]

    Raises:
        ForbiddenError: Authenticated caller without any of the roles.
    """
    allowed = frozenset(roles)

    async def _check(principal: CurrentPrincipal) -> Principal:
        if not principal.has_any_role(allowed):
            raise ForbiddenError("Your role does not permit this operation")
        return principal

    return _check


FleetPrincipal = Annotated[Principal, Depends(require_roles(*FLEET_ROLES))]


def get_link_assembler(request: Request) -> LinkAssembler:
    """Link assembler bound to the current request's router."""
    return LinkAssembler(request.url_for)


Links = Annotated[LinkAssembler, Depends(get_link_assembler)]
Pagination = Annotated[PaginationParams, Depends(pagination_params)]
