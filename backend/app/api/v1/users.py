"""Family management endpoints.

Admins see every user; parents see the members of their own family group.
A parent (or admin) can pull an existing user into their family and set
that user's role.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from app.api.deps import DbSession, require_roles
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.schemas.auth import AccountDTO, FamilyMemberDTO, InviteUserRequest
from app.schemas.fleet import LocationDTO
from app.services.authorization import FAMILY_MANAGER_ROLES, Principal, Role

logger = structlog.get_logger()

router = APIRouter()

FamilyManager = Annotated[Principal, Depends(require_roles(*FAMILY_MANAGER_ROLES))]


async def _members_in_scope(db: DbSession, principal: Principal) -> list[User]:
    if principal.is_admin:
        return await UserRepository.list_all(db)
    if principal.group_id is None:
        return []
    return await UserRepository.list_family_members(db, principal.group_id)


@router.get("", name="list_family_members")
async def list_family_members(
    db: DbSession,
    principal: FamilyManager,
) -> list[FamilyMemberDTO]:
    """Family members with their roles and last known position."""
    members = await _members_in_scope(db, principal)
    locations = await UserRepository.latest_locations(db, (m.id for m in members))

    result = []
    for member in members:
        location = locations.get(member.id)
        result.append(
            FamilyMemberDTO(
                id=member.id,
                username=member.username,
                email=member.email,
                roles=sorted(member.role_names),
                last_location=(
                    LocationDTO.model_validate(location) if location else None
                ),
                last_seen=location.timestamp if location else None,
            )
        )
    return result


@router.get("/locations", name="list_family_locations")
async def list_family_locations(
    db: DbSession,
    principal: FamilyManager,
) -> list[LocationDTO]:
    """Latest position of every family member that has reported one."""
    members = await _members_in_scope(db, principal)
    locations = await UserRepository.latest_locations(db, (m.id for m in members))
    latest = sorted(locations.values(), key=lambda loc: loc.timestamp, reverse=True)
    return [LocationDTO.model_validate(loc) for loc in latest]


@router.post("/invite", name="invite_family_member")
async def invite_family_member(
    body: InviteUserRequest,
    db: DbSession,
    principal: FamilyManager,
) -> AccountDTO:
    """Move an existing user into the caller's family group.

    When a role is given it replaces the user's current roles. Only an
    admin may grant the admin role.

    Raises:
        ValidationError: The caller has no family group.
        NotFoundError: No user with that email.
        ForbiddenError: A non-admin tried to grant ADMIN.
    """
    if principal.group_id is None:
        raise ValidationError(
            "Inviter must belong to a family group to invite others."
        )
    if body.role == Role.ADMIN and not principal.is_admin:
        raise ForbiddenError("Only an administrator can grant the ADMIN role")

    user = await UserRepository.get_by_email(db, body.email)
    if user is None:
        raise NotFoundError("User")

    user = await UserRepository.set_family_group(db, user, principal.group_id)
    if body.role is not None:
        user = await UserRepository.set_roles(db, user, [body.role])
    await db.commit()

    logger.info(
        "family_member_invited",
        user_id=str(user.id),
        family_group_id=principal.group_id,
        inviter_id=principal.user_id,
    )
    return AccountDTO(
        id=user.id,
        username=user.username,
        email=user.email,
        roles=sorted(user.role_names),
        family_group_id=user.family_group_id,
    )
