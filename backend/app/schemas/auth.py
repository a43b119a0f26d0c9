"""Account, session and family-management schemas."""

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, ConfigDict, EmailStr, Field

from app.core.responses import CamelModel
from app.schemas.fleet import LocationDTO
from app.services.authorization import ALL_ROLES, Role


def _known_role(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in ALL_ROLES:
        msg = f"Role must be one of: {', '.join(sorted(ALL_ROLES))}."
        raise ValueError(msg)
    return normalized


RoleName = Annotated[str, AfterValidator(_known_role)]


class _Request(CamelModel):
    model_config = ConfigDict(extra="forbid")


class RegisterRequest(_Request):
    """Body of POST /accounts. Password strength is checked in the handler."""

    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    role: RoleName = Role.FLEET_USER


class LoginRequest(_Request):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=128)


class UserInfoDTO(CamelModel):
    username: str
    email: str
    role: str | None


class LoginResponse(CamelModel):
    access_token: str
    user_info: UserInfoDTO


class AccountDTO(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    roles: list[str]
    family_group_id: str | None


class InviteUserRequest(_Request):
    """Body of POST /users/invite: pull an existing user into the family."""

    email: EmailStr
    role: RoleName | None = None


class FamilyMemberDTO(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    roles: list[str]
    last_location: LocationDTO | None = None
    last_seen: datetime | None = None
