"""Role-scoped access policy for fleet and catalog resources.

One policy for every endpoint category, instead of role-string checks
scattered through handlers:

- Admin may read and write everything.
- A family-class role (Parent, YoungDriver) may read any resource in its
  own family group, but only when the principal's group is known. A
  principal without a group falls back to its own resources.
- Everyone else reads and writes only what they own.
- Writes never consult the group.

List endpoints use ``read_scope`` so that a list query and a detail lookup
always agree on what a caller may see. Handlers check existence first
(NotFoundError) and only then call ``require_read`` / ``require_write``
(ForbiddenError).
"""

import enum
import uuid
from dataclasses import dataclass, field

from app.core.errors import ForbiddenError


class Role:
    """Known role names, as stored in user_roles and carried in tokens."""

    ADMIN = "ADMIN"
    FLEET_USER = "FLEETUSER"
    PARENT = "PARENT"
    YOUNG_DRIVER = "YOUNGDRIVER"
    MUSIC_USER = "MUSICUSER"


ALL_ROLES: frozenset[str] = frozenset(
    {Role.ADMIN, Role.FLEET_USER, Role.PARENT, Role.YOUNG_DRIVER, Role.MUSIC_USER}
)

FAMILY_ROLES: frozenset[str] = frozenset({Role.PARENT, Role.YOUNG_DRIVER})

FLEET_ROLES: frozenset[str] = frozenset(
    {Role.ADMIN, Role.FLEET_USER, Role.PARENT, Role.YOUNG_DRIVER}
)

CATALOG_ROLES: frozenset[str] = frozenset({Role.ADMIN, Role.MUSIC_USER})

FAMILY_MANAGER_ROLES: frozenset[str] = frozenset({Role.ADMIN, Role.PARENT})


class ReadScope(enum.Enum):
    """Which rows a list query may return for a principal."""

    ALL = "all"
    OWNER_OR_GROUP = "owner_or_group"
    OWNER_ONLY = "owner_only"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller for one request.

    Attributes:
        user_id: Caller's user id (string form of the UUID).
        roles: Role names granted to the caller.
        group_id: Family group id, or None.
        username: Display name from the access token.
    """

    user_id: str
    roles: frozenset[str] = field(default_factory=frozenset)
    group_id: str | None = None
    username: str = ""

    @property
    def user_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    @property
    def has_family_role(self) -> bool:
        return bool(self.roles & FAMILY_ROLES)

    def has_any_role(self, roles: frozenset[str]) -> bool:
        return bool(self.roles & roles)


def _same_id(a: object, b: object) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def authorize_read(
    principal: Principal,
    resource_owner_id: object,
    resource_group_id: object | None,
) -> bool:
    """Whether the principal may read a resource.

    Args:
        principal: The caller.
        resource_owner_id: Owner's user id.
        resource_group_id: Owner's family group id, or None.

    Returns:
        True if the read is allowed.
    """
    if principal.is_admin:
        return True
    if _same_id(resource_owner_id, principal.user_id):
        return True
    if principal.has_family_role and principal.group_id is not None:
        return _same_id(resource_group_id, principal.group_id)
    return False


def authorize_write(principal: Principal, resource_owner_id: object) -> bool:
    """Whether the principal may modify or delete a resource."""
    if principal.is_admin:
        return True
    return _same_id(resource_owner_id, principal.user_id)


def read_scope(principal: Principal) -> ReadScope:
    """Row filter a list query must apply for this principal."""
    if principal.is_admin:
        return ReadScope.ALL
    if principal.has_family_role and principal.group_id is not None:
        return ReadScope.OWNER_OR_GROUP
    return ReadScope.OWNER_ONLY


def require_read(
    principal: Principal,
    resource_owner_id: object,
    resource_group_id: object | None,
) -> None:
    """Raise ForbiddenError unless the principal may read the resource."""
    if not authorize_read(principal, resource_owner_id, resource_group_id):
        raise ForbiddenError("You do not have access to this resource")


def require_write(principal: Principal, resource_owner_id: object) -> None:
    """Raise ForbiddenError unless the principal may modify the resource."""
    if not authorize_write(principal, resource_owner_id):
        raise ForbiddenError("You are not allowed to modify this resource")
