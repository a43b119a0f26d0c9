"""Tests for the role-scoped access policy."""

import uuid

import pytest

from app.core.errors import ForbiddenError
from app.services.authorization import (
    Principal,
    ReadScope,
    Role,
    authorize_read,
    authorize_write,
    read_scope,
    require_read,
    require_write,
)

_OWNER = "00000000-0000-0000-0000-00000000000a"
_OTHER = "00000000-0000-0000-0000-00000000000b"
_GROUP = "family-1"
_OTHER_GROUP = "family-2"


def _principal(*roles: str, user_id: str = _OTHER, group_id: str | None = _GROUP):
    return Principal(user_id=user_id, roles=frozenset(roles), group_id=group_id)


class TestAuthorizeRead:
    def test_admin_reads_everything(self):
        admin = _principal(Role.ADMIN, group_id=None)
        assert authorize_read(admin, _OWNER, _OTHER_GROUP) is True

    def test_owner_reads_own_resource(self):
        owner = _principal(Role.FLEET_USER, user_id=_OWNER)
        assert authorize_read(owner, _OWNER, None) is True

    def test_parent_reads_same_family(self):
        parent = _principal(Role.PARENT)
        assert authorize_read(parent, _OWNER, _GROUP) is True

    def test_young_driver_reads_same_family(self):
        driver = _principal(Role.YOUNG_DRIVER)
        assert authorize_read(driver, _OWNER, _GROUP) is True

    def test_parent_cannot_read_other_family(self):
        parent = _principal(Role.PARENT)
        assert authorize_read(parent, _OWNER, _OTHER_GROUP) is False

    def test_family_role_without_group_falls_back_to_owner(self):
        parent = _principal(Role.PARENT, group_id=None)
        assert authorize_read(parent, _OWNER, None) is False

    def test_fleet_user_does_not_read_family_resources(self):
        """Group membership only matters for family-class roles."""
        user = _principal(Role.FLEET_USER)
        assert authorize_read(user, _OWNER, _GROUP) is False

    def test_uuid_and_string_ids_compare_equal(self):
        owner = _principal(Role.FLEET_USER, user_id=_OWNER)
        assert authorize_read(owner, uuid.UUID(_OWNER), None) is True


class TestAuthorizeWrite:
    def test_admin_writes_everything(self):
        assert authorize_write(_principal(Role.ADMIN), _OWNER) is True

    def test_owner_writes(self):
        assert authorize_write(_principal(Role.FLEET_USER, user_id=_OWNER), _OWNER)

    def test_parent_cannot_write_family_resource(self):
        """Writes never consult the family group."""
        assert authorize_write(_principal(Role.PARENT), _OWNER) is False


class TestReadScope:
    @pytest.mark.parametrize(
        ("roles", "group_id", "expected"),
        [
            ((Role.ADMIN,), None, ReadScope.ALL),
            ((Role.PARENT,), _GROUP, ReadScope.OWNER_OR_GROUP),
            ((Role.YOUNG_DRIVER,), _GROUP, ReadScope.OWNER_OR_GROUP),
            ((Role.PARENT,), None, ReadScope.OWNER_ONLY),
            ((Role.FLEET_USER,), _GROUP, ReadScope.OWNER_ONLY),
            ((), None, ReadScope.OWNER_ONLY),
        ],
    )
    def test_scope_by_role(self, roles, group_id, expected):
        assert read_scope(_principal(*roles, group_id=group_id)) is expected

    def test_scope_agrees_with_authorize_read(self):
        """A resource a list would include is one a detail read allows."""
        parent = _principal(Role.PARENT)
        assert read_scope(parent) is ReadScope.OWNER_OR_GROUP
        assert authorize_read(parent, _OWNER, _GROUP)
        assert not authorize_read(parent, _OWNER, _OTHER_GROUP)


class TestRequireHelpers:
    def test_require_read_raises_forbidden(self):
        with pytest.raises(ForbiddenError):
            require_read(_principal(Role.FLEET_USER), _OWNER, None)

    def test_require_write_raises_forbidden(self):
        with pytest.raises(ForbiddenError) as exc_info:
            require_write(_principal(Role.YOUNG_DRIVER), _OWNER)
        assert exc_info.value.status_code == 403

    def test_require_read_passes_silently(self):
        require_read(_principal(Role.ADMIN), _OWNER, None)


class TestPrincipal:
    def test_has_any_role(self):
        principal = _principal(Role.MUSIC_USER)
        assert principal.has_any_role(frozenset({Role.ADMIN, Role.MUSIC_USER}))
        assert not principal.has_any_role(frozenset({Role.ADMIN}))

    def test_user_uuid(self):
        assert str(_principal(user_id=_OWNER).user_uuid) == _OWNER
