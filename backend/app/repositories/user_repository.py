"""Repository for User, role and family-group operations.

Usernames are matched exactly; emails are normalized to lowercase.
"""

import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.fleet import UserLocation
from app.models.user import User, UserRole


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static, no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> User | None:
        stmt = select(User).where(User.username == username)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive)."""
        stmt = select(User).where(User.email == email.lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        username: str,
        email: str,
        password_hash: str,
        roles: Iterable[str],
        family_group_id: str | None = None,
    ) -> User:
        """Create a user with its roles.

        A user registered without a family group gets a fresh one, so every
        account starts as the only member of its own family.

        Args:
            db: Async database session.
            username: Unique login name.
            email: Email address, stored lowercase.
            password_hash: bcrypt hash.
            roles: Role names to grant.
            family_group_id: Existing group to join, or None for a new one.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If username or email already exists.
        """
        user = User(
            username=username,
            email=email.lower(),
            password_hash=password_hash,
            family_group_id=family_group_id or str(uuid.uuid4()),
            roles=[UserRole(role=role) for role in sorted(set(roles))],
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def set_roles(db: AsyncSession, user: User, roles: Iterable[str]) -> User:
        """Replace a user's roles."""
        wanted = set(roles)
        user.roles = [r for r in user.roles if r.role in wanted] + [
            UserRole(role=role) for role in sorted(wanted - user.role_names)
        ]
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def set_family_group(
        db: AsyncSession, user: User, family_group_id: str
    ) -> User:
        user.family_group_id = family_group_id
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def list_family_members(
        db: AsyncSession, family_group_id: str
    ) -> list[User]:
        """All users in a family group, ordered by username."""
        stmt = (
            select(User)
            .where(User.family_group_id == family_group_id)
            .order_by(User.username)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def latest_locations(
        db: AsyncSession, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, UserLocation]:
        """Newest location fix per user, for the given users.

        Users that never reported a location are absent from the result.
        """
        ids = list(user_ids)
        if not ids:
            return {}
        stmt = (
            select(UserLocation)
            .where(UserLocation.user_id.in_(ids))
            .order_by(
                UserLocation.user_id,
                UserLocation.timestamp.desc(),
                UserLocation.id.desc(),
            )
            .distinct(UserLocation.user_id)
        )
        result = await db.execute(stmt)
        return {loc.user_id: loc for loc in result.scalars().all()}

    @staticmethod
    async def list_all(db: AsyncSession) -> list[User]:
        """Every user, ordered by username (admin family view)."""
        result = await db.execute(select(User).order_by(User.username))
        return list(result.scalars().all())
