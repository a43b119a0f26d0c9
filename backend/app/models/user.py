"""User, role and session models - authentication foundation.

A user holds one or more roles and belongs to exactly one family group.
Sessions back refresh tokens: only the SHA-256 of the latest refresh token
is stored, and rotating the token overwrites it.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")
_CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class User(Base, TimestampMixin):
    """User account.

    Attributes:
        id: UUID primary key.
        username: Unique login name.
        email: Unique email address.
        password_hash: bcrypt hash.
        family_group_id: Family group; a fresh UUID string at registration,
            replaced when a parent invites the user into their family.
        roles: Granted roles.
        sessions: Refresh-token sessions.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
        default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    family_group_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
    )

    roles: Mapped[list["UserRole"]] = relationship(
        "UserRole",
        back_populates="user",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        lazy="selectin",
    )
    sessions: Mapped[list["Session"]] = relationship(
        "Session",
        back_populates="user",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
    )

    @property
    def role_names(self) -> frozenset[str]:
        return frozenset(role.role for role in self.roles)


class UserRole(Base):
    """One granted role. Composite primary key (user_id, role)."""

    __tablename__ = "user_roles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
    )

    user: Mapped["User"] = relationship("User", back_populates="roles")


class Session(Base):
    """Refresh-token session.

    Attributes:
        id: UUID primary key, carried in the refresh token's ``sid`` claim.
        user_id: Owning user.
        last_refresh_token: SHA-256 hex of the newest refresh token.
        initiated_at: Login time.
        expires_at: Session expiry; extended on every refresh.
        is_revoked: Set on logout.
    """

    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    last_refresh_token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    initiated_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    is_revoked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="sessions")
