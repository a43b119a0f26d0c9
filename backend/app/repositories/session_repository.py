"""Repository for refresh-token sessions.

A session stores only the SHA-256 of the newest refresh token. Rotation
overwrites it, so an older token for the same session no longer matches.
"""

import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import Session


class SessionRepository:
    """Stateless repository for Session table operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        refresh_token_hash: str,
        lifetime: timedelta,
        session_id: uuid.UUID | None = None,
    ) -> Session:
        """Open a session for a freshly logged-in user.

        Args:
            db: Async database session.
            user_id: Owning user.
            refresh_token_hash: SHA-256 hex of the issued refresh token.
            lifetime: Time until the session expires.
            session_id: Id already embedded in the refresh token, if any.

        Returns:
            The new Session.
        """
        now = datetime.now(UTC)
        session = Session(
            id=session_id or uuid.uuid4(),
            user_id=user_id,
            last_refresh_token=refresh_token_hash,
            initiated_at=now,
            expires_at=now + lifetime,
            is_revoked=False,
        )
        db.add(session)
        await db.flush()
        return session

    @staticmethod
    async def get_by_id(db: AsyncSession, session_id: uuid.UUID) -> Session | None:
        return await db.get(Session, session_id)

    @staticmethod
    def is_valid(session: Session, refresh_token_hash: str) -> bool:
        """Whether a presented refresh token may extend this session.

        The session must be unrevoked, unexpired, and its stored hash must
        match the token's hash.
        """
        if session.is_revoked:
            return False
        if session.expires_at <= datetime.now(UTC):
            return False
        return session.last_refresh_token == refresh_token_hash

    @staticmethod
    async def rotate(
        db: AsyncSession,
        session: Session,
        *,
        refresh_token_hash: str,
        lifetime: timedelta,
    ) -> Session:
        """Store the new refresh token's hash and extend expiry."""
        session.last_refresh_token = refresh_token_hash
        session.expires_at = datetime.now(UTC) + lifetime
        await db.flush()
        return session

    @staticmethod
    async def revoke(db: AsyncSession, session: Session) -> None:
        session.is_revoked = True
        await db.flush()
