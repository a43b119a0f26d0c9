"""Repository for Category and Playlist operations.

Playlists are always addressed through their category: a playlist id that
belongs to a different category is treated as missing.
"""

import uuid

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import Category, Playlist

# Fields that may be updated via update_category() / update_playlist().
# A category's name is fixed at creation.
_CATEGORY_UPDATABLE_FIELDS: frozenset[str] = frozenset({"description"})
_PLAYLIST_UPDATABLE_FIELDS: frozenset[str] = frozenset({"name", "description"})


def _check_fields(kwargs: dict[str, object], allowed: frozenset[str]) -> None:
    unknown = set(kwargs) - allowed
    if unknown:
        msg = f"Unknown fields: {', '.join(sorted(unknown))}"
        raise ValueError(msg)


class CategoryRepository:
    """Stateless repository for the categories and playlists tables.

    All methods are static. Pass an AsyncSession for every call so the
    caller controls transaction boundaries.
    """

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @staticmethod
    def list_categories_stmt() -> Select[tuple[Category]]:
        """All categories, oldest first."""
        return select(Category).order_by(Category.created_at, Category.id)

    @staticmethod
    async def get_category(db: AsyncSession, category_id: int) -> Category | None:
        return await db.get(Category, category_id)

    @staticmethod
    async def create_category(
        db: AsyncSession,
        *,
        name: str,
        description: str,
        user_id: uuid.UUID,
    ) -> Category:
        category = Category(name=name, description=description, user_id=user_id)
        db.add(category)
        await db.flush()
        await db.refresh(category)
        return category

    @staticmethod
    async def update_category(
        db: AsyncSession, category: Category, **kwargs: object
    ) -> Category:
        """Apply field updates to a loaded category.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        _check_fields(kwargs, _CATEGORY_UPDATABLE_FIELDS)
        for field, value in kwargs.items():
            setattr(category, field, value)
        await db.flush()
        await db.refresh(category)
        return category

    @staticmethod
    async def delete_category(db: AsyncSession, category: Category) -> None:
        """Delete a category; its playlists and songs cascade."""
        await db.delete(category)
        await db.flush()

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    @staticmethod
    def list_playlists_stmt(category_id: int) -> Select[tuple[Playlist]]:
        return (
            select(Playlist)
            .where(Playlist.category_id == category_id)
            .order_by(Playlist.created_at, Playlist.id)
        )

    @staticmethod
    async def get_playlist(
        db: AsyncSession, category_id: int, playlist_id: int
    ) -> Playlist | None:
        """Fetch a playlist only if it belongs to the given category."""
        stmt = select(Playlist).where(
            Playlist.id == playlist_id,
            Playlist.category_id == category_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_playlist(
        db: AsyncSession,
        *,
        category_id: int,
        name: str,
        description: str,
    ) -> Playlist:
        playlist = Playlist(category_id=category_id, name=name, description=description)
        db.add(playlist)
        await db.flush()
        await db.refresh(playlist)
        return playlist

    @staticmethod
    async def update_playlist(
        db: AsyncSession, playlist: Playlist, **kwargs: object
    ) -> Playlist:
        _check_fields(kwargs, _PLAYLIST_UPDATABLE_FIELDS)
        for field, value in kwargs.items():
            setattr(playlist, field, value)
        await db.flush()
        await db.refresh(playlist)
        return playlist

    @staticmethod
    async def delete_playlist(db: AsyncSession, playlist: Playlist) -> None:
        await db.delete(playlist)
        await db.flush()
