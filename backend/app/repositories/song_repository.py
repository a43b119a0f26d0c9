"""Repository for Song operations, including ordered moves.

Every mutation that touches order keys first locks the parent playlist
row with ``SELECT ... FOR UPDATE`` and only then reads the songs. Appends,
moves and deletes in one playlist therefore run one after the other, each
seeing the keys the previous one committed, and the keys stay a dense 1..N.
"""

import logging

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import Playlist, Song
from app.services.reordering import (
    OrderedItem,
    apply_order_keys,
    densify,
    next_order_key,
    reorder,
)

logger = logging.getLogger(__name__)

# Fields that may be updated via SongRepository.update().
# order_id is excluded: positions change only through move().
_UPDATABLE_FIELDS: frozenset[str] = frozenset({"title", "artist", "duration"})


def _ordered_items(songs: list[Song]) -> list[OrderedItem]:
    return [
        OrderedItem(id=song.id, parent_id=song.playlist_id, order_key=song.order_id)
        for song in songs
    ]


class SongRepository:
    """Stateless repository for Song table operations."""

    @staticmethod
    def list_stmt(playlist_id: int) -> Select[tuple[Song]]:
        """Songs of a playlist in play order."""
        return (
            select(Song)
            .where(Song.playlist_id == playlist_id)
            .order_by(Song.order_id, Song.id)
        )

    @staticmethod
    async def get(db: AsyncSession, playlist_id: int, song_id: int) -> Song | None:
        """Fetch a song only if it belongs to the given playlist."""
        stmt = select(Song).where(Song.id == song_id, Song.playlist_id == playlist_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def lock_siblings(db: AsyncSession, playlist_id: int) -> list[Song]:
        """Lock the playlist, then load every song of it in order.

        Row locks on the songs alone do not stop a concurrent append, and
        rows a waiting transaction re-reads may come back out of key order.
        The playlist lock is taken first; the songs are read afterwards with
        ``populate_existing`` so already loaded rows pick up committed keys.
        """
        await db.execute(
            select(Playlist.id).where(Playlist.id == playlist_id).with_for_update()
        )
        stmt = (
            SongRepository.list_stmt(playlist_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        playlist_id: int,
        title: str,
        artist: str,
        duration: int,
    ) -> Song:
        """Append a song at the end of its playlist."""
        siblings = await SongRepository.lock_siblings(db, playlist_id)
        song = Song(
            playlist_id=playlist_id,
            title=title,
            artist=artist,
            duration=duration,
            order_id=next_order_key(_ordered_items(siblings)),
        )
        db.add(song)
        await db.flush()
        await db.refresh(song)
        return song

    @staticmethod
    async def update(db: AsyncSession, song: Song, **kwargs: object) -> Song:
        """Apply field updates to a loaded song.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        for field, value in kwargs.items():
            setattr(song, field, value)
        await db.flush()
        return song

    @staticmethod
    async def move(db: AsyncSession, song: Song, position: int) -> Song:
        """Move a song to a 1-based position within its playlist.

        Out-of-range positions are clamped. Every sibling is renumbered so
        the playlist's keys stay exactly 1..N.
        """
        siblings = await SongRepository.lock_siblings(db, song.playlist_id)
        ordered = reorder(_ordered_items(siblings), song.id, position)
        changed = apply_order_keys(siblings, ordered)
        logger.debug(
            "Moved song %s in playlist %s (%d keys changed)",
            song.id,
            song.playlist_id,
            changed,
        )
        await db.flush()
        await db.refresh(song)
        return song

    @staticmethod
    async def delete(db: AsyncSession, song: Song) -> None:
        """Delete a song and close the gap it leaves in the order keys."""
        siblings = await SongRepository.lock_siblings(db, song.playlist_id)
        remaining = [s for s in siblings if s.id != song.id]
        await db.delete(song)
        apply_order_keys(remaining, densify(_ordered_items(remaining)))
        await db.flush()
