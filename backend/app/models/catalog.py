"""Music catalog models: Category -> Playlist -> Song.

Categories are owned by the user who created them; playlists and songs
inherit that ownership. Songs carry a dense 1-based ``order_id`` within
their playlist, maintained by app.services.reordering.
"""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SerialIdMixin, TimestampMixin

_CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class Category(SerialIdMixin, TimestampMixin, Base):
    """Top-level grouping of playlists."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(300), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    playlists: Mapped[list["Playlist"]] = relationship(
        "Playlist",
        back_populates="category",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        passive_deletes=True,
    )


class Playlist(SerialIdMixin, TimestampMixin, Base):
    """Playlist within a category."""

    __tablename__ = "playlists"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category: Mapped["Category"] = relationship("Category", back_populates="playlists")
    songs: Mapped[list["Song"]] = relationship(
        "Song",
        back_populates="playlist",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        passive_deletes=True,
        order_by="Song.order_id",
    )


class Song(SerialIdMixin, TimestampMixin, Base):
    """Song at a 1-based position (order_id) within its playlist.

    Attributes:
        duration: Length in seconds.
        order_id: Dense position among the playlist's songs.
    """

    __tablename__ = "songs"
    __table_args__ = (
        CheckConstraint("order_id >= 1", name="ck_songs_order_id_positive"),
        CheckConstraint("duration > 0", name="ck_songs_duration_positive"),
        Index("idx_songs_playlist_order", "playlist_id", "order_id"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    artist: Mapped[str] = mapped_column(String(100), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    order_id: Mapped[int] = mapped_column(Integer, nullable=False)
    playlist_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("playlists.id", ondelete="CASCADE"),
        nullable=False,
    )

    playlist: Mapped["Playlist"] = relationship("Playlist", back_populates="songs")
