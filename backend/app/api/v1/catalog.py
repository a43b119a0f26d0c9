"""Music catalog API routers: categories, playlists, songs.

Reads are open to anonymous callers. Writes need a principal allowed to
write the owning category (its creator, or an admin). Every response
carries hypermedia links; edit/remove links appear only for callers who
may use them.

Existence is checked before authorization, and authorization before any
mutation: a missing parent is 404 even for callers who could not write it.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request, Response, status

from app.api.deps import (
    CurrentPrincipal,
    DbSession,
    Links,
    OptionalPrincipal,
    Pagination,
    require_roles,
)
from app.api.envelopes import envelope, page_envelope
from app.core.errors import NotFoundError
from app.core.etag import etag_response
from app.core.links import Link, LinkAssembler
from app.core.responses import PageEnvelope, ResourceEnvelope
from app.models.catalog import Category, Playlist, Song
from app.repositories.category_repository import CategoryRepository
from app.repositories.paging import fetch_page
from app.repositories.song_repository import SongRepository
from app.schemas.catalog import (
    CategoryDTO,
    CreateCategoryRequest,
    CreatePlaylistRequest,
    CreateSongRequest,
    PlaylistDTO,
    SongDTO,
    UpdateCategoryRequest,
    UpdatePlaylistRequest,
    UpdateSongRequest,
)
from app.services.authorization import (
    CATALOG_ROLES,
    Principal,
    authorize_write,
    require_write,
)

logger = structlog.get_logger()

CatalogWriter = Annotated[Principal, Depends(require_roles(*CATALOG_ROLES))]


# =============================================================================
# Helpers
# =============================================================================


def _can_write(principal: Principal | None, category: Category) -> bool:
    return principal is not None and authorize_write(principal, category.user_id)


async def _category_or_404(db: DbSession, category_id: int) -> Category:
    category = await CategoryRepository.get_category(db, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)
    return category


async def _playlist_or_404(
    db: DbSession, category_id: int, playlist_id: int
) -> tuple[Category, Playlist]:
    category = await _category_or_404(db, category_id)
    playlist = await CategoryRepository.get_playlist(db, category_id, playlist_id)
    if playlist is None:
        raise NotFoundError("Playlist", playlist_id)
    return category, playlist


async def _song_or_404(
    db: DbSession, category_id: int, playlist_id: int, song_id: int
) -> tuple[Category, Song]:
    category, _ = await _playlist_or_404(db, category_id, playlist_id)
    song = await SongRepository.get(db, playlist_id, song_id)
    if song is None:
        raise NotFoundError("Song", song_id)
    return category, song


def _category_links(
    links: LinkAssembler, category: Category, principal: Principal | None
) -> list[Link]:
    return links.links_for(
        "category", category.id, can_write=_can_write(principal, category)
    )


def _playlist_links(
    links: LinkAssembler,
    category: Category,
    playlist: Playlist,
    principal: Principal | None,
) -> list[Link]:
    return links.links_for(
        "playlist",
        playlist.id,
        can_write=_can_write(principal, category),
        parent_params={"category_id": category.id},
    )


def _song_links(
    links: LinkAssembler,
    category: Category,
    song: Song,
    principal: Principal | None,
) -> list[Link]:
    return links.links_for(
        "song",
        song.id,
        can_write=_can_write(principal, category),
        parent_params={"category_id": category.id, "playlist_id": song.playlist_id},
    )


def _created(response: Response, links: list[Link]) -> None:
    response.headers["Location"] = links[0].href


# =============================================================================
# Categories
# =============================================================================

categories_router = APIRouter()


@categories_router.get("", name="list_categories")
async def list_categories(
    response: Response,
    db: DbSession,
    links: Links,
    principal: OptionalPrincipal,
    pagination: Pagination,
) -> PageEnvelope[CategoryDTO]:
    """List categories, oldest first."""
    page = await fetch_page(db, CategoryRepository.list_categories_stmt(), pagination)
    extra = (
        [("createCategory", "create_category", "POST")]
        if principal is not None and principal.has_any_role(CATALOG_ROLES)
        else []
    )
    return page_envelope(
        response,
        links,
        page,
        collection_route="list_categories",
        to_dto=CategoryDTO.model_validate,
        item_links=lambda c: _category_links(links, c, principal),
        extra_links=extra,
    )


@categories_router.get(
    "/{category_id}",
    name="get_category",
    response_model=ResourceEnvelope[CategoryDTO],
)
async def get_category(
    category_id: int,
    request: Request,
    db: DbSession,
    links: Links,
    principal: OptionalPrincipal,
) -> Response:
    """Fetch one category. Supports If-None-Match."""
    category = await _category_or_404(db, category_id)
    body = envelope(
        CategoryDTO.model_validate(category),
        _category_links(links, category, principal),
    )
    return etag_response(request, body)


@categories_router.post(
    "", name="create_category", status_code=status.HTTP_201_CREATED
)
async def create_category(
    body: CreateCategoryRequest,
    response: Response,
    db: DbSession,
    links: Links,
    principal: CatalogWriter,
) -> ResourceEnvelope[CategoryDTO]:
    """Create a category owned by the caller."""
    category = await CategoryRepository.create_category(
        db,
        name=body.name,
        description=body.description,
        user_id=principal.user_uuid,
    )
    await db.commit()
    logger.info("category_created", category_id=category.id, user_id=principal.user_id)

    category_links = _category_links(links, category, principal)
    _created(response, category_links)
    return envelope(CategoryDTO.model_validate(category), category_links)


@categories_router.put("/{category_id}", name="update_category")
async def update_category(
    category_id: int,
    body: UpdateCategoryRequest,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[CategoryDTO]:
    """Change a category's description."""
    category = await _category_or_404(db, category_id)
    require_write(principal, category.user_id)

    category = await CategoryRepository.update_category(
        db, category, description=body.description
    )
    await db.commit()
    return envelope(
        CategoryDTO.model_validate(category),
        _category_links(links, category, principal),
    )


@categories_router.delete(
    "/{category_id}",
    name="delete_category",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_category(
    category_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> Response:
    """Delete a category with all its playlists and songs."""
    category = await _category_or_404(db, category_id)
    require_write(principal, category.user_id)

    await CategoryRepository.delete_category(db, category)
    await db.commit()
    logger.info("category_deleted", category_id=category_id, user_id=principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Playlists
# =============================================================================

playlists_router = APIRouter()


@playlists_router.get("", name="list_playlists")
async def list_playlists(
    category_id: int,
    response: Response,
    db: DbSession,
    links: Links,
    principal: OptionalPrincipal,
    pagination: Pagination,
) -> PageEnvelope[PlaylistDTO]:
    """List a category's playlists, oldest first."""
    category = await _category_or_404(db, category_id)
    page = await fetch_page(
        db, CategoryRepository.list_playlists_stmt(category_id), pagination
    )
    parent = {"category_id": category_id}
    extra = (
        [("createPlaylist", "create_playlist", "POST")]
        if _can_write(principal, category)
        else []
    )
    return page_envelope(
        response,
        links,
        page,
        collection_route="list_playlists",
        to_dto=PlaylistDTO.model_validate,
        item_links=lambda p: _playlist_links(links, category, p, principal),
        parent_params=parent,
        extra_links=extra,
    )


@playlists_router.get(
    "/{playlist_id}",
    name="get_playlist",
    response_model=ResourceEnvelope[PlaylistDTO],
)
async def get_playlist(
    category_id: int,
    playlist_id: int,
    request: Request,
    db: DbSession,
    links: Links,
    principal: OptionalPrincipal,
) -> Response:
    category, playlist = await _playlist_or_404(db, category_id, playlist_id)
    body = envelope(
        PlaylistDTO.model_validate(playlist),
        _playlist_links(links, category, playlist, principal),
    )
    return etag_response(request, body)


@playlists_router.post(
    "", name="create_playlist", status_code=status.HTTP_201_CREATED
)
async def create_playlist(
    category_id: int,
    body: CreatePlaylistRequest,
    response: Response,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[PlaylistDTO]:
    """Create a playlist in a category the caller may write."""
    category = await _category_or_404(db, category_id)
    require_write(principal, category.user_id)

    playlist = await CategoryRepository.create_playlist(
        db, category_id=category_id, name=body.name, description=body.description
    )
    await db.commit()

    playlist_links = _playlist_links(links, category, playlist, principal)
    _created(response, playlist_links)
    return envelope(PlaylistDTO.model_validate(playlist), playlist_links)


@playlists_router.put("/{playlist_id}", name="update_playlist")
async def update_playlist(
    category_id: int,
    playlist_id: int,
    body: UpdatePlaylistRequest,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[PlaylistDTO]:
    category, playlist = await _playlist_or_404(db, category_id, playlist_id)
    require_write(principal, category.user_id)

    playlist = await CategoryRepository.update_playlist(
        db, playlist, name=body.name, description=body.description
    )
    await db.commit()
    return envelope(
        PlaylistDTO.model_validate(playlist),
        _playlist_links(links, category, playlist, principal),
    )


@playlists_router.delete(
    "/{playlist_id}",
    name="delete_playlist",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_playlist(
    category_id: int,
    playlist_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> Response:
    category, playlist = await _playlist_or_404(db, category_id, playlist_id)
    require_write(principal, category.user_id)

    await CategoryRepository.delete_playlist(db, playlist)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Songs
# =============================================================================

songs_router = APIRouter()


@songs_router.get("", name="list_songs")
async def list_songs(
    category_id: int,
    playlist_id: int,
    response: Response,
    db: DbSession,
    links: Links,
    principal: OptionalPrincipal,
    pagination: Pagination,
) -> PageEnvelope[SongDTO]:
    """List a playlist's songs in play order."""
    category, _ = await _playlist_or_404(db, category_id, playlist_id)
    page = await fetch_page(db, SongRepository.list_stmt(playlist_id), pagination)
    parent = {"category_id": category_id, "playlist_id": playlist_id}
    extra = (
        [("createSong", "create_song", "POST")]
        if _can_write(principal, category)
        else []
    )
    return page_envelope(
        response,
        links,
        page,
        collection_route="list_songs",
        to_dto=SongDTO.model_validate,
        item_links=lambda s: _song_links(links, category, s, principal),
        parent_params=parent,
        extra_links=extra,
    )


@songs_router.get(
    "/{song_id}",
    name="get_song",
    response_model=ResourceEnvelope[SongDTO],
)
async def get_song(
    category_id: int,
    playlist_id: int,
    song_id: int,
    request: Request,
    db: DbSession,
    links: Links,
    principal: OptionalPrincipal,
) -> Response:
    category, song = await _song_or_404(db, category_id, playlist_id, song_id)
    body = envelope(
        SongDTO.model_validate(song), _song_links(links, category, song, principal)
    )
    return etag_response(request, body)


@songs_router.post("", name="create_song", status_code=status.HTTP_201_CREATED)
async def create_song(
    category_id: int,
    playlist_id: int,
    body: CreateSongRequest,
    response: Response,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[SongDTO]:
    """Append a song to the end of a playlist."""
    category, _ = await _playlist_or_404(db, category_id, playlist_id)
    require_write(principal, category.user_id)

    song = await SongRepository.create(
        db,
        playlist_id=playlist_id,
        title=body.title,
        artist=body.artist,
        duration=body.duration,
    )
    await db.commit()

    song_links = _song_links(links, category, song, principal)
    _created(response, song_links)
    return envelope(SongDTO.model_validate(song), song_links)


@songs_router.put("/{song_id}", name="update_song")
async def update_song(
    category_id: int,
    playlist_id: int,
    song_id: int,
    body: UpdateSongRequest,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[SongDTO]:
    """Update a song; a given ``orderId`` moves it within the playlist."""
    category, song = await _song_or_404(db, category_id, playlist_id, song_id)
    require_write(principal, category.user_id)

    song = await SongRepository.update(
        db, song, title=body.title, artist=body.artist, duration=body.duration
    )
    if body.order_id is not None:
        song = await SongRepository.move(db, song, body.order_id)
    await db.commit()

    return envelope(
        SongDTO.model_validate(song), _song_links(links, category, song, principal)
    )


@songs_router.delete(
    "/{song_id}",
    name="delete_song",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_song(
    category_id: int,
    playlist_id: int,
    song_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> Response:
    """Delete a song; later songs move up one position."""
    category, song = await _song_or_404(db, category_id, playlist_id, song_id)
    require_write(principal, category.user_id)

    await SongRepository.delete(db, song)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
