"""Pagination utilities.

Turns a (total count, requested page, requested size) triple into page
metadata. Out-of-range requests are clamped, never rejected: a page number
below 1 becomes 1, a missing or non-positive size becomes the default, and
a size above the cap becomes the cap. Asking for a page past the end gives
an empty window with correct metadata.
"""

import json
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from fastapi import Query

from app.core.config import settings

T = TypeVar("T")


@dataclass
class PaginationParams:
    """Clamped pagination query parameters.

    Attributes:
        page_number: Current page number (1-indexed).
        page_size: Number of items per page.
    """

    page_number: int
    page_size: int

    @property
    def offset(self) -> int:
        """Number of rows to skip (0 for page 1)."""
        return (self.page_number - 1) * self.page_size

    @property
    def limit(self) -> int:
        """Maximum number of rows to return (same as page_size)."""
        return self.page_size


@dataclass(frozen=True)
class PageMetadata:
    """Everything a caller needs to render one page of a collection.

    Attributes:
        current_page: Clamped page number.
        page_size: Clamped page size.
        total_count: Number of items across all pages.
        total_pages: ceil(total_count / page_size); 0 for an empty collection.
        has_previous: True when current_page > 1 and the collection is not
            empty.
        has_next: True when current_page < total_pages.
        window: Half-open [start, stop) index range of the page's items.
    """

    current_page: int
    page_size: int
    total_count: int
    total_pages: int
    has_previous: bool
    has_next: bool
    window: tuple[int, int]

    @property
    def offset(self) -> int:
        """Start of the window."""
        return self.window[0]


@dataclass
class Page(Generic[T]):
    """One page of items plus its metadata."""

    items: list[T]
    meta: PageMetadata


def clamp_page_request(
    page_number: int | None,
    page_size: int | None,
    *,
    default_page_size: int,
    max_page_size: int | None,
) -> PaginationParams:
    """Clamp a raw page request into valid parameters.

    Args:
        page_number: Requested page; None or < 1 means page 1.
        page_size: Requested size; None or < 1 means ``default_page_size``.
        default_page_size: Size used when the request gives none.
        max_page_size: Upper bound for the size, or None for no cap.

    Returns:
        PaginationParams with page_number >= 1 and a page_size in range.
    """
    number = page_number if page_number is not None and page_number >= 1 else 1
    size = page_size if page_size is not None and page_size >= 1 else default_page_size
    if max_page_size is not None and size > max_page_size:
        size = max_page_size
    return PaginationParams(page_number=number, page_size=size)


def paginate(
    total_count: int,
    page_number: int | None,
    page_size: int | None,
    *,
    default_page_size: int = 10,
    max_page_size: int | None = 50,
) -> PageMetadata:
    """Compute page metadata and the item window for a collection.

    Args:
        total_count: Number of items in the filtered collection.
        page_number: Requested page number.
        page_size: Requested page size.
        default_page_size: Size used when the request gives none or < 1.
        max_page_size: Size cap, or None for no cap.

    Returns:
        PageMetadata for the clamped request.

    Raises:
        ValueError: If total_count is negative.
    """
    if total_count < 0:
        msg = f"total_count must be >= 0, got {total_count}"
        raise ValueError(msg)

    params = clamp_page_request(
        page_number,
        page_size,
        default_page_size=default_page_size,
        max_page_size=max_page_size,
    )
    total_pages = math.ceil(total_count / params.page_size)
    start = min(params.offset, total_count)
    stop = min(params.offset + params.page_size, total_count)

    return PageMetadata(
        current_page=params.page_number,
        page_size=params.page_size,
        total_count=total_count,
        total_pages=total_pages,
        has_previous=params.page_number > 1 and total_count > 0,
        has_next=params.page_number < total_pages,
        window=(start, stop),
    )


def slice_page(items: Sequence[T], meta: PageMetadata) -> list[T]:
    """Apply a page window to an already ordered in-memory sequence."""
    start, stop = meta.window
    return list(items[start:stop])


def pagination_header(
    meta: PageMetadata,
    previous_page_link: str | None,
    next_page_link: str | None,
) -> str:
    """Serialize page metadata for the ``Pagination`` response header."""
    return json.dumps(
        {
            "totalCount": meta.total_count,
            "pageSize": meta.page_size,
            "currentPage": meta.current_page,
            "totalPages": meta.total_pages,
            "previousPageLink": previous_page_link,
            "nextPageLink": next_page_link,
        }
    )


def pagination_params(
    page_number: int | None = Query(
        default=None,
        alias="pageNumber",
        description="Page number (1-indexed). Values below 1 are treated as 1.",
    ),
    page_size: int | None = Query(
        default=None,
        alias="pageSize",
        description="Items per page. Out-of-range values are clamped.",
    ),
) -> PaginationParams:
    """FastAPI dependency for pagination query parameters.

    Usage:
        @router.get("/vehicles")
        async def list_vehicles(
            pagination: Annotated[PaginationParams, Depends(pagination_params)],
        ):
            page = await fetch_page(db, stmt, pagination)
            ...

    Returns:
        PaginationParams clamped to the configured default and cap.
    """
    return clamp_page_request(
        page_number,
        page_size,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
