"""Envelope builders shared by the v1 routers.

Turns a repository Page into a PageEnvelope, sets the ``Pagination``
header, and wraps single resources with their links.
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from fastapi import Response
from pydantic import BaseModel

from app.core.links import Link, LinkAssembler
from app.core.pagination import Page, pagination_header
from app.core.responses import PageEnvelope, ResourceEnvelope, to_link_dtos

DTO = TypeVar("DTO", bound=BaseModel)

PAGINATION_HEADER = "Pagination"


def envelope(resource: DTO, links: list[Link]) -> ResourceEnvelope[DTO]:
    return ResourceEnvelope(resource=resource, links=to_link_dtos(links))


def page_envelope(
    response: Response,
    assembler: LinkAssembler,
    page: Page[Any],
    *,
    collection_route: str,
    to_dto: Callable[[Any], DTO],
    item_links: Callable[[Any], list[Link]],
    parent_params: Mapping[str, object] | None = None,
    query: Mapping[str, object] | None = None,
    extra_links: Iterable[tuple[str, str, str]] = (),
) -> PageEnvelope[DTO]:
    """Build a page envelope and set the Pagination header.

    Args:
        response: Outgoing response; receives the Pagination header.
        assembler: Link assembler for the current request.
        page: Rows and metadata from fetch_page().
        collection_route: Route name of the collection GET.
        to_dto: Row to wire model.
        item_links: Row to its resource links.
        parent_params: Path params of enclosing resources.
        query: Filters carried on every page link.
        extra_links: (rel, route, method) collection links appended last.

    Returns:
        PageEnvelope with one ResourceEnvelope per row.
    """
    meta = page.meta
    previous_link = (
        assembler.page_link(
            collection_route,
            meta.current_page - 1,
            meta.page_size,
            parent_params=parent_params,
            query=query,
        )
        if meta.has_previous
        else None
    )
    next_link = (
        assembler.page_link(
            collection_route,
            meta.current_page + 1,
            meta.page_size,
            parent_params=parent_params,
            query=query,
        )
        if meta.has_next
        else None
    )
    resources = [envelope(to_dto(row), item_links(row)) for row in page.items]
    links = assembler.links_for_page(
        collection_route,
        meta,
        parent_params=parent_params,
        query=query,
        extra_links=extra_links,
    )
    response.headers[PAGINATION_HEADER] = pagination_header(
        meta, previous_link, next_link
    )
    return PageEnvelope(resources=resources, links=to_link_dtos(links))
