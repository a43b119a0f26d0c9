"""Hypermedia link assembly for resource and page envelopes.

Every single-resource response carries ``self`` first, then ``edit`` and
``remove`` only for callers allowed to write, then one GET link per child
collection. Every page response carries ``self``, then ``previousPage`` and
``nextPage`` when they exist.

Links are pure functions of (route name, path parameters, verb). The
``url_for`` callable is injected so routers pass ``request.url_for`` and
tests pass a plain function.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from urllib.parse import urlencode

from starlette.routing import NoMatchFound

from app.core.errors import RouteResolutionError
from app.core.pagination import PageMetadata

UrlFor = Callable[..., object]
"""Signature of ``request.url_for``: route name plus path params -> URL."""


@dataclass(frozen=True)
class Link:
    """One ``{href, rel, method}`` hyperlink."""

    href: str
    rel: str
    method: str


@dataclass(frozen=True)
class ResourceRoutes:
    """Route names that make up one resource kind's link set.

    Attributes:
        id_param: Path parameter that carries the resource's own id.
        self_route: Route name of the detail GET.
        edit_route: Route name of the PUT.
        remove_route: Route name of the DELETE.
        children: Ordered (rel, route name) pairs for child collections.
    """

    id_param: str
    self_route: str
    edit_route: str
    remove_route: str
    children: tuple[tuple[str, str], ...] = field(default_factory=tuple)


RESOURCE_ROUTES: Mapping[str, ResourceRoutes] = {
    "category": ResourceRoutes(
        id_param="category_id",
        self_route="get_category",
        edit_route="update_category",
        remove_route="delete_category",
        children=(("playlists", "list_playlists"),),
    ),
    "playlist": ResourceRoutes(
        id_param="playlist_id",
        self_route="get_playlist",
        edit_route="update_playlist",
        remove_route="delete_playlist",
        children=(("songs", "list_songs"),),
    ),
    "song": ResourceRoutes(
        id_param="song_id",
        self_route="get_song",
        edit_route="update_song",
        remove_route="delete_song",
    ),
    "vehicle": ResourceRoutes(
        id_param="vehicle_id",
        self_route="get_vehicle",
        edit_route="update_vehicle",
        remove_route="delete_vehicle",
        children=(
            ("trips", "list_trips"),
            ("fuelRecords", "list_fuel_records"),
            ("maintenanceRecords", "list_maintenance_records"),
            ("analytics", "get_vehicle_analytics"),
        ),
    ),
    "trip": ResourceRoutes(
        id_param="trip_id",
        self_route="get_trip",
        edit_route="update_trip",
        remove_route="delete_trip",
    ),
    "fuelRecord": ResourceRoutes(
        id_param="record_id",
        self_route="get_fuel_record",
        edit_route="update_fuel_record",
        remove_route="delete_fuel_record",
    ),
    "maintenanceRecord": ResourceRoutes(
        id_param="record_id",
        self_route="get_maintenance_record",
        edit_route="update_maintenance_record",
        remove_route="delete_maintenance_record",
    ),
}


class LinkAssembler:
    """Builds link sets from route names.

    Args:
        url_for: Resolves a route name and path params to a URL. Must raise
            ``starlette.routing.NoMatchFound`` for unknown routes, like
            ``Request.url_for`` does.
        routes: Resource-kind registry. Defaults to RESOURCE_ROUTES.
    """

    def __init__(
        self,
        url_for: UrlFor,
        routes: Mapping[str, ResourceRoutes] = RESOURCE_ROUTES,
    ) -> None:
        self._url_for = url_for
        self._routes = routes

    def href(self, route_name: str, **path_params: object) -> str:
        """Resolve one route to an href string.

        Raises:
            RouteResolutionError: If the route name or its params don't match.
        """
        try:
            return str(self._url_for(route_name, **path_params))
        except NoMatchFound as exc:
            msg = (
                f"Cannot resolve route '{route_name}' "
                f"with params {sorted(path_params)}"
            )
            raise RouteResolutionError(msg) from exc

    def links_for(
        self,
        kind: str,
        resource_id: object,
        *,
        can_write: bool,
        parent_params: Mapping[str, object] | None = None,
    ) -> list[Link]:
        """Links for a single resource.

        Args:
            kind: Registered resource kind (e.g. "category").
            resource_id: The resource's id.
            can_write: Whether the caller may edit or remove the resource.
            parent_params: Path params of enclosing resources
                (e.g. ``{"category_id": 1}`` for a playlist).

        Returns:
            self, then edit/remove when allowed, then child collections.

        Raises:
            RouteResolutionError: Unknown kind or unresolvable route.
        """
        routes = self._routes.get(kind)
        if routes is None:
            msg = f"Unknown resource kind '{kind}'"
            raise RouteResolutionError(msg)

        params = {**(parent_params or {}), routes.id_param: resource_id}
        links = [Link(self.href(routes.self_route, **params), "self", "GET")]
        if can_write:
            links.append(Link(self.href(routes.edit_route, **params), "edit", "PUT"))
            links.append(
                Link(self.href(routes.remove_route, **params), "remove", "DELETE")
            )
        for rel, route in routes.children:
            links.append(Link(self.href(route, **params), rel, "GET"))
        return links

    def page_link(
        self,
        collection_route: str,
        page_number: int,
        page_size: int,
        *,
        parent_params: Mapping[str, object] | None = None,
        query: Mapping[str, object] | None = None,
    ) -> str:
        """Href of one page of a collection, with paging query params."""
        base = self.href(collection_route, **(parent_params or {}))
        params: dict[str, object] = {
            k: v for k, v in (query or {}).items() if v is not None
        }
        params["pageNumber"] = page_number
        params["pageSize"] = page_size
        return f"{base}?{urlencode(params)}"

    def links_for_page(
        self,
        collection_route: str,
        meta: PageMetadata,
        *,
        parent_params: Mapping[str, object] | None = None,
        query: Mapping[str, object] | None = None,
        extra_links: Iterable[tuple[str, str, str]] = (),
    ) -> list[Link]:
        """Links for one page of a collection.

        Args:
            collection_route: Route name of the collection GET.
            meta: Page metadata from the paginator.
            parent_params: Path params of enclosing resources.
            query: Extra query params carried on every page link
                (e.g. a search term).
            extra_links: (rel, route name, method) triples appended last,
                resolved with ``parent_params``.

        Returns:
            self, then previousPage/nextPage when they exist, then extras.
        """
        links = [
            Link(
                self.page_link(
                    collection_route,
                    meta.current_page,
                    meta.page_size,
                    parent_params=parent_params,
                    query=query,
                ),
                "self",
                "GET",
            )
        ]
        if meta.has_previous:
            links.append(
                Link(
                    self.page_link(
                        collection_route,
                        meta.current_page - 1,
                        meta.page_size,
                        parent_params=parent_params,
                        query=query,
                    ),
                    "previousPage",
                    "GET",
                )
            )
        if meta.has_next:
            links.append(
                Link(
                    self.page_link(
                        collection_route,
                        meta.current_page + 1,
                        meta.page_size,
                        parent_params=parent_params,
                        query=query,
                    ),
                    "nextPage",
                    "GET",
                )
            )
        for rel, route, method in extra_links:
            links.append(Link(self.href(route, **(parent_params or {})), rel, method))
        return links
