"""API root: the entry links a client starts navigating from."""

from fastapi import APIRouter

from app.api.deps import Links
from app.core.links import Link
from app.core.responses import LinkDTO, to_link_dtos

router = APIRouter()

_ROOT_LINKS: tuple[tuple[str, str, str], ...] = (
    ("list_categories", "categories", "GET"),
    ("create_category", "createCategory", "POST"),
    ("list_vehicles", "vehicles", "GET"),
    ("create_vehicle", "createVehicle", "POST"),
    ("get_fleet_analytics", "fleetAnalytics", "GET"),
    ("get_root", "self", "GET"),
)


@router.get("/", name="get_root")
async def get_root(links: Links) -> list[LinkDTO]:
    """Links to the top-level collections. Open to anonymous callers."""
    return to_link_dtos(
        [Link(links.href(route), rel, method) for route, rel, method in _ROOT_LINKS]
    )
