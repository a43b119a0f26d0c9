"""Vehicles API router, including fleet and per-vehicle analytics.

Every endpoint needs a principal. Lists are filtered by the caller's read
scope; details are checked with the same policy, after the vehicle is
known to exist.
"""

from datetime import datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, Query, Request, Response, status

from app.api.deps import (
    CurrentPrincipal,
    DbSession,
    FleetPrincipal,
    Links,
    Pagination,
)
from app.api.envelopes import envelope, page_envelope
from app.core.errors import NotFoundError
from app.core.etag import etag_response
from app.core.links import Link, LinkAssembler
from app.core.responses import PageEnvelope, ResourceEnvelope
from app.models.fleet import Vehicle
from app.repositories.fleet_record_repository import (
    FuelRecordRepository,
    MaintenanceRecordRepository,
    TripRepository,
)
from app.repositories.paging import fetch_page
from app.repositories.vehicle_repository import VehicleRepository
from app.schemas.analytics import FleetAnalyticsDTO, VehicleAnalyticsDTO
from app.schemas.fleet import CreateVehicleRequest, UpdateVehicleRequest, VehicleDTO
from app.services import analytics
from app.services.authorization import (
    FLEET_ROLES,
    Principal,
    authorize_write,
    require_read,
    require_write,
)
from app.services.mileage import check_vehicle_mileage_update

logger = structlog.get_logger()

router = APIRouter()


async def readable_vehicle(
    db: DbSession, vehicle_id: int, principal: Principal
) -> Vehicle:
    """Load a vehicle the principal may read.

    Raises:
        NotFoundError: No such vehicle.
        ForbiddenError: Vehicle exists but is outside the caller's scope.
    """
    found = await VehicleRepository.get_with_group(db, vehicle_id)
    if found is None:
        raise NotFoundError("Vehicle", vehicle_id)
    vehicle, group_id = found
    require_read(principal, vehicle.user_id, group_id)
    return vehicle


def _vehicle_links(
    links: LinkAssembler, vehicle: Vehicle, principal: Principal
) -> list[Link]:
    return links.links_for(
        "vehicle", vehicle.id, can_write=authorize_write(principal, vehicle.user_id)
    )


# =============================================================================
# Collection
# =============================================================================


@router.get("", name="list_vehicles")
async def list_vehicles(
    response: Response,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
    pagination: Pagination,
    search_term: Annotated[
        str | None, Query(alias="searchTerm", max_length=100)
    ] = None,
) -> PageEnvelope[VehicleDTO]:
    """List the vehicles in the caller's scope, oldest first.

    ``searchTerm`` matches make, model, plate, description or year.
    """
    stmt = VehicleRepository.list_stmt(principal, search_term)
    page = await fetch_page(db, stmt, pagination)
    extra = (
        [("createVehicle", "create_vehicle", "POST")]
        if principal.has_any_role(FLEET_ROLES)
        else []
    )
    return page_envelope(
        response,
        links,
        page,
        collection_route="list_vehicles",
        to_dto=VehicleDTO.model_validate,
        item_links=lambda v: _vehicle_links(links, v, principal),
        query={"searchTerm": search_term or None},
        extra_links=extra,
    )


@router.post("", name="create_vehicle", status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    body: CreateVehicleRequest,
    response: Response,
    db: DbSession,
    links: Links,
    principal: FleetPrincipal,
) -> ResourceEnvelope[VehicleDTO]:
    """Register a vehicle owned by the caller."""
    vehicle = await VehicleRepository.create(
        db,
        user_id=principal.user_uuid,
        make=body.make,
        model=body.model,
        year=body.year,
        license_plate=body.license_plate,
        description=body.description,
        current_mileage=body.current_mileage or 0,
    )
    await db.commit()
    logger.info("vehicle_created", vehicle_id=vehicle.id, user_id=principal.user_id)

    vehicle_links = _vehicle_links(links, vehicle, principal)
    response.headers["Location"] = vehicle_links[0].href
    return envelope(VehicleDTO.model_validate(vehicle), vehicle_links)


# =============================================================================
# Analytics (declared before /{vehicle_id} so the literal path wins)
# =============================================================================


StartDate = Annotated[
    datetime | None,
    Query(alias="startDate", description="Period start; defaults to one year ago."),
]
EndDate = Annotated[
    datetime | None,
    Query(alias="endDate", description="Period end; defaults to now."),
]


@router.get("/analytics", name="get_fleet_analytics")
async def get_fleet_analytics(
    db: DbSession,
    principal: CurrentPrincipal,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> FleetAnalyticsDTO:
    """Aggregate analytics over every vehicle in the caller's scope."""
    period = analytics.report_period(start_date, end_date)
    vehicles = await VehicleRepository.list_all(db, principal)
    ids = [vehicle.id for vehicle in vehicles]
    trips = await TripRepository.list_for_vehicles(db, ids)
    fuel = await FuelRecordRepository.list_for_vehicles(db, ids)
    maintenance = await MaintenanceRecordRepository.list_for_vehicles(db, ids)

    summary = analytics.fleet_report(
        [analytics.from_vehicle(v) for v in vehicles],
        [analytics.from_trip(t) for t in trips],
        [analytics.from_fuel_record(f) for f in fuel],
        [analytics.from_maintenance_record(m) for m in maintenance],
        period=period,
    )
    return FleetAnalyticsDTO.model_validate(summary)


@router.get("/{vehicle_id}/analytics", name="get_vehicle_analytics")
async def get_vehicle_analytics(
    vehicle_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> VehicleAnalyticsDTO:
    """Totals, efficiency, monthly costs and upcoming service for one vehicle."""
    vehicle = await readable_vehicle(db, vehicle_id, principal)
    period = analytics.report_period(start_date, end_date)
    ids = [vehicle.id]
    trips = await TripRepository.list_for_vehicles(db, ids)
    fuel = await FuelRecordRepository.list_for_vehicles(db, ids)
    maintenance = await MaintenanceRecordRepository.list_for_vehicles(db, ids)

    summary = analytics.report(
        analytics.from_vehicle(vehicle),
        [analytics.from_trip(t) for t in trips],
        [analytics.from_fuel_record(f) for f in fuel],
        [analytics.from_maintenance_record(m) for m in maintenance],
        period=period,
    )
    return VehicleAnalyticsDTO.model_validate(summary)


# =============================================================================
# Single vehicle
# =============================================================================


@router.get(
    "/{vehicle_id}",
    name="get_vehicle",
    response_model=ResourceEnvelope[VehicleDTO],
)
async def get_vehicle(
    vehicle_id: int,
    request: Request,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> Response:
    """Fetch one vehicle. Supports If-None-Match."""
    vehicle = await readable_vehicle(db, vehicle_id, principal)
    body = envelope(
        VehicleDTO.model_validate(vehicle), _vehicle_links(links, vehicle, principal)
    )
    return etag_response(request, body)


@router.put("/{vehicle_id}", name="update_vehicle")
async def update_vehicle(
    vehicle_id: int,
    body: UpdateVehicleRequest,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[VehicleDTO]:
    """Update the fields sent. The odometer cannot be turned back."""
    found = await VehicleRepository.get_with_group(db, vehicle_id)
    if found is None:
        raise NotFoundError("Vehicle", vehicle_id)
    vehicle, _ = found
    require_write(principal, vehicle.user_id)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "current_mileage" in changes:
        check_vehicle_mileage_update(
            vehicle.current_mileage, changes["current_mileage"]
        )

    vehicle = await VehicleRepository.update(db, vehicle, **changes)
    await db.commit()
    return envelope(
        VehicleDTO.model_validate(vehicle), _vehicle_links(links, vehicle, principal)
    )


@router.delete(
    "/{vehicle_id}",
    name="delete_vehicle",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_vehicle(
    vehicle_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> Response:
    """Delete a vehicle with its trips and records."""
    found = await VehicleRepository.get_with_group(db, vehicle_id)
    if found is None:
        raise NotFoundError("Vehicle", vehicle_id)
    vehicle, _ = found
    require_write(principal, vehicle.user_id)

    await VehicleRepository.delete(db, vehicle)
    await db.commit()
    logger.info("vehicle_deleted", vehicle_id=vehicle_id, user_id=principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
