"""Routers for a vehicle's trips, fuel records and maintenance records.

Records live under their vehicle. Reading them needs read access to the
vehicle; creating one also needs a fleet role. Editing or deleting a
record is reserved for the user who logged it, or an admin.

Odometer side effects:
- a new trip adds its rounded distance; editing the distance adjusts by
  the difference; deleting removes it (never below zero)
- a fuel record may not go below the highest earlier fuel reading, and
  raises the odometer when it is higher
- a maintenance record may not lie beyond the current odometer
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Request, Response, status

from app.api.deps import (
    CurrentPrincipal,
    DbSession,
    FleetPrincipal,
    Links,
    Pagination,
)
from app.api.envelopes import envelope, page_envelope
from app.api.v1.vehicles import readable_vehicle
from app.core.errors import NotFoundError, ValidationError
from app.core.etag import etag_response
from app.core.links import Link, LinkAssembler
from app.core.responses import PageEnvelope, ResourceEnvelope
from app.models.fleet import FuelRecord, MaintenanceRecord, Trip, Vehicle
from app.repositories.fleet_record_repository import (
    FuelRecordRepository,
    MaintenanceRecordRepository,
    TripRepository,
)
from app.repositories.paging import fetch_page
from app.repositories.vehicle_repository import VehicleRepository
from app.schemas.fleet import (
    CreateFuelRecordRequest,
    CreateMaintenanceRecordRequest,
    CreateTripRequest,
    FuelRecordDTO,
    MaintenanceRecordDTO,
    TripDTO,
    UpdateFuelRecordRequest,
    UpdateMaintenanceRecordRequest,
    UpdateTripRequest,
)
from app.services.authorization import (
    FLEET_ROLES,
    Principal,
    authorize_write,
    require_write,
)
from app.services.mileage import (
    adjusted_mileage,
    check_fuel_mileage,
    check_maintenance_mileage,
    trip_mileage,
    trip_update_delta,
)

logger = structlog.get_logger()

_FleetRecord = Trip | FuelRecord | MaintenanceRecord


def _record_links(
    links: LinkAssembler,
    kind: str,
    record: _FleetRecord,
    principal: Principal,
) -> list[Link]:
    return links.links_for(
        kind,
        record.id,
        can_write=authorize_write(principal, record.user_id),
        parent_params={"vehicle_id": record.vehicle_id},
    )


def _can_create(
    principal: Principal, rel: str, route: str
) -> list[tuple[str, str, str]]:
    return [(rel, route, "POST")] if principal.has_any_role(FLEET_ROLES) else []


async def _set_mileage(db: DbSession, vehicle: Vehicle, mileage: int) -> None:
    if mileage != vehicle.current_mileage:
        await VehicleRepository.update(db, vehicle, current_mileage=mileage)


# =============================================================================
# Trips
# =============================================================================

trips_router = APIRouter()


async def _trip_or_404(db: DbSession, vehicle_id: int, trip_id: int) -> Trip:
    trip = await TripRepository.get(db, vehicle_id, trip_id)
    if trip is None:
        raise NotFoundError("Trip", trip_id)
    return trip


@trips_router.get("", name="list_trips")
async def list_trips(
    vehicle_id: int,
    response: Response,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
    pagination: Pagination,
) -> PageEnvelope[TripDTO]:
    """List a vehicle's trips, most recent first."""
    await readable_vehicle(db, vehicle_id, principal)
    page = await fetch_page(db, TripRepository.list_stmt(vehicle_id), pagination)
    return page_envelope(
        response,
        links,
        page,
        collection_route="list_trips",
        to_dto=TripDTO.model_validate,
        item_links=lambda t: _record_links(links, "trip", t, principal),
        parent_params={"vehicle_id": vehicle_id},
        extra_links=_can_create(principal, "createTrip", "create_trip"),
    )


@trips_router.get(
    "/{trip_id}", name="get_trip", response_model=ResourceEnvelope[TripDTO]
)
async def get_trip(
    vehicle_id: int,
    trip_id: int,
    request: Request,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> Response:
    await readable_vehicle(db, vehicle_id, principal)
    trip = await _trip_or_404(db, vehicle_id, trip_id)
    body = envelope(
        TripDTO.model_validate(trip), _record_links(links, "trip", trip, principal)
    )
    return etag_response(request, body)


@trips_router.post("", name="create_trip", status_code=status.HTTP_201_CREATED)
async def create_trip(
    vehicle_id: int,
    body: CreateTripRequest,
    response: Response,
    db: DbSession,
    links: Links,
    principal: FleetPrincipal,
) -> ResourceEnvelope[TripDTO]:
    """Log a trip and advance the vehicle's odometer by its distance."""
    vehicle = await readable_vehicle(db, vehicle_id, principal)

    trip = await TripRepository.create(
        db,
        vehicle_id=vehicle_id,
        user_id=principal.user_uuid,
        start_location=body.start_location,
        end_location=body.end_location,
        distance=body.distance,
        start_time=body.start_time,
        end_time=body.end_time,
        purpose=body.purpose,
        fuel_used=body.fuel_used,
    )
    await _set_mileage(
        db,
        vehicle,
        adjusted_mileage(vehicle.current_mileage, trip_mileage(body.distance)),
    )
    await db.commit()
    logger.info("trip_created", trip_id=trip.id, vehicle_id=vehicle_id)

    trip_links = _record_links(links, "trip", trip, principal)
    response.headers["Location"] = trip_links[0].href
    return envelope(TripDTO.model_validate(trip), trip_links)


@trips_router.put("/{trip_id}", name="update_trip")
async def update_trip(
    vehicle_id: int,
    trip_id: int,
    body: UpdateTripRequest,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[TripDTO]:
    """Update a trip; a distance change moves the odometer by the difference."""
    vehicle = await readable_vehicle(db, vehicle_id, principal)
    trip = await _trip_or_404(db, vehicle_id, trip_id)
    require_write(principal, trip.user_id)

    changes = body.model_dump(exclude_unset=True)
    if changes.get("distance") is None:
        changes.pop("distance", None)
    else:
        delta = trip_update_delta(trip.distance, changes["distance"])
        await _set_mileage(
            db, vehicle, adjusted_mileage(vehicle.current_mileage, delta)
        )

    trip = await TripRepository.update(db, trip, **changes)
    await db.commit()
    return envelope(
        TripDTO.model_validate(trip), _record_links(links, "trip", trip, principal)
    )


@trips_router.delete(
    "/{trip_id}", name="delete_trip", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_trip(
    vehicle_id: int,
    trip_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> Response:
    """Delete a trip and take its distance back off the odometer."""
    vehicle = await readable_vehicle(db, vehicle_id, principal)
    trip = await _trip_or_404(db, vehicle_id, trip_id)
    require_write(principal, trip.user_id)

    await _set_mileage(
        db,
        vehicle,
        adjusted_mileage(vehicle.current_mileage, -trip_mileage(trip.distance)),
    )
    await TripRepository.delete(db, trip)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Fuel records
# =============================================================================

fuel_records_router = APIRouter()


async def _fuel_record_or_404(
    db: DbSession, vehicle_id: int, record_id: int
) -> FuelRecord:
    record = await FuelRecordRepository.get(db, vehicle_id, record_id)
    if record is None:
        raise NotFoundError("Fuel record", record_id)
    return record


@fuel_records_router.get("", name="list_fuel_records")
async def list_fuel_records(
    vehicle_id: int,
    response: Response,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
    pagination: Pagination,
) -> PageEnvelope[FuelRecordDTO]:
    """List a vehicle's fuel records, newest first."""
    await readable_vehicle(db, vehicle_id, principal)
    page = await fetch_page(
        db, FuelRecordRepository.list_stmt(vehicle_id), pagination
    )
    return page_envelope(
        response,
        links,
        page,
        collection_route="list_fuel_records",
        to_dto=FuelRecordDTO.model_validate,
        item_links=lambda r: _record_links(links, "fuelRecord", r, principal),
        parent_params={"vehicle_id": vehicle_id},
        extra_links=_can_create(principal, "createFuelRecord", "create_fuel_record"),
    )


@fuel_records_router.get(
    "/{record_id}",
    name="get_fuel_record",
    response_model=ResourceEnvelope[FuelRecordDTO],
)
async def get_fuel_record(
    vehicle_id: int,
    record_id: int,
    request: Request,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> Response:
    await readable_vehicle(db, vehicle_id, principal)
    record = await _fuel_record_or_404(db, vehicle_id, record_id)
    body = envelope(
        FuelRecordDTO.model_validate(record),
        _record_links(links, "fuelRecord", record, principal),
    )
    return etag_response(request, body)


@fuel_records_router.post(
    "", name="create_fuel_record", status_code=status.HTTP_201_CREATED
)
async def create_fuel_record(
    vehicle_id: int,
    body: CreateFuelRecordRequest,
    response: Response,
    db: DbSession,
    links: Links,
    principal: FleetPrincipal,
) -> ResourceEnvelope[FuelRecordDTO]:
    """Log a refuel; a higher pump reading advances the odometer."""
    vehicle = await readable_vehicle(db, vehicle_id, principal)
    check_fuel_mileage(
        body.mileage, await FuelRecordRepository.highest_mileage(db, vehicle_id)
    )

    record = await FuelRecordRepository.create(
        db,
        vehicle_id=vehicle_id,
        user_id=principal.user_uuid,
        date=body.date,
        liters=body.liters,
        cost_per_liter=body.cost_per_liter,
        total_cost=body.total_cost,
        mileage=body.mileage,
        station=body.station,
        full_tank=body.full_tank,
    )
    await _set_mileage(db, vehicle, max(vehicle.current_mileage, body.mileage))
    await db.commit()

    record_links = _record_links(links, "fuelRecord", record, principal)
    response.headers["Location"] = record_links[0].href
    return envelope(FuelRecordDTO.model_validate(record), record_links)


@fuel_records_router.put("/{record_id}", name="update_fuel_record")
async def update_fuel_record(
    vehicle_id: int,
    record_id: int,
    body: UpdateFuelRecordRequest,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[FuelRecordDTO]:
    await readable_vehicle(db, vehicle_id, principal)
    record = await _fuel_record_or_404(db, vehicle_id, record_id)
    require_write(principal, record.user_id)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    record = await FuelRecordRepository.update(db, record, **changes)
    await db.commit()
    return envelope(
        FuelRecordDTO.model_validate(record),
        _record_links(links, "fuelRecord", record, principal),
    )


@fuel_records_router.delete(
    "/{record_id}",
    name="delete_fuel_record",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_fuel_record(
    vehicle_id: int,
    record_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> Response:
    await readable_vehicle(db, vehicle_id, principal)
    record = await _fuel_record_or_404(db, vehicle_id, record_id)
    require_write(principal, record.user_id)

    await FuelRecordRepository.delete(db, record)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Maintenance records
# =============================================================================

maintenance_records_router = APIRouter()


async def _maintenance_record_or_404(
    db: DbSession, vehicle_id: int, record_id: int
) -> MaintenanceRecord:
    record = await MaintenanceRecordRepository.get(db, vehicle_id, record_id)
    if record is None:
        raise NotFoundError("Maintenance record", record_id)
    return record


def _check_due_after_service(service_date: datetime, due: datetime | None) -> None:
    if due is not None and due <= service_date:
        raise ValidationError.field_error(
            "nextServiceDue", "Next service due date must be after the service date."
        )


@maintenance_records_router.get("", name="list_maintenance_records")
async def list_maintenance_records(
    vehicle_id: int,
    response: Response,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
    pagination: Pagination,
) -> PageEnvelope[MaintenanceRecordDTO]:
    """List a vehicle's maintenance records, newest first."""
    await readable_vehicle(db, vehicle_id, principal)
    page = await fetch_page(
        db, MaintenanceRecordRepository.list_stmt(vehicle_id), pagination
    )
    return page_envelope(
        response,
        links,
        page,
        collection_route="list_maintenance_records",
        to_dto=MaintenanceRecordDTO.model_validate,
        item_links=lambda r: _record_links(links, "maintenanceRecord", r, principal),
        parent_params={"vehicle_id": vehicle_id},
        extra_links=_can_create(
            principal, "createMaintenanceRecord", "create_maintenance_record"
        ),
    )


@maintenance_records_router.get(
    "/{record_id}",
    name="get_maintenance_record",
    response_model=ResourceEnvelope[MaintenanceRecordDTO],
)
async def get_maintenance_record(
    vehicle_id: int,
    record_id: int,
    request: Request,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> Response:
    await readable_vehicle(db, vehicle_id, principal)
    record = await _maintenance_record_or_404(db, vehicle_id, record_id)
    body = envelope(
        MaintenanceRecordDTO.model_validate(record),
        _record_links(links, "maintenanceRecord", record, principal),
    )
    return etag_response(request, body)


@maintenance_records_router.post(
    "", name="create_maintenance_record", status_code=status.HTTP_201_CREATED
)
async def create_maintenance_record(
    vehicle_id: int,
    body: CreateMaintenanceRecordRequest,
    response: Response,
    db: DbSession,
    links: Links,
    principal: FleetPrincipal,
) -> ResourceEnvelope[MaintenanceRecordDTO]:
    """Log a service visit at or below the current odometer reading."""
    vehicle = await readable_vehicle(db, vehicle_id, principal)
    check_maintenance_mileage(body.mileage, vehicle.current_mileage)

    record = await MaintenanceRecordRepository.create(
        db,
        vehicle_id=vehicle_id,
        user_id=principal.user_uuid,
        service_type=body.service_type,
        description=body.description,
        cost=body.cost,
        mileage=body.mileage,
        date=body.date,
        provider=body.provider,
        next_service_due=body.next_service_due,
    )
    await db.commit()

    record_links = _record_links(links, "maintenanceRecord", record, principal)
    response.headers["Location"] = record_links[0].href
    return envelope(MaintenanceRecordDTO.model_validate(record), record_links)


@maintenance_records_router.put("/{record_id}", name="update_maintenance_record")
async def update_maintenance_record(
    vehicle_id: int,
    record_id: int,
    body: UpdateMaintenanceRecordRequest,
    db: DbSession,
    links: Links,
    principal: CurrentPrincipal,
) -> ResourceEnvelope[MaintenanceRecordDTO]:
    """Update the fields sent, re-checking mileage and due-date rules."""
    vehicle = await readable_vehicle(db, vehicle_id, principal)
    record = await _maintenance_record_or_404(db, vehicle_id, record_id)
    require_write(principal, record.user_id)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "mileage" in changes:
        check_maintenance_mileage(changes["mileage"], vehicle.current_mileage)
    _check_due_after_service(
        changes.get("date", record.date),
        changes.get("next_service_due", record.next_service_due),
    )

    record = await MaintenanceRecordRepository.update(db, record, **changes)
    await db.commit()
    return envelope(
        MaintenanceRecordDTO.model_validate(record),
        _record_links(links, "maintenanceRecord", record, principal),
    )


@maintenance_records_router.delete(
    "/{record_id}",
    name="delete_maintenance_record",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_maintenance_record(
    vehicle_id: int,
    record_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> Response:
    await readable_vehicle(db, vehicle_id, principal)
    record = await _maintenance_record_or_404(db, vehicle_id, record_id)
    require_write(principal, record.user_id)

    await MaintenanceRecordRepository.delete(db, record)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
