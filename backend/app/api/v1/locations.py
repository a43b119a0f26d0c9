"""GPS location endpoints.

Drivers report fixes for the vehicle they are in; the server stamps the
time. Reading a vehicle's last position follows the vehicle read policy.
"""

import structlog
from fastapi import APIRouter, status

from app.api.deps import CurrentPrincipal, DbSession
from app.api.v1.vehicles import readable_vehicle
from app.core.errors import NotFoundError
from app.repositories.fleet_record_repository import TripRepository
from app.repositories.location_repository import LocationRepository
from app.schemas.fleet import LocationDTO, LocationUpdateRequest

logger = structlog.get_logger()

router = APIRouter()


@router.post("", name="report_location", status_code=status.HTTP_201_CREATED)
async def report_location(
    body: LocationUpdateRequest,
    db: DbSession,
    principal: CurrentPrincipal,
) -> LocationDTO:
    """Record the caller's current position in a vehicle they can read."""
    await readable_vehicle(db, body.vehicle_id, principal)
    if body.trip_id is not None:
        trip = await TripRepository.get(db, body.vehicle_id, body.trip_id)
        if trip is None:
            raise NotFoundError("Trip", body.trip_id)

    location = await LocationRepository.create(
        db,
        user_id=principal.user_uuid,
        vehicle_id=body.vehicle_id,
        latitude=body.latitude,
        longitude=body.longitude,
        speed=body.speed,
        heading=body.heading,
        trip_id=body.trip_id,
    )
    await db.commit()
    return LocationDTO.model_validate(location)


@router.get("/current", name="get_current_location")
async def get_current_location(
    db: DbSession,
    principal: CurrentPrincipal,
) -> LocationDTO:
    """The caller's most recent fix."""
    location = await LocationRepository.latest_for_user(db, principal.user_uuid)
    if location is None:
        raise NotFoundError("Location")
    return LocationDTO.model_validate(location)


@router.get("/vehicle/{vehicle_id}", name="get_vehicle_location")
async def get_vehicle_location(
    vehicle_id: int,
    db: DbSession,
    principal: CurrentPrincipal,
) -> LocationDTO:
    """The most recent fix reported from a vehicle."""
    await readable_vehicle(db, vehicle_id, principal)
    location = await LocationRepository.latest_for_vehicle(db, vehicle_id)
    if location is None:
        raise NotFoundError("Location")
    return LocationDTO.model_validate(location)
