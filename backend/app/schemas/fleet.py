"""Fleet request and response schemas.

Create requests carry every required field; update requests are partial
(only the fields sent are applied). Timestamps without an offset are read
as UTC.
"""

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import AfterValidator, ConfigDict, Field, ValidationInfo, field_validator

from app.core.responses import CamelModel


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


class _Request(CamelModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# =============================================================================
# Vehicles
# =============================================================================


class CreateVehicleRequest(_Request):
    make: str = Field(min_length=2, max_length=50)
    model: str = Field(min_length=2, max_length=50)
    year: int = Field(ge=1900, le=2100)
    license_plate: str = Field(min_length=1, max_length=20)
    description: str = Field(min_length=5, max_length=300)
    current_mileage: int | None = Field(default=None, ge=0)


class UpdateVehicleRequest(_Request):
    make: str | None = Field(default=None, min_length=2, max_length=50)
    model: str | None = Field(default=None, min_length=2, max_length=50)
    year: int | None = Field(default=None, ge=1900, le=2100)
    license_plate: str | None = Field(default=None, min_length=1, max_length=20)
    description: str | None = Field(default=None, min_length=5, max_length=300)
    current_mileage: int | None = Field(default=None, ge=0)


class VehicleDTO(CamelModel):
    id: int
    make: str
    model: str
    year: int
    license_plate: str
    description: str
    current_mileage: int
    created_at: datetime
    user_id: uuid.UUID


# =============================================================================
# Trips
# =============================================================================


class CreateTripRequest(_Request):
    start_location: str = Field(min_length=2, max_length=100)
    end_location: str = Field(min_length=2, max_length=100)
    distance: float = Field(ge=0, description="Kilometers")
    start_time: UtcDatetime
    end_time: UtcDatetime
    purpose: str | None = Field(default=None, max_length=200)
    fuel_used: float | None = Field(default=None, ge=0)

    @field_validator("end_time")
    @classmethod
    def end_after_start(cls, value: datetime, info: ValidationInfo) -> datetime:
        start = info.data.get("start_time")
        if start is not None and value <= start:
            msg = "End time must be after start time."
            raise ValueError(msg)
        return value


class UpdateTripRequest(_Request):
    distance: float | None = Field(default=None, ge=0)
    purpose: str | None = Field(default=None, max_length=200)
    fuel_used: float | None = Field(default=None, ge=0)


class TripDTO(CamelModel):
    id: int
    start_location: str
    end_location: str
    distance: float
    start_time: datetime
    end_time: datetime
    purpose: str | None
    fuel_used: float | None
    created_at: datetime
    vehicle_id: int
    user_id: uuid.UUID


# =============================================================================
# Fuel records
# =============================================================================


class CreateFuelRecordRequest(_Request):
    date: UtcDatetime
    liters: float = Field(gt=0)
    cost_per_liter: Decimal = Field(gt=0, max_digits=10, decimal_places=3)
    total_cost: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    mileage: int = Field(ge=0, description="Odometer reading in km")
    station: str | None = Field(default=None, max_length=100)
    full_tank: bool = True


class UpdateFuelRecordRequest(_Request):
    liters: float | None = Field(default=None, gt=0)
    total_cost: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2
    )
    station: str | None = Field(default=None, max_length=100)
    full_tank: bool | None = None


class FuelRecordDTO(CamelModel):
    id: int
    date: datetime
    liters: float
    cost_per_liter: Decimal
    total_cost: Decimal
    mileage: int
    station: str | None
    full_tank: bool
    created_at: datetime
    vehicle_id: int


# =============================================================================
# Maintenance records
# =============================================================================


class CreateMaintenanceRecordRequest(_Request):
    service_type: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=300)
    cost: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    mileage: int = Field(ge=0)
    date: UtcDatetime
    provider: str | None = Field(default=None, max_length=100)
    next_service_due: UtcDatetime | None = None

    @field_validator("next_service_due")
    @classmethod
    def due_after_service(
        cls, value: datetime | None, info: ValidationInfo
    ) -> datetime | None:
        service_date = info.data.get("date")
        if value is not None and service_date is not None and value <= service_date:
            msg = "Next service due date must be after the service date."
            raise ValueError(msg)
        return value


class UpdateMaintenanceRecordRequest(_Request):
    service_type: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=300)
    cost: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    mileage: int | None = Field(default=None, ge=0)
    date: UtcDatetime | None = None
    provider: str | None = Field(default=None, max_length=100)
    next_service_due: UtcDatetime | None = None


class MaintenanceRecordDTO(CamelModel):
    id: int
    service_type: str
    description: str
    cost: Decimal
    mileage: int
    date: datetime
    provider: str | None
    next_service_due: datetime | None
    created_at: datetime
    vehicle_id: int


# =============================================================================
# Locations
# =============================================================================


class LocationUpdateRequest(_Request):
    vehicle_id: int
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    speed: float | None = Field(default=None, ge=0)
    heading: float | None = Field(default=None, ge=0, lt=360)
    trip_id: int | None = None


class LocationDTO(CamelModel):
    id: int
    user_id: uuid.UUID
    vehicle_id: int
    latitude: float
    longitude: float
    speed: float | None
    heading: float | None
    timestamp: datetime
    trip_id: int | None
