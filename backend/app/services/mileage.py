"""Odometer bookkeeping rules for vehicles and their records.

Trips move the odometer by their rounded distance; fuel records may raise
it to the pump reading. The odometer never goes below zero, and record
mileages must be consistent with what is already known.
"""

from app.core.errors import ValidationError

_MILEAGE_FIELD = "mileage"
"""Wire name of the record mileage field in error bodies."""


def trip_mileage(distance: float) -> int:
    """Whole kilometers a trip adds to the odometer (round half to even)."""
    return round(distance)


def adjusted_mileage(current: int, delta: int) -> int:
    """Apply a delta to an odometer reading, floored at 0."""
    return max(0, current + delta)


def trip_update_delta(old_distance: float, new_distance: float) -> int:
    """Odometer change when a trip's distance is edited."""
    return trip_mileage(new_distance) - trip_mileage(old_distance)


def check_vehicle_mileage_update(current: int, requested: int) -> None:
    """Refuse to turn a vehicle's odometer back.

    Raises:
        ValidationError: If requested < current.
    """
    if requested < current:
        raise ValidationError.field_error(
            "currentMileage", "Mileage cannot be decreased."
        )


def check_fuel_mileage(mileage: int, latest_recorded: int | None) -> None:
    """A fuel reading may not be below the vehicle's latest fuel reading.

    Raises:
        ValidationError: If mileage < latest_recorded.
    """
    if latest_recorded is not None and mileage < latest_recorded:
        raise ValidationError.field_error(
            _MILEAGE_FIELD,
            "Mileage cannot be lower than the last fuel record "
            f"({latest_recorded} km).",
        )


def check_maintenance_mileage(mileage: int, vehicle_mileage: int) -> None:
    """A service cannot happen beyond the vehicle's current odometer.

    Raises:
        ValidationError: If mileage > vehicle_mileage.
    """
    if mileage > vehicle_mileage:
        raise ValidationError.field_error(
            _MILEAGE_FIELD,
            "Mileage cannot exceed the vehicle's current mileage "
            f"({vehicle_mileage} km).",
        )
