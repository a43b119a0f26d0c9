"""Repositories for a vehicle's child records: trips, fuel and maintenance.

Records are always addressed through their vehicle: a record id that belongs
to another vehicle is treated as missing. Odometer rules live in
app.services.mileage; these classes only read and write rows.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.fleet import FuelRecord, MaintenanceRecord, Trip

# Fields that may be updated on existing records.
# Security: never vehicle_id or user_id; a record cannot change hands.
_TRIP_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {"distance", "purpose", "fuel_used"}
)
_FUEL_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {"liters", "total_cost", "station", "full_tank"}
)
_MAINTENANCE_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "service_type",
        "description",
        "cost",
        "mileage",
        "date",
        "provider",
        "next_service_due",
    }
)

_FieldValue = str | int | float | bool | Decimal | datetime | None


def _apply(
    row: object, kwargs: dict[str, _FieldValue], allowed: frozenset[str]
) -> None:
    unknown = set(kwargs) - allowed
    if unknown:
        msg = f"Unknown fields: {', '.join(sorted(unknown))}"
        raise ValueError(msg)
    for field, value in kwargs.items():
        setattr(row, field, value)


class TripRepository:
    """Stateless repository for Trip table operations."""

    @staticmethod
    def list_stmt(vehicle_id: int) -> Select[tuple[Trip]]:
        """Trips of a vehicle, most recent start first."""
        return (
            select(Trip)
            .where(Trip.vehicle_id == vehicle_id)
            .order_by(Trip.start_time.desc(), Trip.id.desc())
        )

    @staticmethod
    async def list_for_vehicles(
        db: AsyncSession, vehicle_ids: list[int]
    ) -> list[Trip]:
        if not vehicle_ids:
            return []
        result = await db.execute(select(Trip).where(Trip.vehicle_id.in_(vehicle_ids)))
        return list(result.scalars().all())

    @staticmethod
    async def get(db: AsyncSession, vehicle_id: int, trip_id: int) -> Trip | None:
        stmt = select(Trip).where(Trip.id == trip_id, Trip.vehicle_id == vehicle_id)
        return (await db.execute(stmt)).scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        vehicle_id: int,
        user_id: uuid.UUID,
        start_location: str,
        end_location: str,
        distance: float,
        start_time: datetime,
        end_time: datetime,
        purpose: str | None = None,
        fuel_used: float | None = None,
    ) -> Trip:
        trip = Trip(
            vehicle_id=vehicle_id,
            user_id=user_id,
            start_location=start_location,
            end_location=end_location,
            distance=distance,
            start_time=start_time,
            end_time=end_time,
            purpose=purpose,
            fuel_used=fuel_used,
        )
        db.add(trip)
        await db.flush()
        await db.refresh(trip)
        return trip

    @staticmethod
    async def update(db: AsyncSession, trip: Trip, **kwargs: _FieldValue) -> Trip:
        """Apply field updates to a loaded trip.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        _apply(trip, kwargs, _TRIP_UPDATABLE_FIELDS)
        await db.flush()
        await db.refresh(trip)
        return trip

    @staticmethod
    async def delete(db: AsyncSession, trip: Trip) -> None:
        await db.delete(trip)
        await db.flush()


class FuelRecordRepository:
    """Stateless repository for FuelRecord table operations."""

    @staticmethod
    def list_stmt(vehicle_id: int) -> Select[tuple[FuelRecord]]:
        """Fuel records of a vehicle, newest first."""
        return (
            select(FuelRecord)
            .where(FuelRecord.vehicle_id == vehicle_id)
            .order_by(FuelRecord.date.desc(), FuelRecord.id.desc())
        )

    @staticmethod
    async def list_for_vehicles(
        db: AsyncSession, vehicle_ids: list[int]
    ) -> list[FuelRecord]:
        if not vehicle_ids:
            return []
        stmt = select(FuelRecord).where(FuelRecord.vehicle_id.in_(vehicle_ids))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get(
        db: AsyncSession, vehicle_id: int, record_id: int
    ) -> FuelRecord | None:
        stmt = select(FuelRecord).where(
            FuelRecord.id == record_id, FuelRecord.vehicle_id == vehicle_id
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    @staticmethod
    async def highest_mileage(db: AsyncSession, vehicle_id: int) -> int | None:
        """Highest odometer reading among the vehicle's fuel records."""
        stmt = select(func.max(FuelRecord.mileage)).where(
            FuelRecord.vehicle_id == vehicle_id
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        vehicle_id: int,
        user_id: uuid.UUID,
        date: datetime,
        liters: float,
        cost_per_liter: Decimal,
        total_cost: Decimal,
        mileage: int,
        station: str | None = None,
        full_tank: bool = True,
    ) -> FuelRecord:
        record = FuelRecord(
            vehicle_id=vehicle_id,
            user_id=user_id,
            date=date,
            liters=liters,
            cost_per_liter=cost_per_liter,
            total_cost=total_cost,
            mileage=mileage,
            station=station,
            full_tank=full_tank,
        )
        db.add(record)
        await db.flush()
        await db.refresh(record)
        return record

    @staticmethod
    async def update(
        db: AsyncSession, record: FuelRecord, **kwargs: _FieldValue
    ) -> FuelRecord:
        _apply(record, kwargs, _FUEL_UPDATABLE_FIELDS)
        await db.flush()
        await db.refresh(record)
        return record

    @staticmethod
    async def delete(db: AsyncSession, record: FuelRecord) -> None:
        await db.delete(record)
        await db.flush()


class MaintenanceRecordRepository:
    """Stateless repository for MaintenanceRecord table operations."""

    @staticmethod
    def list_stmt(vehicle_id: int) -> Select[tuple[MaintenanceRecord]]:
        """Maintenance records of a vehicle, newest first."""
        return (
            select(MaintenanceRecord)
            .where(MaintenanceRecord.vehicle_id == vehicle_id)
            .order_by(MaintenanceRecord.date.desc(), MaintenanceRecord.id.desc())
        )

    @staticmethod
    async def list_for_vehicles(
        db: AsyncSession, vehicle_ids: list[int]
    ) -> list[MaintenanceRecord]:
        if not vehicle_ids:
            return []
        stmt = select(MaintenanceRecord).where(
            MaintenanceRecord.vehicle_id.in_(vehicle_ids)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get(
        db: AsyncSession, vehicle_id: int, record_id: int
    ) -> MaintenanceRecord | None:
        stmt = select(MaintenanceRecord).where(
            MaintenanceRecord.id == record_id,
            MaintenanceRecord.vehicle_id == vehicle_id,
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        vehicle_id: int,
        user_id: uuid.UUID,
        service_type: str,
        description: str,
        cost: Decimal,
        mileage: int,
        date: datetime,
        provider: str | None = None,
        next_service_due: datetime | None = None,
    ) -> MaintenanceRecord:
        record = MaintenanceRecord(
            vehicle_id=vehicle_id,
            user_id=user_id,
            service_type=service_type,
            description=description,
            cost=cost,
            mileage=mileage,
            date=date,
            provider=provider,
            next_service_due=next_service_due,
        )
        db.add(record)
        await db.flush()
        await db.refresh(record)
        return record

    @staticmethod
    async def update(
        db: AsyncSession, record: MaintenanceRecord, **kwargs: _FieldValue
    ) -> MaintenanceRecord:
        _apply(record, kwargs, _MAINTENANCE_UPDATABLE_FIELDS)
        await db.flush()
        await db.refresh(record)
        return record

    @staticmethod
    async def delete(db: AsyncSession, record: MaintenanceRecord) -> None:
        await db.delete(record)
        await db.flush()
