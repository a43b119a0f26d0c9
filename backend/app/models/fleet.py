"""Fleet models: Vehicle and its trips, fuel and maintenance records.

Vehicles are owned by a user. Child records belong to one vehicle and also
record the user who logged them. GPS fixes live in UserLocation.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SerialIdMixin, TimestampMixin

_CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


def _user_fk() -> Mapped[uuid.UUID]:
    return mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _vehicle_fk() -> Mapped[int]:
    return mapped_column(
        Integer,
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class Vehicle(SerialIdMixin, TimestampMixin, Base):
    """A vehicle and its odometer reading (km)."""

    __tablename__ = "vehicles"
    __table_args__ = (
        CheckConstraint("current_mileage >= 0", name="ck_vehicles_mileage"),
    )

    make: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(50), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    license_plate: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(String(300), nullable=False)
    current_mileage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    user_id: Mapped[uuid.UUID] = _user_fk()

    trips: Mapped[list["Trip"]] = relationship(
        "Trip",
        back_populates="vehicle",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        passive_deletes=True,
    )
    fuel_records: Mapped[list["FuelRecord"]] = relationship(
        "FuelRecord",
        back_populates="vehicle",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        passive_deletes=True,
    )
    maintenance_records: Mapped[list["MaintenanceRecord"]] = relationship(
        "MaintenanceRecord",
        back_populates="vehicle",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
        passive_deletes=True,
    )


class Trip(SerialIdMixin, TimestampMixin, Base):
    """A drive. Distance in km; fuel_used in liters."""

    __tablename__ = "trips"

    start_location: Mapped[str] = mapped_column(String(100), nullable=False)
    end_location: Mapped[str] = mapped_column(String(100), nullable=False)
    distance: Mapped[float] = mapped_column(Float, nullable=False)
    start_time: Mapped[datetime] = mapped_column(nullable=False)
    end_time: Mapped[datetime] = mapped_column(nullable=False)
    purpose: Mapped[str | None] = mapped_column(String(200), nullable=True)
    fuel_used: Mapped[float | None] = mapped_column(Float, nullable=True)
    vehicle_id: Mapped[int] = _vehicle_fk()
    user_id: Mapped[uuid.UUID] = _user_fk()

    vehicle: Mapped["Vehicle"] = relationship("Vehicle", back_populates="trips")


class FuelRecord(SerialIdMixin, TimestampMixin, Base):
    """A refuel. ``mileage`` is the odometer reading at the pump."""

    __tablename__ = "fuel_records"

    date: Mapped[datetime] = mapped_column(nullable=False)
    liters: Mapped[float] = mapped_column(Float, nullable=False)
    cost_per_liter: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    mileage: Mapped[int] = mapped_column(Integer, nullable=False)
    station: Mapped[str | None] = mapped_column(String(100), nullable=True)
    full_tank: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    vehicle_id: Mapped[int] = _vehicle_fk()
    user_id: Mapped[uuid.UUID] = _user_fk()

    vehicle: Mapped["Vehicle"] = relationship("Vehicle", back_populates="fuel_records")


class MaintenanceRecord(SerialIdMixin, TimestampMixin, Base):
    """A service visit."""

    __tablename__ = "maintenance_records"

    service_type: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(300), nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    mileage: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[datetime] = mapped_column(nullable=False)
    provider: Mapped[str | None] = mapped_column(String(100), nullable=True)
    next_service_due: Mapped[datetime | None] = mapped_column(nullable=True)
    vehicle_id: Mapped[int] = _vehicle_fk()
    user_id: Mapped[uuid.UUID] = _user_fk()

    vehicle: Mapped["Vehicle"] = relationship(
        "Vehicle", back_populates="maintenance_records"
    )


class UserLocation(SerialIdMixin, Base):
    """One GPS fix reported by a driver."""

    __tablename__ = "user_locations"

    user_id: Mapped[uuid.UUID] = _user_fk()
    vehicle_id: Mapped[int] = _vehicle_fk()
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    heading: Mapped[float | None] = mapped_column(Float, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(nullable=False, index=True)
    trip_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("trips.id", ondelete="SET NULL"),
        nullable=True,
    )
