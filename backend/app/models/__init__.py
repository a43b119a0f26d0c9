"""SQLAlchemy ORM models for the Playlist & Fleet API.

All models are exported from this module for convenient imports:
    from app.models import User, Category, Vehicle, ...

Models are organized by domain:
- user.py: User, UserRole, Session (auth)
- catalog.py: Category, Playlist, Song
- fleet.py: Vehicle, Trip, FuelRecord, MaintenanceRecord, UserLocation
"""

from app.models.base import Base, SerialIdMixin, TimestampMixin
from app.models.catalog import Category, Playlist, Song
from app.models.fleet import (
    FuelRecord,
    MaintenanceRecord,
    Trip,
    UserLocation,
    Vehicle,
)
from app.models.user import Session, User, UserRole

__all__ = [
    "Base",
    "Category",
    "FuelRecord",
    "MaintenanceRecord",
    "Playlist",
    "SerialIdMixin",
    "Session",
    "Song",
    "TimestampMixin",
    "Trip",
    "User",
    "UserLocation",
    "UserRole",
    "Vehicle",
]
