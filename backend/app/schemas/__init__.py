"""Pydantic request/response schemas for API endpoints."""

from app.schemas.analytics import FleetAnalyticsDTO, VehicleAnalyticsDTO
from app.schemas.auth import (
    AccountDTO,
    FamilyMemberDTO,
    InviteUserRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
)
from app.schemas.catalog import CategoryDTO, PlaylistDTO, SongDTO
from app.schemas.fleet import (
    FuelRecordDTO,
    LocationDTO,
    MaintenanceRecordDTO,
    TripDTO,
    VehicleDTO,
)

__all__ = [
    # Accounts
    "AccountDTO",
    "FamilyMemberDTO",
    "InviteUserRequest",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    # Catalog
    "CategoryDTO",
    "PlaylistDTO",
    "SongDTO",
    # Fleet
    "FuelRecordDTO",
    "LocationDTO",
    "MaintenanceRecordDTO",
    "TripDTO",
    "VehicleDTO",
    # Analytics
    "FleetAnalyticsDTO",
    "VehicleAnalyticsDTO",
]
