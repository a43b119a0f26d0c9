"""API v1 router aggregator.

All v1 endpoint routers are included here; the app mounts this router
under /api/v1.
"""

from fastapi import APIRouter

from app.api.v1 import (
    auth,
    catalog,
    fleet_records,
    locations,
    root,
    users,
    vehicles,
)

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

router.include_router(auth.router, tags=["auth"])

# =============================================================================
# Music catalog
# =============================================================================

_CATEGORY = "/categories/{category_id}"
_PLAYLIST = f"{_CATEGORY}/playlists/{{playlist_id}}"

router.include_router(
    catalog.categories_router, prefix="/categories", tags=["categories"]
)
router.include_router(
    catalog.playlists_router, prefix=f"{_CATEGORY}/playlists", tags=["playlists"]
)
router.include_router(catalog.songs_router, prefix=f"{_PLAYLIST}/songs", tags=["songs"])

# =============================================================================
# Fleet
# =============================================================================

_VEHICLE = "/vehicles/{vehicle_id}"

router.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
router.include_router(
    fleet_records.trips_router, prefix=f"{_VEHICLE}/trips", tags=["trips"]
)
router.include_router(
    fleet_records.fuel_records_router,
    prefix=f"{_VEHICLE}/fuelRecords",
    tags=["fuel-records"],
)
router.include_router(
    fleet_records.maintenance_records_router,
    prefix=f"{_VEHICLE}/maintenanceRecords",
    tags=["maintenance-records"],
)
router.include_router(locations.router, prefix="/locations", tags=["locations"])

# =============================================================================
# Family management
# =============================================================================

router.include_router(users.router, prefix="/users", tags=["users"])

# =============================================================================
# Root document
# =============================================================================

router.include_router(root.router, tags=["root"])
