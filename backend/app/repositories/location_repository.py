"""Repository for GPS location fixes."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.fleet import UserLocation


class LocationRepository:
    """Stateless repository for UserLocation table operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        vehicle_id: int,
        latitude: float,
        longitude: float,
        speed: float | None = None,
        heading: float | None = None,
        trip_id: int | None = None,
    ) -> UserLocation:
        """Record a fix, timestamped by the server."""
        location = UserLocation(
            user_id=user_id,
            vehicle_id=vehicle_id,
            latitude=latitude,
            longitude=longitude,
            speed=speed,
            heading=heading,
            trip_id=trip_id,
            timestamp=datetime.now(UTC),
        )
        db.add(location)
        await db.flush()
        await db.refresh(location)
        return location

    @staticmethod
    async def latest_for_user(
        db: AsyncSession, user_id: uuid.UUID
    ) -> UserLocation | None:
        stmt = (
            select(UserLocation)
            .where(UserLocation.user_id == user_id)
            .order_by(UserLocation.timestamp.desc(), UserLocation.id.desc())
            .limit(1)
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    @staticmethod
    async def latest_for_vehicle(
        db: AsyncSession, vehicle_id: int
    ) -> UserLocation | None:
        stmt = (
            select(UserLocation)
            .where(UserLocation.vehicle_id == vehicle_id)
            .order_by(UserLocation.timestamp.desc(), UserLocation.id.desc())
            .limit(1)
        )
        return (await db.execute(stmt)).scalar_one_or_none()
