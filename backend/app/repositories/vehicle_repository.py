"""Repository for Vehicle operations.

List queries take the caller's read scope, so a list returns exactly the
vehicles a detail lookup would let the same caller read.
"""

import uuid

from sqlalchemy import Select, String, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.fleet import Vehicle
from app.models.user import User
from app.services.authorization import Principal, ReadScope, read_scope

# Fields that may be updated via VehicleRepository.update().
# user_id is excluded: ownership never changes.
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "make",
        "model",
        "year",
        "license_plate",
        "description",
        "current_mileage",
    }
)


def scoped_vehicles(principal: Principal) -> Select[tuple[Vehicle]]:
    """Select the vehicles the principal may read.

    - Admin: every vehicle.
    - Family role with a group: own vehicles plus those of group members.
    - Everyone else: own vehicles only.
    """
    stmt = select(Vehicle)
    scope = read_scope(principal)
    if scope is ReadScope.ALL:
        return stmt
    owner_id = principal.user_uuid
    if scope is ReadScope.OWNER_OR_GROUP:
        return stmt.join(User, User.id == Vehicle.user_id).where(
            or_(
                Vehicle.user_id == owner_id,
                User.family_group_id == principal.group_id,
            )
        )
    return stmt.where(Vehicle.user_id == owner_id)


class VehicleRepository:
    """Stateless repository for Vehicle table operations."""

    @staticmethod
    def list_stmt(
        principal: Principal, search_term: str | None = None
    ) -> Select[tuple[Vehicle]]:
        """Scoped vehicles, oldest first, optionally filtered by a search term.

        The term matches make, model, license plate, description or year,
        case-insensitively. ``%`` and ``_`` in the term match literally.
        """
        stmt = scoped_vehicles(principal)
        term = (search_term or "").strip()
        if term:
            columns = (
                Vehicle.make,
                Vehicle.model,
                Vehicle.license_plate,
                Vehicle.description,
                cast(Vehicle.year, String),
            )
            stmt = stmt.where(
                or_(*(column.icontains(term, autoescape=True) for column in columns))
            )
        return stmt.order_by(Vehicle.created_at, Vehicle.id)

    @staticmethod
    async def list_all(db: AsyncSession, principal: Principal) -> list[Vehicle]:
        """Every scoped vehicle, unpaged (fleet analytics)."""
        stmt = scoped_vehicles(principal).order_by(Vehicle.created_at, Vehicle.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_with_group(
        db: AsyncSession, vehicle_id: int
    ) -> tuple[Vehicle, str | None] | None:
        """Fetch a vehicle with its owner's family group id.

        Returns:
            (vehicle, group id) if found, None otherwise.
        """
        stmt = (
            select(Vehicle, User.family_group_id)
            .join(User, User.id == Vehicle.user_id)
            .where(Vehicle.id == vehicle_id)
        )
        row = (await db.execute(stmt)).one_or_none()
        if row is None:
            return None
        return row[0], row[1]

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        make: str,
        model: str,
        year: int,
        license_plate: str,
        description: str,
        current_mileage: int = 0,
    ) -> Vehicle:
        vehicle = Vehicle(
            user_id=user_id,
            make=make,
            model=model,
            year=year,
            license_plate=license_plate,
            description=description,
            current_mileage=current_mileage,
        )
        db.add(vehicle)
        await db.flush()
        await db.refresh(vehicle)
        return vehicle

    @staticmethod
    async def update(db: AsyncSession, vehicle: Vehicle, **kwargs: object) -> Vehicle:
        """Apply field updates to a loaded vehicle.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        for field, value in kwargs.items():
            setattr(vehicle, field, value)
        await db.flush()
        await db.refresh(vehicle)
        return vehicle

    @staticmethod
    async def delete(db: AsyncSession, vehicle: Vehicle) -> None:
        """Delete a vehicle; its trips and records cascade."""
        await db.delete(vehicle)
        await db.flush()
