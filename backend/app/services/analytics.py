"""Vehicle analytics: distance, cost, fuel efficiency and upcoming service.

Fuel efficiency is measured in liters per 100 km over refuel "segments":
consecutive fuel records sorted by odometer reading. Only a full-to-full
interval tells how much fuel the car actually burned, so segments normally
need both ends flagged full_tank. When a vehicle has no such pair but at
least two records, every consecutive pair is used instead and the summary
is flagged ``efficiency_estimated``. Segments of 0 km or less, of 2000 km or
more, or with no liters are discarded as data errors.

Upcoming maintenance looks at the latest record of every service type and
uses its explicit next-due date, or else a fixed interval by service type.

Pattern: pure functions over frozen dataclass views. Routers load rows,
convert them with the ``from_*`` helpers, and call ``report`` or
``fleet_report``. No database access here.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

_MAX_SEGMENT_KM: float = 2000.0
"""Segments at or above this distance are treated as odometer errors."""

_TRAILING_MONTHS: int = 6
"""Number of calendar months (including the current one) in cost buckets."""

_UPCOMING_HORIZON_DAYS: int = 100
"""Services due further out than this are not 'upcoming'."""

_DEFAULT_INTERVAL_DAYS: int = 180
"""Service interval for types without a specific rule."""

_SERVICE_INTERVALS: tuple[tuple[str, int], ...] = (
    ("oil", 90),
    ("tire", 180),
    ("brake", 365),
    ("inspection", 365),
)
"""(substring, days) rules matched case-insensitively against service_type."""


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class VehicleStat:
    """Vehicle fields the reporter needs."""

    id: int
    make: str
    model: str
    current_mileage: int = 0

    @property
    def name(self) -> str:
        return f"{self.make} {self.model}"


@dataclass(frozen=True)
class TripStat:
    vehicle_id: int
    distance: float
    start_time: datetime
    end_time: datetime | None = None


@dataclass(frozen=True)
class FuelStat:
    vehicle_id: int
    date: datetime
    liters: float
    total_cost: float
    mileage: int
    full_tank: bool


@dataclass(frozen=True)
class MaintenanceStat:
    vehicle_id: int
    service_type: str
    cost: float
    date: datetime
    next_service_due: datetime | None = None


@dataclass(frozen=True)
class MonthlyCost:
    """Fuel and maintenance spend for one calendar month (``YYYY-MM``)."""

    month: str
    fuel: float
    maintenance: float


@dataclass(frozen=True)
class EfficiencyPoint:
    month: str
    liters_per_100km: float


@dataclass(frozen=True)
class UpcomingMaintenance:
    """One service expected within the upcoming horizon."""

    vehicle_id: int
    vehicle_name: str
    service_type: str
    due_date: datetime
    days_until_due: int
    estimated_cost: float


@dataclass(frozen=True)
class EfficiencyResult:
    """Efficiency in L/100 km (None when undefined) and whether it is a fallback."""

    liters_per_100km: float | None
    estimated: bool = False


@dataclass(frozen=True)
class AnalyticsSummary:
    """Derived statistics for one vehicle."""

    vehicle_id: int
    trip_count: int
    total_distance: float
    total_fuel_cost: float
    total_maintenance_cost: float
    total_cost: float
    total_liters: float
    cost_per_km: float | None
    fuel_efficiency: float | None
    efficiency_estimated: bool
    monthly_costs: list[MonthlyCost] = field(default_factory=list)
    efficiency_trend: list[EfficiencyPoint] = field(default_factory=list)
    upcoming_maintenance: list[UpcomingMaintenance] = field(default_factory=list)


@dataclass(frozen=True)
class FleetSummary:
    """Derived statistics across every vehicle a caller can see."""

    vehicle_count: int
    trip_count: int
    total_distance: float
    total_fuel_cost: float
    total_maintenance_cost: float
    total_liters: float
    average_efficiency: float | None
    most_used_vehicle_id: int | None
    most_efficient_vehicle_id: int | None
    monthly_costs: list[MonthlyCost] = field(default_factory=list)
    efficiency_trend: list[EfficiencyPoint] = field(default_factory=list)
    upcoming_maintenance: list[UpcomingMaintenance] = field(default_factory=list)
    vehicles: list[AnalyticsSummary] = field(default_factory=list)


# =============================================================================
# Conversion helpers
# =============================================================================


def _to_float(value: Decimal | float | int | None) -> float:
    return float(value) if value is not None else 0.0


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def from_vehicle(row: Any) -> VehicleStat:
    return VehicleStat(
        id=row.id,
        make=row.make,
        model=row.model,
        current_mileage=row.current_mileage,
    )


def from_trip(row: Any) -> TripStat:
    return TripStat(
        vehicle_id=row.vehicle_id,
        distance=_to_float(row.distance),
        start_time=_as_utc(row.start_time),
        end_time=_as_utc(row.end_time),
    )


def from_fuel_record(row: Any) -> FuelStat:
    return FuelStat(
        vehicle_id=row.vehicle_id,
        date=_as_utc(row.date),
        liters=_to_float(row.liters),
        total_cost=_to_float(row.total_cost),
        mileage=row.mileage,
        full_tank=row.full_tank,
    )


def from_maintenance_record(row: Any) -> MaintenanceStat:
    next_due = row.next_service_due
    return MaintenanceStat(
        vehicle_id=row.vehicle_id,
        service_type=row.service_type,
        cost=_to_float(row.cost),
        date=_as_utc(row.date),
        next_service_due=_as_utc(next_due) if next_due is not None else None,
    )


# =============================================================================
# Fuel efficiency
# =============================================================================


def _month_key(value: datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def _segment_totals(
    records: Sequence[FuelStat], *, full_tank_only: bool
) -> tuple[float, float, int]:
    """Sum (km, liters) over valid consecutive segments of mileage-sorted records.

    Returns:
        (total km, total liters, number of candidate pairs considered).
    """
    ordered = sorted(records, key=lambda r: r.mileage)
    km = 0.0
    liters = 0.0
    pairs = 0
    for previous, current in zip(ordered, ordered[1:]):
        if full_tank_only and not (previous.full_tank and current.full_tank):
            continue
        pairs += 1
        distance = current.mileage - previous.mileage
        if 0 < distance < _MAX_SEGMENT_KM and current.liters > 0:
            km += distance
            liters += current.liters
    return km, liters, pairs


def _vehicle_segment_totals(records: Sequence[FuelStat]) -> tuple[float, float, bool]:
    if len(records) < 2:
        return 0.0, 0.0, False
    km, liters, pairs = _segment_totals(records, full_tank_only=True)
    if pairs:
        return km, liters, False
    km, liters, _ = _segment_totals(records, full_tank_only=False)
    return km, liters, True


def _liters_per_100km(km: float, liters: float) -> float | None:
    if km <= 0 or liters <= 0:
        return None
    return round(liters / km * 100, 1)


def fuel_efficiency(fuel_records: Sequence[FuelStat]) -> EfficiencyResult:
    """Average consumption in L/100 km, computed per vehicle then pooled.

    Args:
        fuel_records: Fuel records, any order, possibly for several vehicles.

    Returns:
        EfficiencyResult; liters_per_100km is None when no segment is valid.
    """
    by_vehicle: dict[int, list[FuelStat]] = defaultdict(list)
    for record in fuel_records:
        by_vehicle[record.vehicle_id].append(record)

    total_km = 0.0
    total_liters = 0.0
    estimated = False
    for records in by_vehicle.values():
        km, liters, fallback = _vehicle_segment_totals(records)
        total_km += km
        total_liters += liters
        estimated = estimated or (fallback and km > 0)

    value = _liters_per_100km(total_km, total_liters)
    return EfficiencyResult(
        liters_per_100km=value, estimated=estimated and value is not None
    )


def efficiency_trend(fuel_records: Sequence[FuelStat]) -> list[EfficiencyPoint]:
    """Monthly L/100 km from full-to-full segments inside each month.

    Months without a valid segment are omitted. Sorted by month.
    """
    groups: dict[tuple[int, str], list[FuelStat]] = defaultdict(list)
    for record in fuel_records:
        groups[(record.vehicle_id, _month_key(record.date))].append(record)

    totals: dict[str, list[float]] = defaultdict(lambda: [0.0, 0.0])
    for (_, month), records in groups.items():
        if len(records) < 2:
            continue
        km, liters, _ = _segment_totals(records, full_tank_only=True)
        totals[month][0] += km
        totals[month][1] += liters

    points = []
    for month in sorted(totals):
        km, liters = totals[month]
        value = _liters_per_100km(km, liters)
        if value is not None:
            points.append(EfficiencyPoint(month=month, liters_per_100km=value))
    return points


# =============================================================================
# Monthly costs
# =============================================================================


def _trailing_month_keys(now: datetime, months: int) -> list[str]:
    base = now.year * 12 + (now.month - 1)
    keys = []
    for back in range(months - 1, -1, -1):
        index = base - back
        keys.append(f"{index // 12:04d}-{index % 12 + 1:02d}")
    return keys


def monthly_costs(
    fuel_records: Iterable[FuelStat],
    maintenance_records: Iterable[MaintenanceStat],
    *,
    now: datetime,
    months: int = _TRAILING_MONTHS,
) -> list[MonthlyCost]:
    """Fuel and maintenance spend per calendar month, oldest month first.

    Every month in the trailing window appears, zeros included. Records
    outside the window are ignored.
    """
    keys = _trailing_month_keys(now, months)
    fuel = dict.fromkeys(keys, 0.0)
    maintenance = dict.fromkeys(keys, 0.0)

    for record in fuel_records:
        key = _month_key(record.date)
        if key in fuel:
            fuel[key] += record.total_cost
    for record in maintenance_records:
        key = _month_key(record.date)
        if key in maintenance:
            maintenance[key] += record.cost

    return [
        MonthlyCost(
            month=key,
            fuel=round(fuel[key], 2),
            maintenance=round(maintenance[key], 2),
        )
        for key in keys
    ]


# =============================================================================
# Upcoming maintenance
# =============================================================================


def service_interval_days(service_type: str) -> int:
    """Default days between services of this type."""
    lowered = service_type.lower()
    for needle, days in _SERVICE_INTERVALS:
        if needle in lowered:
            return days
    return _DEFAULT_INTERVAL_DAYS


def upcoming_maintenance(
    vehicle: VehicleStat,
    maintenance_records: Iterable[MaintenanceStat],
    *,
    now: datetime,
) -> list[UpcomingMaintenance]:
    """Services due within the horizon, soonest first.

    For each service type, only the most recent record counts. An explicit
    next_service_due wins over the interval estimate. Past-due services and
    services more than 100 days out are excluded.
    """
    latest: dict[str, MaintenanceStat] = {}
    for record in maintenance_records:
        if record.vehicle_id != vehicle.id:
            continue
        current = latest.get(record.service_type)
        if current is None or record.date > current.date:
            latest[record.service_type] = record

    upcoming = []
    for service_type, record in latest.items():
        if record.next_service_due is not None:
            due = record.next_service_due
        else:
            due = record.date + timedelta(days=service_interval_days(service_type))
        if due <= now:
            continue
        days = math.ceil((due - now).total_seconds() / 86400)
        if days > _UPCOMING_HORIZON_DAYS:
            continue
        upcoming.append(
            UpcomingMaintenance(
                vehicle_id=vehicle.id,
                vehicle_name=vehicle.name,
                service_type=service_type,
                due_date=due,
                days_until_due=days,
                estimated_cost=round(record.cost, 2),
            )
        )

    upcoming.sort(key=lambda item: (item.days_until_due, item.service_type))
    return upcoming


# =============================================================================
# Reporting period
# =============================================================================


@dataclass(frozen=True)
class ReportPeriod:
    """Closed interval [start, end] that records must fall in to be counted.

    A trip counts when it starts and ends inside the period; fuel and
    maintenance records count by their date.
    """

    start: datetime
    end: datetime

    def _contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end

    def trips(self, trips: Iterable[TripStat]) -> list[TripStat]:
        return [
            trip
            for trip in trips
            if self._contains(trip.start_time)
            and self._contains(trip.end_time or trip.start_time)
        ]

    def fuel_records(self, records: Iterable[FuelStat]) -> list[FuelStat]:
        return [record for record in records if self._contains(record.date)]

    def maintenance_records(
        self, records: Iterable[MaintenanceStat]
    ) -> list[MaintenanceStat]:
        return [record for record in records if self._contains(record.date)]


def _one_year_before(value: datetime) -> datetime:
    try:
        return value.replace(year=value.year - 1)
    except ValueError:
        # 29 February
        return value.replace(year=value.year - 1, day=28)


def report_period(
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    now: datetime | None = None,
) -> ReportPeriod:
    """Resolve optional bounds into a period.

    A missing end means now; a missing start means one year before now.
    Naive datetimes are read as UTC.

    Raises:
        ValidationError: If start is after end.
    """
    now = now or datetime.now(UTC)
    resolved_end = _as_utc(end) if end is not None else now
    resolved_start = _as_utc(start) if start is not None else _one_year_before(now)
    if resolved_start > resolved_end:
        raise ValidationError.field_error(
            "startDate", "Start date must not be after end date."
        )
    return ReportPeriod(start=resolved_start, end=resolved_end)


# =============================================================================
# Reports
# =============================================================================


def report(
    vehicle: VehicleStat,
    trips: Sequence[TripStat],
    fuel_records: Sequence[FuelStat],
    maintenance_records: Sequence[MaintenanceStat],
    *,
    now: datetime | None = None,
    period: ReportPeriod | None = None,
) -> AnalyticsSummary:
    """Analytics summary for one vehicle.

    Args:
        vehicle: The vehicle.
        trips: Its trips.
        fuel_records: Its fuel records.
        maintenance_records: Its maintenance records.
        now: Reference time for monthly buckets and due dates. Defaults to
            the current UTC time.
        period: When given, only records inside it count towards totals,
            efficiency and cost buckets. Upcoming service always looks at
            the full maintenance history.

    Returns:
        AnalyticsSummary with totals, efficiency, buckets and upcoming service.
    """
    now = now or datetime.now(UTC)
    history = maintenance_records
    if period is not None:
        trips = period.trips(trips)
        fuel_records = period.fuel_records(fuel_records)
        maintenance_records = period.maintenance_records(maintenance_records)

    total_distance = round(sum(trip.distance for trip in trips), 2)
    total_fuel = round(sum(record.total_cost for record in fuel_records), 2)
    total_maintenance = round(sum(record.cost for record in maintenance_records), 2)
    total_cost = round(total_fuel + total_maintenance, 2)
    efficiency = fuel_efficiency(fuel_records)

    summary = AnalyticsSummary(
        vehicle_id=vehicle.id,
        trip_count=len(trips),
        total_distance=total_distance,
        total_fuel_cost=total_fuel,
        total_maintenance_cost=total_maintenance,
        total_cost=total_cost,
        total_liters=round(sum(record.liters for record in fuel_records), 2),
        cost_per_km=(
            round(total_cost / total_distance, 2) if total_distance > 0 else None
        ),
        fuel_efficiency=efficiency.liters_per_100km,
        efficiency_estimated=efficiency.estimated,
        monthly_costs=monthly_costs(fuel_records, maintenance_records, now=now),
        efficiency_trend=efficiency_trend(fuel_records),
        upcoming_maintenance=upcoming_maintenance(vehicle, history, now=now),
    )
    logger.debug(
        "Vehicle %s analytics: %d trips, efficiency=%s",
        vehicle.id,
        summary.trip_count,
        summary.fuel_efficiency,
    )
    return summary


def fleet_report(
    vehicles: Sequence[VehicleStat],
    trips: Sequence[TripStat],
    fuel_records: Sequence[FuelStat],
    maintenance_records: Sequence[MaintenanceStat],
    *,
    now: datetime | None = None,
    period: ReportPeriod | None = None,
) -> FleetSummary:
    """Analytics across several vehicles, plus one summary per vehicle.

    Records whose vehicle is not in ``vehicles`` are ignored. ``period``
    works as in ``report``.
    """
    now = now or datetime.now(UTC)
    ids = {vehicle.id for vehicle in vehicles}
    trips = [t for t in trips if t.vehicle_id in ids]
    fuel_records = [f for f in fuel_records if f.vehicle_id in ids]
    maintenance_records = [m for m in maintenance_records if m.vehicle_id in ids]

    per_vehicle = [
        report(
            vehicle,
            [t for t in trips if t.vehicle_id == vehicle.id],
            [f for f in fuel_records if f.vehicle_id == vehicle.id],
            [m for m in maintenance_records if m.vehicle_id == vehicle.id],
            now=now,
            period=period,
        )
        for vehicle in vehicles
    ]
    if period is not None:
        trips = period.trips(trips)
        fuel_records = period.fuel_records(fuel_records)
        maintenance_records = period.maintenance_records(maintenance_records)

    used = [s for s in per_vehicle if s.trip_count > 0]
    most_used = max(used, key=lambda s: s.trip_count, default=None)
    efficient = [s for s in per_vehicle if s.fuel_efficiency is not None]
    most_efficient = min(
        efficient,
        key=lambda s: s.fuel_efficiency,  # type: ignore[arg-type, return-value]
        default=None,
    )
    upcoming = sorted(
        (item for s in per_vehicle for item in s.upcoming_maintenance),
        key=lambda item: (item.days_until_due, item.vehicle_id, item.service_type),
    )

    return FleetSummary(
        vehicle_count=len(vehicles),
        trip_count=len(trips),
        total_distance=round(sum(t.distance for t in trips), 2),
        total_fuel_cost=round(sum(f.total_cost for f in fuel_records), 2),
        total_maintenance_cost=round(sum(m.cost for m in maintenance_records), 2),
        total_liters=round(sum(f.liters for f in fuel_records), 2),
        average_efficiency=fuel_efficiency(fuel_records).liters_per_100km,
        most_used_vehicle_id=most_used.vehicle_id if most_used else None,
        most_efficient_vehicle_id=most_efficient.vehicle_id if most_efficient else None,
        monthly_costs=monthly_costs(fuel_records, maintenance_records, now=now),
        efficiency_trend=efficiency_trend(fuel_records),
        upcoming_maintenance=upcoming,
        vehicles=per_vehicle,
    )
