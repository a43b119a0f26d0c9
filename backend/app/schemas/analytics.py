"""Analytics response schemas.

Mirrors the dataclasses in app.services.analytics; efficiency values are
null when undefined, never NaN.
"""

from datetime import datetime

from app.core.responses import CamelModel


class MonthlyCostDTO(CamelModel):
    month: str
    fuel: float
    maintenance: float


class EfficiencyPointDTO(CamelModel):
    month: str
    liters_per_100km: float


class UpcomingMaintenanceDTO(CamelModel):
    vehicle_id: int
    vehicle_name: str
    service_type: str
    due_date: datetime
    days_until_due: int
    estimated_cost: float


class VehicleAnalyticsDTO(CamelModel):
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
    monthly_costs: list[MonthlyCostDTO]
    efficiency_trend: list[EfficiencyPointDTO]
    upcoming_maintenance: list[UpcomingMaintenanceDTO]


class FleetAnalyticsDTO(CamelModel):
    vehicle_count: int
    trip_count: int
    total_distance: float
    total_fuel_cost: float
    total_maintenance_cost: float
    total_liters: float
    average_efficiency: float | None
    most_used_vehicle_id: int | None
    most_efficient_vehicle_id: int | None
    monthly_costs: list[MonthlyCostDTO]
    efficiency_trend: list[EfficiencyPointDTO]
    upcoming_maintenance: list[UpcomingMaintenanceDTO]
    vehicles: list[VehicleAnalyticsDTO]
