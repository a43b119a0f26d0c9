"""Tests for trips, fuel records and maintenance records.

Tests verify:
- Odometer bookkeeping: trips add their rounded distance, edits adjust by
  the difference, deletes take it back; fuel readings advance it
- Mileage rules for fuel and maintenance records
- Record writes reserved to the user who logged them (or an admin)
- Fuel efficiency reported by the vehicle analytics endpoint, per period
"""

import pytest_asyncio
from httpx import AsyncClient

from app.models import User

_VEHICLES_URL = "/api/v1/vehicles"
_START_MILEAGE = 42000
_MARCH_2026 = {
    "startDate": "2026-03-01T00:00:00Z",
    "endDate": "2026-03-31T23:59:59Z",
}


async def _vehicle_mileage(client: AsyncClient, vehicle_id: int, headers: dict) -> int:
    response = await client.get(f"{_VEHICLES_URL}/{vehicle_id}", headers=headers)
    return response.json()["resource"]["currentMileage"]


def _trip_body(**overrides) -> dict:
    body = {
        "startLocation": "Home",
        "endLocation": "School",
        "distance": 12.6,
        "startTime": "2026-03-01T08:00:00Z",
        "endTime": "2026-03-01T08:30:00Z",
        "purpose": "School run",
    }
    body.update(overrides)
    return body


def _fuel_body(mileage: int, liters: float = 40.0, **overrides) -> dict:
    body = {
        "date": "2026-03-02T10:00:00Z",
        "liters": liters,
        "costPerLiter": "1.799",
        "totalCost": "71.96",
        "mileage": mileage,
        "station": "Shell",
        "fullTank": True,
    }
    body.update(overrides)
    return body


def _maintenance_body(**overrides) -> dict:
    body = {
        "serviceType": "Oil change",
        "description": "5W-30 and filter",
        "cost": "89.50",
        "mileage": _START_MILEAGE,
        "date": "2026-03-03T09:00:00Z",
        "provider": "Corner Garage",
    }
    body.update(overrides)
    return body


@pytest_asyncio.fixture
async def owner_headers(fleet_user: User, bearer) -> dict:
    return bearer(fleet_user)


@pytest_asyncio.fixture
async def vehicle_id(client: AsyncClient, owner_headers: dict) -> int:
    response = await client.post(
        _VEHICLES_URL,
        json={
            "make": "Toyota",
            "model": "Corolla",
            "year": 2019,
            "licensePlate": "ABC-123",
            "description": "Family hatchback",
            "currentMileage": _START_MILEAGE,
        },
        headers=owner_headers,
    )
    assert response.status_code == 201
    return response.json()["resource"]["id"]


# =============================================================================
# Trips
# =============================================================================


class TestTrips:
    """/api/v1/vehicles/{id}/trips."""

    async def test_trip_advances_odometer_by_rounded_distance(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/trips",
            json=_trip_body(distance=12.6),
            headers=owner_headers,
        )

        assert response.status_code == 201
        assert response.headers["location"].endswith(
            f"/vehicles/{vehicle_id}/trips/{response.json()['resource']['id']}"
        )
        assert await _vehicle_mileage(client, vehicle_id, owner_headers) == 42013

    async def test_edit_and_delete_adjust_odometer(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        created = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/trips",
            json=_trip_body(distance=12.6),
            headers=owner_headers,
        )
        trip_id = created.json()["resource"]["id"]
        trip_url = f"{_VEHICLES_URL}/{vehicle_id}/trips/{trip_id}"

        await client.put(trip_url, json={"distance": 20.0}, headers=owner_headers)
        after_edit = await _vehicle_mileage(client, vehicle_id, owner_headers)
        deleted = await client.delete(trip_url, headers=owner_headers)
        after_delete = await _vehicle_mileage(client, vehicle_id, owner_headers)

        assert after_edit == 42020
        assert deleted.status_code == 204
        assert after_delete == _START_MILEAGE

    async def test_end_before_start_rejected(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/trips",
            json=_trip_body(endTime="2026-03-01T07:00:00Z"),
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert "endTime" in response.json()["errors"]

    async def test_trips_listed_newest_first(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        url = f"{_VEHICLES_URL}/{vehicle_id}/trips"
        await client.post(url, json=_trip_body(purpose="First"), headers=owner_headers)
        await client.post(
            url,
            json=_trip_body(
                purpose="Second",
                startTime="2026-03-05T08:00:00Z",
                endTime="2026-03-05T09:00:00Z",
            ),
            headers=owner_headers,
        )

        response = await client.get(url, headers=owner_headers)

        purposes = [r["resource"]["purpose"] for r in response.json()["resources"]]
        assert purposes == ["Second", "First"]
        assert "createTrip" in [link["rel"] for link in response.json()["links"]]

    async def test_trips_of_unreadable_vehicle_are_403(
        self, client: AsyncClient, vehicle_id: int, other_fleet_user: User, bearer
    ) -> None:
        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle_id}/trips", headers=bearer(other_fleet_user)
        )
        assert response.status_code == 403

    async def test_trip_on_missing_vehicle_is_404(
        self, client: AsyncClient, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/9999/trips", json=_trip_body(), headers=owner_headers
        )
        assert response.status_code == 404


class TestFamilyTrips:
    """Family members log trips on each other's vehicles."""

    async def test_only_the_logger_edits_a_trip(
        self, client: AsyncClient, parent_user: User, young_driver: User, bearer
    ) -> None:
        vehicle = await client.post(
            _VEHICLES_URL,
            json={
                "make": "Volvo",
                "model": "V70",
                "year": 2012,
                "licensePlate": "FAM-001",
                "description": "Shared family car",
            },
            headers=bearer(parent_user),
        )
        trips_url = f"{_VEHICLES_URL}/{vehicle.json()['resource']['id']}/trips"

        logged = await client.post(
            trips_url, json=_trip_body(), headers=bearer(young_driver)
        )
        trip_url = f"{trips_url}/{logged.json()['resource']['id']}"
        by_parent = await client.put(
            trip_url, json={"purpose": "Errand"}, headers=bearer(parent_user)
        )
        by_driver = await client.put(
            trip_url, json={"purpose": "Errand"}, headers=bearer(young_driver)
        )

        assert logged.status_code == 201
        assert by_parent.status_code == 403
        assert by_driver.status_code == 200


# =============================================================================
# Fuel records
# =============================================================================


class TestFuelRecords:
    """/api/v1/vehicles/{id}/fuelRecords."""

    async def test_higher_reading_advances_odometer(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/fuelRecords",
            json=_fuel_body(42100),
            headers=owner_headers,
        )

        assert response.status_code == 201
        assert response.json()["resource"]["fullTank"] is True
        assert await _vehicle_mileage(client, vehicle_id, owner_headers) == 42100

    async def test_lower_reading_keeps_odometer(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/fuelRecords",
            json=_fuel_body(41000),
            headers=owner_headers,
        )

        assert response.status_code == 201
        assert await _vehicle_mileage(client, vehicle_id, owner_headers) == 42000

    async def test_reading_below_previous_fuel_record_rejected(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        url = f"{_VEHICLES_URL}/{vehicle_id}/fuelRecords"
        await client.post(url, json=_fuel_body(42100), headers=owner_headers)

        response = await client.post(url, json=_fuel_body(42050), headers=owner_headers)

        assert response.status_code == 422
        assert "mileage" in response.json()["errors"]

    async def test_non_positive_liters_rejected(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/fuelRecords",
            json=_fuel_body(42100, liters=0),
            headers=owner_headers,
        )
        assert "liters" in response.json()["errors"]

    async def test_efficiency_in_analytics(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        url = f"{_VEHICLES_URL}/{vehicle_id}/fuelRecords"
        await client.post(url, json=_fuel_body(42100, 40.0), headers=owner_headers)
        await client.post(url, json=_fuel_body(42600, 35.0), headers=owner_headers)

        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle_id}/analytics",
            params=_MARCH_2026,
            headers=owner_headers,
        )

        body = response.json()
        assert body["fuelEfficiency"] == 7.0
        assert body["efficiencyEstimated"] is False
        assert body["totalLiters"] == 75.0

    async def test_analytics_period_excludes_records_outside_it(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        url = f"{_VEHICLES_URL}/{vehicle_id}/fuelRecords"
        await client.post(url, json=_fuel_body(42100, 40.0), headers=owner_headers)
        await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords",
            json=_maintenance_body(mileage=42100),
            headers=owner_headers,
        )

        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle_id}/analytics",
            params={
                "startDate": "2026-04-01T00:00:00Z",
                "endDate": "2026-04-30T00:00:00Z",
            },
            headers=owner_headers,
        )

        body = response.json()
        assert response.status_code == 200
        assert body["totalLiters"] == 0.0
        assert body["totalMaintenanceCost"] == 0.0

    async def test_analytics_start_after_end_rejected(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle_id}/analytics",
            params={
                "startDate": "2026-05-01T00:00:00Z",
                "endDate": "2026-04-01T00:00:00Z",
            },
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert "startDate" in response.json()["errors"]


# =============================================================================
# Maintenance records
# =============================================================================


class TestMaintenanceRecords:
    """/api/v1/vehicles/{id}/maintenanceRecords."""

    async def test_create_at_current_mileage(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords",
            json=_maintenance_body(),
            headers=owner_headers,
        )

        assert response.status_code == 201
        assert response.json()["resource"]["serviceType"] == "Oil change"

    async def test_mileage_beyond_odometer_rejected(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords",
            json=_maintenance_body(mileage=_START_MILEAGE + 1),
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert "mileage" in response.json()["errors"]

    async def test_due_date_must_follow_service_date(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords",
            json=_maintenance_body(nextServiceDue="2026-03-01T09:00:00Z"),
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert "nextServiceDue" in response.json()["errors"]

    async def test_update_rechecks_due_date(
        self, client: AsyncClient, vehicle_id: int, owner_headers: dict
    ) -> None:
        created = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords",
            json=_maintenance_body(nextServiceDue="2026-06-01T09:00:00Z"),
            headers=owner_headers,
        )
        record_id = created.json()["resource"]["id"]

        response = await client.put(
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords/{record_id}",
            json={"date": "2026-07-01T09:00:00Z"},
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert "nextServiceDue" in response.json()["errors"]

    async def test_other_fleet_user_cannot_log_service(
        self, client: AsyncClient, vehicle_id: int, other_fleet_user: User, bearer
    ) -> None:
        response = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords",
            json=_maintenance_body(),
            headers=bearer(other_fleet_user),
        )
        assert response.status_code == 403

    async def test_admin_deletes_record(
        self,
        client: AsyncClient,
        vehicle_id: int,
        owner_headers: dict,
        admin_user: User,
        bearer,
    ) -> None:
        created = await client.post(
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords",
            json=_maintenance_body(),
            headers=owner_headers,
        )
        url = (
            f"{_VEHICLES_URL}/{vehicle_id}/maintenanceRecords/"
            f"{created.json()['resource']['id']}"
        )

        response = await client.delete(url, headers=bearer(admin_user))

        assert response.status_code == 204
        assert (await client.get(url, headers=owner_headers)).status_code == 404
