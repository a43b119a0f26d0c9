"""Tests for the vehicles endpoints.

Tests verify:
- POST /api/v1/vehicles (fleet roles only, Location header)
- GET /api/v1/vehicles (scoped listing, search, links)
- GET/PUT/DELETE /api/v1/vehicles/{id} (404 before 403, odometer rule)
- GET /api/v1/vehicles/analytics and /{id}/analytics
"""

import pytest_asyncio
from httpx import AsyncClient

from app.models import User

_VEHICLES_URL = "/api/v1/vehicles"


def _vehicle_body(**overrides) -> dict:
    body = {
        "make": "Toyota",
        "model": "Corolla",
        "year": 2019,
        "licensePlate": "ABC-123",
        "description": "Family hatchback",
        "currentMileage": 42000,
    }
    body.update(overrides)
    return body


async def _create_vehicle(client: AsyncClient, headers: dict, **overrides) -> dict:
    response = await client.post(
        _VEHICLES_URL, json=_vehicle_body(**overrides), headers=headers
    )
    assert response.status_code == 201
    return response.json()["resource"]


def _names(page: dict) -> list[str]:
    return [r["resource"]["make"] for r in page["resources"]]


@pytest_asyncio.fixture
async def vehicle(client: AsyncClient, fleet_user: User, bearer) -> dict:
    return await _create_vehicle(client, bearer(fleet_user))


# =============================================================================
# Create
# =============================================================================


class TestCreateVehicle:
    """POST /api/v1/vehicles."""

    async def test_create_returns_links_and_location(
        self, client: AsyncClient, fleet_user: User, bearer
    ) -> None:
        response = await client.post(
            _VEHICLES_URL, json=_vehicle_body(), headers=bearer(fleet_user)
        )

        assert response.status_code == 201
        body = response.json()
        assert body["resource"]["userId"] == str(fleet_user.id)
        assert response.headers["location"].endswith(
            f"/vehicles/{body['resource']['id']}"
        )
        assert [link["rel"] for link in body["links"]] == [
            "self",
            "edit",
            "remove",
            "trips",
            "fuelRecords",
            "maintenanceRecords",
            "analytics",
        ]

    async def test_mileage_defaults_to_zero(
        self, client: AsyncClient, fleet_user: User, bearer
    ) -> None:
        body = _vehicle_body()
        del body["currentMileage"]

        response = await client.post(
            _VEHICLES_URL, json=body, headers=bearer(fleet_user)
        )

        assert response.json()["resource"]["currentMileage"] == 0

    async def test_music_user_cannot_create(
        self, client: AsyncClient, music_user: User, bearer
    ) -> None:
        response = await client.post(
            _VEHICLES_URL, json=_vehicle_body(), headers=bearer(music_user)
        )
        assert response.status_code == 403

    async def test_anonymous_is_401(self, client: AsyncClient) -> None:
        response = await client.post(_VEHICLES_URL, json=_vehicle_body())
        assert response.status_code == 401

    async def test_field_validation(
        self, client: AsyncClient, fleet_user: User, bearer
    ) -> None:
        response = await client.post(
            _VEHICLES_URL,
            json=_vehicle_body(year=1800, currentMileage=-5),
            headers=bearer(fleet_user),
        )

        assert response.status_code == 422
        assert {"year", "currentMileage"} <= set(response.json()["errors"])


# =============================================================================
# Read scope
# =============================================================================


class TestVehicleScope:
    """Who can see which vehicle."""

    async def test_owner_reads_vehicle(
        self, client: AsyncClient, vehicle: dict, fleet_user: User, bearer
    ) -> None:
        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle['id']}", headers=bearer(fleet_user)
        )
        assert response.status_code == 200

    async def test_other_user_is_403(
        self, client: AsyncClient, vehicle: dict, other_fleet_user: User, bearer
    ) -> None:
        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle['id']}", headers=bearer(other_fleet_user)
        )
        assert response.status_code == 403

    async def test_missing_vehicle_is_404_for_anyone(
        self, client: AsyncClient, other_fleet_user: User, bearer
    ) -> None:
        response = await client.get(
            f"{_VEHICLES_URL}/9999", headers=bearer(other_fleet_user)
        )
        assert response.status_code == 404

    async def test_admin_reads_any_vehicle(
        self, client: AsyncClient, vehicle: dict, admin_user: User, bearer
    ) -> None:
        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle['id']}", headers=bearer(admin_user)
        )
        assert response.status_code == 200

    async def test_list_is_scoped_to_owner(
        self,
        client: AsyncClient,
        vehicle: dict,  # noqa: ARG002
        other_fleet_user: User,
        bearer,
    ) -> None:
        await _create_vehicle(client, bearer(other_fleet_user), make="Ford")

        response = await client.get(_VEHICLES_URL, headers=bearer(other_fleet_user))

        assert _names(response.json()) == ["Ford"]

    async def test_family_sees_each_others_vehicles(
        self,
        client: AsyncClient,
        parent_user: User,
        young_driver: User,
        other_fleet_user: User,
        bearer,
    ) -> None:
        await _create_vehicle(client, bearer(parent_user), make="Volvo")
        await _create_vehicle(client, bearer(young_driver), make="Mini")
        await _create_vehicle(client, bearer(other_fleet_user), make="Ford")

        response = await client.get(_VEHICLES_URL, headers=bearer(young_driver))

        assert _names(response.json()) == ["Volvo", "Mini"]

    async def test_family_member_reads_but_cannot_edit(
        self, client: AsyncClient, parent_user: User, young_driver: User, bearer
    ) -> None:
        volvo = await _create_vehicle(client, bearer(parent_user), make="Volvo")
        url = f"{_VEHICLES_URL}/{volvo['id']}"

        read = await client.get(url, headers=bearer(young_driver))
        write = await client.put(
            url, json={"description": "Mine now"}, headers=bearer(young_driver)
        )

        assert read.status_code == 200
        assert "edit" not in [link["rel"] for link in read.json()["links"]]
        assert write.status_code == 403

    async def test_search_term_filters(
        self, client: AsyncClient, fleet_user: User, bearer
    ) -> None:
        headers = bearer(fleet_user)
        await _create_vehicle(client, headers, make="Toyota", licensePlate="AAA-111")
        await _create_vehicle(client, headers, make="Ford", licensePlate="ZZZ-999")

        by_make = await client.get(
            _VEHICLES_URL, params={"searchTerm": "toy"}, headers=headers
        )
        by_plate = await client.get(
            _VEHICLES_URL, params={"searchTerm": "zzz"}, headers=headers
        )

        assert _names(by_make.json()) == ["Toyota"]
        assert _names(by_plate.json()) == ["Ford"]

    async def test_search_wildcards_match_literally(
        self, client: AsyncClient, fleet_user: User, bearer
    ) -> None:
        headers = bearer(fleet_user)
        await _create_vehicle(client, headers, make="Toyota", description="50% tint")
        await _create_vehicle(client, headers, make="Ford", description="500 km")
        await _create_vehicle(client, headers, make="Fiat", licensePlate="AB-C1")

        percent = await client.get(
            _VEHICLES_URL, params={"searchTerm": "50%"}, headers=headers
        )
        underscore = await client.get(
            _VEHICLES_URL, params={"searchTerm": "B_C"}, headers=headers
        )

        assert _names(percent.json()) == ["Toyota"]
        assert _names(underscore.json()) == []

    async def test_search_term_carried_on_page_links(
        self, client: AsyncClient, fleet_user: User, bearer
    ) -> None:
        headers = bearer(fleet_user)
        for plate in ("T-1", "T-2", "T-3"):
            await _create_vehicle(client, headers, licensePlate=plate)

        response = await client.get(
            _VEHICLES_URL,
            params={"searchTerm": "toyota", "pageSize": 2},
            headers=headers,
        )

        next_link = next(
            link for link in response.json()["links"] if link["rel"] == "nextPage"
        )
        assert "searchTerm=toyota" in next_link["href"]


# =============================================================================
# Update and delete
# =============================================================================


class TestUpdateVehicle:
    """PUT and DELETE /api/v1/vehicles/{id}."""

    async def test_partial_update(
        self, client: AsyncClient, vehicle: dict, fleet_user: User, bearer
    ) -> None:
        response = await client.put(
            f"{_VEHICLES_URL}/{vehicle['id']}",
            json={"description": "Now with roof box"},
            headers=bearer(fleet_user),
        )

        resource = response.json()["resource"]
        assert resource["description"] == "Now with roof box"
        assert resource["make"] == "Toyota"

    async def test_odometer_cannot_go_back(
        self, client: AsyncClient, vehicle: dict, fleet_user: User, bearer
    ) -> None:
        response = await client.put(
            f"{_VEHICLES_URL}/{vehicle['id']}",
            json={"currentMileage": 100},
            headers=bearer(fleet_user),
        )

        assert response.status_code == 422
        assert "currentMileage" in response.json()["errors"]

    async def test_update_missing_is_404(
        self, client: AsyncClient, fleet_user: User, bearer
    ) -> None:
        response = await client.put(
            f"{_VEHICLES_URL}/9999",
            json={"description": "Nothing here"},
            headers=bearer(fleet_user),
        )
        assert response.status_code == 404

    async def test_delete(
        self, client: AsyncClient, vehicle: dict, fleet_user: User, bearer
    ) -> None:
        url = f"{_VEHICLES_URL}/{vehicle['id']}"

        response = await client.delete(url, headers=bearer(fleet_user))

        assert response.status_code == 204
        assert (await client.get(url, headers=bearer(fleet_user))).status_code == 404

    async def test_other_user_cannot_delete(
        self, client: AsyncClient, vehicle: dict, other_fleet_user: User, bearer
    ) -> None:
        response = await client.delete(
            f"{_VEHICLES_URL}/{vehicle['id']}", headers=bearer(other_fleet_user)
        )
        assert response.status_code == 403


# =============================================================================
# Analytics
# =============================================================================


class TestAnalytics:
    """Vehicle and fleet analytics."""

    async def test_empty_vehicle_analytics(
        self, client: AsyncClient, vehicle: dict, fleet_user: User, bearer
    ) -> None:
        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle['id']}/analytics", headers=bearer(fleet_user)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["tripCount"] == 0
        assert body["costPerKm"] is None
        assert body["fuelEfficiency"] is None
        assert len(body["monthlyCosts"]) == 6

    async def test_vehicle_analytics_follows_read_policy(
        self, client: AsyncClient, vehicle: dict, other_fleet_user: User, bearer
    ) -> None:
        response = await client.get(
            f"{_VEHICLES_URL}/{vehicle['id']}/analytics",
            headers=bearer(other_fleet_user),
        )
        assert response.status_code == 403

    async def test_fleet_analytics_counts_scoped_vehicles(
        self,
        client: AsyncClient,
        vehicle: dict,
        fleet_user: User,
        other_fleet_user: User,
        bearer,
    ) -> None:
        await _create_vehicle(client, bearer(other_fleet_user), make="Ford")

        response = await client.get(
            f"{_VEHICLES_URL}/analytics", headers=bearer(fleet_user)
        )

        body = response.json()
        assert body["vehicleCount"] == 1
        assert [v["vehicleId"] for v in body["vehicles"]] == [vehicle["id"]]
