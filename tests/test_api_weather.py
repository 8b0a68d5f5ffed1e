"""
Tests for the HTTP API.
"""

import httpx
import pytest
import pytest_asyncio

from thundercloud.main import create_app
from thundercloud.services.container import build_container


@pytest.fixture
def container(test_settings, storm_provider, push_channel):
    return build_container(test_settings, provider_transport=storm_provider.transport, push_channel=push_channel)


@pytest_asyncio.fixture
async def client(container):
    app = create_app(container)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestWeatherEndpoints:

    @pytest.mark.asyncio
    async def test_get_weather_data(self, client):
        response = await client.get("/api/v1/getWeatherData", params={"latitude": "35.68", "longitude": "139.77"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "nightMode" not in body
        assert "timestamp" in body
        assert set(body["data"]) == {"north", "south", "east", "west"}
        assert body["data"]["north"]["analysis"]["riskLevel"] == "high"
        assert body["data"]["north"]["selectedDistance"] == 50.0

    @pytest.mark.asyncio
    async def test_get_directional_weather_data(self, client):
        response = await client.get(
            "/api/v1/getDirectionalWeatherData", params={"latitude": "35.68", "longitude": "139.77"}
        )

        assert response.status_code == 200
        samples = response.json()["data"]["east"]["samples"]
        assert set(samples) == {"50km", "160km", "250km"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [
        {},
        {"latitude": "35.68"},
        {"latitude": "abc", "longitude": "139.77"},
        {"latitude": "91", "longitude": "139.77"},
        {"latitude": "35.68", "longitude": "-180.5"},
        {"latitude": "nan", "longitude": "139.77"},
    ])
    async def test_invalid_coordinates(self, client, params):
        response = await client.get("/api/v1/getWeatherData", params=params)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid coordinates"
        assert body["message"]
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_night_mode(self, test_settings, storm_provider, push_channel):
        config = test_settings.model_copy(update={
            "quiet_hours_enabled": True,
            "quiet_hours_start": 0,
            "quiet_hours_end": 24,
        })
        container = build_container(config, provider_transport=storm_provider.transport, push_channel=push_channel)
        app = create_app(container)

        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/v1/getWeatherData", params={"latitude": "35.68", "longitude": "139.77"})

        body = response.json()
        assert body["nightMode"] is True
        assert body["data"]["north"]["temperature"] == 20.0
        assert storm_provider.requests == []

    @pytest.mark.asyncio
    async def test_cache_stats(self, client):
        await client.get("/api/v1/getWeatherData", params={"latitude": "35.68", "longitude": "139.77"})

        response = await client.get("/api/v1/getCacheStats")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["stats"]["total_caches"] == 1
        assert body["stats"]["ttl_seconds"] == 300

    @pytest.mark.asyncio
    async def test_cache_stats_store_failure(self, client, container, failing_store):
        container.cache.store = failing_store

        response = await client.get("/api/v1/getCacheStats")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal server error"
        assert "store unavailable" not in body["message"]


class TestObserverEndpoints:

    @pytest.mark.asyncio
    async def test_register_location(self, client, container):
        response = await client.post(
            "/api/v1/observers/location",
            json={"token": "token-1", "latitude": 35.676234, "longitude": 139.650311},
        )

        assert response.status_code == 200
        observer = response.json()["observer"]
        assert observer["latitude"] == 35.68
        assert observer["is_active"] is True
        assert (await container.observer_store.get("token-1")).longitude == 139.65

    @pytest.mark.asyncio
    async def test_register_invalid_location(self, client):
        response = await client.post(
            "/api/v1/observers/location",
            json={"token": "token-1", "latitude": 120.0, "longitude": 139.65},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"

    @pytest.mark.asyncio
    async def test_toggle_active(self, client, container):
        await client.post("/api/v1/observers/location", json={"token": "token-1", "latitude": 35.68, "longitude": 139.77})

        response = await client.post("/api/v1/observers/active", json={"token": "token-1", "isActive": False})

        assert response.status_code == 200
        assert response.json()["observer"]["is_active"] is False
        assert await container.observer_store.list_active() == []

    @pytest.mark.asyncio
    async def test_toggle_unknown_observer(self, client):
        response = await client.post("/api/v1/observers/active", json={"token": "missing", "isActive": True})

        assert response.status_code == 404
        assert response.json()["error"] == "Observer not found"


class TestServiceEndpoints:

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.json()["status"] == "running"

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["scheduler"] is False

    @pytest.mark.asyncio
    async def test_unknown_route(self, client):
        response = await client.get("/api/v1/doesNotExist")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"
