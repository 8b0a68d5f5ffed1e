"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from thundercloud.core.config import Settings
from thundercloud.services.cache_store import CacheStore, CacheStoreError
from thundercloud.services.notification_service import PushChannel


def calm_point(temperature: float = 18.0) -> Dict[str, Any]:
    """Provider point with no convective signal."""
    return {
        "hourly": {
            "time": ["2025-07-15T12:00", "2025-07-15T13:00"],
            "cape": [0.0, 0.0],
            "lifted_index": [8.0, 8.0],
            "convective_inhibition": [200.0, 200.0],
            "cloud_cover": [5.0, 5.0],
            "cloud_cover_mid": [0.0, 0.0],
            "cloud_cover_high": [0.0, 0.0],
        },
        "current": {"temperature_2m": temperature},
    }


def storm_point() -> Dict[str, Any]:
    """Provider point for a developing cumulonimbus."""
    return {
        "hourly": {
            "time": ["2025-07-15T12:00", "2025-07-15T13:00"],
            "cape": [2847.0, 1500.0],
            "lifted_index": [-4.2, -2.0],
            "convective_inhibition": [8.3, 20.0],
            "cloud_cover": [0.0, 30.0],
            "cloud_cover_mid": [0.0, 10.0],
            "cloud_cover_high": [0.0, 0.0],
        },
        "current": {"temperature_2m": 28.5},
    }


class FakeClock:
    """Settable clock for TTL and quiet-hours tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeProvider:
    """Open-Meteo stand-in served through httpx.MockTransport."""

    def __init__(self, point_for: Optional[Callable[[float, float], Dict[str, Any]]] = None):
        self.point_for = point_for or (lambda lat, lon: calm_point())
        self.requests: List[httpx.Request] = []
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": True, "reason": "unavailable"})

        lats = [float(v) for v in request.url.params["latitude"].split(",")]
        lons = [float(v) for v in request.url.params["longitude"].split(",")]
        points = [self.point_for(lat, lon) for lat, lon in zip(lats, lons)]
        return httpx.Response(200, json=points if len(points) > 1 else points[0])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakePushChannel(PushChannel):
    """Push channel that records messages; tokens in ``failing_tokens`` fail."""

    def __init__(self, failing_tokens=()):
        self.messages: List[Dict[str, Any]] = []
        self.failing_tokens = set(failing_tokens)

    async def send(self, message: Dict[str, Any]) -> None:
        if message["token"] in self.failing_tokens:
            raise RuntimeError("delivery rejected")
        self.messages.append(message)


class FailingCacheStore(CacheStore):
    """Store whose every operation fails."""

    async def get(self, key):
        raise CacheStoreError("store unavailable")

    async def put(self, entry):
        raise CacheStoreError("store unavailable")

    async def delete(self, key):
        raise CacheStoreError("store unavailable")

    async def entries(self):
        raise CacheStoreError("store unavailable")


@pytest.fixture
def test_settings() -> Settings:
    """Settings with quiet hours and the scheduler off and FCM configured."""
    return Settings(
        quiet_hours_enabled=False,
        scheduler_enabled=False,
        sentry_dsn=None,
        cache_backend="memory",
        observer_store_backend="memory",
        fcm_project_id="thundercloud-test",
        fcm_access_token="test-access-token",
        open_meteo_requests_per_second=1000,
        open_meteo_requests_per_day=100000,
        open_meteo_rate_limit_buffer=1.0,
    )


@pytest.fixture
def quiet_settings(test_settings) -> Settings:
    """Default 20:00-08:00 Asia/Tokyo quiet-hours window."""
    return test_settings.model_copy(update={"quiet_hours_enabled": True})


@pytest.fixture
def daytime_utc() -> datetime:
    """12:00 in Tokyo."""
    return datetime(2025, 7, 15, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def night_utc() -> datetime:
    """22:00 in Tokyo."""
    return datetime(2025, 7, 15, 13, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(daytime_utc) -> FakeClock:
    return FakeClock(daytime_utc)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def storm_provider() -> FakeProvider:
    return FakeProvider(lambda lat, lon: storm_point())


@pytest.fixture
def push_channel() -> FakePushChannel:
    return FakePushChannel()


@pytest.fixture
def failing_store() -> FailingCacheStore:
    return FailingCacheStore()


@pytest.fixture
def tokyo_coordinates():
    """Coordinates for central Tokyo."""
    return {
        "latitude": 35.68,
        "longitude": 139.77,
    }


@pytest.fixture
def storm_indicators():
    """Indicators for a developing thunderstorm with clear skies overhead."""
    return {
        "cape": 2847.0,
        "lifted_index": -4.2,
        "convective_inhibition": 8.3,
        "temperature": 28.5,
        "cloud_cover": 0.0,
        "cloud_cover_mid": 0.0,
        "cloud_cover_high": 0.0,
    }


@pytest.fixture
def provider_factory():
    """Build a FakeProvider from a (lat, lon) -> point function."""
    return FakeProvider


@pytest.fixture
def point_payloads():
    """Calm and storm provider point builders."""
    return {"calm": calm_point, "storm": storm_point}
