"""
Open-Meteo forecast API service for fetching convective indicators.

Supports a multi-point batched call and a single-point call. Large
coordinate sets are split into chunks processed sequentially with a pause
between chunks; a chunk whose batched call fails is retried point by point.
Every requested coordinate ends up with either real or neutral data.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

import httpx
import sentry_sdk

from thundercloud.core.config import Settings, settings as default_settings
from thundercloud.core.coordinates import format_api_coordinate, format_for_log
from thundercloud.core.logging import get_logger
from thundercloud.models import IndicatorSet
from thundercloud.services.rate_limiter import ProviderRateLimiter, RateLimitExceededError

logger = get_logger(__name__)

T = TypeVar("T")

HOURLY_FIELDS = (
    "cape",
    "lifted_index",
    "convective_inhibition",
    "cloud_cover",
    "cloud_cover_mid",
    "cloud_cover_high",
)
CURRENT_FIELDS = ("temperature_2m",)


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of a provider call: a value, or the reason it failed."""
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def err(cls, reason: str) -> "FetchResult[T]":
        return cls(error=reason)


class MalformedPayloadError(ValueError):
    """Provider response does not have the expected shape."""
    pass


def chunk_list(items: Sequence[T], size: int) -> List[List[T]]:
    """Split a sequence into consecutive chunks of at most ``size`` items."""
    if size <= 0:
        raise ValueError("Chunk size must be positive")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class OpenMeteoService:
    """Service for fetching convective indicators from Open-Meteo."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        rate_limiter: Optional[ProviderRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        """
        Initialize Open-Meteo service.

        Args:
            config: Settings to read endpoint, timeout and batching from
            rate_limiter: Limiter every request passes through
            transport: Optional httpx transport (tests use httpx.MockTransport)
            sleep: Coroutine used for inter-chunk and fallback delays
        """
        self.config = config or default_settings
        self.base_url = self.config.open_meteo_base_url
        self.timeout = self.config.open_meteo_timeout
        self.user_agent = self.config.open_meteo_user_agent
        self.batch_size = self.config.batch_size
        self.batch_delay = self.config.batch_delay_seconds
        self.fallback_delay = self.config.fallback_delay_seconds
        self.rate_limiter = rate_limiter or ProviderRateLimiter(
            requests_per_second=self.config.open_meteo_requests_per_second,
            requests_per_day=self.config.open_meteo_requests_per_day,
            buffer_factor=self.config.open_meteo_rate_limit_buffer,
        )
        self.transport = transport
        self._sleep = sleep or asyncio.sleep

        logger.info("Open-Meteo service initialized")

    def _build_params(self, coordinates: Sequence[Tuple[float, float]]) -> Dict[str, str]:
        return {
            "latitude": ",".join(format_api_coordinate(lat) for lat, _ in coordinates),
            "longitude": ",".join(format_api_coordinate(lon) for _, lon in coordinates),
            "hourly": ",".join(HOURLY_FIELDS),
            "current": ",".join(CURRENT_FIELDS),
            "timezone": "auto",
            "forecast_days": "1",
        }

    async def _request(self, coordinates: Sequence[Tuple[float, float]]) -> Any:
        await self.rate_limiter.wait_if_needed()

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
            max_redirects=3
        ) as client:
            response = await client.get(self.base_url, params=self._build_params(coordinates))
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _first(values: Any) -> Any:
        """Index 0 of an hourly series is the current hour."""
        if isinstance(values, list):
            return values[0] if values else None
        return values

    def _split_points(self, payload: Any) -> List[Dict[str, Any]]:
        """
        Normalize a provider payload into one mapping per requested point.

        Multi-point requests return a list of per-point objects. A single
        object whose hourly series are nested per point is split positionally.
        """
        if isinstance(payload, list):
            if not all(isinstance(point, dict) for point in payload):
                raise MalformedPayloadError("Batch payload contains non-object entries")
            return payload

        if not isinstance(payload, dict) or not isinstance(payload.get("hourly"), dict):
            raise MalformedPayloadError("Payload has no hourly block")

        hourly = payload["hourly"]
        current = payload.get("current") or {}
        cape = hourly.get("cape")
        if not (isinstance(cape, list) and cape and isinstance(cape[0], list)):
            return [payload]

        points = []
        temperatures = current.get("temperature_2m")
        for index in range(len(cape)):
            point_hourly = {}
            for name in HOURLY_FIELDS:
                series = hourly.get(name)
                point_hourly[name] = series[index] if isinstance(series, list) and index < len(series) else None
            if isinstance(temperatures, list):
                temperature = temperatures[index] if index < len(temperatures) else None
            else:
                temperature = temperatures
            points.append({"hourly": point_hourly, "current": {"temperature_2m": temperature}})
        return points

    def _extract_indicators(self, point: Dict[str, Any]) -> IndicatorSet:
        hourly = point.get("hourly") or {}
        current = point.get("current") or {}
        return IndicatorSet.model_validate({
            "cape": self._first(hourly.get("cape")),
            "lifted_index": self._first(hourly.get("lifted_index")),
            "convective_inhibition": self._first(hourly.get("convective_inhibition")),
            "temperature": current.get("temperature_2m"),
            "cloud_cover": self._first(hourly.get("cloud_cover")),
            "cloud_cover_mid": self._first(hourly.get("cloud_cover_mid")),
            "cloud_cover_high": self._first(hourly.get("cloud_cover_high")),
        })

    def _describe_error(self, error: Exception, coordinate_count: int) -> str:
        if isinstance(error, httpx.TimeoutException):
            reason = "timeout"
        elif isinstance(error, httpx.HTTPStatusError):
            reason = f"http error {error.response.status_code}"
        elif isinstance(error, httpx.RequestError):
            reason = "network error"
        elif isinstance(error, RateLimitExceededError):
            reason = "rate limit exceeded"
        elif isinstance(error, ValueError):
            reason = "malformed payload"
        else:
            reason = f"unexpected error ({type(error).__name__})"
        logger.error(f"Open-Meteo {reason} for {coordinate_count} point(s): {error}")
        return reason

    async def fetch_single(self, latitude: float, longitude: float) -> FetchResult[IndicatorSet]:
        """
        Fetch indicators for one point.

        Args:
            latitude: Point latitude
            longitude: Point longitude

        Returns:
            FetchResult carrying an IndicatorSet, or the failure reason
        """
        try:
            payload = await self._request([(latitude, longitude)])
            points = self._split_points(payload)
            if not points:
                raise MalformedPayloadError("Empty payload")
            return FetchResult.ok(self._extract_indicators(points[0]))

        except Exception as e:
            reason = self._describe_error(e, 1)
            if not isinstance(e, RateLimitExceededError):
                sentry_sdk.capture_exception(e)
            return FetchResult.err(reason)

    async def fetch_batch(self, coordinates: Sequence[Tuple[float, float]]) -> FetchResult[List[IndicatorSet]]:
        """
        Fetch indicators for many points in one provider call.

        Results are matched to coordinates by position. A response with fewer
        points than requested is padded with neutral data.

        Args:
            coordinates: (latitude, longitude) pairs

        Returns:
            FetchResult carrying one IndicatorSet per coordinate, or the failure reason
        """
        if not coordinates:
            return FetchResult.ok([])

        try:
            payload = await self._request(coordinates)
            points = self._split_points(payload)
            results = [self._extract_indicators(point) for point in points[:len(coordinates)]]

        except Exception as e:
            reason = self._describe_error(e, len(coordinates))
            if not isinstance(e, RateLimitExceededError):
                sentry_sdk.capture_exception(e)
            return FetchResult.err(reason)

        if len(points) != len(coordinates):
            logger.warning(
                f"Open-Meteo batch size mismatch: expected {len(coordinates)}, got {len(points)}"
            )
        while len(results) < len(coordinates):
            results.append(IndicatorSet.neutral())

        logger.debug(f"Open-Meteo batch fetched {len(results)} points")
        return FetchResult.ok(results)

    async def fetch_fallback(self, coordinates: Sequence[Tuple[float, float]]) -> List[IndicatorSet]:
        """Fetch points one at a time, substituting neutral data for failures."""
        logger.info(f"Fallback: fetching {len(coordinates)} points individually")
        results: List[IndicatorSet] = []

        for index, (latitude, longitude) in enumerate(coordinates):
            if index > 0:
                await self._sleep(self.fallback_delay)

            result = await self.fetch_single(latitude, longitude)
            if result.is_ok:
                results.append(result.value)
            else:
                logger.warning(
                    f"Using neutral data for {format_for_log(latitude, longitude)}: {result.error}"
                )
                results.append(IndicatorSet.neutral())

        return results

    async def fetch_with_fallback(self, coordinates: Sequence[Tuple[float, float]]) -> List[IndicatorSet]:
        """Batched fetch for one chunk, falling back to single-point calls on failure."""
        result = await self.fetch_batch(coordinates)
        if result.is_ok:
            return result.value

        logger.warning(f"Batch fetch failed ({result.error}), falling back to single-point calls")
        return await self.fetch_fallback(coordinates)

    async def fetch_in_chunks(
        self,
        coordinates: Sequence[Tuple[float, float]],
        chunk_size: Optional[int] = None,
        should_stop: Optional[Callable[[], bool]] = None
    ) -> List[IndicatorSet]:
        """
        Fetch any number of points in sequential chunks.

        Args:
            coordinates: (latitude, longitude) pairs
            chunk_size: Points per provider call (defaults to settings.batch_size)
            should_stop: Checked before every chunk after the first; when it
                returns True the remaining chunks are not fetched

        Returns:
            One IndicatorSet per fetched coordinate, in input order. The list
            is shorter than ``coordinates`` only when ``should_stop`` fired.
        """
        chunks = chunk_list(coordinates, chunk_size or self.batch_size)
        results: List[IndicatorSet] = []

        logger.info(f"Fetching {len(coordinates)} points in {len(chunks)} chunk(s)")

        for index, chunk in enumerate(chunks):
            if index > 0:
                if should_stop is not None and should_stop():
                    logger.warning(f"Stopped after {index}/{len(chunks)} chunk(s): {len(results)} points fetched")
                    break
                await self._sleep(self.batch_delay)

            chunk_results = await self.fetch_with_fallback(chunk)
            results.extend(chunk_results)
            logger.info(f"Chunk {index + 1}/{len(chunks)} complete: {len(chunk_results)} points")

        return results
