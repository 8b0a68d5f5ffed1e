"""
Thunder Monitoring Service

Wires coordinate projection, fetching, caching, scoring and alerting into
the scheduled jobs (cache refresh, detect and notify, cache cleanup) and
the on-demand reads served over HTTP.

Schedule: refresh and detect every 5 minutes, cleanup daily
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import sentry_sdk

from thundercloud.core.config import Settings, settings as default_settings
from thundercloud.core.coordinates import (
    CHECK_DIRECTIONS,
    CHECK_DISTANCES_KM,
    distance_label,
    format_for_log,
    generate_directional_cache_key,
    project_coordinate,
)
from thundercloud.core.logging import format_token, get_logger
from thundercloud.core.quiet_hours import create_night_mode_response, is_quiet_hours
from thundercloud.models import Direction, DirectionSample, IndicatorSet, Observer
from thundercloud.services.coordinate_deduplicator import collect_unique_coordinates
from thundercloud.services.directional_aggregator import DirectionalAggregator
from thundercloud.services.notification_service import NotificationDispatcher
from thundercloud.services.observer_store import ObserverStore
from thundercloud.services.open_meteo_service import OpenMeteoService
from thundercloud.services.thunder_cloud_analyzer import ThunderCloudAnalyzer
from thundercloud.services.weather_cache import WeatherCache

logger = get_logger(__name__)

QUIET_HOURS_SKIP = {"skipped": True, "reason": "quiet_hours"}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ThunderMonitoringService:
    """Orchestrates the detection pipeline for all registered observers."""

    def __init__(
        self,
        fetcher: OpenMeteoService,
        cache: WeatherCache,
        analyzer: ThunderCloudAnalyzer,
        aggregator: DirectionalAggregator,
        dispatcher: NotificationDispatcher,
        observer_store: ObserverStore,
        config: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.analyzer = analyzer
        self.aggregator = aggregator
        self.dispatcher = dispatcher
        self.observer_store = observer_store
        self.config = config or default_settings
        self.clock = clock
        self.monotonic = monotonic

    def _in_quiet_hours(self) -> bool:
        return is_quiet_hours(self.clock(), self.config)

    async def _eligible_observers(self) -> List[Observer]:
        """Active observers seen within the activity window, most recent first."""
        now = self.clock()
        max_age = timedelta(hours=self.config.observer_active_hours)

        observers = [
            observer for observer in await self.observer_store.list_active()
            if now - observer.last_updated < max_age
        ]
        observers.sort(key=lambda observer: observer.last_updated, reverse=True)
        return observers

    def _build_sample(
        self,
        direction: Direction,
        distance_km: float,
        latitude: float,
        longitude: float,
        indicators: IndicatorSet
    ) -> DirectionSample:
        return DirectionSample(
            direction=direction,
            distance_km=distance_km,
            latitude=latitude,
            longitude=longitude,
            indicators=indicators,
            analysis=self.analyzer.analyze(indicators),
        )

    @staticmethod
    def _nest(samples: List[DirectionSample]) -> Dict[str, Dict[str, Any]]:
        nested: Dict[str, Dict[str, Any]] = {}
        for sample in samples:
            nested.setdefault(sample.direction.value, {})[distance_label(sample.distance_km)] = sample.to_wire()
        return nested

    def _cached_sample(
        self,
        nested: Dict[str, Any],
        direction: Direction,
        distance_km: float
    ) -> Optional[DirectionSample]:
        """Rebuild one sample from a directional entry; the analysis is recomputed."""
        by_distance = nested.get(direction.value)
        if not isinstance(by_distance, dict):
            return None
        entry = by_distance.get(distance_label(distance_km))
        if not isinstance(entry, dict):
            return None

        coordinates = entry.get("coordinates") or {}
        try:
            latitude = float(coordinates["lat"])
            longitude = float(coordinates["lon"])
        except (KeyError, TypeError, ValueError):
            return None

        return self._build_sample(
            direction, distance_km, latitude, longitude, IndicatorSet.model_validate(entry)
        )

    async def _indicators_for(self, latitude: float, longitude: float) -> IndicatorSet:
        """Standard cache entry, else a single-point fetch, else neutral data."""
        cached = await self.cache.get(latitude, longitude)
        if cached is not None:
            return cached

        result = await self.fetcher.fetch_single(latitude, longitude)
        if not result.is_ok:
            logger.warning(f"Neutral data for {format_for_log(latitude, longitude)}: {result.error}")
            return IndicatorSet.neutral()

        await self.cache.set(latitude, longitude, result.value)
        return result.value

    async def _samples_for_observer(self, latitude: float, longitude: float) -> List[DirectionSample]:
        nested = await self.cache.get_directional_data(latitude, longitude) or {}

        samples = []
        for direction in CHECK_DIRECTIONS:
            for distance in CHECK_DISTANCES_KM:
                sample = self._cached_sample(nested, direction, distance)
                if sample is None:
                    target_lat, target_lon = project_coordinate(direction, latitude, longitude, distance)
                    indicators = await self._indicators_for(target_lat, target_lon)
                    sample = self._build_sample(direction, distance, target_lat, target_lon, indicators)
                samples.append(sample)
        return samples

    async def _load_directional_samples(self, latitude: float, longitude: float) -> List[DirectionSample]:
        """Directional cache entry for a location, or a fresh 12-point fetch stored back."""
        nested = await self.cache.get_directional_data(latitude, longitude)
        if nested:
            samples = [
                self._cached_sample(nested, direction, distance)
                for direction in CHECK_DIRECTIONS
                for distance in CHECK_DISTANCES_KM
            ]
            if all(sample is not None for sample in samples):
                return samples

        targets: List[Tuple[Direction, float, float, float]] = []
        for direction in CHECK_DIRECTIONS:
            for distance in CHECK_DISTANCES_KM:
                target_lat, target_lon = project_coordinate(direction, latitude, longitude, distance)
                targets.append((direction, distance, target_lat, target_lon))

        indicators = await self.fetcher.fetch_in_chunks([(lat, lon) for _, _, lat, lon in targets])
        samples = [
            self._build_sample(direction, distance, lat, lon, data)
            for (direction, distance, lat, lon), data in zip(targets, indicators)
        ]
        await self.cache.set_directional_data(latitude, longitude, self._nest(samples))
        return samples

    @staticmethod
    def _is_complete(nested: Dict[str, Dict[str, Any]]) -> bool:
        return all(
            distance_label(distance) in nested.get(direction.value, {})
            for direction in CHECK_DIRECTIONS
            for distance in CHECK_DISTANCES_KM
        )

    async def refresh_cache(self) -> Dict[str, Any]:
        """
        Fetch every eligible observer's grid and store one directional entry per location.

        The time budget is checked between provider chunks. Locations whose
        grid was fully fetched before the budget ran out are still stored.

        Returns:
            Summary of the run, or a skip marker during quiet hours
        """
        if self._in_quiet_hours():
            logger.info("Quiet hours: cache refresh skipped")
            return dict(QUIET_HOURS_SKIP)

        started = self.monotonic()
        observers = await self._eligible_observers()
        summary = {
            "observers": len(observers),
            "total_points": 0,
            "unique_coordinates": 0,
            "locations_cached": 0,
            "budget_exhausted": False,
        }
        if not observers:
            logger.info("Cache refresh: no eligible observers")
            return summary

        dedup = collect_unique_coordinates(observers)
        summary["total_points"] = dedup.total_points
        summary["unique_coordinates"] = dedup.unique_count

        budget = self.config.refresh_job_budget_seconds
        indicators = await self.fetcher.fetch_in_chunks(
            dedup.coordinates,
            should_stop=lambda: self.monotonic() - started >= budget
        )
        if len(indicators) < dedup.unique_count:
            summary["budget_exhausted"] = True
            logger.warning(
                f"Cache refresh: time budget exhausted, {dedup.unique_count - len(indicators)} points not fetched"
            )

        locations: Dict[str, Tuple[float, float, List[DirectionSample]]] = {}
        for key, (latitude, longitude), data in zip(dedup.keys, dedup.coordinates, indicators):
            analysis = self.analyzer.analyze(data)
            for target in dedup.reverse_index[key]:
                observer = observers[target.observer_index]
                location_key = generate_directional_cache_key(observer.latitude, observer.longitude)
                location = locations.setdefault(location_key, (observer.latitude, observer.longitude, []))
                location[2].append(DirectionSample(
                    direction=target.direction,
                    distance_km=target.distance_km,
                    latitude=latitude,
                    longitude=longitude,
                    indicators=data,
                    analysis=analysis,
                ))

        for latitude, longitude, samples in locations.values():
            nested = self._nest(samples)
            if not self._is_complete(nested):
                logger.debug(f"Cache refresh: partial grid for {format_for_log(latitude, longitude)} not stored")
                continue
            if await self.cache.set_directional_data(latitude, longitude, nested):
                summary["locations_cached"] += 1

        logger.info(
            f"Cache refresh completed: {summary['observers']} observers, "
            f"{summary['unique_coordinates']}/{summary['total_points']} unique points, "
            f"{summary['locations_cached']} locations cached"
        )
        return summary

    async def detect_and_notify(self) -> Dict[str, Any]:
        """
        Score every eligible observer's surroundings and alert on likely directions.

        Returns:
            Summary of the run, or a skip marker during quiet hours
        """
        if self._in_quiet_hours():
            logger.info("Quiet hours: detection skipped")
            return dict(QUIET_HOURS_SKIP)

        started = self.monotonic()
        observers = await self._eligible_observers()
        summary = {
            "observers": len(observers),
            "notified": 0,
            "failed": 0,
            "budget_exhausted": False,
        }

        budget = self.config.detect_job_budget_seconds
        for observer in observers:
            if self.monotonic() - started >= budget:
                summary["budget_exhausted"] = True
                logger.warning("Detection: time budget exhausted, remaining observers skipped")
                break

            try:
                samples = await self._samples_for_observer(observer.latitude, observer.longitude)
                best = self.aggregator.best_per_direction(samples)
                likely = self.aggregator.likely_directions(best)
                if not likely:
                    continue

                if await self.dispatcher.notify(observer.token, likely):
                    summary["notified"] += 1
                else:
                    summary["failed"] += 1

            except Exception as e:
                summary["failed"] += 1
                logger.error(f"Detection failed for observer {format_token(observer.token)}: {e}")
                sentry_sdk.capture_exception(e)

        logger.info(
            f"Detection completed: {summary['observers']} observers, "
            f"{summary['notified']} notified, {summary['failed']} failed"
        )
        return summary

    async def cleanup_cache(self) -> int:
        """Remove cache entries past the retention window."""
        try:
            return await self.cache.cleanup(
                retention_hours=self.config.cache_retention_hours,
                batch_size=self.config.cache_cleanup_batch_size,
            )
        except Exception as e:
            logger.error(f"Error in cache cleanup: {e}")
            return 0

    async def get_weather_data(self, latitude: float, longitude: float) -> Dict[str, Any]:
        """
        Best sample per direction around a location.

        Returns:
            {"data": {direction: {...}}, "night_mode": bool}
        """
        if self._in_quiet_hours():
            return {"data": create_night_mode_response(), "night_mode": True}

        samples = await self._load_directional_samples(latitude, longitude)
        best = self.aggregator.best_per_direction(samples)

        data = {}
        for direction, sample in best.items():
            payload = sample.to_wire()
            payload["selectedDistance"] = sample.distance_km
            data[direction.value] = payload
        return {"data": data, "night_mode": False}

    async def get_directional_weather_data(self, latitude: float, longitude: float) -> Dict[str, Any]:
        """Like get_weather_data, with every distance sample listed per direction."""
        if self._in_quiet_hours():
            return {"data": create_night_mode_response(), "night_mode": True}

        samples = await self._load_directional_samples(latitude, longitude)
        best = self.aggregator.best_per_direction(samples)

        data = {}
        for direction, sample in best.items():
            payload = sample.to_wire()
            payload["selectedDistance"] = sample.distance_km
            payload["samples"] = {
                distance_label(s.distance_km): s.to_wire()
                for s in samples if s.direction == direction
            }
            data[direction.value] = payload
        return {"data": data, "night_mode": False}

    async def get_cache_stats(self) -> Dict[str, Any]:
        return await self.cache.get_stats()
