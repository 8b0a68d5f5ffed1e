"""
Time-boxed weather cache.

Freshness (TTL) and storage bound (retention) are independent: an entry
stops being trusted once it is ``ttl`` old, but is only physically removed
by ``cleanup`` once it is older than the retention window.

Store failures never fail a job: reads degrade to misses and writes to
no-ops, so callers fall through to a direct fetch.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from thundercloud.core.config import Settings, settings as default_settings
from thundercloud.core.coordinates import generate_cache_key, generate_directional_cache_key
from thundercloud.core.logging import get_logger
from thundercloud.models import CacheEntry, CacheType, IndicatorSet
from thundercloud.services.cache_store import CacheStore, MemoryCacheStore

logger = get_logger(__name__)

RECENT_WINDOW = timedelta(hours=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherCache:
    """TTL-keyed store of indicator sets and directional grids."""

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        config: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.config = config or default_settings
        self.store = store or MemoryCacheStore()
        self.ttl = timedelta(seconds=self.config.cache_ttl_seconds)
        self.clock = clock

    def _is_fresh(self, entry: CacheEntry) -> bool:
        """Valid while age < ttl; an entry exactly ttl old is a miss."""
        return self.clock() - entry.timestamp < self.ttl

    async def _read(self, key: str, cache_type: CacheType) -> Optional[Any]:
        try:
            entry = await self.store.get(key)
        except Exception as e:
            logger.error(f"Cache read error ({key}): {e}")
            return None

        if entry is None or entry.cache_type != cache_type:
            return None
        if not self._is_fresh(entry):
            logger.debug(f"Cache entry expired: {key}")
            return None

        logger.debug(f"Cache hit: {key}")
        return entry.data

    async def _write(self, key: str, latitude: float, longitude: float, data: Any, cache_type: CacheType) -> bool:
        entry = CacheEntry(
            key=key,
            data=data,
            timestamp=self.clock(),
            location={"latitude": latitude, "longitude": longitude},
            cache_type=cache_type,
        )
        try:
            await self.store.put(entry)
            logger.debug(f"Cache saved: {key}")
            return True
        except Exception as e:
            logger.error(f"Cache write error ({key}): {e}")
            return False

    async def get(self, latitude: float, longitude: float) -> Optional[IndicatorSet]:
        """
        Read the indicator set cached for a coordinate.

        Returns:
            IndicatorSet, or None when absent, expired or unreadable
        """
        data = await self._read(generate_cache_key(latitude, longitude), CacheType.STANDARD)
        if data is None:
            return None
        return IndicatorSet.model_validate(data)

    async def set(self, latitude: float, longitude: float, data: IndicatorSet) -> bool:
        """Store an indicator set for a coordinate, overwriting any previous entry."""
        return await self._write(
            generate_cache_key(latitude, longitude),
            latitude,
            longitude,
            data.model_dump(),
            CacheType.STANDARD,
        )

    async def get_directional_data(self, latitude: float, longitude: float) -> Optional[Dict[str, Any]]:
        """Read the direction -> distance -> sample structure for an observer location."""
        return await self._read(
            generate_directional_cache_key(latitude, longitude),
            CacheType.MULTI_DISTANCE_DIRECTIONAL,
        )

    async def set_directional_data(self, latitude: float, longitude: float, directional_data: Dict[str, Any]) -> bool:
        """
        Store the full directional grid for one observer location in a single entry.

        Args:
            latitude: Observer latitude
            longitude: Observer longitude
            directional_data: {"north": {"50km": {...}, ...}, ...}
        """
        return await self._write(
            generate_directional_cache_key(latitude, longitude),
            latitude,
            longitude,
            directional_data,
            CacheType.MULTI_DISTANCE_DIRECTIONAL,
        )

    async def cleanup(self, retention_hours: Optional[float] = None, batch_size: Optional[int] = None) -> int:
        """
        Delete entries older than the retention window.

        Args:
            retention_hours: Age after which entries are removed
            batch_size: Maximum number of entries removed per call

        Returns:
            Number of entries deleted
        """
        if retention_hours is None:
            retention_hours = self.config.cache_retention_hours
        if batch_size is None:
            batch_size = self.config.cache_cleanup_batch_size

        cutoff = self.clock() - timedelta(hours=retention_hours)
        logger.info(f"Removing cache entries older than {cutoff.isoformat()}")

        deleted = 0
        try:
            expired = [entry for entry in await self.store.entries() if entry.timestamp < cutoff]
            expired.sort(key=lambda entry: entry.timestamp)

            for entry in expired[:batch_size]:
                await self.store.delete(entry.key)
                deleted += 1

        except Exception as e:
            logger.error(f"Cache cleanup error after {deleted} deletions: {e}")
            return deleted

        logger.info(f"Cache cleanup completed: {deleted} entries removed")
        return deleted

    async def get_stats(self) -> Dict[str, Any]:
        """Counts of total, recent (< 1 h) and stale (> retention) entries."""
        now = self.clock()
        retention = timedelta(hours=self.config.cache_retention_hours)
        entries = await self.store.entries()

        return {
            "total_caches": len(entries),
            "recent_caches": sum(1 for e in entries if now - e.timestamp < RECENT_WINDOW),
            "old_caches": sum(1 for e in entries if now - e.timestamp > retention),
            "retention_hours": self.config.cache_retention_hours,
            "cleanup_batch_size": self.config.cache_cleanup_batch_size,
            "ttl_seconds": self.config.cache_ttl_seconds,
            "timestamp": now.isoformat(),
        }
