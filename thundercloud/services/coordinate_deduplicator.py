"""
Cross-observer coordinate deduplication.

Observers close to each other share most of their target grid once points
are rounded to cache-key precision. Collapsing those points before fetching
is the main lever on provider call volume.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from thundercloud.core.coordinates import (
    CHECK_DIRECTIONS,
    CHECK_DISTANCES_KM,
    generate_cache_key,
    project_coordinate,
)
from thundercloud.core.logging import get_logger
from thundercloud.models import Direction, Observer

logger = get_logger(__name__)


@dataclass(frozen=True)
class ObserverTarget:
    """One observer's interest in a target coordinate."""
    observer_index: int
    direction: Direction
    distance_km: float


@dataclass
class DeduplicationResult:
    coordinates: List[Tuple[float, float]] = field(default_factory=list)
    keys: List[str] = field(default_factory=list)
    reverse_index: Dict[str, List[ObserverTarget]] = field(default_factory=dict)
    total_points: int = 0

    @property
    def unique_count(self) -> int:
        return len(self.coordinates)


def collect_unique_coordinates(
    observers: Sequence[Observer],
    directions: Sequence[Direction] = CHECK_DIRECTIONS,
    distances: Sequence[float] = CHECK_DISTANCES_KM
) -> DeduplicationResult:
    """
    Build the unique target coordinate list for a set of observers.

    Args:
        observers: Observers to project grids around
        directions: Compass directions to check
        distances: Distances (km) to check, in increasing order

    Returns:
        DeduplicationResult with the first-seen representative point for each
        cache key and a reverse index from key to interested observers
    """
    result = DeduplicationResult()
    seen: Dict[str, int] = {}

    for observer_index, observer in enumerate(observers):
        for direction in directions:
            for distance in distances:
                latitude, longitude = project_coordinate(
                    direction, observer.latitude, observer.longitude, distance
                )
                key = generate_cache_key(latitude, longitude)

                if key not in seen:
                    seen[key] = len(result.coordinates)
                    result.coordinates.append((latitude, longitude))
                    result.keys.append(key)

                result.reverse_index.setdefault(key, []).append(
                    ObserverTarget(observer_index, direction, distance)
                )
                result.total_points += 1

    logger.info(
        f"Coordinate dedup: {result.total_points} points -> {result.unique_count} unique "
        f"for {len(observers)} observers"
    )
    return result
