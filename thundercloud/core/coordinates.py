"""
Coordinate projection and cache key helpers.

Target points are laid out on a fixed grid around each observer: four
compass directions at three distances. Keys derived from these points are
the basis of both cache storage and cross-observer deduplication, so every
function here is pure and deterministic.
"""

import math
from typing import Tuple, Union

from thundercloud.core.logging import get_logger
from thundercloud.models import Direction

logger = get_logger(__name__)

# Grid checked around every observer
CHECK_DIRECTIONS: Tuple[Direction, ...] = (
    Direction.NORTH,
    Direction.SOUTH,
    Direction.EAST,
    Direction.WEST,
)
CHECK_DISTANCES_KM: Tuple[float, ...] = (50.0, 160.0, 250.0)

KM_PER_DEGREE_LATITUDE = 111.0

# Rounding precision
COORDINATE_PRECISION = 2  # ~1 km, cache keys and stored observer locations
API_COORDINATE_PRECISION = 6  # provider requests
LOG_COORDINATE_PRECISION = 4


def project_coordinate(
    direction: Union[Direction, str],
    latitude: float,
    longitude: float,
    distance_km: float
) -> Tuple[float, float]:
    """
    Project a point a given distance from an origin along a compass direction.

    Args:
        direction: north, south, east or west
        latitude: Origin latitude
        longitude: Origin longitude
        distance_km: Distance to travel in kilometers

    Returns:
        (latitude, longitude) of the projected point. An unknown direction
        yields the origin unchanged.
    """
    latitude_offset = 0.0
    longitude_offset = 0.0

    if direction == Direction.NORTH:
        latitude_offset = distance_km / KM_PER_DEGREE_LATITUDE
    elif direction == Direction.SOUTH:
        latitude_offset = -distance_km / KM_PER_DEGREE_LATITUDE
    elif direction == Direction.EAST:
        longitude_offset = distance_km / (KM_PER_DEGREE_LATITUDE * math.cos(math.radians(latitude)))
    elif direction == Direction.WEST:
        longitude_offset = -distance_km / (KM_PER_DEGREE_LATITUDE * math.cos(math.radians(latitude)))
    else:
        logger.debug(f"Unknown direction '{direction}', returning origin")

    return latitude + latitude_offset, longitude + longitude_offset


def round_coordinate(value: float, precision: int = COORDINATE_PRECISION) -> float:
    """Round half-up at the given number of decimal places."""
    factor = 10 ** precision
    return math.floor(value * factor + 0.5) / factor


def format_coordinate(value: float, precision: int = COORDINATE_PRECISION) -> str:
    """Format a coordinate as a fixed-decimal string."""
    return f"{value:.{precision}f}"


def format_api_coordinate(value: float) -> str:
    """Format a coordinate for a provider request."""
    return format_coordinate(value, API_COORDINATE_PRECISION)


def generate_cache_key(latitude: float, longitude: float) -> str:
    """Low-precision key for a single target coordinate."""
    lat = format_coordinate(round_coordinate(latitude))
    lon = format_coordinate(round_coordinate(longitude))
    return f"weather_{lat}_{lon}"


def generate_directional_cache_key(latitude: float, longitude: float) -> str:
    """Low-precision key for an observer location's full directional grid."""
    lat = format_coordinate(round_coordinate(latitude))
    lon = format_coordinate(round_coordinate(longitude))
    return f"directional_{lat}_{lon}"


def generate_high_precision_key(latitude: float, longitude: float) -> str:
    return f"{format_api_coordinate(latitude)}_{format_api_coordinate(longitude)}"


def format_for_log(latitude: float, longitude: float) -> str:
    return (
        f"({format_coordinate(latitude, LOG_COORDINATE_PRECISION)}, "
        f"{format_coordinate(longitude, LOG_COORDINATE_PRECISION)})"
    )


def distance_label(distance_km: float) -> str:
    """Key used for a distance inside nested directional data, e.g. '50km'."""
    return f"{distance_km:g}km"
