"""
API endpoints for directional thunder cloud data
"""

import math
from datetime import datetime, timezone
from typing import Optional, Tuple

import sentry_sdk
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from thundercloud.core.logging import get_logger
from thundercloud.models import CacheStatsResponse, SuccessResponse
from thundercloud.services.thunder_monitoring_service import ThunderMonitoringService

logger = get_logger(__name__)

router = APIRouter(
    responses={
        400: {"description": "Invalid coordinates"},
        500: {"description": "Internal server error"}
    }
)


def get_monitoring_service(request: Request) -> ThunderMonitoringService:
    return request.app.state.container.monitoring_service


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _invalid(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"error": "Invalid coordinates", "message": message})


def parse_coordinates(latitude: Optional[str], longitude: Optional[str]) -> Tuple[float, float]:
    """
    Parse query-string coordinates.

    Raises:
        HTTPException: 400 when missing, non-numeric or out of range
    """
    if latitude is None or longitude is None or latitude == "" or longitude == "":
        raise _invalid("latitude and longitude are required")

    try:
        lat = float(latitude)
        lon = float(longitude)
    except ValueError:
        raise _invalid("latitude and longitude must be numbers")

    if math.isnan(lat) or math.isnan(lon):
        raise _invalid("latitude and longitude must be numbers")
    if not -90.0 <= lat <= 90.0:
        raise _invalid("latitude must be between -90 and 90")
    if not -180.0 <= lon <= 180.0:
        raise _invalid("longitude must be between -180 and 180")

    return lat, lon


def _envelope(result: dict) -> dict:
    response = SuccessResponse(
        data=result["data"],
        timestamp=_now_iso(),
        night_mode=True if result.get("night_mode") else None,
    )
    return response.model_dump(by_alias=True, exclude_none=True)


@router.get("/getWeatherData", summary="Best sample per direction")
async def get_weather_data(
    latitude: Optional[str] = Query(None, description="Observer latitude"),
    longitude: Optional[str] = Query(None, description="Observer longitude"),
    service: ThunderMonitoringService = Depends(get_monitoring_service)
):
    """Return the highest-scoring sample in each compass direction around a location."""
    lat, lon = parse_coordinates(latitude, longitude)

    try:
        result = await service.get_weather_data(lat, lon)
    except Exception as e:
        logger.error(f"Failed to get weather data: {e}")
        sentry_sdk.capture_exception(e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Internal server error", "message": "Failed to fetch weather data"}
        )

    return _envelope(result)


@router.get("/getDirectionalWeatherData", summary="All distance samples per direction")
async def get_directional_weather_data(
    latitude: Optional[str] = Query(None, description="Observer latitude"),
    longitude: Optional[str] = Query(None, description="Observer longitude"),
    service: ThunderMonitoringService = Depends(get_monitoring_service)
):
    """Like /getWeatherData, with every 50/160/250 km sample listed under `samples`."""
    lat, lon = parse_coordinates(latitude, longitude)

    try:
        result = await service.get_directional_weather_data(lat, lon)
    except Exception as e:
        logger.error(f"Failed to get directional weather data: {e}")
        sentry_sdk.capture_exception(e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Internal server error", "message": "Failed to fetch directional weather data"}
        )

    return _envelope(result)


@router.get("/getCacheStats", response_model=CacheStatsResponse)
async def get_cache_stats(service: ThunderMonitoringService = Depends(get_monitoring_service)):
    try:
        stats = await service.get_cache_stats()
    except Exception as e:
        logger.error(f"Failed to get cache stats: {e}")
        sentry_sdk.capture_exception(e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Internal server error", "message": "Failed to read cache statistics"}
        )

    return CacheStatsResponse(stats=stats, timestamp=_now_iso())
