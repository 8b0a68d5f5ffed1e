"""
Pydantic models for weather indicators, analysis results, observers and
request/response validation
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class Direction(str, Enum):
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"


class RiskLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CacheType(str, Enum):
    STANDARD = "standard"
    MULTI_DISTANCE_DIRECTIONAL = "multi_distance_directional"


class IndicatorSet(BaseModel):
    """Convective indicators for one point at the current hour.

    Missing, null or non-numeric provider values collapse to the field
    default, so downstream scoring never sees a null.
    """
    cape: float = Field(default=0.0, description="Convective available potential energy (J/kg)")
    lifted_index: float = Field(default=0.0, description="Lifted index")
    convective_inhibition: float = Field(default=0.0, description="Convective inhibition (J/kg)")
    temperature: float = Field(default=20.0, description="2 m temperature (°C)")
    cloud_cover: float = Field(default=0.0, description="Total cloud cover (%)")
    cloud_cover_mid: float = Field(default=0.0, description="Mid-level cloud cover (%)")
    cloud_cover_high: float = Field(default=0.0, description="High-level cloud cover (%)")

    @field_validator("*", mode="before")
    @classmethod
    def default_missing_values(cls, v: Any, info: ValidationInfo) -> Any:
        default = cls.model_fields[info.field_name].default
        if v is None:
            return default
        try:
            value = float(v)
        except (TypeError, ValueError):
            return default
        if math.isnan(value) or math.isinf(value):
            return default
        return value

    @classmethod
    def neutral(cls) -> "IndicatorSet":
        """Indicator set used when no real data could be obtained."""
        return cls()

    @property
    def max_cloud_cover(self) -> float:
        return max(self.cloud_cover, self.cloud_cover_mid, self.cloud_cover_high)


class AnalysisResult(BaseModel):
    """Scores derived from one IndicatorSet."""
    cape_score: float = Field(..., alias="capeScore")
    li_score: float = Field(..., alias="liScore")
    cin_score: float = Field(..., alias="cinScore")
    temp_score: float = Field(..., alias="tempScore")
    cloud_score: float = Field(..., alias="cloudScore")
    total_score: float = Field(..., alias="totalScore")
    is_likely: bool = Field(..., alias="isLikely")
    risk_level: RiskLevel = Field(..., alias="riskLevel")

    class Config:
        populate_by_name = True

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class DirectionSample(BaseModel):
    """One (direction, distance) observation and its score."""
    direction: Direction
    distance_km: float
    latitude: float
    longitude: float
    indicators: IndicatorSet
    analysis: AnalysisResult

    def to_wire(self) -> Dict[str, Any]:
        """Client-facing representation, indicators flattened alongside the analysis."""
        payload: Dict[str, Any] = {
            "coordinates": {"lat": self.latitude, "lon": self.longitude},
            "analysis": self.analysis.to_wire(),
            "distance": self.distance_km,
        }
        payload.update(self.indicators.model_dump())
        return payload


class Observer(BaseModel):
    """A registered device whose surroundings are monitored."""
    token: str = Field(..., min_length=1, description="Push notification token")
    latitude: float
    longitude: float
    last_updated: datetime
    is_active: bool = True


class CacheEntry(BaseModel):
    """Stored cache document."""
    key: str
    data: Any
    timestamp: datetime
    location: Dict[str, float] = Field(default_factory=dict)
    cache_type: CacheType = CacheType.STANDARD


# Request models

class ObserverLocationUpdate(BaseModel):
    """Location report from a client device"""
    token: str = Field(..., min_length=1, description="Push notification token")
    latitude: float = Field(..., ge=-90.0, le=90.0, description="Device latitude")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Device longitude")


class ObserverActiveUpdate(BaseModel):
    """Activity toggle from a client device"""
    token: str = Field(..., min_length=1, description="Push notification token")
    is_active: bool = Field(..., alias="isActive", description="Whether alerts should be delivered")

    class Config:
        populate_by_name = True


# Response models

class SuccessResponse(BaseModel):
    success: bool = True
    data: Any = None
    timestamp: str
    night_mode: Optional[bool] = Field(None, alias="nightMode")

    class Config:
        populate_by_name = True


class CacheStatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, Any]
    timestamp: str


class ObserverResponse(BaseModel):
    success: bool = True
    observer: Dict[str, Any]
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    timestamp: str
