"""
Convective indicator thresholds and score weights.

Each indicator maps through a fixed step function onto a score in [0, 1];
the five scores combine through a weight vector that sums to 1.0. Bands are
inclusive at their lower bound (upper bound for lifted index and CIN, where
smaller means more unstable).
"""

from typing import Dict, List, Tuple

from thundercloud.models import RiskLevel


class ThunderThresholds:
    """Thunder cloud indicator thresholds and classifications."""

    # CAPE bands (J/kg), strongest first
    CAPE_BANDS: List[Tuple[float, float]] = [
        (2500.0, 1.0),
        (1000.0, 0.8),
        (500.0, 0.6),
        (100.0, 0.3),
    ]

    # Lifted index bands (upper bounds), most unstable first
    LIFTED_INDEX_BANDS: List[Tuple[float, float]] = [
        (-6.0, 1.0),
        (-3.0, 0.8),
        (0.0, 0.6),
        (3.0, 0.4),
        (6.0, 0.2),
    ]

    # Convective inhibition bands (upper bounds on magnitude, J/kg)
    CIN_BANDS: List[Tuple[float, float]] = [
        (10.0, 0.3),
        (50.0, 0.1),
    ]

    # Temperature bands (°C)
    TEMPERATURE_BANDS: List[Tuple[float, float]] = [
        (30.0, 1.0),
        (25.0, 0.8),
        (20.0, 0.6),
        (15.0, 0.4),
    ]

    # Cloud cover bands (%), applied to max of total/mid/high
    CLOUD_COVER_BANDS: List[Tuple[float, float]] = [
        (80.0, 1.0),
        (60.0, 0.8),
        (40.0, 0.6),
        (20.0, 0.3),
    ]

    # Score weights (sum to 1.0)
    WEIGHTS: Dict[str, float] = {
        "cape": 0.40,
        "lifted_index": 0.30,
        "convective_inhibition": 0.05,
        "temperature": 0.10,
        "cloud_cover": 0.15,
    }

    # Total score thresholds
    LIKELY_THRESHOLD = 0.5
    RISK_HIGH = 0.5
    RISK_MEDIUM = 0.3
    RISK_LOW = 0.15

    @staticmethod
    def _score_at_least(value: float, bands: List[Tuple[float, float]]) -> float:
        for lower_bound, score in bands:
            if value >= lower_bound:
                return score
        return 0.0

    @staticmethod
    def _score_at_most(value: float, bands: List[Tuple[float, float]]) -> float:
        for upper_bound, score in bands:
            if value <= upper_bound:
                return score
        return 0.0

    @classmethod
    def score_cape(cls, cape: float) -> float:
        """
        Score convective available potential energy.

        Args:
            cape: CAPE in J/kg

        Returns:
            1.0, 0.8, 0.6, 0.3 or 0.0
        """
        return cls._score_at_least(cape, cls.CAPE_BANDS)

    @classmethod
    def score_lifted_index(cls, lifted_index: float) -> float:
        """
        Score the lifted index. Lower values are less stable.

        Args:
            lifted_index: Lifted index (unitless)

        Returns:
            1.0, 0.8, 0.6, 0.4, 0.2 or 0.0
        """
        return cls._score_at_most(lifted_index, cls.LIFTED_INDEX_BANDS)

    @classmethod
    def score_convective_inhibition(cls, cin: float) -> float:
        """
        Score convective inhibition by the magnitude of suppression.

        Providers report CIN either as a positive magnitude or as a negative
        energy; both conventions score identically.

        Args:
            cin: Convective inhibition in J/kg

        Returns:
            0.3, 0.1 or 0.0
        """
        return cls._score_at_most(abs(cin), cls.CIN_BANDS)

    @classmethod
    def score_temperature(cls, temperature: float) -> float:
        """Score surface temperature in °C."""
        return cls._score_at_least(temperature, cls.TEMPERATURE_BANDS)

    @classmethod
    def score_cloud_cover(cls, cloud_cover: float) -> float:
        """Score the dominant cloud layer coverage in percent."""
        return cls._score_at_least(cloud_cover, cls.CLOUD_COVER_BANDS)

    @classmethod
    def classify_risk_level(cls, total_score: float) -> RiskLevel:
        """
        Classify a weighted total score.

        Args:
            total_score: Weighted score in [0, 1]

        Returns:
            Risk classification: high, medium, low, or none
        """
        if total_score >= cls.RISK_HIGH:
            return RiskLevel.HIGH
        elif total_score >= cls.RISK_MEDIUM:
            return RiskLevel.MEDIUM
        elif total_score >= cls.RISK_LOW:
            return RiskLevel.LOW
        else:
            return RiskLevel.NONE

    @classmethod
    def is_likely(cls, total_score: float) -> bool:
        """Check if a total score indicates thunder cloud formation."""
        return total_score >= cls.LIKELY_THRESHOLD

    @classmethod
    def weight_sum(cls) -> float:
        return sum(cls.WEIGHTS.values())
