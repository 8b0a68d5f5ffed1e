"""
Thunder cloud likelihood analyzer.

Maps an IndicatorSet to per-indicator scores, a weighted total, a likelihood
flag and a risk level. Pure: no I/O, no state.
"""

from typing import Any, Mapping, Union

from thundercloud.core.thunder_thresholds import ThunderThresholds
from thundercloud.models import AnalysisResult, IndicatorSet


class ThunderCloudAnalyzer:
    """Scores convective indicators using the five-indicator weight set."""

    def __init__(self, thresholds: type = ThunderThresholds):
        self.thresholds = thresholds

    def analyze(self, indicators: Union[IndicatorSet, Mapping[str, Any]]) -> AnalysisResult:
        """
        Score a set of convective indicators.

        Args:
            indicators: IndicatorSet, or a mapping validated into one

        Returns:
            AnalysisResult with individual scores, total, likelihood and risk level
        """
        if not isinstance(indicators, IndicatorSet):
            indicators = IndicatorSet.model_validate(dict(indicators or {}))

        t = self.thresholds
        cape_score = t.score_cape(indicators.cape)
        li_score = t.score_lifted_index(indicators.lifted_index)
        cin_score = t.score_convective_inhibition(indicators.convective_inhibition)
        temp_score = t.score_temperature(indicators.temperature)
        cloud_score = t.score_cloud_cover(indicators.max_cloud_cover)

        weights = t.WEIGHTS
        total_score = (
            cape_score * weights["cape"]
            + li_score * weights["lifted_index"]
            + cin_score * weights["convective_inhibition"]
            + temp_score * weights["temperature"]
            + cloud_score * weights["cloud_cover"]
        )

        return AnalysisResult(
            cape_score=cape_score,
            li_score=li_score,
            cin_score=cin_score,
            temp_score=temp_score,
            cloud_score=cloud_score,
            total_score=total_score,
            is_likely=t.is_likely(total_score),
            risk_level=t.classify_risk_level(total_score),
        )
