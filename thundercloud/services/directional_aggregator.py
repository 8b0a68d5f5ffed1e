"""
Per-direction best sample selection.
"""

from typing import Dict, Iterable, List, Optional

from thundercloud.core.coordinates import CHECK_DIRECTIONS
from thundercloud.models import Direction, DirectionSample


class DirectionalAggregator:
    """Reduces distance samples to one best sample per compass direction."""

    def select_best(self, samples: Iterable[DirectionSample]) -> Optional[DirectionSample]:
        """
        Pick the sample with the highest total score.

        Ties keep the nearest distance.
        """
        best: Optional[DirectionSample] = None
        for sample in sorted(samples, key=lambda s: s.distance_km):
            if best is None or sample.analysis.total_score > best.analysis.total_score:
                best = sample
        return best

    def best_per_direction(self, samples: Iterable[DirectionSample]) -> Dict[Direction, DirectionSample]:
        grouped: Dict[Direction, List[DirectionSample]] = {}
        for sample in samples:
            grouped.setdefault(sample.direction, []).append(sample)

        best: Dict[Direction, DirectionSample] = {}
        for direction in CHECK_DIRECTIONS:
            if direction in grouped:
                best[direction] = self.select_best(grouped[direction])
        return best

    def likely_directions(self, best: Dict[Direction, DirectionSample]) -> List[Direction]:
        """Directions, in canonical order, whose best sample is flagged likely."""
        return [
            direction for direction in CHECK_DIRECTIONS
            if direction in best and best[direction].analysis.is_likely
        ]
