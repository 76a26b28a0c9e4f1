"""
Z-score detection against an entity's own history.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .schema import BaselineStats


@dataclass
class ZScoreDetector:
    """
    Z-score detector with an explicit zero-variance policy.

    If the baseline std is 0, an observation equal to the mean scores 0 and
    any other observation scores +/-inf, which clears every finite threshold.
    """

    threshold: float

    def compute(self, observed: float, baseline: BaselineStats) -> float:
        deviation = observed - baseline.mean
        if baseline.std == 0.0:
            if deviation == 0.0:
                return 0.0
            return math.copysign(math.inf, deviation)
        return deviation / baseline.std

    def is_anomalous(self, zscore: float) -> bool:
        return abs(zscore) >= self.threshold
