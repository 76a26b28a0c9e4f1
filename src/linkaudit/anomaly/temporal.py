"""
Temporal baseline scoring.

Scores the relations an entity created in the newest bucket against that
entity's own bucket counts over the rest of the lookback window. No peer
grouping is involved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List

from linkaudit.core.config import ScoringConfig
from linkaudit.data.schema import Relation

from .baselines import BucketCountBaseline, build_histories
from .detectors import ZScoreDetector
from .schema import TemporalAnomalyRecord

logger = logging.getLogger(__name__)


@dataclass
class TemporalBaselineScorer:
    """
    Per-entity z-scoring of newly observed relations.

    Notes:
    - Entities with fewer than min_degree relations in the window are skipped.
    - Only keys seen in the evaluation bucket are scored; every relation
      behind such a key gets a record carrying the key's z-score.
    - Thresholding is left to the ranker.
    """

    scoring: ScoringConfig

    def __post_init__(self) -> None:
        self._baseline = BucketCountBaseline(method=self.scoring.baseline_std)
        self._z_detector = ZScoreDetector(threshold=self.scoring.z_threshold)

    def score(self, relations: Iterable[Relation], as_of: datetime) -> List[TemporalAnomalyRecord]:
        histories = build_histories(relations, as_of, self.scoring)

        records: List[TemporalAnomalyRecord] = []
        excluded = 0
        for source_id, history in histories.items():
            if history.degree < self.scoring.min_degree:
                excluded += 1
                continue

            for key, observed_relations in history.current.items():
                baseline = self._baseline.peek(history.history(key))
                if baseline is None:
                    continue
                observed = history.observed(key)
                zscore = self._z_detector.compute(observed, baseline)

                for relation in observed_relations:
                    records.append(
                        TemporalAnomalyRecord(
                            source_id=source_id,
                            target_id=relation.target_id,
                            type=relation.type,
                            created_at=relation.created_at,
                            z_score=zscore,
                            observed=observed,
                            baseline_mean=baseline.mean,
                            baseline_std=baseline.std,
                            degree=history.degree,
                        )
                    )

        if excluded:
            logger.debug(f"Temporal scoring excluded {excluded} entities below min_degree")
        return records
