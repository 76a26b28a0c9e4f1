"""
Filtering and deterministic ordering of scored records.

Both orderings are total, so an unchanged snapshot always ranks identically.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from linkaudit.core.config import ScoringConfig

from .detectors import ZScoreDetector
from .schema import AnomalyRecord, TemporalAnomalyRecord


def peer_sort_key(record: AnomalyRecord) -> tuple:
    return (-record.anomaly_score, record.source_id, record.target_id)


def temporal_sort_key(record: TemporalAnomalyRecord) -> tuple:
    return (-abs(record.z_score), record.created_at, record.source_id, record.target_id, record.type or "")


def rank_peer_anomalies(
    records: Iterable[AnomalyRecord],
    scoring: ScoringConfig,
    top_n: Optional[int] = None,
) -> List[AnomalyRecord]:
    """
    Keep relations that are rare within a large enough peer group.

    A record survives when its peer group has at least min_similar members and
    its support ratio is strictly below min_support. Ordered by descending
    anomaly score, then source id, then target id.
    """

    kept = [
        r
        for r in records
        if r.peer_group_size is not None
        and r.peer_group_size >= scoring.min_similar
        and r.support_ratio < scoring.min_support
    ]
    kept.sort(key=peer_sort_key)
    return limit(kept, top_n)


def rank_temporal_anomalies(
    records: Iterable[TemporalAnomalyRecord],
    scoring: ScoringConfig,
    top_n: Optional[int] = None,
) -> List[TemporalAnomalyRecord]:
    """
    Keep records with |z| >= z_threshold, ordered by descending |z| then timestamp.
    """

    detector = ZScoreDetector(threshold=scoring.z_threshold)
    kept = [r for r in records if detector.is_anomalous(r.z_score)]
    kept.sort(key=temporal_sort_key)
    return limit(kept, top_n)


def limit(records: List, top_n: Optional[int]) -> List:
    if top_n is None:
        return records
    if top_n < 0:
        raise ValueError(f"top_n must be non-negative, got {top_n}")
    return records[:top_n]
