"""
Per-entity temporal baselines.

The lookback window (as_of - lookback_days, as_of] is cut into equal buckets,
bucket 0 being the newest. For each source entity and baseline key, the
occurrence count in every bucket is recorded; buckets 1..N-1 are the history
and bucket 0 is the observation being scored.
"""

from __future__ import annotations

import statistics
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from linkaudit.core.config import ScoringConfig
from linkaudit.data.schema import Relation

from .schema import BaselineStats


def bucket_index(created_at: datetime, as_of: datetime, bucket_hours: int) -> int:
    """
    Index of the bucket holding a timestamp, counting back from as_of.

    A relation at exactly as_of lands in bucket 0; future timestamps get a
    negative index.
    """
    width = timedelta(hours=bucket_hours)
    return (as_of - created_at) // width


def baseline_key(relation: Relation, kind: str) -> Hashable:
    """What counts as one distinct observation for the temporal baseline."""
    if kind == "type":
        return relation.type
    if kind == "target":
        return relation.target_id
    if kind == "type_target":
        return (relation.type, relation.target_id)
    raise ValueError(f"Unknown baseline key: {kind}")


@dataclass(frozen=True)
class EntityHistory:
    """
    Bucketed relation counts of one source entity within the window.

    Fields:
    - source_id: the entity
    - degree: relations in the whole window
    - counts: key -> per-bucket counts, index 0 is the evaluation bucket
    - current: key -> relations that fall in the evaluation bucket
    """

    source_id: int
    degree: int
    counts: Mapping[Hashable, Tuple[int, ...]]
    current: Mapping[Hashable, Tuple[Relation, ...]]

    def observed(self, key: Hashable) -> int:
        return self.counts[key][0]

    def history(self, key: Hashable) -> Tuple[int, ...]:
        return self.counts[key][1:]


def build_histories(
    relations: Iterable[Relation],
    as_of: datetime,
    scoring: ScoringConfig,
) -> Mapping[int, EntityHistory]:
    """
    Fold the relations inside the lookback window into per-entity histories.

    Relations outside the window, including future-dated ones, are ignored.
    """
    buckets = scoring.bucket_count
    counts: Dict[int, Dict[Hashable, List[int]]] = defaultdict(dict)
    current: Dict[int, Dict[Hashable, List[Relation]]] = defaultdict(lambda: defaultdict(list))
    degree: Dict[int, int] = defaultdict(int)

    for relation in relations:
        idx = bucket_index(relation.created_at, as_of, scoring.bucket_hours)
        if idx < 0 or idx >= buckets:
            continue
        key = baseline_key(relation, scoring.baseline_key)
        per_key = counts[relation.source_id].setdefault(key, [0] * buckets)
        per_key[idx] += 1
        degree[relation.source_id] += 1
        if idx == 0:
            current[relation.source_id][key].append(relation)

    return MappingProxyType(
        {
            source_id: EntityHistory(
                source_id=source_id,
                degree=degree[source_id],
                counts=MappingProxyType({k: tuple(v) for k, v in per_entity.items()}),
                current=MappingProxyType({k: tuple(v) for k, v in current[source_id].items()}),
            )
            for source_id, per_entity in sorted(counts.items())
        }
    )


@dataclass
class BucketCountBaseline:
    """
    Mean/std estimator over history bucket counts.

    Zero std is reported as-is; the z-score detector decides what it means.
    Returns None when the history is too short for the chosen method.
    """

    method: str = "population"

    def peek(self, history: Sequence[int]) -> Optional[BaselineStats]:
        needed = 2 if self.method == "sample" else 1
        if len(history) < needed:
            return None
        mean = statistics.fmean(history)
        if self.method == "sample":
            std = statistics.stdev(history)
        elif self.method == "population":
            std = statistics.pstdev(history)
        else:
            raise ValueError(f"Unknown baseline method: {self.method}")
        return BaselineStats(mean=mean, std=std, count=len(history), method=self.method)
