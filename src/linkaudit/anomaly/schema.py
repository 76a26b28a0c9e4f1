"""
Schema definitions for relation anomaly scoring.

All outputs are deterministic and explainable. Each record carries the counts
or baseline statistics it was derived from.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PeerGroup(BaseModel):
    """
    Entities considered similar to one entity under the active policy.

    Fields:
    - entity_id: the entity the group belongs to
    - peers: ids of its peers (never includes entity_id)
    """

    model_config = ConfigDict(frozen=True)

    entity_id: int
    peers: FrozenSet[int] = Field(default_factory=frozenset)

    @model_validator(mode="after")
    def _no_self_peer(self) -> "PeerGroup":
        if self.entity_id in self.peers:
            raise ValueError(f"entity {self.entity_id} cannot be its own peer")
        return self

    @property
    def size(self) -> int:
        return len(self.peers)


class BaselineStats(BaseModel):
    """
    Baseline statistics for one (entity, key) history.

    Fields:
    - mean: mean occurrence count per history bucket
    - std: dispersion of those counts (may be 0)
    - count: number of history buckets used
    - method: 'population' or 'sample'
    """

    mean: float
    std: float = Field(ge=0.0)
    count: int
    method: str


class AnomalyRecord(BaseModel):
    """
    Peer-group anomaly for one relation.

    Fields:
    - source_id / target_id: the scored relation
    - peer_group_size: number of peers of the source entity
    - cluster_hit_count: peers that also hold the target
    - support_ratio: cluster_hit_count / peer_group_size, in [0.0, 1.0]
    - anomaly_score: 1 - support_ratio, in [0.0, 1.0]
    """

    model_config = ConfigDict(frozen=True)

    source_id: int
    target_id: int
    peer_group_size: Optional[int] = None
    cluster_hit_count: int = Field(ge=0)
    support_ratio: float = Field(ge=0.0, le=1.0)
    anomaly_score: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _score_complements_support(self) -> "AnomalyRecord":
        if not math.isclose(self.anomaly_score, 1.0 - self.support_ratio, abs_tol=1e-12):
            raise ValueError("anomaly_score must equal 1 - support_ratio")
        return self


class TemporalAnomalyRecord(BaseModel):
    """
    Temporal-baseline anomaly for one relation in the evaluation bucket.

    Fields:
    - source_id / target_id / type / created_at: the scored relation
    - z_score: deviation of the bucket count from the entity's own history;
      +/-inf when the history has zero variance and the count differs
    - observed: occurrences of the relation's key in the evaluation bucket
    - baseline_mean / baseline_std: history statistics for that key
    - degree: relations the source entity holds in the lookback window
    """

    model_config = ConfigDict(frozen=True)

    source_id: int
    target_id: int
    type: Optional[str] = None
    created_at: datetime
    z_score: float
    observed: int = Field(ge=0)
    baseline_mean: float
    baseline_std: float = Field(ge=0.0)
    degree: int = Field(ge=0)
