"""
Anomaly module: peer-group rarity scoring and temporal baseline scoring.

Implements similarity grouping, rarity scoring, temporal baselines, z-score
detection, ranking, and the run engines for both paths.
"""

from .baselines import BucketCountBaseline, EntityHistory, bucket_index, build_histories
from .detectors import ZScoreDetector
from .engine import PeerGroupEngine, TemporalBaselineEngine, find_peer_anomalies, find_temporal_anomalies
from .grouping import (
	NULL,
	SimilarityGrouper,
	attribute_key,
	build_peer_groups,
	cluster_key,
	exact_match_groups,
	match_count_groups,
	pair_weights,
	values_match,
	weighted_groups,
)
from .ranking import rank_peer_anomalies, rank_temporal_anomalies
from .rarity import RarityScorer
from .schema import AnomalyRecord, BaselineStats, PeerGroup, TemporalAnomalyRecord
from .temporal import TemporalBaselineScorer

__all__ = [
	"PeerGroupEngine",
	"TemporalBaselineEngine",
	"find_peer_anomalies",
	"find_temporal_anomalies",
	"AnomalyRecord",
	"TemporalAnomalyRecord",
	"PeerGroup",
	"BaselineStats",
	"NULL",
	"SimilarityGrouper",
	"attribute_key",
	"values_match",
	"cluster_key",
	"exact_match_groups",
	"match_count_groups",
	"weighted_groups",
	"pair_weights",
	"build_peer_groups",
	"RarityScorer",
	"BucketCountBaseline",
	"EntityHistory",
	"bucket_index",
	"build_histories",
	"ZScoreDetector",
	"TemporalBaselineScorer",
	"rank_peer_anomalies",
	"rank_temporal_anomalies",
]
