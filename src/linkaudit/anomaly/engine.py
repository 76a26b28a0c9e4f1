"""
Run orchestration for both scoring paths.

Peer-group path:  snapshot -> SimilarityGrouper -> RarityScorer -> rank_peer_anomalies
Temporal path:    snapshot -> TemporalBaselineScorer -> rank_temporal_anomalies

Configuration is validated before any store is read, and each run works only
on its snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from linkaudit.core.config import ScoringConfig, validate_scoring
from linkaudit.core.exceptions import ConfigurationError
from linkaudit.core.logging_config import setup_logging
from linkaudit.data.snapshot import Snapshot

from .grouping import PeerGroups, SimilarityGrouper
from .ranking import rank_peer_anomalies, rank_temporal_anomalies
from .rarity import RarityScorer
from .schema import AnomalyRecord, TemporalAnomalyRecord
from .temporal import TemporalBaselineScorer

logger = logging.getLogger(__name__)

ScoringInput = Union[ScoringConfig, Mapping[str, Any], None]


def _resolve_as_of(as_of: Optional[datetime]) -> datetime:
    if as_of is None:
        return datetime.now(timezone.utc)
    if as_of.tzinfo is None:
        return as_of.replace(tzinfo=timezone.utc)
    return as_of.astimezone(timezone.utc)


@dataclass
class PeerGroupEngine:
    """
    Flags relations that are rare among the holder's peers.

    Notes:
    - One similarity policy per run, taken from the scoring config.
    - Entities without peers produce no records.
    """

    scoring: ScoringInput = None
    top_n: Optional[int] = None

    def __post_init__(self) -> None:
        setup_logging()
        self.scoring = validate_scoring(self.scoring)
        if self.top_n is not None and self.top_n < 0:
            raise ConfigurationError(f"top_n must be non-negative, got {self.top_n}")
        self._grouper = SimilarityGrouper(self.scoring)
        self._scorer = RarityScorer()

    def peer_groups(self, snapshot: Snapshot) -> PeerGroups:
        missing = [name for name in self.scoring.attributes if name not in snapshot.attributes]
        if missing:
            raise ConfigurationError(f"Snapshot was not loaded with attributes {missing}")
        return self._grouper.group(snapshot.entities)

    def run(self, snapshot: Snapshot) -> List[AnomalyRecord]:
        groups = self.peer_groups(snapshot)
        scored = self._scorer.score(groups, snapshot.relations)
        ranked = rank_peer_anomalies(scored, self.scoring, top_n=self.top_n)

        logger.info(
            f"Peer-group run ({self.scoring.policy}): {len(snapshot.entities)} entities, "
            f"{len(snapshot.relations)} relations, {len(scored)} scored, {len(ranked)} flagged"
        )
        return ranked


@dataclass
class TemporalBaselineEngine:
    """
    Flags relations that deviate from the holder's own recent history.
    """

    scoring: ScoringInput = None
    top_n: Optional[int] = None

    def __post_init__(self) -> None:
        setup_logging()
        self.scoring = validate_scoring(self.scoring)
        if self.top_n is not None and self.top_n < 0:
            raise ConfigurationError(f"top_n must be non-negative, got {self.top_n}")
        self._scorer = TemporalBaselineScorer(self.scoring)

    def run(self, snapshot: Snapshot, as_of: Optional[datetime] = None) -> List[TemporalAnomalyRecord]:
        as_of = _resolve_as_of(as_of)
        scored = self._scorer.score(snapshot.relations, as_of)
        ranked = rank_temporal_anomalies(scored, self.scoring, top_n=self.top_n)

        logger.info(
            f"Temporal run as of {as_of.isoformat()}: {len(snapshot.relations)} relations, "
            f"{len(scored)} scored, {len(ranked)} flagged"
        )
        return ranked


def find_peer_anomalies(
    entities: Any,
    relations: Any,
    scoring: ScoringInput = None,
    top_n: Optional[int] = None,
) -> List[AnomalyRecord]:
    """
    Score relations against peer groups in one call.

    Args:
        entities: Entity store (iterable of mappings, DataFrame, CSV/JSON path, or record source)
        relations: Relation store, same accepted forms
        scoring: ScoringConfig or mapping of options; global default if None
        top_n: Keep only the first n ranked records

    Returns:
        Flagged AnomalyRecords in rank order

    Raises:
        ConfigurationError: Before reading anything, if the config is invalid
        DataSourceError: If a store is missing or unreadable
    """
    engine = PeerGroupEngine(scoring=scoring, top_n=top_n)
    snapshot = Snapshot.load(entities, relations, attributes=engine.scoring.attributes)
    return engine.run(snapshot)


def find_temporal_anomalies(
    relations: Any,
    scoring: ScoringInput = None,
    as_of: Optional[datetime] = None,
    top_n: Optional[int] = None,
) -> List[TemporalAnomalyRecord]:
    """
    Score newly observed relations against each source's own history in one call.

    Args:
        relations: Relation store (iterable of mappings, DataFrame, CSV/JSON path, or record source)
        scoring: ScoringConfig or mapping of options; global default if None
        as_of: End of the lookback window; now (UTC) if None
        top_n: Keep only the first n ranked records
    """
    engine = TemporalBaselineEngine(scoring=scoring, top_n=top_n)
    snapshot = Snapshot.load(relation_source=relations, attributes=engine.scoring.attributes)
    return engine.run(snapshot, as_of=as_of)
