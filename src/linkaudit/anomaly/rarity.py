"""
Rarity scoring of relations within peer groups.

For each relation an entity holds, counts how many of its peers hold the same
target. A target none of the peers hold gets support 0 and the maximal score 1.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Set

from linkaudit.data.schema import Relation

from .grouping import PeerGroups
from .schema import AnomalyRecord

logger = logging.getLogger(__name__)


def holdings(relations: Iterable[Relation]) -> Mapping[int, FrozenSet[int]]:
    """Entity id -> targets it holds. Repeated relations to one target count once."""
    held: Dict[int, Set[int]] = defaultdict(set)
    for relation in relations:
        held[relation.source_id].add(relation.target_id)
    return MappingProxyType({source: frozenset(targets) for source, targets in held.items()})


def holders(relations: Iterable[Relation]) -> Mapping[int, FrozenSet[int]]:
    """Target id -> entities holding it."""
    held: Dict[int, Set[int]] = defaultdict(set)
    for relation in relations:
        held[relation.target_id].add(relation.source_id)
    return MappingProxyType({target: frozenset(sources) for target, sources in held.items()})


def support(peer_group_size: int, cluster_hit_count: int) -> float:
    return cluster_hit_count / peer_group_size


@dataclass
class RarityScorer:
    """
    Scores every held relation against the holder's peer group.

    Produces one AnomalyRecord per (entity, target) for entities with at least
    one peer. Thresholds are left to the ranker.
    """

    def score(self, peer_groups: PeerGroups, relations: Iterable[Relation]) -> List[AnomalyRecord]:
        relations = tuple(relations)
        held_by_entity = holdings(relations)
        held_by_target = holders(relations)

        records: List[AnomalyRecord] = []
        skipped = 0
        for entity_id, targets in held_by_entity.items():
            group = peer_groups.get(entity_id)
            if group is None or group.size == 0:
                skipped += 1
                continue

            for target_id in sorted(targets):
                hits = len(group.peers & held_by_target[target_id])
                ratio = support(group.size, hits)
                records.append(
                    AnomalyRecord(
                        source_id=entity_id,
                        target_id=target_id,
                        peer_group_size=group.size,
                        cluster_hit_count=hits,
                        support_ratio=ratio,
                        anomaly_score=1.0 - ratio,
                    )
                )

        if skipped:
            logger.debug(f"Rarity scoring skipped {skipped} entities without peers")
        return records
