"""
Peer-group construction under interchangeable similarity policies.

Policies:
- exact: peers share every configured attribute value (a true partition)
- match_count: peers share at least min_match_count attribute values
- weighted: peers share attributes whose weights sum to at least min_common_weight

Missing values are significant: a missing value matches only another missing
value, never a concrete one. An entity is never its own peer.

The two pairwise policies never compare entities attribute by attribute.
Entities are first bucketed by (attribute, value); each bucket then adds its
attribute weight to every unordered pair it contains, so only pairs sharing at
least one value are ever materialized.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from itertools import combinations
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Set, Tuple

from linkaudit.core.config import ScoringConfig
from linkaudit.core.exceptions import ConfigurationError
from linkaudit.data.schema import Entity

from .schema import PeerGroup

logger = logging.getLogger(__name__)

PeerGroups = Mapping[int, PeerGroup]
PairWeights = Mapping[Tuple[int, int], int]


class _NullValue:
    """Stand-in for a missing attribute value. Equal only to itself."""

    __slots__ = ()
    _instance: Optional["_NullValue"] = None

    def __new__(cls) -> "_NullValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NULL"

    def __reduce__(self) -> str:
        return "NULL"


NULL = _NullValue()


def attribute_key(value: Optional[str]) -> Any:
    """Comparable form of an attribute value: the NULL sentinel for None."""
    return NULL if value is None else value


def values_match(left: Optional[str], right: Optional[str]) -> bool:
    """Null-safe equality: two missing values match, missing never matches a value."""
    return attribute_key(left) == attribute_key(right)


def cluster_key(entity: Entity, attributes: Sequence[str]) -> Tuple[Any, ...]:
    """
    Composite exact-match key.

    One element per configured attribute, in configuration order, each the
    attribute_key() of the entity's value.
    """
    return tuple(attribute_key(entity.value(name)) for name in attributes)


def _freeze(peers: Mapping[int, Iterable[int]]) -> PeerGroups:
    return MappingProxyType(
        {
            entity_id: PeerGroup(entity_id=entity_id, peers=frozenset(members))
            for entity_id, members in sorted(peers.items())
        }
    )


def exact_match_groups(entities: Sequence[Entity], attributes: Sequence[str]) -> PeerGroups:
    """
    Exact-match policy: peers are all other entities with the same cluster key.
    """
    clusters: Dict[Tuple[Any, ...], Set[int]] = defaultdict(set)
    for entity in entities:
        clusters[cluster_key(entity, attributes)].add(entity.id)

    peers: Dict[int, Set[int]] = {}
    for members in clusters.values():
        for entity_id in members:
            peers[entity_id] = members - {entity_id}

    logger.debug(f"Exact-match grouping: {len(entities)} entities in {len(clusters)} clusters")
    return _freeze(peers)


def pair_weights(
    entities: Sequence[Entity],
    attributes: Sequence[str],
    weights: Optional[Mapping[str, int]] = None,
) -> PairWeights:
    """
    Summed weight of matching attributes for every pair sharing at least one value.

    Args:
        entities: Entities to pair up
        attributes: Attributes to compare
        weights: Attribute -> weight; missing attributes weigh 1

    Returns:
        Mapping (low_id, high_id) -> summed weight, one entry per unordered pair
    """
    weights = weights or {}
    buckets: Dict[Tuple[str, Any], Set[int]] = defaultdict(set)
    for entity in entities:
        for name in attributes:
            buckets[(name, attribute_key(entity.value(name)))].add(entity.id)

    totals: Dict[Tuple[int, int], int] = defaultdict(int)
    for (name, _), members in buckets.items():
        if len(members) < 2:
            continue
        weight = weights.get(name, 1)
        for pair in combinations(sorted(members), 2):
            totals[pair] += weight

    return MappingProxyType(dict(totals))


def _threshold_groups(
    entities: Sequence[Entity],
    totals: PairWeights,
    minimum: int,
) -> PeerGroups:
    if minimum < 1:
        raise ConfigurationError(f"Peer threshold must be at least 1, got {minimum}")

    peers: Dict[int, Set[int]] = {entity.id: set() for entity in entities}
    for (low, high), total in totals.items():
        if total >= minimum:
            peers[low].add(high)
            peers[high].add(low)
    return _freeze(peers)


def match_count_groups(
    entities: Sequence[Entity],
    attributes: Sequence[str],
    min_match_count: int,
) -> PeerGroups:
    """
    Threshold policy: peers match on at least min_match_count attributes.

    Symmetric but not transitive, so every entity gets its own peer set.
    """
    totals = pair_weights(entities, attributes)
    logger.debug(f"Match-count grouping: {len(totals)} candidate pairs")
    return _threshold_groups(entities, totals, min_match_count)


def weighted_groups(
    entities: Sequence[Entity],
    attributes: Sequence[str],
    weights: Mapping[str, int],
    min_common_weight: int,
) -> PeerGroups:
    """
    Weighted policy: peers share attributes whose weights sum to at least min_common_weight.
    """
    bad = sorted(name for name in attributes if weights.get(name, 1) <= 0)
    if bad:
        raise ConfigurationError(f"Attribute weights must be positive: {bad}")
    totals = pair_weights(entities, attributes, weights)
    logger.debug(f"Weighted grouping: {len(totals)} candidate pairs")
    return _threshold_groups(entities, totals, min_common_weight)


@dataclass
class SimilarityGrouper:
    """
    Builds peer groups for every entity with the configured policy.

    A run uses exactly one policy; the returned mapping covers every entity,
    with an empty group for entities that have no peers.
    """

    scoring: ScoringConfig

    def group(self, entities: Sequence[Entity]) -> PeerGroups:
        attributes = self.scoring.attributes
        policy = self.scoring.policy

        if policy == "exact":
            return exact_match_groups(entities, attributes)
        if policy == "match_count":
            return match_count_groups(entities, attributes, self.scoring.min_match_count)
        if policy == "weighted":
            return weighted_groups(
                entities, attributes, self.scoring.weights, self.scoring.min_common_weight
            )
        raise ConfigurationError(f"Unknown similarity policy: {policy}")


def build_peer_groups(entities: Sequence[Entity], scoring: ScoringConfig) -> PeerGroups:
    """Convenience wrapper around SimilarityGrouper."""
    return SimilarityGrouper(scoring).group(entities)
