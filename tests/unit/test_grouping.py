"""
Unit tests for peer-group construction.

Covers the three similarity policies and the properties they must hold:
no self peers, symmetry, exact-match partitions, and the reduction of the
weighted policy to the match-count policy.
"""

import random
import pytest
from itertools import combinations

from linkaudit.anomaly.grouping import (
    NULL,
    SimilarityGrouper,
    attribute_key,
    cluster_key,
    exact_match_groups,
    match_count_groups,
    pair_weights,
    values_match,
    weighted_groups,
)
from linkaudit.core.config import ScoringConfig
from linkaudit.core.exceptions import ConfigurationError
from linkaudit.data.schema import Entity

ATTRIBUTES = ("department", "position", "role", "programming_language", "agilestruct")


def _random_entities(count: int, seed: int = 7):
    rng = random.Random(seed)
    values = ["a", "b", None]
    return [
        Entity(id=i, attributes={name: rng.choice(values) for name in ATTRIBUTES})
        for i in range(1, count + 1)
    ]


def _brute_force_matches(left: Entity, right: Entity, weights=None) -> int:
    weights = weights or {}
    return sum(
        weights.get(name, 1)
        for name in ATTRIBUTES
        if values_match(left.value(name), right.value(name))
    )


def _assert_symmetric(groups):
    for entity_id, group in groups.items():
        assert entity_id not in group.peers
        for peer in group.peers:
            assert entity_id in groups[peer].peers


class TestNullSafeComparison:
    """Missing values are a distinct, comparable value."""

    def test_null_matches_null(self):
        assert values_match(None, None)

    def test_null_never_matches_value(self):
        assert not values_match(None, "eng")
        assert not values_match("eng", None)
        assert not values_match(None, "")
        assert not values_match(None, "NULL")

    def test_values(self):
        assert values_match("eng", "eng")
        assert not values_match("eng", "ops")

    def test_sentinel(self):
        assert attribute_key(None) is NULL
        assert attribute_key("x") == "x"
        assert repr(NULL) == "NULL"

    def test_cluster_key_follows_attribute_order(self, entity_factory):
        entity = entity_factory(1, "eng", None, "backend", "go", "A")

        assert cluster_key(entity, ATTRIBUTES) == ("eng", NULL, "backend", "go", "A")
        assert cluster_key(entity, ("role", "department")) == ("backend", "eng")


class TestExactMatchPolicy:
    """Exact-match grouping partitions entities."""

    def test_identical_entities_are_mutual_peers(self, entity_factory):
        entities = [entity_factory(i, "X", "Y", "Z", "W", "V") for i in range(1, 6)]

        groups = exact_match_groups(entities, ATTRIBUTES)

        assert groups[5].peers == frozenset({1, 2, 3, 4})
        assert all(group.size == 4 for group in groups.values())

    def test_nulls_are_significant(self, entity_factory):
        entities = [
            entity_factory(1, "eng", "dev", None, "go", "A"),
            entity_factory(2, "eng", "dev", None, "go", "A"),
            entity_factory(3, "eng", "dev", "backend", "go", "A"),
        ]

        groups = exact_match_groups(entities, ATTRIBUTES)

        assert groups[1].peers == frozenset({2})
        assert groups[3].peers == frozenset()

    def test_true_partition(self):
        entities = _random_entities(120)

        groups = exact_match_groups(entities, ("department", "role"))

        _assert_symmetric(groups)
        for entity_id, group in groups.items():
            members = group.peers | {entity_id}
            for other in group.peers:
                # transitive: every member sees the same cluster
                assert groups[other].peers | {other} == members
            for other_id, other_group in groups.items():
                if other_id not in members:
                    assert not (other_group.peers | {other_id}) & members

    def test_every_entity_present(self, entity_factory):
        entities = [entity_factory(1, "a", "b", "c", "d", "e")]

        groups = exact_match_groups(entities, ATTRIBUTES)

        assert set(groups) == {1}
        assert groups[1].size == 0


class TestPairWeights:
    """Bucketed pair aggregation."""

    def test_each_unordered_pair_once(self):
        entities = _random_entities(40)

        totals = pair_weights(entities, ATTRIBUTES)

        for low, high in totals:
            assert low < high

    def test_matches_brute_force(self):
        entities = _random_entities(40)
        weights = {"department": 3, "role": 2}

        totals = pair_weights(entities, ATTRIBUTES, weights)

        for left, right in combinations(entities, 2):
            expected = _brute_force_matches(left, right, weights)
            assert totals.get((left.id, right.id), 0) == expected

    def test_result_is_read_only(self):
        totals = pair_weights(_random_entities(5), ATTRIBUTES)

        with pytest.raises(TypeError):
            totals[(1, 2)] = 99


class TestMatchCountPolicy:
    """Threshold policy: symmetric, not transitive."""

    def test_not_transitive(self, entity_factory):
        entities = [
            entity_factory(1, "eng", "dev", "backend", "python", "A"),
            entity_factory(2, "eng", "dev", "backend", "go", "B"),
            entity_factory(3, "ops", "dev", "backend", "go", "C"),
        ]

        groups = match_count_groups(entities, ATTRIBUTES, 3)

        # 1~2 share 3, 2~3 share 3, but 1 and 3 share only 2
        assert groups[1].peers == frozenset({2})
        assert groups[2].peers == frozenset({1, 3})
        assert groups[3].peers == frozenset({2})

    def test_symmetric_and_matches_brute_force(self):
        entities = _random_entities(60)

        groups = match_count_groups(entities, ATTRIBUTES, 3)

        _assert_symmetric(groups)
        by_id = {e.id: e for e in entities}
        for left, right in combinations(entities, 2):
            is_peer = _brute_force_matches(left, right) >= 3
            assert (right.id in groups[left.id].peers) == is_peer
        assert set(groups) == set(by_id)

    def test_identical_entities_never_self_paired(self, entity_factory):
        entities = [entity_factory(1, "a", "b", "c", "d", "e")]

        groups = match_count_groups(entities, ATTRIBUTES, 1)

        assert groups[1].peers == frozenset()

    def test_null_null_counts_as_match(self, entity_factory):
        entities = [
            entity_factory(1, "eng", None, None, "go", "A"),
            entity_factory(2, "ops", None, None, "rust", "B"),
        ]

        groups = match_count_groups(entities, ATTRIBUTES, 2)

        assert groups[1].peers == frozenset({2})


class TestWeightedPolicy:
    """Weighted policy and its reduction to the match-count policy."""

    @pytest.mark.parametrize("threshold", [1, 2, 3, 4, 5])
    def test_unit_weights_reduce_to_match_count(self, threshold):
        entities = _random_entities(60, seed=threshold)
        unit = {name: 1 for name in ATTRIBUTES}

        weighted = weighted_groups(entities, ATTRIBUTES, unit, threshold)
        counted = match_count_groups(entities, ATTRIBUTES, threshold)

        assert dict(weighted) == dict(counted)

    def test_heavy_attribute_tips_the_balance(self, entity_factory):
        weights = {"department": 3}
        entities = [
            entity_factory(1, "eng", "dev", "backend", "python", "A"),
            entity_factory(2, "eng", "qa", "backend", "go", "B"),
            entity_factory(3, "ops", "dev", "backend", "rust", "C"),
        ]

        groups = weighted_groups(entities, ATTRIBUTES, weights, 4)

        # 1-2 share department (3) + role (1) = 4; 1-3 share position + role = 2
        assert groups[1].peers == frozenset({2})
        assert groups[3].peers == frozenset()
        _assert_symmetric(groups)

    def test_non_positive_weight_rejected(self, entity_factory):
        with pytest.raises(ConfigurationError):
            weighted_groups([entity_factory(1, "a", "b", "c", "d", "e")], ATTRIBUTES, {"role": 0}, 2)


class TestSimilarityGrouper:
    """Policy dispatch."""

    def test_dispatch(self, entity_factory):
        entities = [
            entity_factory(1, "eng", "dev", "backend", "python", "A"),
            entity_factory(2, "eng", "dev", "backend", "python", "B"),
        ]

        exact = SimilarityGrouper(ScoringConfig(policy="exact")).group(entities)
        counted = SimilarityGrouper(ScoringConfig(policy="match_count")).group(entities)
        weighted = SimilarityGrouper(
            ScoringConfig(policy="weighted", min_common_weight=5, attribute_weights={"department": 2})
        ).group(entities)

        assert exact[1].size == 0
        assert counted[1].peers == frozenset({2})
        assert weighted[1].peers == frozenset({2})

    def test_empty_entity_set(self, scoring):
        assert dict(SimilarityGrouper(scoring).group([])) == {}
