"""
Pytest configuration and shared fixtures.

Provides scoring configurations, entity/relation stores, and a fixed as-of
time so temporal tests never depend on the wall clock.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from linkaudit.core.config import ScoringConfig
from linkaudit.data.schema import Entity, Relation

ATTRIBUTES = ("department", "position", "role", "programming_language", "agilestruct")

AS_OF = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_entity(entity_id: int, *values: Optional[str]) -> Entity:
    """Entity with the default five attributes, in order."""
    return Entity(id=entity_id, attributes=dict(zip(ATTRIBUTES, values)))


def make_relation(
    source_id: int,
    target_id: int,
    type: Optional[str] = None,
    days_ago: int = 0,
    hours_ago: float = 1.0,
    as_of: datetime = AS_OF,
) -> Relation:
    """
    Relation created days_ago whole days plus hours_ago hours before as_of.

    With the default 24h buckets, days_ago is the bucket index as long as
    hours_ago stays below 24.
    """
    created_at = as_of - timedelta(days=days_ago, hours=hours_ago)
    return Relation(source_id=source_id, target_id=target_id, type=type, created_at=created_at)


@pytest.fixture
def scoring() -> ScoringConfig:
    """
    Fixture providing the default scoring configuration.

    Built explicitly (not from the environment) so .env settings never leak
    into tests.
    """
    return ScoringConfig()


@pytest.fixture
def as_of() -> datetime:
    return AS_OF


@pytest.fixture
def entity_factory():
    """Factory fixture: entity_factory(id, dept, pos, role, lang, agile)."""
    return make_entity


@pytest.fixture
def relation_factory():
    """Factory fixture: relation_factory(source, target, type, days_ago=..., hours_ago=...)."""
    return make_relation


@pytest.fixture
def uniform_entity_records()-> List[Dict[str, Any]]:
    """
    Five entities with identical attributes.

    Returns:
        List of raw entity records (dept=X, pos=Y, role=Z, lang=W, agile=V)
    """
    return [
        {
            "id": entity_id,
            "department": "X",
            "position": "Y",
            "role": "Z",
            "programming_language": "W",
            "agilestruct": "V",
        }
        for entity_id in range(1, 6)
    ]


@pytest.fixture
def uniform_relation_records() -> List[Dict[str, Any]]:
    """Entities 1-4 hold target 101; entity 5 holds only target 102."""
    created_at = "2025-02-01T09:00:00Z"
    records = [
        {"source_id": entity_id, "target_id": 101, "type": "grant", "created_at": created_at}
        for entity_id in range(1, 5)
    ]
    records.append({"source_id": 5, "target_id": 102, "type": "grant", "created_at": created_at})
    return records


@pytest.fixture
def team_entity_records() -> List[Dict[str, Any]]:
    """
    Seven entities: five engineers that pairwise share at least three
    attributes, and two sales entities with missing role/language.
    """
    rows = [
        (1, "eng", "dev", "backend", "python", "A"),
        (2, "eng", "dev", "backend", "python", "B"),
        (3, "eng", "dev", "backend", "go", "A"),
        (4, "eng", "dev", "frontend", "python", "A"),
        (5, "eng", "qa", "backend", "python", "A"),
        (6, "sales", "manager", None, None, "C"),
        (7, "sales", "manager", None, None, "D"),
    ]
    return [dict(zip(("id",) + ATTRIBUTES, row)) for row in rows]


@pytest.fixture
def team_relation_records() -> List[Dict[str, Any]]:
    """
    Everyone on the engineering team holds 500; 1-4 also hold 501; entity 5
    alone holds 999. The sales entities hold one private target each.
    """
    created_at = "2025-02-01T09:00:00Z"
    pairs = [(e, 500) for e in range(1, 6)] + [(e, 501) for e in range(1, 5)]
    pairs += [(5, 999), (6, 700), (7, 701)]
    return [
        {"source_id": s, "target_id": t, "type": "access", "created_at": created_at}
        for s, t in pairs
    ]


@pytest.fixture
def team_entity_frame(team_entity_records) -> pd.DataFrame:
    """Team entities as a pandas DataFrame (missing values become NaN/None)."""
    return pd.DataFrame(team_entity_records)


@pytest.fixture
def team_relation_frame(team_relation_records) -> pd.DataFrame:
    """Team relations as a pandas DataFrame with parsed timestamps."""
    df = pd.DataFrame(team_relation_records)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    return df


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
