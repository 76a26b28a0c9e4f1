"""
Data module: record schema, store ingestion, and run snapshots.

Responsible for turning the external entity and relation stores into one
frozen, validated snapshot per run. Pipeline:

    Entity / relation stores (iterables, CSV, JSON, DataFrames)
        ↓
    Ingestion (linkaudit/data/ingestion.py) → raw dicts
        ↓
    Snapshot (linkaudit/data/snapshot.py) → Entity / Relation tuples
        ↓
    Ready for scoring (linkaudit.anomaly)
"""

from linkaudit.data.ingestion import (
    BaseRecordSource,
    CSVRecordSource,
    DataFrameRecordSource,
    IterableRecordSource,
    JSONRecordSource,
    open_source,
)
from linkaudit.data.schema import Entity, Relation
from linkaudit.data.snapshot import Snapshot

__all__ = [
    # Schema
    "Entity",
    "Relation",

    # Ingestion
    "open_source",
    "BaseRecordSource",
    "IterableRecordSource",
    "CSVRecordSource",
    "JSONRecordSource",
    "DataFrameRecordSource",

    # Snapshot
    "Snapshot",
]
