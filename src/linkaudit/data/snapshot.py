"""
Consistent-read snapshot of the entity and relation stores.

A run loads both stores exactly once, up front, into tuples of frozen models.
Every later stage (grouping, scoring, ranking) reads only the snapshot, so a
concurrent writer to the underlying stores can never be observed half-way
through a run.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Sequence, Tuple, TypeVar

from pydantic import ValidationError

from linkaudit.core.config import DEFAULT_ATTRIBUTES
from linkaudit.core.exceptions import DataSourceError, DataValidationError
from linkaudit.data.ingestion import open_source
from linkaudit.data.schema import Entity, Relation

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _drain(source: Any, build: Callable[[dict], T], kind: str) -> List[T]:
    items: List[T] = []
    for idx, record in enumerate(open_source(source).read()):
        try:
            items.append(build(record))
        except ValidationError as e:
            raise DataSourceError(f"Invalid {kind} record #{idx}: {e}") from e
    return items


def _relation_order(relation: Relation) -> tuple:
    return (relation.source_id, relation.created_at, relation.target_id, relation.type or "")


@dataclass(frozen=True)
class Snapshot:
    """
    Frozen copy of both stores for one run.

    Attributes:
        entities: Entities ordered by id
        relations: Relations ordered by (source, timestamp, target, type)
        attributes: Attribute names the entities were projected onto
    """

    entities: Tuple[Entity, ...]
    relations: Tuple[Relation, ...]
    attributes: Tuple[str, ...] = DEFAULT_ATTRIBUTES

    @classmethod
    def load(
        cls,
        entity_source: Any = (),
        relation_source: Any = (),
        attributes: Sequence[str] = DEFAULT_ATTRIBUTES,
    ) -> "Snapshot":
        """
        Drain both stores into a snapshot.

        Args:
            entity_source: Anything open_source() accepts, yielding entity records
            relation_source: Anything open_source() accepts, yielding relation records
            attributes: Entity attributes to keep, in cluster-key order

        Raises:
            DataSourceError: If a store is missing, unreadable, or holds invalid records
            DataValidationError: If two entity records share an id
        """
        attributes = tuple(attributes)
        entities = _drain(entity_source, lambda r: Entity.from_record(r, attributes), "entity")
        relations = _drain(relation_source, Relation.model_validate, "relation")

        seen = set()
        for entity in entities:
            if entity.id in seen:
                raise DataValidationError(f"Duplicate entity id: {entity.id}")
            seen.add(entity.id)

        snapshot = cls(
            entities=tuple(sorted(entities, key=lambda e: e.id)),
            relations=tuple(sorted(relations, key=_relation_order)),
            attributes=attributes,
        )
        logger.debug(
            f"Snapshot taken: {len(snapshot.entities)} entities, {len(snapshot.relations)} relations"
        )
        return snapshot

    @property
    def entity_ids(self) -> Tuple[int, ...]:
        return tuple(entity.id for entity in self.entities)

    @property
    def is_empty(self) -> bool:
        return not self.entities and not self.relations
