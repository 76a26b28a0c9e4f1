"""
Canonical record schema for the scoring pipeline.

Every external store is converted to these models before grouping or scoring.

Design rationale:
- Entities carry only the configured similarity attributes
- All timestamps in UTC for consistency
- Models are frozen: a run never mutates its inputs
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Entity(BaseModel):
    """
    A subject whose relations are scored (e.g. a user).

    Attributes:
        id: Integer identifier, unique within a snapshot
        attributes: Configured attribute name -> value, None when missing

    Notes:
        - Attribute values are compared as strings; None is kept as None and
          handled by the grouper's null-safe comparison
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Entity identifier")

    attributes: Dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="Similarity attributes (read-only)"
    )

    @classmethod
    def from_record(cls, record: Mapping[str, Any], attributes: Sequence[str]) -> "Entity":
        """
        Build an Entity from a raw store record.

        Only the configured attributes are kept; an attribute absent from the
        record counts as missing. A dumped Entity (attributes nested under
        "attributes") is accepted as well.
        """
        nested = record.get("attributes")
        if isinstance(nested, Mapping):
            record = {**nested, "id": record.get("id")}
        values: Dict[str, Optional[str]] = {}
        for name in attributes:
            value = record.get(name)
            values[name] = None if value is None else str(value)
        return cls(id=record.get("id"), attributes=values)

    def value(self, attribute: str) -> Optional[str]:
        return self.attributes.get(attribute)


class Relation(BaseModel):
    """
    A timestamped subject -> object link (e.g. a user holding an access grant).

    Attributes:
        source_id: Entity holding the relation
        target_id: Object the relation points at
        type: Optional type label (e.g. "read", "delete")
        created_at: UTC creation timestamp
    """

    model_config = ConfigDict(frozen=True)

    source_id: int = Field(..., description="Source entity id")
    target_id: int = Field(..., description="Target object id")
    type: Optional[str] = Field(default=None, description="Relation type label")
    created_at: datetime = Field(..., description="UTC creation timestamp")

    @field_validator("type", mode="before")
    @classmethod
    def _stringify_type(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @field_validator("created_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are taken as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
