"""Core types and document models for JSONDb.

The metadata document of every table is a ``TableMetadata``; it round-trips
through the metadata store as plain JSON.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class FieldType(StrEnum):
    """Supported field types."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    STRING = "string"
    DOUBLE = "double"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid field type values."""
        return [t.value for t in cls]

    @property
    def is_numeric(self) -> bool:
        return self in (FieldType.INTEGER, FieldType.DOUBLE)

    def default_value(self) -> Any:
        """Value used for a field that has not been set yet."""
        return 0 if self.is_numeric else None


class RelationType(StrEnum):
    """Relation types between tables."""

    BELONGS_TO = "belongs_to"  # single related row or None
    HAS_MANY = "has_many"  # list of related rows
    HAS_AND_BELONGS_TO_MANY = "has_and_belongs_to_many"  # list of related rows

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid relation type values."""
        return [t.value for t in cls]

    @property
    def is_single(self) -> bool:
        return self is RelationType.BELONGS_TO


class SortDirection(StrEnum):
    """Directions accepted by ``order_by``."""

    ASC = "ASC"
    DESC = "DESC"


class Combinator(StrEnum):
    """How a predicate joins the result of the predicates before it."""

    AND = "and"
    OR = "or"


class RelationDefinition(BaseModel):
    """A directed relation stored on the owning table's metadata."""

    type: RelationType
    local_key: str = Field(..., description="Field on the owning table")
    foreign_key: str = Field(..., description="Field on the target table")

    model_config = {"use_enum_values": True}


class TableMetadata(BaseModel):
    """Per-table metadata document: id counter, schema and relations."""

    last_id: int = 0
    field_types: dict[str, FieldType] = Field(default_factory=dict, alias="schema")
    relations: dict[str, RelationDefinition] = Field(default_factory=dict)

    model_config = {"use_enum_values": True, "populate_by_name": True}

    def to_document(self) -> dict[str, Any]:
        """Serialize for the metadata store."""
        return self.model_dump(mode="json", by_alias=True)


class Predicate(BaseModel):
    """One queued ``where`` condition."""

    combinator: Combinator = Combinator.AND
    field: str
    operator: str = "="
    value: Any = None

    model_config = {"use_enum_values": True}


class LimitClause(BaseModel):
    """Queued ``limit`` arguments."""

    offset: int = 0
    count: int


# === Output types ===


class FieldInfo(BaseModel):
    """Information about a schema field (output format)."""

    name: str
    type: str


class RelationInfo(BaseModel):
    """Information about a declared relation (output format)."""

    target_table: str
    relation_type: str
    local_key: str
    foreign_key: str


class TableInfo(BaseModel):
    """Information about an existing table (output format)."""

    name: str
    fields: list[FieldInfo]
    relations: list[RelationInfo] = Field(default_factory=list)
    record_count: int = 0
    last_id: int = 0


class SchemaInfo(BaseModel):
    """Full database description (output format)."""

    tables: dict[str, TableInfo]
    total_tables: int
    total_fields: int
