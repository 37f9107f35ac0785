"""Core components for JSONDb."""

from jsondb.core.connection import DatabaseConnection
from jsondb.core.types import (
    FieldType,
    LimitClause,
    Predicate,
    RelationDefinition,
    RelationType,
    TableMetadata,
)

__all__ = [
    "DatabaseConnection",
    "FieldType",
    "RelationType",
    "RelationDefinition",
    "TableMetadata",
    "Predicate",
    "LimitClause",
]
