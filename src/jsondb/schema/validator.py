"""Pass/fail checks on tables, fields, values and relations.

Every check returns normally on success and raises a typed error on failure,
so callers can validate everything up front and only then mutate state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from jsondb.core.types import FieldType, RelationType, TableMetadata
from jsondb.exceptions import (
    FieldNotFoundError,
    InvalidFieldTypeError,
    InvalidRelationTypeError,
    RelationNotFoundError,
    TableNotFoundError,
    ValueTypeError,
)

if TYPE_CHECKING:
    from jsondb.storage.documents import MetadataStore, RowStore

# Accepted spellings that map onto a canonical field type
TYPE_ALIASES = {"float": FieldType.DOUBLE.value}


def normalize_type(field_type: Any) -> str:
    """Lowercase a declared type name and resolve aliases."""
    if not isinstance(field_type, str):
        raise InvalidFieldTypeError(field_type)
    name = field_type.strip().lower()
    return TYPE_ALIASES.get(name, name)


def normalize_schema(fields: Mapping[str, Any]) -> dict[str, str]:
    """Return a copy of ``fields`` with every type normalised."""
    return {name: normalize_type(field_type) for name, field_type in fields.items()}


def value_matches(field_type: str, value: Any) -> bool:
    """Check the dynamic type of ``value`` against a declared field type.

    ``None`` is the null marker and fits every type. ``bool`` is not
    accepted as a number even though it subclasses ``int``.
    """
    if value is None:
        return True

    field_type = FieldType(field_type)
    if field_type == FieldType.BOOLEAN:
        return isinstance(value, bool)
    elif field_type == FieldType.STRING:
        return isinstance(value, str)
    elif isinstance(value, bool):
        return False
    elif field_type == FieldType.INTEGER:
        return isinstance(value, int)
    else:
        return isinstance(value, (int, float))


class Validator:
    """Validates table, field, value and relation references."""

    def __init__(self, metadata_store: MetadataStore, row_store: RowStore) -> None:
        self._metadata = metadata_store
        self._rows = row_store

    def table_exists(self, name: str) -> None:
        """Both documents of the table must be present."""
        if not (self._metadata.exists(name) and self._rows.exists(name)):
            raise TableNotFoundError(name, self._metadata.names())

    def types_valid(self, types: Iterable[Any]) -> None:
        for field_type in types:
            if field_type not in FieldType.values():
                raise InvalidFieldTypeError(field_type)

    def field_exists(
        self, table: str, field: str, metadata: TableMetadata | None = None
    ) -> None:
        metadata = metadata or self._metadata.get(table)
        if field not in metadata.field_types:
            raise FieldNotFoundError(field, table, list(metadata.field_types))

    def fields_exist(
        self, table: str, fields: Iterable[str], metadata: TableMetadata | None = None
    ) -> None:
        metadata = metadata or self._metadata.get(table)
        for field in fields:
            self.field_exists(table, field, metadata)

    def type_matches(
        self, table: str, field: str, value: Any, metadata: TableMetadata | None = None
    ) -> None:
        metadata = metadata or self._metadata.get(table)
        self.field_exists(table, field, metadata)
        expected = metadata.field_types[field]
        if not value_matches(expected, value):
            raise ValueTypeError(field, table, expected, value)

    def relation_type_valid(self, relation_type: str) -> RelationType:
        try:
            return RelationType(relation_type)
        except ValueError as e:
            raise InvalidRelationTypeError(relation_type) from e

    def relation_exists(
        self, table: str, target: str, metadata: TableMetadata | None = None
    ) -> None:
        metadata = metadata or self._metadata.get(table)
        if target not in metadata.relations:
            raise RelationNotFoundError(target, table, list(metadata.relations))
