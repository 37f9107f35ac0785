"""Exceptions raised by JSONDb.

Errors are grouped into categories (not found, already exists, field,
type, config) so callers can catch broadly or precisely. Every error carries
a context dict that the CLI prints in JSON mode.
"""

from __future__ import annotations

from typing import Any


class JSONDbError(Exception):
    """Base exception for all JSONDb errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConnectionError(JSONDbError):
    """Failed to connect to the storage backend."""

    pass


class StorageError(JSONDbError):
    """Reading or writing a document failed."""

    pass


class QueryError(JSONDbError):
    """Invalid query builder arguments."""

    pass


class SchemaChangeError(JSONDbError):
    """Schema change operation is not allowed."""

    pass


# === Categories ===


class NotFoundError(JSONDbError):
    """A table or row does not exist."""

    pass


class AlreadyExistsError(JSONDbError):
    """Something being created already exists."""

    pass


class FieldError(JSONDbError):
    """An unknown field was referenced."""

    pass


class FieldTypeError(JSONDbError, TypeError):
    """A value or declared type does not match."""

    pass


class ConfigError(JSONDbError):
    """Relation configuration is invalid or missing."""

    pass


# === Concrete errors ===


class TableNotFoundError(NotFoundError):
    """Table does not exist."""

    def __init__(self, table_name: str, available_tables: list[str] | None = None) -> None:
        available = available_tables or []
        if available:
            message = f"Table '{table_name}' not found. Available tables: {', '.join(available)}"
        else:
            message = f"Table '{table_name}' not found. No tables exist yet."

        super().__init__(message, {"table_name": table_name, "available_tables": available})
        self.table_name = table_name
        self.available_tables = available


class RecordNotFoundError(NotFoundError):
    """Row with given ID does not exist."""

    def __init__(self, record_id: Any, table_name: str) -> None:
        message = f"No data found with ID '{record_id}' in '{table_name}'."
        super().__init__(message, {"record_id": record_id, "table_name": table_name})
        self.record_id = record_id
        self.table_name = table_name


class TableAlreadyExistsError(AlreadyExistsError):
    """Table already exists."""

    def __init__(self, table_name: str) -> None:
        message = f"Table '{table_name}' already exists. Remove it first or pick another name."
        super().__init__(message, {"table_name": table_name})
        self.table_name = table_name


class FieldNotFoundError(FieldError):
    """Field does not exist in the table schema."""

    def __init__(
        self, field_name: str, table_name: str, available_fields: list[str] | None = None
    ) -> None:
        available = available_fields or []
        if available:
            message = (
                f"Field '{field_name}' not found on '{table_name}'. "
                f"Available fields: {', '.join(available)}"
            )
        else:
            message = f"Field '{field_name}' not found on '{table_name}'. No fields defined."

        super().__init__(
            message,
            {
                "field_name": field_name,
                "table_name": table_name,
                "available_fields": available,
            },
        )
        self.field_name = field_name
        self.table_name = table_name
        self.available_fields = available


class ValueTypeError(FieldTypeError):
    """Value assigned to a field does not match its declared type."""

    def __init__(self, field_name: str, table_name: str, expected: str, value: Any) -> None:
        actual = type(value).__name__
        message = (
            f"Field '{field_name}' on '{table_name}' expects {expected}, "
            f"got {actual} ({value!r})."
        )
        super().__init__(
            message,
            {
                "field_name": field_name,
                "table_name": table_name,
                "expected_type": expected,
                "actual_type": actual,
            },
        )
        self.field_name = field_name
        self.table_name = table_name
        self.expected = expected


class InvalidFieldTypeError(FieldTypeError):
    """Invalid field type in a schema declaration."""

    VALID_TYPES = ["boolean", "integer", "string", "double"]

    def __init__(self, field_type: Any) -> None:
        message = f"Invalid field type '{field_type}'. Valid types: {', '.join(self.VALID_TYPES)}"
        super().__init__(message, {"field_type": field_type, "valid_types": self.VALID_TYPES})
        self.field_type = field_type


class InvalidRelationTypeError(ConfigError):
    """Invalid relation type specified."""

    VALID_TYPES = ["belongs_to", "has_many", "has_and_belongs_to_many"]

    def __init__(self, relation_type: str) -> None:
        message = (
            f"Invalid relation type '{relation_type}'. Valid types: {', '.join(self.VALID_TYPES)}"
        )
        super().__init__(
            message, {"relation_type": relation_type, "valid_types": self.VALID_TYPES}
        )
        self.relation_type = relation_type


class RelationNotFoundError(ConfigError):
    """No relation from a table to the requested target is declared."""

    def __init__(
        self,
        target_table: str,
        table_name: str,
        available_relations: list[str] | None = None,
    ) -> None:
        available = available_relations or []
        if available:
            message = (
                f"Relation to '{target_table}' not found on '{table_name}'. "
                f"Related tables: {', '.join(available)}"
            )
        else:
            message = (
                f"Relation to '{target_table}' not found on '{table_name}'. "
                "No relations defined."
            )

        super().__init__(
            message,
            {
                "target_table": target_table,
                "table_name": table_name,
                "available_relations": available,
            },
        )
        self.target_table = target_table
        self.table_name = table_name
        self.available_relations = available


class RelationTargetMissingError(ConfigError):
    """A declared relation points at a table that no longer exists."""

    def __init__(self, target_table: str, table_name: str) -> None:
        message = (
            f"Relation '{table_name}' -> '{target_table}' points at a missing table. "
            f"Drop the relation or recreate '{target_table}'."
        )
        super().__init__(message, {"target_table": target_table, "table_name": table_name})
        self.target_table = target_table
        self.table_name = table_name


class NoDataError(JSONDbError):
    """Field was never set on the current record handle."""

    def __init__(self, field_name: str, table_name: str) -> None:
        message = f"There is no data for field '{field_name}' on '{table_name}'."
        super().__init__(message, {"field_name": field_name, "table_name": table_name})
        self.field_name = field_name
        self.table_name = table_name
