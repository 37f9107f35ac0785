"""Main JSONDb engine and Table handle."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from jsondb.core.connection import DEFAULT_URL, DatabaseConnection
from jsondb.core.types import (
    Combinator,
    FieldInfo,
    FieldType,
    LimitClause,
    Predicate,
    RelationDefinition,
    RelationInfo,
    SchemaInfo,
    SortDirection,
    TableInfo,
    TableMetadata,
)
from jsondb.exceptions import (
    NoDataError,
    QueryError,
    RecordNotFoundError,
    SchemaChangeError,
    TableAlreadyExistsError,
    TableNotFoundError,
)
from jsondb.query.pipeline import (
    OPERATORS,
    PendingOperations,
    QueryPipeline,
    Result,
    Row,
    apply_where,
    normalize_operator,
    result_rows,
)
from jsondb.query.relations import RelationResolver, parse_chain
from jsondb.query.values import Path, loose_equals, split_path
from jsondb.schema.validator import Validator, normalize_schema
from jsondb.storage.documents import MetadataStore, RowStore

logger = logging.getLogger(__name__)


def default_values(metadata: TableMetadata) -> Row:
    """Working set of a fresh record: 0 for numeric fields, None otherwise."""
    values: Row = {}
    for name, field_type in metadata.field_types.items():
        values[name] = None if name == "id" else FieldType(field_type).default_value()
    return values


class Table:
    """Handle on one table.

    A handle plays three roles:

    - query session: builder calls (``where``, ``order_by``, ``group_by``,
      ``limit``, ``with_``) queue work that ``find_all``, ``count`` or
      ``delete`` execute; the handle is then iterable over the result
    - record handle: ``find`` binds it to one row, ``set``/``get`` edit the
      working set, ``save``/``delete`` persist it
    - schema editor: ``add_fields``, ``delete_fields``, ``add_relation``,
      ``delete_relations``

    Obtain handles through ``JSONDb.table``. Use a fresh handle per query.
    """

    def __init__(self, name: str, db: JSONDb) -> None:
        """Initialize table handle.

        Args:
            name: Table name (must exist)
            db: Parent JSONDb instance
        """
        self._name = name
        self._db = db
        self._pending = PendingOperations()
        self._pipeline = QueryPipeline(name, self._pending)
        self._data: Result = []
        self._current_id: Any = None
        self._current_key: int | None = None
        self._set: Row = default_values(self.config())

    @property
    def name(self) -> str:
        """Get table name."""
        return self._name

    @property
    def pending(self) -> PendingOperations:
        """Queued builder arguments."""
        return self._pending

    @property
    def is_bound(self) -> bool:
        """Whether the handle is bound to a stored row by ``find``."""
        return self._current_key is not None

    # === Introspection ===

    def config(self) -> TableMetadata:
        """Return the table's metadata document."""
        return self._db.metadata_store.get(self._name)

    def schema(self) -> dict[str, str]:
        """Return the ordered field -> type mapping."""
        return dict(self.config().field_types)

    def fields(self) -> list[str]:
        """Return field names in schema order."""
        return list(self.config().field_types)

    def relations(
        self, table: str | None = None
    ) -> dict[str, RelationDefinition] | RelationDefinition:
        """Return all declared relations, or the one to ``table``.

        Raises:
            RelationNotFoundError: If ``table`` is given and not related
        """
        metadata = self.config()
        if table is None:
            return dict(metadata.relations)
        self._db.validator.relation_exists(self._name, table, metadata)
        return metadata.relations[table]

    def last_id(self) -> int:
        """Return the last id handed out by ``save``."""
        return self.config().last_id

    def debug(self) -> str:
        """Render the pending query, one queued call per line."""
        text = self._pipeline.describe()
        logger.debug(text)
        return text

    # === Query builder ===

    def where(self, field: str, op: str, value: Any) -> Table:
        """Queue a condition joined to the previous ones with AND.

        Args:
            field: Field name
            op: One of =, !=, >, <, >=, <=, IN, NOT IN
            value: Scalar to compare with, or a list for a membership test

        Returns:
            This handle
        """
        return self._add_predicate(Combinator.AND, field, op, value)

    def and_where(self, field: str, op: str, value: Any) -> Table:
        """Alias for ``where``."""
        return self._add_predicate(Combinator.AND, field, op, value)

    def or_where(self, field: str, op: str, value: Any) -> Table:
        """Queue a condition joined to the previous ones with OR."""
        return self._add_predicate(Combinator.OR, field, op, value)

    def _add_predicate(self, combinator: Combinator, field: str, op: str, value: Any) -> Table:
        self._db.validator.field_exists(self._name, field)
        operator = normalize_operator(str(op))
        if operator not in OPERATORS:
            raise QueryError(
                f"Invalid operator '{op}'. Valid operators: {', '.join(OPERATORS)}",
                {"operator": op, "valid_operators": list(OPERATORS)},
            )
        self._pending.where.append(
            Predicate(combinator=combinator, field=field, operator=operator, value=value)
        )
        return self

    def order_by(self, field: Path, direction: str = "ASC") -> Table:
        """Queue a sort key; repeated calls break ties left to right.

        Args:
            field: Field name, or a path into nested rows given as
                ``"a.b"`` or ``["a", "b"]``
            direction: ASC or DESC

        Returns:
            This handle
        """
        metadata = self.config()
        if isinstance(field, str) and field in metadata.field_types:
            key: Path = field
        else:
            segments = split_path(field)
            self._db.validator.field_exists(self._name, segments[0], metadata)
            key = field if isinstance(field, str) else tuple(segments)

        try:
            sort_direction = SortDirection(str(direction).upper())
        except ValueError as e:
            raise QueryError(
                f"Invalid sort direction '{direction}'. Use ASC or DESC.",
                {"direction": direction},
            ) from e

        self._pending.order_by[key] = sort_direction
        return self

    def group_by(self, field: str) -> Table:
        """Queue grouping by one field; results become value -> rows."""
        self._db.validator.field_exists(self._name, field)
        self._pending.group_by = field
        return self

    def limit(self, count: int, offset: int = 0) -> Table:
        """Queue pagination: ``count`` rows starting at ``offset``."""
        if count < 0 or offset < 0:
            raise QueryError(
                "Limit count and offset must not be negative.",
                {"count": count, "offset": offset},
            )
        self._pending.limit = LimitClause(offset=offset, count=count)
        return self

    def with_(self, chain: str) -> Table:
        """Queue a relation chain, e.g. ``"comments:authors"``.

        Relations are looked up when the query runs.
        """
        tables = parse_chain(chain)
        if not tables:
            raise QueryError(f"Empty relation chain '{chain}'.", {"chain": chain})
        self._pending.with_.append(tables)
        return self

    join = with_

    # === Materialization ===

    def _join(self, rows: list[Row], chains: list[list[str]]) -> None:
        self._db.resolver.resolve(self._name, rows, chains)

    def find_all(self) -> Table:
        """Run the queued stages; the handle then iterates over the result."""
        rows = self._db.row_store.get(self._name)
        self._data = self._pipeline.execute(rows, join=self._join)
        return self

    def count(self) -> int | dict[Any, int]:
        """Count matching rows, or rows per group when grouping.

        Joins are not resolved for counting.
        """
        data = self._pipeline.execute(self._db.row_store.get(self._name))
        self._data = data
        if isinstance(data, dict):
            return {group: len(rows) for group, rows in data.items()}
        return len(data)

    @property
    def rows(self) -> Result:
        """Materialized result: a list, or value -> rows when grouped."""
        return self._data

    def __iter__(self) -> Iterator[Any]:
        if isinstance(self._data, dict):
            return iter(self._data.values())
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def as_array(
        self, key: str | None = None, value: str | None = None
    ) -> list[Any] | dict[Any, Any]:
        """Reshape the materialized result.

        Args:
            key: Field whose value keys the output; None for a list
            value: Field to keep from each row; None keeps whole rows

        Returns:
            A list when ``key`` is None, otherwise a dict. When the result is
            grouped by ``key``, each dict value is a list.
        """
        if key is not None:
            self._db.validator.field_exists(self._name, key)
        if value is not None:
            self._db.validator.field_exists(self._name, value)

        rows = result_rows(self._data)
        if key is None:
            return [row if value is None else row.get(value) for row in rows]

        keyed_lists = self._pending.group_by == key
        output: dict[Any, Any] = {}
        for row in rows:
            item = row if value is None else row.get(value)
            if keyed_lists:
                output.setdefault(row.get(key), []).append(item)
            else:
                output[row.get(key)] = item
        return output

    # === Record handle ===

    def get(self, field: str) -> Any:
        """Read a field of the working set.

        Raises:
            FieldNotFoundError: If the field is not in the schema
            NoDataError: If the field is unset or None
        """
        self._db.validator.field_exists(self._name, field)
        if self._set.get(field) is None:
            raise NoDataError(field, self._name)
        return self._set[field]

    def set(self, field: str, value: Any) -> Table:
        """Assign a field of the working set after validating name and type.

        Raises:
            FieldNotFoundError: If the field is not in the schema
            ValueTypeError: If the value does not fit the declared type
        """
        self._db.validator.type_matches(self._name, field, value)
        self._set[field] = value
        return self

    def __getitem__(self, field: str) -> Any:
        return self.get(field)

    def __setitem__(self, field: str, value: Any) -> None:
        self.set(field, value)

    @property
    def values(self) -> Row:
        """Copy of the working set."""
        return dict(self._set)

    def find(self, record_id: Any) -> Table:
        """Bind the handle to the row with ``record_id``.

        Rows are scanned in storage order; the first row whose id loosely
        equals ``record_id`` wins.

        Raises:
            RecordNotFoundError: If no row has that id
        """
        for position, row in enumerate(self._db.row_store.get(self._name)):
            if loose_equals(row.get("id"), record_id):
                self._current_id = row.get("id")
                self._current_key = position
                self._set = default_values(self.config())
                self._set.update(row)
                return self
        raise RecordNotFoundError(record_id, self._name)

    def _locate(self, rows: list[Row]) -> int:
        """Position of the bound row in a freshly loaded collection.

        Rows deleted through other handles shift positions, so a stale
        position is looked up again by id.
        """
        key = self._current_key
        if key is not None and key < len(rows) and rows[key].get("id") == self._current_id:
            return key
        for position, row in enumerate(rows):
            if row.get("id") == self._current_id:
                self._current_key = position
                return position
        raise RecordNotFoundError(self._current_id, self._name)

    def save(self) -> bool:
        """Persist the working set.

        An unbound handle appends a new row with id ``last_id + 1`` and stays
        unbound, so saving it again inserts another row. A bound handle
        overwrites its row in place and keeps the id.

        Returns:
            Result of the row collection write
        """
        rows = self._db.row_store.get(self._name)

        if not self.is_bound:
            metadata = self.config()
            metadata.last_id += 1
            self._set["id"] = metadata.last_id
            rows.append(dict(self._set))
            self._db.metadata_store.put(self._name, metadata)
            logger.debug(f"Inserted row {metadata.last_id} into '{self._name}'")
        else:
            position = self._locate(rows)
            self._set["id"] = self._current_id
            rows[position] = dict(self._set)
            logger.debug(f"Updated row {self._current_id} of '{self._name}'")

        return self._db.row_store.put(self._name, rows)

    def insert(self, values: Mapping[str, Any]) -> int:
        """Insert one row through a fresh handle and return its id."""
        record = self._db.table(self._name)
        for field, value in values.items():
            record.set(field, value)
        record.save()
        return record.get("id")

    def delete(self) -> bool:
        """Delete the bound row, the rows matching ``where``, or every row.

        Returns:
            Result of the row collection write
        """
        rows = self._db.row_store.get(self._name)
        before = len(rows)

        if self.is_bound:
            del rows[self._locate(rows)]
            self._current_id = None
            self._current_key = None
        elif self._pending.where:
            matched = {id(row) for row in apply_where(rows, self._pending.where)}
            rows = [row for row in rows if id(row) not in matched]
        else:
            rows = []

        self._data = rows
        logger.info(f"Deleted {before - len(rows)} rows from '{self._name}'")
        return self._db.row_store.put(self._name, rows)

    # === Schema mutation ===

    def add_fields(self, fields: Mapping[str, str]) -> Table:
        """Add fields and backfill every row with the type's default.

        Fields already declared with the same type are skipped. A field
        declared again with another type has its type replaced in place and
        existing values are kept.

        Raises:
            InvalidFieldTypeError: If a type is not supported
            SchemaChangeError: If ``id`` would change type
        """
        normalized = normalize_schema(fields)
        self._db.validator.types_valid(normalized.values())

        metadata = self.config()
        current = metadata.field_types
        changes = {name: t for name, t in normalized.items() if current.get(name) != t}
        if not changes:
            return self
        if "id" in changes:
            raise SchemaChangeError("Field 'id' is always an integer.", {"field_name": "id"})

        rows = self._db.row_store.get(self._name)
        for row in rows:
            for name, field_type in changes.items():
                if name not in current or name not in row:
                    row[name] = FieldType(field_type).default_value()

        metadata.field_types = {**current, **changes}
        self._db.row_store.put(self._name, rows)
        self._db.metadata_store.put(self._name, metadata)

        for name, field_type in changes.items():
            self._set.setdefault(name, FieldType(field_type).default_value())
        logger.info(f"Added fields {list(changes)} to '{self._name}'")
        return self

    def delete_fields(self, fields: Iterable[str]) -> Table:
        """Remove fields from the schema and from every row.

        Raises:
            FieldNotFoundError: If a field does not exist
            SchemaChangeError: If ``id`` is among them
        """
        names = list(fields)
        metadata = self.config()
        self._db.validator.fields_exist(self._name, names, metadata)
        if "id" in names:
            raise SchemaChangeError("Field 'id' cannot be deleted.", {"field_name": "id"})

        rows = self._db.row_store.get(self._name)
        for row in rows:
            for name in names:
                row.pop(name, None)

        metadata.field_types = {
            name: t for name, t in metadata.field_types.items() if name not in names
        }
        self._db.row_store.put(self._name, rows)
        self._db.metadata_store.put(self._name, metadata)

        for name in names:
            self._set.pop(name, None)
        logger.info(f"Deleted fields {names} from '{self._name}'")
        return self

    def add_relation(
        self, relation_type: str, table: str, local_key: str, foreign_key: str
    ) -> Table:
        """Declare a relation from this table to ``table``.

        A relation to the same target is replaced.

        Args:
            relation_type: belongs_to, has_many or has_and_belongs_to_many
            table: Target table name
            local_key: Field on this table
            foreign_key: Field on the target table

        Returns:
            This handle
        """
        validator = self._db.validator
        kind = validator.relation_type_valid(relation_type)
        validator.table_exists(table)
        validator.field_exists(table, foreign_key)
        validator.field_exists(self._name, local_key)

        metadata = self.config()
        metadata.relations[table] = RelationDefinition(
            type=kind, local_key=local_key, foreign_key=foreign_key
        )
        self._db.metadata_store.put(self._name, metadata)
        logger.info(f"Added {kind} relation '{self._name}' -> '{table}'")
        return self

    def delete_relations(self, tables: Iterable[str]) -> Table:
        """Remove declared relations to each of ``tables``.

        Raises:
            TableNotFoundError: If a target table does not exist
            RelationNotFoundError: If no relation to a target is declared
        """
        targets = list(tables)
        metadata = self.config()
        for table in targets:
            self._db.validator.table_exists(table)
            self._db.validator.relation_exists(self._name, table, metadata)

        metadata.relations = {
            target: relation
            for target, relation in metadata.relations.items()
            if target not in targets
        }
        self._db.metadata_store.put(self._name, metadata)
        logger.info(f"Deleted relations {targets} from '{self._name}'")
        return self

    def __repr__(self) -> str:
        return f"Table({self._name!r})"


class JSONDb:
    """Embedded record store keeping every table as JSON documents.

    Example:
        db = JSONDb("sqlite:///:memory:")
        users = db.create("users", {"name": "string", "age": "integer"})
        users.insert({"name": "Ann", "age": 30})

        for row in db.table("users").where("age", ">", 25).find_all():
            print(row["name"])
    """

    def __init__(self, url: str = DEFAULT_URL, echo: bool = False) -> None:
        """Initialize JSONDb.

        Args:
            url: SQLAlchemy database URL holding the documents
            echo: Whether to echo SQL statements
        """
        self._connection = DatabaseConnection(url, echo=echo)
        self._row_store = RowStore(self._connection)
        self._metadata_store = MetadataStore(self._connection)
        self._validator = Validator(self._metadata_store, self._row_store)
        self._resolver = RelationResolver(self._metadata_store, self._row_store)

    @property
    def connection(self) -> DatabaseConnection:
        return self._connection

    @property
    def row_store(self) -> RowStore:
        return self._row_store

    @property
    def metadata_store(self) -> MetadataStore:
        return self._metadata_store

    @property
    def validator(self) -> Validator:
        return self._validator

    @property
    def resolver(self) -> RelationResolver:
        return self._resolver

    def table(self, name: str) -> Table:
        """Open a handle on an existing table.

        Raises:
            TableNotFoundError: If the table does not exist
        """
        self._validator.table_exists(name)
        return Table(name, self)

    def create(self, name: str, schema: Mapping[str, str] | None = None) -> Table:
        """Create a table.

        Types are lowercased and validated; an ``id: integer`` field is
        prepended unless declared.

        Args:
            name: Table name
            schema: Field name -> type (boolean, integer, string, double)

        Returns:
            Handle on the new table

        Raises:
            TableAlreadyExistsError: If metadata or rows already exist
            InvalidFieldTypeError: If a type is not supported
        """
        if not isinstance(name, str) or not name.strip():
            raise SchemaChangeError("Table name must be a non-empty string.", {"name": name})
        if self._metadata_store.exists(name) or self._row_store.exists(name):
            raise TableAlreadyExistsError(name)

        fields = normalize_schema(schema or {})
        self._validator.types_valid(fields.values())
        if fields.get("id", FieldType.INTEGER) != FieldType.INTEGER:
            raise SchemaChangeError("Field 'id' is always an integer.", {"field_name": "id"})
        if "id" not in fields:
            fields = {"id": FieldType.INTEGER.value, **fields}

        self._row_store.put(name, [])
        self._metadata_store.put(name, TableMetadata(last_id=0, field_types=fields))
        logger.info(f"Created table '{name}' with fields {list(fields)}")
        return Table(name, self)

    def remove(self, name: str) -> bool:
        """Delete a table's rows and metadata.

        Returns:
            True only if both documents were removed

        Raises:
            TableNotFoundError: If neither document exists
        """
        if not (self._metadata_store.exists(name) or self._row_store.exists(name)):
            raise TableNotFoundError(name, self.list_tables())

        rows_removed = self._row_store.remove(name)
        metadata_removed = self._metadata_store.remove(name)
        logger.info(f"Removed table '{name}'")
        return rows_removed and metadata_removed

    def exists(self, name: str) -> bool:
        """Check whether both documents of a table exist."""
        return self._metadata_store.exists(name) and self._row_store.exists(name)

    def list_tables(self) -> list[str]:
        """List table names."""
        return self._metadata_store.names()

    def describe_table(self, name: str) -> TableInfo:
        """Describe one table's fields, relations and size."""
        self._validator.table_exists(name)
        metadata = self._metadata_store.get(name)
        return TableInfo(
            name=name,
            fields=[FieldInfo(name=f, type=t) for f, t in metadata.field_types.items()],
            relations=[
                RelationInfo(
                    target_table=target,
                    relation_type=relation.type,
                    local_key=relation.local_key,
                    foreign_key=relation.foreign_key,
                )
                for target, relation in metadata.relations.items()
            ],
            record_count=len(self._row_store.get(name)),
            last_id=metadata.last_id,
        )

    def describe(self) -> SchemaInfo:
        """Describe every table."""
        tables = {name: self.describe_table(name) for name in self.list_tables()}
        return SchemaInfo(
            tables=tables,
            total_tables=len(tables),
            total_fields=sum(len(info.fields) for info in tables.values()),
        )

    def close(self) -> None:
        """Close the storage connection."""
        self._connection.close()

    def __enter__(self) -> JSONDb:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()
