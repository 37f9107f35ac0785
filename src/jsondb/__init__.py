"""JSONDb - embedded record store with a chainable query pipeline.

Each table is kept as two JSON documents: its metadata (id counter, schema,
relations) and its ordered row collection. Queries are built by chaining
calls on a table handle and run when the handle is materialized.

Example:
    from jsondb import JSONDb

    db = JSONDb("sqlite:///:memory:")

    # Create tables and a relation
    authors = db.create("authors", {"name": "string"})
    books = db.create("books", {"title": "string", "author_id": "integer"})
    authors.add_relation("has_many", "books", "id", "author_id")

    # Insert through a record handle
    author = db.table("authors")
    author["name"] = "Ursula"
    author.save()

    # Query: filter, sort, paginate, join
    rows = (
        db.table("authors")
        .where("name", "!=", "")
        .order_by("name", "DESC")
        .limit(10)
        .with_("books")
        .find_all()
    )
    for row in rows:
        print(row["name"], len(row["books"]))
"""

from jsondb.core.engine import JSONDb, Table
from jsondb.core.types import (
    FieldInfo,
    FieldType,
    RelationDefinition,
    RelationInfo,
    RelationType,
    SchemaInfo,
    SortDirection,
    TableInfo,
    TableMetadata,
)
from jsondb.exceptions import (
    AlreadyExistsError,
    ConfigError,
    FieldError,
    FieldNotFoundError,
    FieldTypeError,
    InvalidFieldTypeError,
    InvalidRelationTypeError,
    JSONDbError,
    NoDataError,
    NotFoundError,
    QueryError,
    RecordNotFoundError,
    RelationNotFoundError,
    RelationTargetMissingError,
    SchemaChangeError,
    StorageError,
    TableAlreadyExistsError,
    TableNotFoundError,
    ValueTypeError,
)

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "JSONDb",
    "Table",
    # Types
    "FieldType",
    "RelationType",
    "SortDirection",
    "RelationDefinition",
    "TableMetadata",
    "FieldInfo",
    "RelationInfo",
    "TableInfo",
    "SchemaInfo",
    # Exceptions
    "JSONDbError",
    "NotFoundError",
    "AlreadyExistsError",
    "FieldError",
    "FieldTypeError",
    "ConfigError",
    "TableNotFoundError",
    "RecordNotFoundError",
    "TableAlreadyExistsError",
    "FieldNotFoundError",
    "ValueTypeError",
    "InvalidFieldTypeError",
    "InvalidRelationTypeError",
    "RelationNotFoundError",
    "RelationTargetMissingError",
    "NoDataError",
    "QueryError",
    "SchemaChangeError",
    "StorageError",
]
