"""Whole-document stores for table rows and table metadata.

Both stores expose the same four verbs: ``exists``, ``get``, ``put`` and
``remove``. Reads return the full document, writes replace it. There is no
partial update.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from jsondb.core.types import TableMetadata
from jsondb.exceptions import StorageError, TableNotFoundError
from jsondb.storage.models import Base, MetadataDocument, RowsDocument

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from jsondb.core.connection import DatabaseConnection

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class DocumentStore:
    """Shared plumbing for the two document tables."""

    model: type[MetadataDocument] | type[RowsDocument]

    def __init__(self, connection: DatabaseConnection) -> None:
        self._connection = connection
        self._initialized = False

    def initialize(self) -> None:
        """Create the document tables if they don't exist."""
        if not self._initialized:
            Base.metadata.create_all(self._connection.engine)
            self._initialized = True

    def _get_session(self) -> Session:
        self.initialize()
        return self._connection.get_session()

    def exists(self, table: str) -> bool:
        with self._get_session() as session:
            return session.get(self.model, table) is not None

    def names(self) -> list[str]:
        """Names of all tables that have a document in this store."""
        with self._get_session() as session:
            return list(session.scalars(select(self.model.name).order_by(self.model.name)))

    def remove(self, table: str) -> bool:
        """Delete the document. Returns False if there was none."""
        try:
            with self._get_session() as session:
                document = session.get(self.model, table)
                if document is None:
                    return False
                session.delete(document)
                session.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to remove '{table}' from {self.model.__tablename__}: {e}"
            ) from e
        logger.debug(f"Removed {self.model.__tablename__} document for '{table}'")
        return True

    def _load(self, table: str) -> Any:
        with self._get_session() as session:
            document = session.get(self.model, table)
            payload = None if document is None else self._payload(document)
        if payload is None:
            raise TableNotFoundError(table, self.names())
        return payload

    def _store(self, table: str, payload: Any) -> bool:
        try:
            with self._get_session() as session:
                document = session.get(self.model, table)
                if document is None:
                    session.add(self._new_document(table, payload))
                else:
                    self._assign(document, payload)
                session.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to write '{table}' to {self.model.__tablename__}: {e}"
            ) from e
        logger.debug(f"Wrote {self.model.__tablename__} document for '{table}'")
        return True

    def _payload(self, document: Any) -> Any:
        raise NotImplementedError

    def _new_document(self, table: str, payload: Any) -> Any:
        raise NotImplementedError

    def _assign(self, document: Any, payload: Any) -> None:
        raise NotImplementedError


class RowStore(DocumentStore):
    """Ordered row collection per table."""

    model = RowsDocument

    def get(self, table: str) -> list[Row]:
        """Return every row of the table in storage order."""
        return list(self._load(table))

    def put(self, table: str, rows: list[Row]) -> bool:
        """Replace the table's row collection."""
        return self._store(table, [dict(row) for row in rows])

    def _payload(self, document: RowsDocument) -> list[Row]:
        return document.rows or []

    def _new_document(self, table: str, payload: list[Row]) -> RowsDocument:
        return RowsDocument(name=table, rows=payload)

    def _assign(self, document: RowsDocument, payload: list[Row]) -> None:
        document.rows = payload


class MetadataStore(DocumentStore):
    """Metadata document (``last_id``, schema, relations) per table."""

    model = MetadataDocument

    def get(self, table: str) -> TableMetadata:
        """Return the table's metadata document."""
        return TableMetadata.model_validate(self._load(table))

    def put(self, table: str, metadata: TableMetadata) -> bool:
        """Replace the table's metadata document."""
        return self._store(table, metadata.to_document())

    def _payload(self, document: MetadataDocument) -> dict[str, Any]:
        return document.document

    def _new_document(self, table: str, payload: dict[str, Any]) -> MetadataDocument:
        return MetadataDocument(name=table, document=payload)

    def _assign(self, document: MetadataDocument, payload: dict[str, Any]) -> None:
        document.document = payload
