"""Whole-document storage for JSONDb tables."""

from jsondb.storage.documents import MetadataStore, RowStore

__all__ = [
    "MetadataStore",
    "RowStore",
]
