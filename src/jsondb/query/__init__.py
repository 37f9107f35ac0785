"""Query pipeline and relation resolution.

Builder calls queue operations in a PendingOperations instance; the
QueryPipeline runs them in a fixed stage order and the RelationResolver
merges related rows for ``with()`` chains.
"""

from jsondb.query.pipeline import PendingOperations, QueryPipeline
from jsondb.query.relations import RelationResolver

__all__ = [
    "PendingOperations",
    "QueryPipeline",
    "RelationResolver",
]
