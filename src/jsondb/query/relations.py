"""Resolution of ``with()`` relation chains.

A chain such as ``"comments:authors"`` on ``posts`` is walked pairwise:
posts are joined with comments through the relation declared on ``posts``,
then the attached comments are joined with authors through the relation
declared on ``comments``. Each joined table's rows land under a key named
after that table.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from jsondb.core.types import RelationDefinition, RelationType
from jsondb.exceptions import RelationNotFoundError, RelationTargetMissingError
from jsondb.query.values import loose_equals

if TYPE_CHECKING:
    from jsondb.storage.documents import MetadataStore, RowStore

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Step = tuple[str, RelationDefinition, list[Row]]


def parse_chain(chain: str) -> list[str]:
    """Split ``"comments:authors"`` into table names."""
    return [part.strip() for part in chain.split(":") if part.strip()]


class RelationResolver:
    """Merges related rows into parent rows following declared relations."""

    def __init__(self, metadata_store: MetadataStore, row_store: RowStore) -> None:
        self._metadata = metadata_store
        self._rows = row_store

    def plan(self, owner: str, chain: Sequence[str]) -> list[Step]:
        """Look up every step of a chain and load its rows before any row is touched.

        Raises:
            RelationNotFoundError: If a step's target is not declared on the
                table to its left
            RelationTargetMissingError: If a declared target table was removed
        """
        steps = []
        left = owner
        for target in chain:
            relations = self._metadata.get(left).relations
            if target not in relations:
                raise RelationNotFoundError(target, left, list(relations))
            if not (self._metadata.exists(target) and self._rows.exists(target)):
                raise RelationTargetMissingError(target, left)
            steps.append((target, relations[target], self._rows.get(target)))
            left = target
        return steps

    def resolve(self, owner: str, rows: list[Row], chains: Sequence[Sequence[str]]) -> None:
        """Resolve every chain against ``rows`` in place."""
        plans = [self.plan(owner, chain) for chain in chains]
        for steps in plans:
            left_rows = rows
            for target, relation, right_rows in steps:
                left_rows = self.join(left_rows, target, relation, right_rows)

    def join(
        self,
        rows: list[Row],
        target: str,
        relation: RelationDefinition,
        right_rows: list[Row],
    ) -> list[Row]:
        """Attach matching ``right_rows`` of ``target`` to each row.

        ``belongs_to`` attaches a single row or None, the other relation types
        attach a list. Returns every row that was attached, which is the
        left-hand input for the next step of a chain.
        """
        single = RelationType(relation.type).is_single
        attached: list[Row] = []

        for row in rows:
            local_value = row.get(relation.local_key)
            related = [
                dict(candidate)
                for candidate in right_rows
                if local_value is not None
                and loose_equals(local_value, candidate.get(relation.foreign_key))
            ]
            if single:
                row[target] = related[0] if related else None
                attached.extend(related[:1])
            else:
                row[target] = related
                attached.extend(related)

        logger.debug(f"Joined {len(rows)} rows with {len(attached)} rows of '{target}'")
        return attached
