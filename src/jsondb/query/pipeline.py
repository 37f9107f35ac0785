"""Deferred query pipeline.

Builder calls on a table handle only record their arguments in a
``PendingOperations`` queue. Materialization runs the recorded stages over
the full row collection in a fixed order, whatever order the calls were
made in::

    where -> order_by -> group_by -> limit -> with

Filtering happens before sorting and pagination, and joins run last so they
only touch rows that survive.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any

from jsondb.core.types import Combinator, LimitClause, Predicate, SortDirection
from jsondb.query.values import (
    Path,
    loose_compare,
    loose_equals,
    natural_compare,
    resolve_path,
)

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Grouped = dict[Any, list[Row]]
Result = list[Row] | Grouped

COMPARISON_OPERATORS = ("=", "!=", ">", "<", ">=", "<=")
MEMBERSHIP_OPERATORS = ("IN", "NOT IN")
OPERATORS = COMPARISON_OPERATORS + MEMBERSHIP_OPERATORS


def is_sequence_value(value: Any) -> bool:
    """A list-like ``where`` value turns the predicate into a membership test."""
    return isinstance(value, (list, tuple, set, frozenset))


def normalize_operator(op: str) -> str:
    return " ".join(op.upper().split())


@dataclass
class PendingOperations:
    """Named slots of queued builder arguments."""

    where: list[Predicate] = field(default_factory=list)
    order_by: dict[Path, SortDirection] = field(default_factory=dict)
    limit: LimitClause | None = None
    group_by: str | None = None
    with_: list[list[str]] = field(default_factory=list)

    @property
    def grouped(self) -> bool:
        return self.group_by is not None

    def is_empty(self) -> bool:
        return not (self.where or self.order_by or self.limit or self.group_by or self.with_)


# === Stages ===


def evaluate_predicate(row: Row, predicate: Predicate) -> bool:
    """Evaluate one condition against one row."""
    actual = row.get(predicate.field)
    expected = predicate.value

    if is_sequence_value(expected):
        # Any operator text means membership; only NOT IN negates it
        member = any(loose_equals(actual, candidate) for candidate in expected)
        return not member if predicate.operator == "NOT IN" else member

    op = predicate.operator
    if op in ("=", "IN"):
        return loose_equals(actual, expected)
    if op in ("!=", "NOT IN"):
        return not loose_equals(actual, expected)

    order = loose_compare(actual, expected)
    if op == ">":
        return order > 0
    if op == "<":
        return order < 0
    if op == ">=":
        return order >= 0
    return order <= 0


def matches(row: Row, predicates: Sequence[Predicate]) -> bool:
    """Fold predicates strictly left to right with no operator precedence.

    ``p1 OR p2 AND p3`` means ``(p1 OR p2) AND p3``. Every predicate is
    evaluated for every row; the first predicate's combinator is ignored.
    """
    result = False
    for index, predicate in enumerate(predicates):
        matched = evaluate_predicate(row, predicate)
        if index == 0:
            result = matched
        elif predicate.combinator == Combinator.OR:
            result = result or matched
        else:
            result = result and matched
    return result


def apply_where(rows: list[Row], predicates: Sequence[Predicate]) -> list[Row]:
    return [row for row in rows if matches(row, predicates)]


def apply_order_by(rows: list[Row], keys: dict[Path, SortDirection]) -> list[Row]:
    """Stable multi-key natural sort; later keys only break ties."""

    def compare(a: Row, b: Row) -> int:
        for path, direction in keys.items():
            order = natural_compare(resolve_path(a, path), resolve_path(b, path))
            if order:
                return -order if direction == SortDirection.DESC else order
        return 0

    return sorted(rows, key=cmp_to_key(compare))


def apply_group_by(rows: list[Row], field_name: str) -> Grouped:
    """Bucket rows by value, buckets in first-seen order."""
    grouped: Grouped = {}
    for row in rows:
        grouped.setdefault(row.get(field_name), []).append(row)
    return grouped


def apply_limit(data: Result, clause: LimitClause) -> Result:
    """Slice ``[offset, offset + count)``; grouped results slice by group."""
    end = clause.offset + clause.count
    if isinstance(data, dict):
        return dict(list(data.items())[clause.offset : end])
    return data[clause.offset : end]


def result_rows(data: Result) -> list[Row]:
    """Flatten a result into its rows (group order, then row order)."""
    if isinstance(data, dict):
        return [row for group in data.values() for row in group]
    return list(data)


class QueryPipeline:
    """Runs queued stages over a loaded row collection."""

    def __init__(self, table_name: str, pending: PendingOperations | None = None) -> None:
        self.table_name = table_name
        self.pending = pending or PendingOperations()

    def execute(
        self,
        rows: list[Row],
        join: Callable[[list[Row], list[list[str]]], None] | None = None,
    ) -> Result:
        """Run every queued stage in the fixed order.

        Args:
            rows: Full row collection of the table
            join: Callback resolving ``with`` chains in place; skipped if None
        """
        pending = self.pending
        data: Result = rows

        if pending.where:
            data = apply_where(rows, pending.where)
            logger.debug(f"{self.table_name}: where kept {len(data)} of {len(rows)} rows")
        if pending.order_by:
            data = apply_order_by(data, pending.order_by)
        if pending.group_by is not None:
            data = apply_group_by(data, pending.group_by)
            logger.debug(f"{self.table_name}: grouped into {len(data)} buckets")
        if pending.limit is not None:
            data = apply_limit(data, pending.limit)
        if pending.with_ and join is not None:
            join(result_rows(data), pending.with_)

        return data

    def describe(self) -> str:
        """Render the queued calls, one ``->stage(args)`` line each."""
        pending = self.pending
        lines = [f"JSONDb.table({self.table_name})"]
        for index, predicate in enumerate(pending.where):
            call = "or_where" if index and predicate.combinator == Combinator.OR else "where"
            lines.append(
                f"\t->{call}({predicate.field}, {predicate.operator}, {predicate.value})"
            )
        for path, direction in pending.order_by.items():
            name = path if isinstance(path, str) else ".".join(path)
            lines.append(f"\t->order_by({name}, {direction})")
        if pending.group_by is not None:
            lines.append(f"\t->group_by({pending.group_by})")
        if pending.limit is not None:
            lines.append(f"\t->limit({pending.limit.offset}, {pending.limit.count})")
        for chain in pending.with_:
            lines.append(f"\t->with({':'.join(chain)})")
        return "\n".join(lines)
