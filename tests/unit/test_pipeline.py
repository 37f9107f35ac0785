"""Tests for the deferred query pipeline stages."""

from jsondb.core.types import Combinator, LimitClause, Predicate, SortDirection
from jsondb.query.pipeline import (
    PendingOperations,
    QueryPipeline,
    apply_group_by,
    apply_limit,
    apply_order_by,
    apply_where,
    evaluate_predicate,
    matches,
    normalize_operator,
)

ROWS = [
    {"id": 1, "name": "Ann", "age": 30, "city": "Oslo"},
    {"id": 2, "name": "bo", "age": 20, "city": "Rome"},
    {"id": 3, "name": "Cy", "age": 40, "city": "Oslo"},
    {"id": 4, "name": "Di", "age": 20, "city": None},
]


def where(field, op, value, combinator=Combinator.AND):
    return Predicate(combinator=combinator, field=field, operator=op, value=value)


class TestEvaluatePredicate:
    """Tests for single-condition evaluation."""

    def test_comparison_operators(self):
        row = {"age": 30}
        assert evaluate_predicate(row, where("age", "=", 30))
        assert evaluate_predicate(row, where("age", "!=", 31))
        assert evaluate_predicate(row, where("age", ">", 29))
        assert evaluate_predicate(row, where("age", "<", 31))
        assert evaluate_predicate(row, where("age", ">=", 30))
        assert evaluate_predicate(row, where("age", "<=", 30))
        assert not evaluate_predicate(row, where("age", ">", 30))

    def test_loose_equality(self):
        assert evaluate_predicate({"age": 30}, where("age", "=", "30"))

    def test_sequence_value_means_membership(self):
        """Any operator with a list value tests membership."""
        row = {"age": 30}
        assert evaluate_predicate(row, where("age", "=", [10, 30]))
        assert evaluate_predicate(row, where("age", ">", [10, 30]))
        assert not evaluate_predicate(row, where("age", "!=", [10, 20]))
        assert evaluate_predicate(row, where("age", "IN", (30,)))

    def test_not_in_negates_membership(self):
        row = {"age": 30}
        assert evaluate_predicate(row, where("age", "NOT IN", [10, 20]))
        assert not evaluate_predicate(row, where("age", "NOT IN", [30]))

    def test_missing_field_is_none(self):
        assert evaluate_predicate({}, where("city", "=", None))

    def test_normalize_operator(self):
        assert normalize_operator("not   in") == "NOT IN"
        assert normalize_operator("in") == "IN"


class TestWhere:
    """Tests for the left fold over predicates."""

    def test_and(self):
        result = apply_where(ROWS, [where("city", "=", "Oslo"), where("age", ">", 35)])
        assert [row["id"] for row in result] == [3]

    def test_or(self):
        predicates = [where("age", "=", 30), where("age", "=", 40, Combinator.OR)]
        assert [row["id"] for row in apply_where(ROWS, predicates)] == [1, 3]

    def test_no_operator_precedence(self):
        """``a OR b AND c`` folds as ``(a OR b) AND c``."""
        predicates = [
            where("name", "=", "Ann"),
            where("name", "=", "bo", Combinator.OR),
            where("age", "=", 20),
        ]
        # Precedence-based evaluation would also keep Ann
        assert [row["id"] for row in apply_where(ROWS, predicates)] == [2]

    def test_first_combinator_ignored(self):
        row = {"age": 30}
        assert matches(row, [where("age", "=", 30, Combinator.OR)])
        assert not matches(row, [where("age", "=", 31, Combinator.OR)])

    def test_idempotent(self):
        predicates = [where("age", ">=", 20), where("city", "=", "Oslo")]
        once = apply_where(ROWS, predicates)
        assert apply_where(once, predicates) == once


class TestOrderBy:
    """Tests for sorting."""

    def test_case_insensitive_natural(self):
        rows = [{"n": "item10"}, {"n": "Item2"}, {"n": "apple"}, {"n": "Banana"}]
        result = apply_order_by(rows, {"n": SortDirection.ASC})
        assert [row["n"] for row in result] == ["apple", "Banana", "Item2", "item10"]

    def test_desc(self):
        result = apply_order_by(ROWS, {"age": SortDirection.DESC})
        assert [row["age"] for row in result] == [40, 30, 20, 20]

    def test_stable(self):
        """Equal keys keep input order, in both directions."""
        asc = apply_order_by(ROWS, {"age": SortDirection.ASC})
        desc = apply_order_by(ROWS, {"age": SortDirection.DESC})
        assert [row["id"] for row in asc] == [2, 4, 1, 3]
        assert [row["id"] for row in desc] == [3, 1, 2, 4]

    def test_tie_breaker(self):
        keys = {"age": SortDirection.ASC, "name": SortDirection.DESC}
        assert [row["id"] for row in apply_order_by(ROWS, keys)] == [4, 2, 1, 3]

    def test_none_first(self):
        result = apply_order_by(ROWS, {"city": SortDirection.ASC})
        assert [row["id"] for row in result] == [4, 1, 3, 2]

    def test_nested_path(self):
        rows = [{"a": {"b": 2}}, {"a": None}, {"a": {"b": 1}}]
        result = apply_order_by(rows, {("a", "b"): SortDirection.ASC})
        assert result == [{"a": None}, {"a": {"b": 1}}, {"a": {"b": 2}}]

    def test_does_not_mutate_input(self):
        rows = list(ROWS)
        apply_order_by(rows, {"age": SortDirection.ASC})
        assert rows == ROWS


class TestGroupByAndLimit:
    """Tests for grouping and pagination."""

    def test_group_first_seen_order(self):
        grouped = apply_group_by(ROWS, "city")
        assert list(grouped) == ["Oslo", "Rome", None]
        assert [row["id"] for row in grouped["Oslo"]] == [1, 3]

    def test_group_sizes_sum_to_total(self):
        grouped = apply_group_by(ROWS, "age")
        assert sum(len(rows) for rows in grouped.values()) == len(ROWS)

    def test_limit_slices(self):
        assert [row["id"] for row in apply_limit(ROWS, LimitClause(offset=1, count=2))] == [2, 3]

    def test_limit_boundaries(self):
        assert apply_limit(ROWS, LimitClause(count=0)) == []
        assert apply_limit(ROWS, LimitClause(offset=10, count=5)) == []
        assert len(apply_limit(ROWS, LimitClause(offset=3, count=10))) == 1

    def test_limit_on_groups(self):
        grouped = apply_group_by(ROWS, "city")
        limited = apply_limit(grouped, LimitClause(offset=1, count=1))
        assert list(limited) == ["Rome"]


class TestQueryPipeline:
    """Tests for the fixed stage order and describe()."""

    def test_stage_order_is_fixed(self):
        """Limit applies after where and order_by whatever the queue holds."""
        pending = PendingOperations()
        pending.limit = LimitClause(count=2)
        pending.order_by["age"] = SortDirection.DESC
        pending.where.append(where("age", ">=", 20))
        result = QueryPipeline("users", pending).execute(ROWS)
        assert [row["id"] for row in result] == [3, 1]

    def test_empty_queue_returns_all_rows(self):
        pending = PendingOperations()
        assert pending.is_empty()
        assert QueryPipeline("users", pending).execute(ROWS) == ROWS

    def test_join_runs_on_result_rows(self):
        pending = PendingOperations(with_=[["books"]])
        pending.limit = LimitClause(count=1)
        seen = []
        QueryPipeline("users", pending).execute(ROWS, join=lambda rows, chains: seen.extend(rows))
        assert [row["id"] for row in seen] == [1]

    def test_describe(self):
        pending = PendingOperations()
        pending.where.append(where("age", ">", 20))
        pending.where.append(where("name", "=", "Ann", Combinator.OR))
        pending.order_by["name"] = SortDirection.DESC
        pending.group_by = "city"
        pending.limit = LimitClause(offset=5, count=10)
        pending.with_.append(["comments", "authors"])

        assert QueryPipeline("users", pending).describe() == (
            "JSONDb.table(users)\n"
            "\t->where(age, >, 20)\n"
            "\t->or_where(name, =, Ann)\n"
            "\t->order_by(name, DESC)\n"
            "\t->group_by(city)\n"
            "\t->limit(5, 10)\n"
            "\t->with(comments:authors)"
        )
