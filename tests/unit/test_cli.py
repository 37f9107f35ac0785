"""CLI command tests for JSONDb."""

import json
import os
import tempfile
from collections.abc import Generator

import pytest
from typer.testing import CliRunner

from jsondb.cli.context import get_database_url
from jsondb.cli.main import app
from jsondb.cli.parsing import parse_condition, parse_field_spec, parse_order, parse_value
from jsondb.core.types import Combinator

runner = CliRunner()


@pytest.fixture
def temp_db() -> Generator[str, None, None]:
    """Create a temporary SQLite database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    if os.path.exists(db_path):
        os.remove(db_path)


def invoke(db_url: str, *args: str):
    """Run a command in JSON mode against ``db_url``."""
    return runner.invoke(app, ["-d", db_url, "--json", *args])


@pytest.fixture
def users_db(temp_db: str) -> str:
    """Database with a populated users table."""
    result = invoke(temp_db, "table", "create", "users", "-f", "name:string", "-f", "age:integer")
    assert result.exit_code == 0, result.stdout
    rows = [{"name": "Ann", "age": 30}, {"name": "Bo", "age": 20}, {"name": "Cy", "age": 40}]
    result = invoke(temp_db, "data", "insert", "users", json.dumps(rows))
    assert result.exit_code == 0, result.stdout
    return temp_db


class TestParsing:
    """Test CLI input parsing."""

    def test_parse_value(self) -> None:
        assert parse_value("30") == 30
        assert parse_value("[1, 2]") == [1, 2]
        assert parse_value("Ann") == "Ann"
        assert parse_value('"30"') == "30"

    def test_parse_field_spec(self) -> None:
        assert parse_field_spec("age:integer") == ("age", "integer")
        with pytest.raises(ValueError):
            parse_field_spec("age")

    def test_parse_condition(self) -> None:
        assert parse_condition("age > 25") == (Combinator.AND, "age", ">", 25)
        assert parse_condition("or name = Bo") == (Combinator.OR, "name", "=", "Bo")
        assert parse_condition("id not in [1, 2]") == (Combinator.AND, "id", "NOT IN", [1, 2])
        assert parse_condition("and age >= 3") == (Combinator.AND, "age", ">=", 3)

    def test_parse_condition_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_condition("age")

    def test_parse_order(self) -> None:
        assert parse_order("name") == ("name", "ASC")
        assert parse_order("age:desc") == ("age", "DESC")


class TestDatabaseUrl:
    """Test database URL resolution."""

    def test_explicit_url_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JSONDB_URL", "sqlite:///env.db")
        assert get_database_url("sqlite:///cli.db") == "sqlite:///cli.db"

    def test_env_then_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JSONDB_URL", "sqlite:///env.db")
        assert get_database_url(None) == "sqlite:///env.db"
        monkeypatch.delenv("JSONDB_URL")
        assert get_database_url(None) == "sqlite:///./jsondb.db"


class TestVersionCommand:
    """Test the version command."""

    def test_version_output(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "JSONDb v" in result.stdout


class TestTableCommands:
    """Test table management commands."""

    def test_list_empty(self, temp_db: str) -> None:
        result = invoke(temp_db, "table", "list")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == []

    def test_list_rich(self, users_db: str) -> None:
        result = runner.invoke(app, ["-d", users_db, "table", "list"])
        assert result.exit_code == 0
        assert "users" in result.stdout

    def test_create_and_describe(self, users_db: str) -> None:
        result = invoke(users_db, "table", "describe", "users")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [field["name"] for field in data["fields"]] == ["id", "name", "age"]
        assert data["record_count"] == 3

    def test_create_duplicate(self, users_db: str) -> None:
        result = invoke(users_db, "table", "create", "users", "-f", "name:string")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "TableAlreadyExistsError"

    def test_create_bad_type(self, temp_db: str) -> None:
        result = invoke(temp_db, "table", "create", "t", "-f", "born:datetime")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "InvalidFieldTypeError"

    def test_drop(self, users_db: str) -> None:
        result = invoke(users_db, "table", "drop", "users")
        assert result.exit_code == 0
        assert json.loads(invoke(users_db, "table", "list").stdout) == []

    def test_drop_cancelled(self, users_db: str) -> None:
        result = runner.invoke(app, ["-d", users_db, "table", "drop", "users"], input="n\n")
        assert result.exit_code == 0
        assert "Cancelled" in result.stdout


class TestSchemaCommands:
    """Test field and relation commands."""

    def test_field_add_and_drop(self, users_db: str) -> None:
        result = invoke(users_db, "field", "add", "users", "-f", "email:string")
        assert result.exit_code == 0, result.stdout
        assert json.loads(result.stdout)["fields"] == "id, name, age, email"

        result = invoke(users_db, "field", "drop", "users", "email", "age")
        assert result.exit_code == 0, result.stdout
        assert json.loads(result.stdout)["fields"] == "id, name"

    def test_relation_add_and_drop(self, users_db: str) -> None:
        invoke(users_db, "table", "create", "posts", "-f", "user_id:integer", "-f", "body:string")
        result = invoke(users_db, "relation", "add", "users", "has_many", "posts", "id", "user_id")
        assert result.exit_code == 0, result.stdout

        info = json.loads(invoke(users_db, "table", "describe", "users").stdout)
        assert info["relations"][0]["target_table"] == "posts"

        result = invoke(users_db, "relation", "drop", "users", "posts")
        assert result.exit_code == 0, result.stdout

    def test_relation_bad_type(self, users_db: str) -> None:
        result = invoke(users_db, "relation", "add", "users", "owns", "users", "id", "id")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "InvalidRelationTypeError"


class TestDataCommands:
    """Test data CRUD and query commands."""

    def test_insert_single(self, users_db: str) -> None:
        result = invoke(users_db, "data", "insert", "users", '{"name": "Dee", "age": 50}')
        assert result.exit_code == 0
        assert json.loads(result.stdout)["id"] == 4

    def test_insert_wrong_type(self, users_db: str) -> None:
        result = invoke(users_db, "data", "insert", "users", '{"age": "old"}')
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "ValueTypeError"

    def test_get(self, users_db: str) -> None:
        result = invoke(users_db, "data", "get", "users", "2")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"id": 2, "name": "Bo", "age": 20}

    def test_get_missing(self, users_db: str) -> None:
        result = invoke(users_db, "data", "get", "users", "9")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "RecordNotFoundError"

    def test_update(self, users_db: str) -> None:
        result = invoke(users_db, "data", "update", "users", "1", '{"age": 31}')
        assert result.exit_code == 0, result.stdout
        assert json.loads(invoke(users_db, "data", "get", "users", "1").stdout)["age"] == 31

    def test_find(self, users_db: str) -> None:
        result = invoke(users_db, "data", "find", "users", "-w", "age > 25", "-o", "age:desc")
        assert result.exit_code == 0, result.stdout
        assert [row["name"] for row in json.loads(result.stdout)] == ["Cy", "Ann"]

    def test_find_or_and_limit(self, users_db: str) -> None:
        args = ["data", "find", "users", "-w", "name = Ann", "-w", "or age < 25"]
        result = invoke(users_db, *args, "-l", "1", "--offset", "1")
        assert result.exit_code == 0, result.stdout
        assert [row["name"] for row in json.loads(result.stdout)] == ["Bo"]

    def test_find_grouped(self, users_db: str) -> None:
        invoke(users_db, "data", "insert", "users", '{"name": "Dee", "age": 20}')
        result = invoke(users_db, "data", "find", "users", "-g", "age")
        assert result.exit_code == 0, result.stdout
        groups = json.loads(result.stdout)
        assert [row["name"] for row in groups["20"]] == ["Bo", "Dee"]

    def test_find_explain(self, users_db: str) -> None:
        result = runner.invoke(
            app, ["-d", users_db, "data", "find", "users", "-w", "age > 1", "--explain"]
        )
        assert result.exit_code == 0
        assert "JSONDb.table(users)" in result.stdout
        assert "->where(age, >, 1)" in result.stdout

    def test_offset_requires_limit(self, users_db: str) -> None:
        result = invoke(users_db, "data", "find", "users", "--offset", "1")
        assert result.exit_code == 1

    def test_count(self, users_db: str) -> None:
        result = invoke(users_db, "data", "count", "users", "-w", "age >= 30")
        assert json.loads(result.stdout) == {"count": 2}

        result = invoke(users_db, "data", "count", "users", "-g", "age")
        assert json.loads(result.stdout) == {"count": {"30": 1, "20": 1, "40": 1}}

    def test_delete(self, users_db: str) -> None:
        result = invoke(users_db, "data", "delete", "users", "2")
        assert result.exit_code == 0, result.stdout
        assert json.loads(result.stdout)["remaining"] == 2

        result = invoke(users_db, "data", "delete", "users", "-w", "age > 35")
        assert json.loads(result.stdout)["remaining"] == 1

    def test_delete_needs_scope(self, users_db: str) -> None:
        result = invoke(users_db, "data", "delete", "users")
        assert result.exit_code == 1
        assert json.loads(invoke(users_db, "data", "count", "users").stdout)["count"] == 3

        result = invoke(users_db, "data", "delete", "users", "--all")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["remaining"] == 0

    def test_unknown_table(self, temp_db: str) -> None:
        result = invoke(temp_db, "data", "find", "ghosts")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "TableNotFoundError"
