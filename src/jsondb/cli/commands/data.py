"""Data CRUD and query commands."""

import json
from typing import Annotated

import typer

from jsondb.cli.context import CLIContext
from jsondb.cli.output import OutputFormatter
from jsondb.cli.parsing import parse_condition, parse_order, parse_value, read_json_file
from jsondb.core.engine import Table
from jsondb.core.types import Combinator

# Create data subcommand group
app = typer.Typer(help="Manage table rows (CRUD and queries)")

WhereOption = Annotated[
    list[str] | None,
    typer.Option(
        "--where",
        "-w",
        help='Condition "[and|or] field op value" (repeatable, folded left to right)',
    ),
]


def apply_conditions(table: Table, conditions: list[str] | None) -> Table:
    """Queue parsed ``--where`` conditions on a table handle."""
    for text in conditions or []:
        combinator, field, op, value = parse_condition(text)
        if combinator == Combinator.OR:
            table.or_where(field, op, value)
        else:
            table.where(field, op, value)
    return table


@app.command("insert")
def data_insert(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    data_json: Annotated[
        str | None,
        typer.Argument(help="Row data as JSON object"),
    ] = None,
    from_file: Annotated[
        str | None,
        typer.Option("--from-file", "-f", help="Load a JSON object or array from file"),
    ] = None,
) -> None:
    """Insert row(s) into a table.

    Examples:

        # Inline JSON (single row)
        jsondb data insert users '{"name": "Ann", "age": 30}'

        # From JSON file (object or array of objects)
        jsondb data insert users --from-file users.json
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        if from_file:
            data = read_json_file(from_file)
        elif data_json:
            data = json.loads(data_json)
        else:
            raise typer.BadParameter("Either provide data as JSON string or use --from-file")

        records = data if isinstance(data, list) else [data]
        db = cli_ctx.get_db()
        table = db.table(table_name)
        record_ids = [table.insert(record) for record in records]

        if len(record_ids) == 1:
            formatter.print_success("Inserted row", {"id": record_ids[0]})
        else:
            formatter.print_success(
                f"Inserted {len(record_ids)} rows",
                {"count": len(record_ids), "ids": record_ids[:5]},  # Show first 5
            )

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("get")
def data_get(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    record_id: Annotated[str, typer.Argument(help="Row id")],
) -> None:
    """Get a row by id.

    Examples:

        jsondb data get users 1
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        record = db.table(table_name).find(parse_value(record_id))
        formatter.print_data(record.values)

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("update")
def data_update(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    record_id: Annotated[str, typer.Argument(help="Row id")],
    data_json: Annotated[str, typer.Argument(help="Fields to change as JSON object")],
) -> None:
    """Update fields of a row.

    Examples:

        jsondb data update users 1 '{"age": 31}'
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        changes = json.loads(data_json)
        db = cli_ctx.get_db()
        record = db.table(table_name).find(parse_value(record_id))
        for field, value in changes.items():
            record.set(field, value)
        record.save()
        formatter.print_success("Updated row", {"id": record.get("id")})

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("delete")
def data_delete(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    record_id: Annotated[
        str | None,
        typer.Argument(help="Row id; omit to delete by --where or --all"),
    ] = None,
    where: WhereOption = None,
    delete_all: Annotated[
        bool,
        typer.Option("--all", help="Delete every row of the table"),
    ] = False,
) -> None:
    """Delete one row, the rows matching --where, or every row.

    Examples:

        jsondb data delete users 3
        jsondb data delete users -w "age < 18"
        jsondb data delete users --all
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    if record_id is None and not where and not delete_all:
        formatter.print_error(Exception("Provide a row id, --where conditions or --all"))
        raise typer.Exit(code=1)

    try:
        db = cli_ctx.get_db()
        table = db.table(table_name)
        before = len(db.row_store.get(table_name))

        if record_id is not None:
            table.find(parse_value(record_id)).delete()
        else:
            apply_conditions(table, where).delete()

        formatter.print_success(
            f"Deleted {before - len(table)} row(s) from '{table_name}'",
            {"remaining": len(table)},
        )

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("find")
def data_find(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    where: WhereOption = None,
    order_by: Annotated[
        list[str] | None,
        typer.Option("--order-by", "-o", help="Sort key field[:ASC|DESC] (repeatable)"),
    ] = None,
    group_by: Annotated[
        str | None,
        typer.Option("--group-by", "-g", help="Group rows by field"),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", help="Maximum rows (or groups) to return"),
    ] = None,
    offset: Annotated[
        int,
        typer.Option("--offset", help="Rows (or groups) to skip"),
    ] = 0,
    with_chains: Annotated[
        list[str] | None,
        typer.Option("--with", help="Relation chain, e.g. comments:authors (repeatable)"),
    ] = None,
    explain: Annotated[
        bool,
        typer.Option("--explain", help="Show the queued query instead of running it"),
    ] = False,
) -> None:
    """Query rows through the where/order/group/limit/with pipeline.

    Stages always run in that order, whatever the option order.

    Examples:

        jsondb data find users -w "age > 25" -o name
        jsondb data find users -w "name = Ann" -w "or name = Bo" -l 10
        jsondb data find authors --with books -g country
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    if offset and limit is None:
        formatter.print_error(Exception("--offset requires --limit"))
        raise typer.Exit(code=1)

    try:
        db = cli_ctx.get_db()
        table = apply_conditions(db.table(table_name), where)
        for spec in order_by or []:
            table.order_by(*parse_order(spec))
        if group_by:
            table.group_by(group_by)
        if limit is not None:
            table.limit(limit, offset)
        for chain in with_chains or []:
            table.with_(chain)

        if explain:
            text = table.debug()
            if cli_ctx.json_output:
                formatter.print_data({"query": text})
            else:
                typer.echo(text)
        else:
            formatter.print_rows(table_name, table.find_all().rows)

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("count")
def data_count(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    where: WhereOption = None,
    group_by: Annotated[
        str | None,
        typer.Option("--group-by", "-g", help="Count per value of field"),
    ] = None,
) -> None:
    """Count rows, optionally filtered and per group.

    Examples:

        jsondb data count users
        jsondb data count users -w "age >= 18" -g country
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        table = apply_conditions(db.table(table_name), where)
        if group_by:
            table.group_by(group_by)
        formatter.print_data({"count": table.count()})

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
