"""Table lifecycle commands."""

from typing import Annotated

import typer

from jsondb.cli.context import CLIContext
from jsondb.cli.output import OutputFormatter
from jsondb.cli.parsing import parse_field_spec

# Create table subcommand group
app = typer.Typer(help="Create, inspect and drop tables")


@app.command("list")
def table_list(ctx: typer.Context) -> None:
    """List all tables.

    Examples:

        jsondb table list
        jsondb --json table list
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        data = [
            {
                "name": info.name,
                "fields": len(info.fields),
                "relations": len(info.relations),
                "records": info.record_count,
            }
            for info in db.describe().tables.values()
        ]
        formatter.print_table("Tables", data, ["name", "fields", "relations", "records"])

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("describe")
def table_describe(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Table name")],
) -> None:
    """Show fields, relations and size of a table.

    Examples:

        jsondb table describe users
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        formatter.print_table_info(db.describe_table(name))

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("create")
def table_create(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Table name")],
    fields: Annotated[
        list[str] | None,
        typer.Option("--field", "-f", help="Field spec: name:type (repeatable)"),
    ] = None,
) -> None:
    """Create a table.

    Field types: boolean, integer, string, double. An integer id field is
    always added.

    Examples:

        jsondb table create users -f name:string -f age:integer
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        schema = dict(parse_field_spec(spec) for spec in fields or [])
        db = cli_ctx.get_db()
        table = db.create(name, schema)
        formatter.print_success(
            f"Created table '{name}'",
            {"fields": ", ".join(table.fields())},
        )

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("drop")
def table_drop(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Table name")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation"),
    ] = False,
) -> None:
    """Drop a table with all its rows.

    Examples:

        jsondb table drop users --force
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    # Confirmation prompt
    if not force and not cli_ctx.json_output:
        confirm = typer.confirm(f"Drop table '{name}' and all its rows?")
        if not confirm:
            typer.echo("Cancelled.")
            raise typer.Exit(code=0)

    try:
        db = cli_ctx.get_db()
        removed = db.remove(name)
        formatter.print_success(f"Dropped table '{name}'", {"complete": removed})

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
