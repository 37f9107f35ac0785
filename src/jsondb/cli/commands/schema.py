"""Field and relation commands."""

from typing import Annotated

import typer

from jsondb.cli.context import CLIContext
from jsondb.cli.output import OutputFormatter
from jsondb.cli.parsing import parse_field_spec

field_app = typer.Typer(help="Add and drop table fields")
relation_app = typer.Typer(help="Declare and remove relations between tables")


@field_app.command("add")
def field_add(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    fields: Annotated[
        list[str],
        typer.Option("--field", "-f", help="Field spec: name:type (repeatable)"),
    ],
) -> None:
    """Add fields to a table; existing rows get the type's default.

    Examples:

        jsondb field add users -f email:string -f score:double
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        new_fields = dict(parse_field_spec(spec) for spec in fields)
        db = cli_ctx.get_db()
        table = db.table(table_name).add_fields(new_fields)
        formatter.print_success(
            f"Added {len(new_fields)} field(s) to '{table_name}'",
            {"fields": ", ".join(table.fields())},
        )

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@field_app.command("drop")
def field_drop(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    names: Annotated[list[str], typer.Argument(help="Field names to drop")],
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompt"),
    ] = False,
) -> None:
    """Drop fields from a table and from every row.

    Examples:

        jsondb field drop users email score --force
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    # Confirmation prompt
    if not force and not cli_ctx.json_output:
        confirm = typer.confirm(
            f"Drop {', '.join(names)} from '{table_name}'? Stored values will be lost."
        )
        if not confirm:
            typer.echo("Cancelled.")
            raise typer.Exit(code=0)

    try:
        db = cli_ctx.get_db()
        table = db.table(table_name).delete_fields(names)
        formatter.print_success(
            f"Dropped {len(names)} field(s) from '{table_name}'",
            {"fields": ", ".join(table.fields())},
        )

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@relation_app.command("add")
def relation_add(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Owner table")],
    relation_type: Annotated[
        str,
        typer.Argument(help="belongs_to, has_many or has_and_belongs_to_many"),
    ],
    target: Annotated[str, typer.Argument(help="Target table")],
    local_key: Annotated[str, typer.Argument(help="Field on the owner table")],
    foreign_key: Annotated[str, typer.Argument(help="Field on the target table")],
) -> None:
    """Declare a relation from one table to another.

    Examples:

        jsondb relation add authors has_many books id author_id
        jsondb relation add books belongs_to authors author_id id
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        db.table(table_name).add_relation(relation_type, target, local_key, foreign_key)
        formatter.print_success(
            f"Added relation '{table_name}' -> '{target}'",
            {"type": relation_type, "on": f"{local_key} = {target}.{foreign_key}"},
        )

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@relation_app.command("drop")
def relation_drop(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Owner table")],
    targets: Annotated[list[str], typer.Argument(help="Target tables")],
) -> None:
    """Remove relations from a table.

    Examples:

        jsondb relation drop authors books
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        db.table(table_name).delete_relations(targets)
        formatter.print_success(
            f"Removed {len(targets)} relation(s) from '{table_name}'",
            {"targets": ", ".join(targets)},
        )

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
