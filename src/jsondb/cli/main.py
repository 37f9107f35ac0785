"""JSONDb CLI - Main entry point."""

import logging
import sys
from typing import Annotated

import typer

import jsondb
from jsondb.cli.context import URL_ENV_VAR, CLIContext, get_database_url

# Create main Typer app
app = typer.Typer(
    name="jsondb",
    help="JSONDb CLI - tables as JSON documents with a chainable query pipeline",
    no_args_is_help=True,
)

# Store CLI context globally (will be set in callback)
state: dict[str, CLIContext] = {}


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            envvar=URL_ENV_VAR,
            help="Database URL holding the documents (SQLite or PostgreSQL)",
        ),
    ] = None,
    echo: Annotated[
        bool,
        typer.Option(
            "--echo",
            "-e",
            help="Echo SQL statements to console",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON (machine-readable)",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log pipeline and storage activity to stderr",
        ),
    ] = False,
) -> None:
    """Initialize CLI context with global options."""
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cli_ctx = CLIContext(
        database_url=get_database_url(database),
        echo=echo,
        json_output=json_output,
    )

    # Store in Typer context for command access
    ctx.obj = cli_ctx
    state["cli_ctx"] = cli_ctx


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"JSONDb v{jsondb.__version__}")


# Register command groups
from jsondb.cli.commands import data, schema, table

app.add_typer(table.app, name="table")
app.add_typer(schema.field_app, name="field")
app.add_typer(schema.relation_app, name="relation")
app.add_typer(data.app, name="data")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
