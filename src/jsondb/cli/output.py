"""Output formatting for CLI commands."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from jsondb.core.types import TableInfo
from jsondb.exceptions import JSONDbError

console = Console()


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_table(
        self,
        title: str,
        data: list[dict[str, Any]],
        columns: list[str],
    ) -> None:
        """Print data as Rich table or JSON array.

        Args:
            title: Table title
            data: List of row dictionaries
            columns: Column names to display
        """
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            table = Table(title=title, show_header=True, header_style="bold magenta")
            for col in columns:
                table.add_column(col)
            for row in data:
                table.add_row(*[_cell(row.get(col)) for col in columns])
            console.print(table)

    def print_rows(self, title: str, rows: list[dict[str, Any]] | dict[Any, Any]) -> None:
        """Print a query result; grouped results get one table per group."""
        if self.json_mode:
            if isinstance(rows, dict):
                rows = {str(group): members for group, members in rows.items()}
            print(json.dumps(rows, default=str, indent=2))
            return

        if isinstance(rows, dict):
            for group, members in rows.items():
                self.print_table(f"{title} [{group}]", members, _columns(members))
        else:
            self.print_table(title, rows, _columns(rows))

    def print_table_info(self, info: TableInfo) -> None:
        """Print table information with fields and relations.

        Args:
            info: Table information to display
        """
        if self.json_mode:
            print(json.dumps(info.model_dump(), default=str, indent=2))
            return

        console.print(f"\n[bold]Table:[/bold] {info.name}")
        console.print(f"Records: {info.record_count:,}")
        console.print(f"Last ID: {info.last_id}")

        console.print(f"\n[bold]Fields ({len(info.fields)}):[/bold]")
        fields_table = Table(show_header=True, header_style="bold cyan")
        fields_table.add_column("Name")
        fields_table.add_column("Type")
        for field in info.fields:
            fields_table.add_row(field.name, field.type)
        console.print(fields_table)

        if info.relations:
            console.print(f"\n[bold]Relations ({len(info.relations)}):[/bold]")
            rel_table = Table(show_header=True, header_style="bold cyan")
            rel_table.add_column("To Table")
            rel_table.add_column("Type")
            rel_table.add_column("Local Key")
            rel_table.add_column("Foreign Key")
            for rel in info.relations:
                rel_table.add_row(
                    rel.target_table, rel.relation_type, rel.local_key, rel.foreign_key
                )
            console.print(rel_table)

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message.

        Args:
            message: Success message
            details: Optional details to display
        """
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(json.dumps(output, default=str, indent=2))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message, with context for JSONDb errors."""
        if self.json_mode:
            if isinstance(error, JSONDbError):
                print(json.dumps(error.to_dict(), default=str, indent=2))
            else:
                print(json.dumps({"error": str(error)}, indent=2))
        else:
            error_text = str(error)
            if isinstance(error, JSONDbError) and error.context:
                context_str = "\n".join(f"{k}: {v}" for k, v in error.context.items())
                error_text = f"{error_text}\n\n{context_str}"

            console.print(Panel(error_text, title="[red]Error[/red]", border_style="red"))

    def print_data(self, data: Any) -> None:
        """Print generic data (dict, list, etc.)."""
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            console.print_json(json.dumps(data, default=str))


def _columns(rows: list[dict[str, Any]]) -> list[str]:
    """Union of row keys in first-seen order."""
    columns: dict[str, None] = {}
    for row in rows:
        for key in row:
            columns.setdefault(key, None)
    return list(columns)
