from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from wager_analytics.domain.models import QueryResultPage


def _cell(value: Any) -> str:
    if value is None:
        return "[dim]null[/dim]"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Decimal, float)):
        return f"{value:,.2f}"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ", timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def build_table(
    rows: Sequence[Dict[str, Any]],
    title: Optional[str] = None,
    caption: Optional[str] = None,
) -> Table:
    """
    Render query rows as a rich table.

    Columns follow the key order of the first row; numeric cells are right-aligned.
    """
    table = Table(title=title, caption=caption, box=box.ROUNDED)
    if not rows:
        return table

    columns = list(rows[0].keys())
    for name in columns:
        numeric = isinstance(rows[0][name], (int, float, Decimal)) and not isinstance(rows[0][name], bool)
        table.add_column(name, justify="right" if numeric else "left", style="cyan" if not numeric else "green")
    for row in rows:
        table.add_row(*(_cell(row.get(name)) for name in columns))
    return table


def print_rows(
    rows: Sequence[Dict[str, Any]],
    title: Optional[str] = None,
    caption: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    if not rows:
        console.print("[yellow]No rows returned.[/yellow]")
        return
    console.print(build_table(rows, title=title, caption=caption))


def print_page(page: QueryResultPage, title: Optional[str] = None, console: Optional[Console] = None) -> None:
    caption = f"Page {page.current_page} of {page.total_pages}"
    console = console or Console()
    if not page.rows:
        console.print(f"[yellow]No rows on this page.[/yellow] ({caption})")
        return
    console.print(build_table(page.rows, title=title, caption=caption))


def print_columns(columns: List[dict], console: Optional[Console] = None) -> None:
    table = Table(title="Queryable columns", box=box.ROUNDED)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Role", style="magenta")
    table.add_column("Type", style="blue")
    table.add_column("Aggregation", style="green")
    table.add_column("Description", style="dim")
    for column in columns:
        table.add_row(
            column["name"],
            column["role"],
            column["value_type"],
            column["aggregation"] if column["role"] == "metric" else "",
            column.get("description", ""),
        )
    (console or Console()).print(table)
