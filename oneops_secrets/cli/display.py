"""CLI output rendered with the Rich library."""
from datetime import datetime
from typing import Any, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from oneops_secrets.proxy.domains.models import Client, Secret

# Resolves sys.stdout at print time
console = Console(highlight=False)


def fmt_time(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _cell(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, datetime):
        return fmt_time(value)
    return escape(str(value))


def success(message: str) -> None:
    console.print(f"[green]{escape(message)}[/green]", soft_wrap=True)


def dim(message: str) -> None:
    console.print(f"[dim]{escape(message)}[/dim]", soft_wrap=True)


def bullet(message: str, style: str = "yellow") -> None:
    console.print(f"  [{style}]• {escape(message)}[/{style}]", soft_wrap=True)


def info(message: str = "") -> None:
    console.print(escape(message), soft_wrap=True)


def _table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> Table:
    table = Table(header_style="bold cyan")
    for header in headers:
        table.add_column(header, justify="right" if header in ("#", "Version") else "left")
    for row in rows:
        table.add_row(*[_cell(v) for v in row])
    return table


def print_clients(clients: List[Client]) -> None:
    console.print(_table(
        ["#", "Client", "Created", "Last Seen"],
        [(i, c.name, c.created_at, c.last_seen) for i, c in enumerate(clients, 1)],
    ))


def print_secrets(secrets: List[Secret], show_version: bool = False) -> None:
    if show_version:
        table = _table(
            ["Version", "Secret", "Updated", "Updated By", "Checksum"],
            [(s.version, s.name, s.updated_at, s.updated_by, s.checksum) for s in secrets],
        )
    else:
        table = _table(
            ["#", "Secret", "Description", "Created By", "Updated", "Expiry"],
            [(i, s.name, s.description, s.created_by, s.updated_at, s.expiry) for i, s in enumerate(secrets, 1)],
        )
    console.print(table)


def print_details(pairs: Sequence[Sequence[Any]]) -> None:
    """Render key/value details as a two column grid."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()
    for key, value in pairs:
        grid.add_row(escape(key), _cell(value))
    console.print(grid)
