"""Translation history command."""

from __future__ import annotations

from typing import Annotated

import anyio
import typer
from rich.console import Console
from rich.table import Table

from ferryman.cli.client import create_client, fail_request, send_request

console = Console()


def history(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of records to show")] = 10,
) -> None:
    """Show recent server-side conversions.

    Examples:
        ferryman history
        ferryman history --limit 20
    """
    anyio.run(_show_history, limit)


async def _show_history(limit: int) -> None:
    async with create_client() as client:
        response = await send_request(
            client,
            "GET",
            "/api/translate/log",
            params={"limit": limit},
        )

    if response.status_code != 200:
        fail_request("get conversion history", response)

    records = response.json()

    if not records:
        console.print("[yellow]No conversion history found[/yellow]")
        return

    table = Table(
        title=f"Recent Conversions (showing {len(records)})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Source", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Tier", style="yellow")
    table.add_column("Variables", justify="right")
    table.add_column("Review", justify="right")
    table.add_column("Date", style="green", width=12)

    for record in records:
        created_at = record["created_at"]
        date_part = created_at.split("T")[0] if "T" in created_at else created_at[:10]
        table.add_row(
            str(record["id"]),
            record["source_name"] or "-",
            str(record["readiness_score"]),
            record["complexity_tier"],
            str(record["variable_count"]),
            str(record["review_count"]),
            date_part,
        )

    console.print(table)
