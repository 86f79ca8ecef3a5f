"""Plugin compatibility command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ferryman.cli.files import read_script, write_output
from ferryman.engine.models import SupportTier
from ferryman.engine.pipeline import MigrationEngine

console = Console()

TIER_STYLES = {
    SupportTier.NATIVE: "green",
    SupportTier.TEMPLATED: "cyan",
    SupportTier.LIMITED: "yellow",
    SupportTier.UNSUPPORTED: "red",
}


def plugins(
    file_path: Annotated[Path, typer.Argument(help="Jenkinsfile to scan", metavar="FILE")],
    checklist: Annotated[
        Path | None, typer.Option("--checklist", help="Write the migration checklist here")
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Overwrite files without asking")] = False,
) -> None:
    """Report which Jenkins capabilities have GitLab equivalents.

    Examples:
        ferryman plugins Jenkinsfile
        ferryman plugins Jenkinsfile --checklist MIGRATION.md
    """
    script = read_script(file_path)
    resolver = MigrationEngine().plugins
    verdicts = resolver.resolve(resolver.scan(script))
    summary = resolver.summarize(verdicts)

    if not verdicts:
        console.print("[yellow]No plugin usage detected[/yellow]")
    else:
        table = Table(
            title=f"Capabilities in {file_path}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Capability", style="cyan")
        table.add_column("Support")
        table.add_column("GitLab equivalent", style="white")
        table.add_column("Lines", justify="right", style="dim")
        table.add_column("Confidence", justify="right")

        for verdict in verdicts:
            style = TIER_STYLES[verdict.tier]
            table.add_row(
                verdict.id,
                f"[{style}]{verdict.tier.value}[/{style}]",
                verdict.equivalent or verdict.alternative or "-",
                ", ".join(str(hit.line) for hit in verdict.hits),
                f"{verdict.confidence:.2f}",
            )
        console.print(table)

    console.print(
        f"\nReadiness score: [bold]{summary.score}/100[/bold] "
        f"({summary.native} native, {summary.templated} templated, "
        f"{summary.limited} limited, {summary.unsupported} unsupported)"
    )

    if checklist is not None:
        write_output(checklist, resolver.render_checklist(verdicts), yes=yes)
