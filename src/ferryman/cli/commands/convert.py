"""Convert command: Jenkinsfile to .gitlab-ci.yml."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import anyio
import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from ferryman.cli.client import create_client, fail_request, send_request
from ferryman.cli.config import get_config_value
from ferryman.cli.files import read_script, write_output
from ferryman.engine.credentials import ResolveOptions
from ferryman.engine.pipeline import MigrationEngine, MigrationResult, TranslationError

console = Console()


def _local_report(result: MigrationResult) -> dict[str, Any]:
    """Shape a local result like the /api/translate response."""
    return {
        "configuration": result.configuration,
        "checklist": result.checklist,
        "summary": {"score": result.summary.score, "total": result.summary.total},
        "complexity_tier": result.tier,
        "extraction": {
            "method": result.extraction.method,
            "confidence": result.extraction.confidence,
            "unparsed": [{"start_line": r.start_line} for r in result.extraction.unparsed],
        },
        "variables": [{"key": s.key} for s in result.specs],
        "validation": {"errors": list(result.validation.errors), "warnings": list(result.validation.warnings)},
        "lint": {"valid": result.lint.valid, "errors": list(result.lint.errors)},
        "review_count": result.review_count,
        "record_id": None,
    }


def _render_report(file_path: Path, report: dict[str, Any]) -> None:
    extraction = report["extraction"]
    table = Table(title=f"Conversion of {file_path}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Readiness score", f"{report['summary']['score']}/100")
    table.add_row("Complexity", report["complexity_tier"])
    table.add_row("Capabilities", str(report["summary"]["total"]))
    table.add_row("Variables", str(len(report["variables"])))
    table.add_row("Parsing", f"{extraction['method']} ({extraction['confidence']:.0%})")
    table.add_row("Review items", str(report["review_count"]))
    if report.get("record_id") is not None:
        table.add_row("History ID", str(report["record_id"]))
    console.print(table)

    if extraction["unparsed"]:
        lines = ", ".join(str(r["start_line"]) for r in extraction["unparsed"])
        console.print(f"[yellow]Script blocks need manual review (lines {lines})[/yellow]")
    for error in report["validation"]["errors"]:
        console.print(f"[red]Variable error:[/red] {error}")
    for warning in report["validation"]["warnings"]:
        console.print(f"[yellow]Variable warning:[/yellow] {warning}")
    if not report["lint"]["valid"]:
        for error in report["lint"]["errors"]:
            console.print(f"[red]Lint:[/red] {error}")


def convert(
    file_path: Annotated[Path, typer.Argument(help="Jenkinsfile to convert", metavar="FILE")],
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Where to write the GitLab configuration")
    ] = Path(".gitlab-ci.yml"),
    checklist: Annotated[
        Path | None, typer.Option("--checklist", help="Also write the migration checklist here")
    ] = None,
    scope: Annotated[
        str | None, typer.Option("--scope", help="Environment scope for generated variables")
    ] = None,
    remote: Annotated[
        bool, typer.Option("--remote", help="Convert on the configured server and record history")
    ] = False,
    enrich: Annotated[
        bool, typer.Option("--enrich", help="Ask the server for LLM notes on unsupported capabilities")
    ] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Print the result without writing files")] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Overwrite files without asking")] = False,
) -> None:
    """Convert a Jenkinsfile into GitLab CI/CD configuration.

    Examples:
        ferryman convert Jenkinsfile
        ferryman convert Jenkinsfile -o ci/.gitlab-ci.yml --checklist MIGRATION.md
        ferryman convert Jenkinsfile --remote --enrich
    """
    if enrich and not remote:
        console.print("[red]--enrich needs --remote[/red]")
        raise typer.Exit(code=1)

    script = read_script(file_path)
    environment_scope = scope or str(get_config_value("environment_scope", "*"))

    if remote:
        report = anyio.run(_convert_remote, file_path.name, script, environment_scope, enrich)
    else:
        engine = MigrationEngine()
        try:
            result = engine.translate(script, ResolveOptions(environment_scope=environment_scope))
        except TranslationError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1) from e
        report = _local_report(result)

    _render_report(file_path, report)

    if dry_run:
        syntax = Syntax(report["configuration"], "yaml", theme="monokai", line_numbers=False)
        console.print(Panel(syntax, title=str(output), expand=False))
        console.print("\n[yellow]Dry run - no files written[/yellow]")
        return

    write_output(output, report["configuration"], yes=yes)
    if checklist is not None:
        write_output(checklist, report["checklist"], yes=yes)


async def _convert_remote(
    source_name: str, script: str, environment_scope: str, enrich: bool
) -> dict[str, Any]:
    async with create_client() as client:
        response = await send_request(
            client,
            "POST",
            "/api/translate",
            json={
                "script": script,
                "source_name": source_name,
                "environment_scope": environment_scope,
                "enrich": enrich,
            },
        )

    if response.status_code != 200:
        fail_request("convert", response)

    report: dict[str, Any] = response.json()
    return report
