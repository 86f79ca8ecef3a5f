"""Credential planning command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ferryman.cli.config import get_config_value
from ferryman.cli.files import read_script, write_output
from ferryman.engine.credentials import ResolveOptions
from ferryman.engine.pipeline import MigrationEngine, TranslationError, validate_input

console = Console()


def _flag(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def credentials(
    file_path: Annotated[Path, typer.Argument(help="Jenkinsfile to scan", metavar="FILE")],
    scope: Annotated[
        str | None, typer.Option("--scope", help="Environment scope for generated variables")
    ] = None,
    project_id: Annotated[
        str | None, typer.Option("--project-id", help="GitLab project ID for the provisioning script")
    ] = None,
    env_file: Annotated[
        Path | None, typer.Option("--env-file", help="Write a placeholder .env template here")
    ] = None,
    script_file: Annotated[
        Path | None, typer.Option("--script", help="Write a provisioning shell script here")
    ] = None,
    live: Annotated[
        bool, typer.Option("--live", help="Provisioning script creates variables instead of dry-running")
    ] = False,
    batch_size: Annotated[
        int, typer.Option("--batch-size", min=1, max=50, help="Variables created per batch")
    ] = 10,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Overwrite files without asking")] = False,
) -> None:
    """Plan GitLab CI/CD variables for the credentials a Jenkinsfile uses.

    Values are never read or written; every variable gets a placeholder.

    Examples:
        ferryman credentials Jenkinsfile
        ferryman credentials Jenkinsfile --env-file .env.gitlab --script provision.sh
    """
    text = read_script(file_path)
    options = ResolveOptions(environment_scope=scope or str(get_config_value("environment_scope", "*")))
    try:
        validate_input(text, options)
    except TranslationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e

    resolver = MigrationEngine().credentials
    hits = resolver.scan(text)
    specs = resolver.resolve(hits, options)

    if not specs:
        console.print("[yellow]No credential references found[/yellow]")
        return

    table = Table(
        title=f"Variables for {file_path}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Masked", justify="center")
    table.add_column("Protected", justify="center")
    table.add_column("Scope")
    table.add_column("Jenkins ID", style="dim")

    for spec in specs:
        key = spec.key
        if resolver.needs_review(spec):
            key = f"{key} [yellow](review)[/yellow]"
        table.add_row(
            key,
            spec.value_kind.value,
            _flag(spec.masked),
            _flag(spec.protected),
            spec.scope,
            spec.source_id,
        )
    console.print(table)

    report = resolver.validate(specs)
    for error in report.errors:
        console.print(f"[red]Error:[/red] {error}")
    for warning in report.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    for recommendation in resolver.analyze_usage(hits).recommendations:
        console.print(f"[dim]- {recommendation}[/dim]")

    if env_file is not None:
        write_output(env_file, resolver.render_env_file(specs), yes=yes)
    if script_file is not None:
        provisioning = resolver.render_provisioning_script(
            specs,
            project_id=project_id or str(get_config_value("project_id", "")),
            dry_run=not live,
            batch_size=batch_size,
        )
        if write_output(script_file, provisioning, yes=yes):
            script_file.chmod(0o755)
