"""Configuration management commands."""

import typer
from rich.console import Console
from rich.table import Table

from ferryman.cli.config import (
    DEFAULT_SERVER_URL,
    KNOWN_KEYS,
    ConfigError,
    get_config_file,
    load_config,
    set_config_value,
    unset_config_value,
)

config_app = typer.Typer(
    name="config",
    help="Manage CLI configuration",
)
console = Console()


def _load_or_exit() -> dict[str, object]:
    try:
        return load_config()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


@config_app.command("show")
def config_show() -> None:
    """Display current configuration, including defaults in effect."""
    config = _load_or_exit()

    table = Table(title="Ferryman Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    effective = {"server_url": DEFAULT_SERVER_URL, "environment_scope": "*"}
    for key in KNOWN_KEYS:
        if key in config:
            table.add_row(key, str(config[key]), "config file")
        elif key in effective:
            table.add_row(key, effective[key], "default")
    for key in sorted(set(config) - set(KNOWN_KEYS)):
        table.add_row(key, str(config[key]), "unused")

    if not config:
        console.print("[yellow]No configuration found; using defaults.[/yellow]")
    console.print(table)
    console.print(f"\nConfig file: [dim]{get_config_file()}[/dim]")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Configuration key to set"),
    value: str = typer.Argument(..., help="Value to set"),
) -> None:
    """Set a configuration value.

    Examples:
        ferryman config set server_url http://localhost:8000
        ferryman config set environment_scope production
        ferryman config set project_id group/app
    """
    if key not in KNOWN_KEYS:
        console.print(
            f"[yellow]Unknown key {key}; known keys are {', '.join(KNOWN_KEYS)}[/yellow]"
        )
    try:
        stored = set_config_value(key, value)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]✓[/green] Set [cyan]{key}[/cyan] = [green]{stored}[/green]")
    console.print(f"Config file: [dim]{get_config_file()}[/dim]")


@config_app.command("unset")
def config_unset(key: str = typer.Argument(..., help="Configuration key to remove")) -> None:
    """Remove a configuration value so its default applies again."""
    _load_or_exit()
    if not unset_config_value(key):
        console.print(f"[yellow]{key} is not set[/yellow]")
        return
    console.print(f"[green]✓[/green] Removed [cyan]{key}[/cyan]")
