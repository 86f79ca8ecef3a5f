"""File helpers shared by the CLI commands."""

from pathlib import Path

import typer
from rich.console import Console

console = Console()


def read_script(path: Path) -> str:
    """Read a Jenkinsfile, exiting with code 1 if it cannot be read."""
    if not path.exists():
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(code=1)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Failed to read file:[/red] {e}")
        raise typer.Exit(code=1) from e


def write_output(path: Path, content: str, *, yes: bool) -> bool:
    """Write content to path, asking before overwriting an existing file.

    Returns:
        True if the file was written, False if the user declined.
    """
    if path.exists() and not yes and not typer.confirm(f"Overwrite {path}?", default=False):
        console.print(f"[yellow]Skipped[/yellow] {path}")
        return False
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Failed to write file:[/red] {e}")
        raise typer.Exit(code=1) from e
    console.print(f"[green]✓[/green] Wrote {path}")
    return True
