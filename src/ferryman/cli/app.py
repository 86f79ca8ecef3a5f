"""Main CLI application using Typer."""

import typer
from rich.console import Console

from ferryman import __version__
from ferryman.cli.commands.config import config_app
from ferryman.cli.commands.convert import convert
from ferryman.cli.commands.credentials import credentials
from ferryman.cli.commands.history import history
from ferryman.cli.commands.plugins import plugins
from ferryman.cli.config import ConfigError, load_config

app = typer.Typer(
    name="ferryman",
    help="Ferryman - move Jenkins pipelines to GitLab CI/CD",
    add_completion=False,
)
console = Console()

# Register subcommands
app.command("convert")(convert)
app.command("plugins")(plugins)
app.command("credentials")(credentials)
app.command("history")(history)
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    """Show version information."""
    if value:
        console.print(f"Ferryman version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Ferryman CLI - convert Jenkinsfiles to .gitlab-ci.yml."""
    # The config commands report a broken file themselves
    if ctx.invoked_subcommand == "config":
        return
    try:
        load_config()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Fix or delete the file, then retry.")
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
