"""Async HTTP client helpers for the CLI."""

from __future__ import annotations

from typing import NoReturn

import httpx
import typer
from rich.console import Console

from ferryman.cli.config import DEFAULT_SERVER_URL, get_config_value

console = Console()


def get_server_url() -> str:
    """Return the configured server URL."""
    return str(get_config_value("server_url", DEFAULT_SERVER_URL))


def create_client() -> httpx.AsyncClient:
    """Create an async HTTP client for the configured server."""
    # Translations of large Jenkinsfiles with enrichment can take a while
    return httpx.AsyncClient(base_url=get_server_url(), timeout=60.0)


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: object,
) -> httpx.Response:
    """Make an HTTP request, exiting with code 1 if the server is unreachable."""
    try:
        return await client.request(method, url, **kwargs)  # type: ignore[arg-type]
    except httpx.RequestError as exc:
        console.print(f"[red]Unable to reach server at {get_server_url()}.[/red]")
        console.print(f"[dim]{exc}[/dim]")
        raise typer.Exit(code=1) from exc


def fail_request(action: str, response: httpx.Response) -> NoReturn:
    """Report a failed HTTP request and exit with code 1."""
    console.print(f"[red]Failed to {action} ({response.status_code}).[/red]")
    if response.text:
        try:
            error_data = response.json()
        except ValueError:
            console.print(response.text)
        else:
            if isinstance(error_data, dict) and "detail" in error_data:
                console.print(f"[red]{error_data['detail']}[/red]")
            elif isinstance(error_data, dict) and "message" in error_data:
                console.print(f"[red]{error_data['message']}[/red]")
            else:
                console.print(response.text)
    raise typer.Exit(code=1)
