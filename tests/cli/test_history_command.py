"""Tests for the history command."""

from unittest.mock import patch

import httpx
from typer.testing import CliRunner

from ferryman.cli.app import app

runner = CliRunner()


def _make_client(handler) -> httpx.AsyncClient:
    """Create a mock HTTP client with the given handler."""
    transport = httpx.MockTransport(handler)
    return httpx.AsyncClient(base_url="http://test", transport=transport)


def test_history_table() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/translate/log"
        assert request.url.params["limit"] == "5"
        return httpx.Response(
            200,
            json=[
                {
                    "id": 3,
                    "source_name": "Jenkinsfile",
                    "readiness_score": 92,
                    "complexity_tier": "medium",
                    "extraction_confidence": 1.0,
                    "plugin_count": 7,
                    "variable_count": 4,
                    "review_count": 3,
                    "created_at": "2024-01-02T03:04:05Z",
                }
            ],
        )

    client = _make_client(handler)
    with patch("ferryman.cli.commands.history.create_client", return_value=client):
        result = runner.invoke(app, ["history", "--limit", "5"])

    assert result.exit_code == 0, result.stdout
    assert "Recent Conversions" in result.stdout
    assert "2024-01-02" in result.stdout
    assert "medium" in result.stdout


def test_history_empty() -> None:
    client = _make_client(lambda request: httpx.Response(200, json=[]))
    with patch("ferryman.cli.commands.history.create_client", return_value=client):
        result = runner.invoke(app, ["history"])

    assert result.exit_code == 0
    assert "No conversion history found" in result.stdout


def test_history_server_error() -> None:
    client = _make_client(lambda request: httpx.Response(500, json={"message": "database locked"}))
    with patch("ferryman.cli.commands.history.create_client", return_value=client):
        result = runner.invoke(app, ["history"])

    assert result.exit_code == 1
    assert "database locked" in result.stdout
