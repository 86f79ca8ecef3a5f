"""Shared fixtures for CLI tests."""

from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def config_dir(tmp_path: Path) -> Path:
    """Point the CLI configuration at a temporary directory."""
    config_dir = tmp_path / "config" / "ferryman"
    config_dir.mkdir(parents=True)
    with patch("ferryman.cli.config.get_config_dir", return_value=config_dir):
        yield config_dir
