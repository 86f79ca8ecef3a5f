"""Tests for the credentials command."""

import os
from pathlib import Path

from typer.testing import CliRunner

from ferryman.cli.app import app

runner = CliRunner()

JENKINSFILE = """pipeline {
    agent any
    environment {
        API_KEY = credentials('api-token')
    }
    stages {
        stage('Deploy') {
            steps {
                sh './deploy.sh'
            }
        }
    }
}
"""


def test_credentials_table(tmp_path: Path) -> None:
    source = tmp_path / "Jenkinsfile"
    source.write_text(JENKINSFILE)

    result = runner.invoke(app, ["credentials", str(source)])

    assert result.exit_code == 0, result.stdout
    assert "API_TOKEN" in result.stdout


def test_credentials_artifacts(tmp_path: Path) -> None:
    """The env template and provisioning script carry placeholders only."""
    source = tmp_path / "Jenkinsfile"
    source.write_text(JENKINSFILE)
    env_file = tmp_path / ".env.gitlab"
    script = tmp_path / "provision.sh"

    result = runner.invoke(
        app,
        [
            "credentials",
            str(source),
            "--env-file",
            str(env_file),
            "--script",
            str(script),
            "--project-id",
            "42",
            "--scope",
            "production",
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert "API_TOKEN=<ADD_VALUE>" in env_file.read_text()
    provisioning = script.read_text()
    assert 'PROJECT_ID="${PROJECT_ID:-42}"' in provisioning
    assert 'DRY_RUN="${DRY_RUN:-true}"' in provisioning
    assert "env_var true true production" in provisioning
    assert os.access(script, os.X_OK)


def test_credentials_live_script(tmp_path: Path, config_dir: Path) -> None:
    (config_dir / "config.json").write_text('{"project_id": "99"}')
    source = tmp_path / "Jenkinsfile"
    source.write_text(JENKINSFILE)
    script = tmp_path / "provision.sh"

    result = runner.invoke(app, ["credentials", str(source), "--script", str(script), "--live"])

    assert result.exit_code == 0
    provisioning = script.read_text()
    assert 'DRY_RUN="${DRY_RUN:-false}"' in provisioning
    assert 'PROJECT_ID="${PROJECT_ID:-99}"' in provisioning


def test_credentials_none_found(tmp_path: Path) -> None:
    source = tmp_path / "Jenkinsfile"
    source.write_text("node {\n  sh 'make'\n}\n")

    result = runner.invoke(app, ["credentials", str(source)])

    assert result.exit_code == 0
    assert "No credential references found" in result.stdout


def test_credentials_batch_size_bounds(tmp_path: Path) -> None:
    source = tmp_path / "Jenkinsfile"
    source.write_text(JENKINSFILE)

    result = runner.invoke(app, ["credentials", str(source), "--batch-size", "0"])

    assert result.exit_code != 0
