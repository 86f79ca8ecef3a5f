"""CLI configuration stored in ~/.config/ferryman/config.json.

Three keys are understood: ``server_url`` (where the translation service
runs), ``environment_scope`` (default scope for planned CI/CD variables)
and ``project_id`` (GitLab project used by the provisioning script).
Values for these keys are normalised on write; other keys are kept as
given so a newer CLI can share the file.
"""

import json
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

DEFAULT_SERVER_URL = "http://localhost:8000"


class ConfigError(Exception):
    """Raised when the config file or a value in it is unusable."""


def _server_url(value: str) -> str:
    url = value.strip().rstrip("/")
    if not re.match(r"^https?://[^/\s]+", url):
        raise ConfigError(f"server_url must be an http(s) URL, got {value!r}")
    return url


def _environment_scope(value: str) -> str:
    scope = value.strip()
    if not scope:
        raise ConfigError("environment_scope must not be blank")
    return scope


def _project_id(value: str) -> str:
    # Numeric id or a namespace/project path
    project = value.strip().strip("/")
    if not re.fullmatch(r"\d+|[\w.-]+(?:/[\w.-]+)+", project):
        raise ConfigError(f"project_id must be a number or a namespace/project path, got {value!r}")
    return project


NORMALIZERS: dict[str, Callable[[str], str]] = {
    "server_url": _server_url,
    "environment_scope": _environment_scope,
    "project_id": _project_id,
}
KNOWN_KEYS = tuple(NORMALIZERS)


def get_config_dir() -> Path:
    """Get XDG-compliant config directory for ferryman.

    Returns:
        Path to ~/.config/ferryman/
    """
    config_dir = Path.home() / ".config" / "ferryman"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file() -> Path:
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from file.

    Returns:
        Dictionary of configuration values, or empty dict if file doesn't exist.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    config_file = get_config_file()
    if not config_file.exists():
        return {}

    try:
        data = json.loads(config_file.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file is not valid JSON ({e.msg}): {config_file}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must hold a JSON object: {config_file}")
    return data


def save_config(config: dict[str, Any]) -> None:
    config_file = get_config_file()
    with config_file.open("w") as f:
        json.dump(config, f, indent=2, sort_keys=True)


def get_config_value(key: str, default: Any = None) -> Any:
    return load_config().get(key, default)


def set_config_value(key: str, value: str) -> str:
    """Store one value, normalising it when the key is known.

    Returns:
        The value as written to the file.

    Raises:
        ConfigError: If a known key gets an invalid value.
    """
    normalize = NORMALIZERS.get(key)
    stored = normalize(value) if normalize else value
    config = load_config()
    config[key] = stored
    save_config(config)
    return stored


def unset_config_value(key: str) -> bool:
    """Remove a key. Returns False when it was not set."""
    config = load_config()
    if key not in config:
        return False
    del config[key]
    save_config(config)
    return True
