"""Environment file and global configuration loading."""

from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR_NAME = ".oddscan"


def global_config_dir() -> Path:
    """Return the global ~/.oddscan directory."""
    return Path.home() / CONFIG_DIR_NAME


def find_project_dir(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) to the first directory holding .oddscan/.env."""
    current = (start or Path.cwd()).resolve()
    home_config = global_config_dir()
    for candidate in (current, *current.parents):
        marker = candidate / CONFIG_DIR_NAME
        if marker == home_config:
            continue
        if (marker / ".env").is_file():
            return candidate
    return None


def load_env_file(env_path: Path) -> dict[str, str]:
    """Load KEY=value pairs from a .env file."""
    env_vars = {}
    if env_path.exists():
        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    env_vars[key.strip()] = value.strip().strip("\"'")
    return env_vars


def load_global_config() -> dict[str, Any]:
    """Load global configuration from ~/.oddscan/config.yml."""
    config_path = global_config_dir() / "config.yml"
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return data if isinstance(data, dict) else {}
    return {}


def load_project_config(project_dir: Path | None = None) -> dict[str, str]:
    """Load project-specific configuration from <project>/.oddscan/.env."""
    if project_dir is None:
        project_dir = find_project_dir()
    if project_dir is None:
        return {}
    return load_env_file(project_dir / CONFIG_DIR_NAME / ".env")
