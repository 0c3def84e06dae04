"""Configuration getter functions."""

import os
import shutil
from pathlib import Path
from typing import Any

from .env_loader import global_config_dir, load_global_config, load_project_config

EXECUTABLE_NAME = "OpenDirectoryDownloader"


def get_config(key: str, project_dir: Path | None = None, default: Any = None) -> Any:
    """
    Get configuration value with priority:
    1. Environment variable
    2. Project .oddscan/.env file
    3. Global ~/.oddscan/config.yml
    4. Default value
    """
    env_value = os.environ.get(key)
    if env_value:
        return env_value

    project_config = load_project_config(project_dir)
    if key in project_config:
        return project_config[key]

    global_config = load_global_config()
    if key in global_config:
        return global_config[key]

    return default


def get_executable(project_dir: Path | None = None) -> Path:
    """Resolve the indexer binary: configured path, then PATH, then ~/.oddscan/ODD."""
    configured = get_config("ODDSCAN_EXECUTABLE", project_dir)
    if configured:
        return Path(str(configured)).expanduser()
    on_path = shutil.which(EXECUTABLE_NAME)
    if on_path:
        return Path(on_path)
    return global_config_dir() / "ODD" / EXECUTABLE_NAME


def get_output_dir(project_dir: Path | None = None) -> Path:
    """Directory the indexer runs in and writes its session files to."""
    configured = get_config("ODDSCAN_OUTPUT_DIR", project_dir)
    if configured:
        return Path(str(configured)).expanduser()
    return global_config_dir() / "Scans"


def is_verbose(project_dir: Path | None = None) -> bool:
    value = str(get_config("ODDSCAN_VERBOSE", project_dir, default="")).lower()
    return value in {"1", "true", "yes", "on"}
