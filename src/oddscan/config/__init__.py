"""
Configuration management for oddscan.

Supports multiple configuration sources in order of priority:
1. Environment variables (highest priority)
2. Project .env file (.oddscan/.env)
3. Global config file (~/.oddscan/config.yml)
4. Default values (lowest priority)
"""

from .env_loader import (
    find_project_dir,
    global_config_dir,
    load_env_file,
    load_global_config,
    load_project_config,
)
from .getters import get_config, get_executable, get_output_dir, is_verbose
from .settings import ScannerConfig, load_scanner_config, parse_size

__all__ = [
    # env_loader
    "find_project_dir",
    "global_config_dir",
    "load_env_file",
    "load_global_config",
    "load_project_config",
    # getters
    "get_config",
    "get_executable",
    "get_output_dir",
    "is_verbose",
    # settings
    "ScannerConfig",
    "load_scanner_config",
    "parse_size",
]
