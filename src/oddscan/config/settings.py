"""Resolved scanner settings threaded into each scan."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from oddscan.errors import ValidationError

from .getters import get_config, get_executable, get_output_dir

DEFAULT_STATS_INTERVAL = 15.0
DEFAULT_SAMPLE_PERIOD = 0.5

_SIZE_REGEX = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmgt]?)(i?b?)\s*$", re.IGNORECASE)
_SIZE_FACTORS = {"": 1, "k": 1024, "m": 1024**2, "g": 1024**3, "t": 1024**4}


@dataclass(frozen=True)
class ScannerConfig:
    """Where the indexer lives and how its runs are supervised."""

    executable: Path
    output_dir: Path
    stats_interval: float = DEFAULT_STATS_INTERVAL
    memory_limit: int | None = None
    sample_period: float = DEFAULT_SAMPLE_PERIOD


def parse_size(value: Any) -> int | None:
    """Parse a memory size such as ``1073741824``, ``512M`` or ``2GiB`` into bytes.

    Sizes use binary multiples. Empty values mean "no limit".
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid memory size: {value!r}")
    if isinstance(value, (int, float)):
        size = int(value)
    else:
        match = _SIZE_REGEX.match(str(value))
        if not match:
            raise ValidationError(f"Invalid memory size: {value!r}")
        number, unit, _ = match.groups()
        size = int(float(number) * _SIZE_FACTORS[unit.lower()])
    if size <= 0:
        raise ValidationError(f"Memory size must be positive: {value!r}")
    return size


def _parse_float(value: Any, default: float) -> float:
    """Parse a positive float; fall back to *default* if unset or invalid."""
    if value is None or value == "":
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def load_scanner_config(project_dir: Path | None = None) -> ScannerConfig:
    """Build a ScannerConfig from env vars, project .env and global config."""
    return ScannerConfig(
        executable=get_executable(project_dir),
        output_dir=get_output_dir(project_dir),
        stats_interval=_parse_float(
            get_config("ODDSCAN_STATS_INTERVAL", project_dir), DEFAULT_STATS_INTERVAL
        ),
        memory_limit=parse_size(get_config("ODDSCAN_MEMORY_LIMIT", project_dir)),
        sample_period=_parse_float(
            get_config("ODDSCAN_SAMPLE_PERIOD", project_dir), DEFAULT_SAMPLE_PERIOD
        ),
    )
