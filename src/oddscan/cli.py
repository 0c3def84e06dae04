"""oddscan CLI - supervised OpenDirectoryDownloader scans."""

from oddscan.cli_commands.shared import app, console
from oddscan.config import load_scanner_config
from oddscan.modules.indexer import ScanSession
from oddscan.utils.async_utils import safe_async_run

# Importing the command modules registers them on ``app``.
from oddscan.cli_commands import doctor_command, scan_command, version_command  # noqa: F401

__all__ = [
    "ScanSession",
    "app",
    "console",
    "load_scanner_config",
    "main",
    "safe_async_run",
]


def main():
    """Entry point for the CLI."""
    app()
