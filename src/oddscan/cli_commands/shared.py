"""Shared CLI app objects and logging setup."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from oddscan.config import is_verbose

app = typer.Typer(
    name="oddscan",
    help="Supervised OpenDirectoryDownloader scans",
    no_args_is_help=True,
)
console = Console()


def configure_logging(verbose: bool) -> None:
    """Route package logging through Rich; DEBUG when verbose, WARNING otherwise."""
    effective = verbose or is_verbose()
    logging.basicConfig(
        level=logging.DEBUG if effective else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
