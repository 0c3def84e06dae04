"""``oddscan version`` command."""

from importlib.metadata import PackageNotFoundError, version as pkg_version

from .shared import app, console


@app.command()
def version() -> None:
    """Show the installed oddscan version."""
    try:
        current_version = pkg_version("oddscan")
    except PackageNotFoundError:
        current_version = "0.0.0+unknown"

    console.print(f"oddscan {current_version}")
