"""``oddscan doctor``: pre-flight health check command."""

from __future__ import annotations

import typer
from rich.markup import escape

from oddscan.errors import ValidationError

from .deps import cli_module
from .shared import app, console

STATUS_ICONS = {
    "pass": "[green]✓[/green]",
    "fail": "[red]✗[/red]",
    "warn": "[yellow]![/yellow]",
}


@app.command()
def doctor() -> None:
    """Check that scans can run."""
    from .doctor_checks import (
        CheckResult,
        check_executable,
        check_memory_limit,
        check_output_dir,
        check_python_version,
    )

    console.print("\n[bold]oddscan doctor[/bold]")
    console.print("─" * 36)
    console.print()

    results: list[CheckResult] = [check_python_version()]
    try:
        config = cli_module().load_scanner_config()
    except ValidationError as exc:
        results.append(
            CheckResult(
                "Configuration",
                "fail",
                str(exc),
                fix="Fix ODDSCAN_MEMORY_LIMIT (bytes, or a size such as 512M / 2GiB)",
            )
        )
    else:
        results.append(check_executable(config.executable))
        results.append(check_output_dir(config.output_dir))
        results.append(check_memory_limit(config.memory_limit))

    for r in results:
        icon = STATUS_ICONS.get(r.status, "?")
        console.print(f"  {icon} {escape(r.message)}")
        if r.fix and r.status in ("fail", "warn"):
            for line in r.fix.splitlines():
                console.print(f"    {escape(line)}")

    counts = {"pass": 0, "fail": 0, "warn": 0}
    for r in results:
        counts[r.status] = counts.get(r.status, 0) + 1

    console.print()
    console.print(
        f"  Summary: {counts['pass']} passed, {counts['warn']} warnings, {counts['fail']} failed"
    )
    console.print()

    if counts["fail"] > 0:
        raise typer.Exit(1)
