"""Scan CLI command."""

import json

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from oddscan.config import parse_size
from oddscan.errors import EmptyResultError, OddScanError, PartialSuccessError
from oddscan.modules.indexer import ScanOptions, ScanResult

from .deps import cli_module
from .scan_display import run_scan_with_live_display
from .shared import app, configure_logging, console


@app.command()
def scan(
    url: str = typer.Argument(..., help="Open directory URL to index"),
    output_file: str | None = typer.Option(
        None, "--output-file", "-o", help="Base name for the session and URL list files"
    ),
    keep_session: bool = typer.Option(
        False, "--keep-session", help="Keep the JSON session file after the scan"
    ),
    keep_url_list: bool = typer.Option(
        False, "--keep-url-list", help="Keep the URL list file after the scan"
    ),
    parse_session: bool = typer.Option(
        True, "--parse-session/--no-parse-session", help="Load the JSON session into the result"
    ),
    speedtest: bool = typer.Option(False, "--speedtest", help="Run a speed test after indexing"),
    upload_urls: bool = typer.Option(False, "--upload-urls", help="Upload the URL list file"),
    fast_scan: bool = typer.Option(False, "--fast-scan", help="Skip file size probing"),
    exact_sizes: bool = typer.Option(
        False, "--exact-sizes", help="Fetch exact file sizes instead of estimates"
    ),
    threads: int | None = typer.Option(None, "--threads", "-t", help="Indexer threads"),
    timeout: int | None = typer.Option(None, "--timeout", help="Indexer request timeout (s)"),
    user_agent: str = typer.Option("", "--user-agent", help="Custom User-Agent"),
    username: str | None = typer.Option(None, "--username", help="HTTP auth username"),
    password: str | None = typer.Option(None, "--password", help="HTTP auth password"),
    stats_interval: float | None = typer.Option(
        None, "--stats-interval", help="Seconds between statistics requests"
    ),
    memory_limit: str | None = typer.Option(
        None, "--memory-limit", "-m", help="Kill the indexer above this RSS (e.g. 2GiB)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index an open directory with OpenDirectoryDownloader."""
    cli = cli_module()
    configure_logging(verbose)

    try:
        config = cli.load_scanner_config()
        options = ScanOptions(
            output_file=output_file,
            keep_session_file=keep_session,
            keep_url_list_file=keep_url_list,
            parse_session_file=parse_session,
            run_speedtest=speedtest,
            upload_url_list=upload_urls,
            fast_scan=fast_scan,
            exact_sizes=exact_sizes,
            user_agent=user_agent,
            username=username,
            password=password,
            threads=threads,
            timeout=timeout,
            stats_interval=stats_interval or config.stats_interval,
            memory_limit=parse_size(memory_limit),
        )
        session = cli.ScanSession(config)
        result = cli.safe_async_run(_run(session, url, options, live=not as_json))
    except PartialSuccessError as exc:
        console.print(
            f"[yellow]Scan finished but the session file was unusable: {escape(str(exc))}[/yellow]"
        )
        _print_result(exc.result, as_json)
        raise typer.Exit(1) from exc
    except EmptyResultError as exc:
        console.print(f"[yellow]{escape(str(exc))}[/yellow]")
        raise typer.Exit(2) from exc
    except OddScanError as exc:
        console.print(f"[red]Scan failed ({exc.kind}): {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    _print_result(result, as_json)


async def _run(session, url: str, options: ScanOptions, live: bool) -> ScanResult:
    handle = session.start(url, options)
    if live:
        return await run_scan_with_live_display(handle, console)
    return await handle


def _print_result(result: ScanResult, as_json: bool) -> None:
    if as_json:
        console.print_json(json.dumps(result.to_dict()))
        return

    console.print(Panel(Text(result.report), title="Report", border_style="green"))
    console.print(Text(result.credits, style="dim"))
    if result.sizes_incomplete:
        console.print("[yellow]Total size could not be computed for every file.[/yellow]")
    if result.session_file:
        console.print(f"[green]Session file:[/green] {result.session_file}")
    if result.url_list_file:
        console.print(f"[green]URL list:[/green] {result.url_list_file}")
