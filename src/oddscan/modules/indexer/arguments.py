"""Command-line construction for OpenDirectoryDownloader."""

from __future__ import annotations

import shlex

from oddscan.errors import ValidationError

from .models import ScanOptions


def build_arguments(target: str, options: ScanOptions | None = None) -> list[str]:
    """Assemble the indexer arguments for *target*.

    The list is joined into a shell command line, so free-form values are
    quoted with :func:`shlex.quote`. Flags are emitted in a fixed order.
    """
    if options is None:
        options = ScanOptions()

    target = str(target or "").strip()
    if not target:
        raise ValidationError("A URL to scan is required")
    options.validate()

    args = ["-u", shlex.quote(target), "--quit", "--json"]

    if options.upload_url_list:
        args.append("--upload-urls")
    if options.run_speedtest:
        args.append("--speedtest")
    if options.fast_scan:
        args.append("--fast-scan")
    if options.exact_sizes:
        args.append("--exact-file-sizes")

    if options.threads is not None:
        args.extend(["--threads", str(options.threads)])
    if options.timeout is not None:
        args.extend(["--timeout", str(options.timeout)])

    if options.output_file:
        args.extend(["--output-file", shlex.quote(options.output_file)])
    if options.user_agent:
        args.extend(["--user-agent", shlex.quote(options.user_agent)])
    if options.username is not None:
        args.extend(["--username", shlex.quote(options.username)])
    if options.password is not None:
        args.extend(["--password", shlex.quote(options.password)])

    return args


def redact_arguments(args: list[str]) -> list[str]:
    """Return a copy of *args* safe for logging."""
    redacted = list(args)
    for idx, value in enumerate(redacted[:-1]):
        if value == "--password":
            redacted[idx + 1] = "***"
    return redacted
