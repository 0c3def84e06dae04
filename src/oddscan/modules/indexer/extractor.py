"""Recover side-file paths and the report table from a finished transcript."""

from __future__ import annotations

import re
from pathlib import Path

from oddscan.errors import (
    EmptyResultError,
    ProtocolParseError,
    SessionFileNotFoundError,
    UrlListFileNotFoundError,
)

from .models import ExtractedReport

FINISHED_MARKER = "Finished indexing"
NOTHING_FOUND_MARKER = "No URLs to save"
SAVING_URLS_MARKER = "Saving URL list to file.."
REPORT_HEADER = "|**Url**|"
CREDITS = (
    "^(Created by [KoalaBear84's OpenDirectory Indexer]"
    "(https://github.com/KoalaBear84/OpenDirectoryDownloader/))"
)

_SESSION_FILE_REGEX = re.compile(r"Saved session: (.*)")
_URL_LIST_FILE_REGEX = re.compile(r"Saved URL list to file: (.*)")
_CREDITS_REGEX = re.compile(
    r"^\^\(Created by \[KoalaBear84's OpenDirectory Indexer\]\([^)\s]+\)\)", re.M
)
# One report table: the header row plus every following "|" row.
_TABLE_REPORT_REGEX = re.compile(r"^\|\*\*Url\*\*\|[^\n]*(?:\n\|[^\n]*)*", re.M)
# Speedtest runs append a speed section after the table, so read up to the credits.
_SPEEDTEST_REPORT_REGEX = re.compile(
    r"^\|\*\*Url\*\*\|.*?(?=^\^\(Created by |\Z)", re.M | re.S
)
_SIZES_INCOMPLETE_REGEX = re.compile(r"total:(?:\*\*)?\s*n/a", re.I)


def extract_report(transcript: str, speedtest: bool = False) -> ExtractedReport:
    """Extract the final report from a complete indexer transcript.

    Raises:
        ProtocolParseError: a required marker is missing.
        EmptyResultError: the indexer found no files or directories.
    """
    if FINISHED_MARKER not in transcript:
        raise ProtocolParseError("OpenDirectoryDownloader never finished indexing")

    if NOTHING_FOUND_MARKER in transcript:
        raise EmptyResultError("OpenDirectoryDownloader didn't find any files or directories")

    _, found, tail = transcript.partition(SAVING_URLS_MARKER)
    if not found:
        raise ProtocolParseError("Transcript has no URL list section")

    # First capturing group only; the indexer saves each file once.
    session_match = _SESSION_FILE_REGEX.search(tail)
    if not session_match:
        raise SessionFileNotFoundError("JSON session file not found")
    url_list_match = _URL_LIST_FILE_REGEX.search(tail)
    if not url_list_match:
        raise UrlListFileNotFoundError("URL list file not found")

    report = _last_report(tail, speedtest)
    if report is None:
        raise ProtocolParseError("Report table not found in transcript")

    credits_match = _CREDITS_REGEX.search(transcript)
    return ExtractedReport(
        session_file=Path(session_match.group(1).strip()),
        url_list_file=Path(url_list_match.group(1).strip()),
        report=report,
        credits=credits_match.group(0) if credits_match else CREDITS,
        sizes_incomplete=bool(_SIZES_INCOMPLETE_REGEX.search(report)),
    )


def _last_report(text: str, speedtest: bool) -> str | None:
    pattern = _SPEEDTEST_REPORT_REGEX if speedtest else _TABLE_REPORT_REGEX
    matches = list(pattern.finditer(text))
    if not matches:
        return None
    block = matches[-1].group(0)
    # Some indexer versions print the table twice; keep the last one.
    block = block[block.rfind(REPORT_HEADER) :]
    return block.strip()
