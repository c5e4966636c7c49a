"""Tabular rendering of reviewer records."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TextIO

from review_tally.aggregator import ReviewerRecord

TABLE_HEADERS = ("Login", "Name", "Company", "Email", "Reviews")
PULL_REQUESTS_HEADER = "Pull Requests"
TABLE_MIN_WIDTH = 10
TABLE_TAB_WIDTH = 4
TABLE_PADDING = 3
TABLE_PAD_CHAR = " "


class ReportOutputError(RuntimeError):
    """Raised when the report cannot be written to its stream."""


def sort_by_reviews(records: Iterable[ReviewerRecord]) -> list[ReviewerRecord]:
    """Order records by review count, highest first; ties keep input order."""
    return sorted(records, key=lambda record: record.reviews, reverse=True)


def visible_records(records: Iterable[ReviewerRecord]) -> list[ReviewerRecord]:
    """Drop members without a single review."""
    return [record for record in records if record.reviews > 0]


def format_rows(
    records: Iterable[ReviewerRecord],
    *,
    include_pull_requests: bool = False,
) -> list[str]:
    """Return the header and one tab-separated line per record."""
    headers = list(TABLE_HEADERS)
    if include_pull_requests:
        headers.append(PULL_REQUESTS_HEADER)
    lines = ["\t".join(headers)]
    for record in records:
        cells = [record.login, record.name, record.company, record.email, str(record.reviews)]
        if include_pull_requests:
            cells.append("" if record.pull_requests is None else str(record.pull_requests))
        lines.append("\t".join(cells))
    return lines


def _padding(text_width: int, cell_width: int, *, tab_width: int, pad_char: str) -> str:
    if pad_char == "\t":
        if tab_width == 0:
            return ""
        cell_width = (cell_width + tab_width - 1) // tab_width * tab_width
        return "\t" * ((cell_width - text_width + tab_width - 1) // tab_width)
    return pad_char * (cell_width - text_width)


def align_columns(
    lines: Sequence[str],
    *,
    min_width: int = TABLE_MIN_WIDTH,
    tab_width: int = TABLE_TAB_WIDTH,
    padding: int = TABLE_PADDING,
    pad_char: str = TABLE_PAD_CHAR,
) -> str:
    """Align tab-separated cells into columns.

    Every tab-terminated cell is padded to the width of its column, which is
    the widest cell plus ``padding`` but never less than ``min_width``. The
    last cell of a line is written as-is. With a tab ``pad_char`` columns are
    rounded up to multiples of ``tab_width``; otherwise ``tab_width`` is unused.
    Lines are expected to share one cell count.
    """
    rows = [line.split("\t") for line in lines]
    column_count = max((len(row) - 1 for row in rows), default=0)

    widths: list[int] = []
    for column in range(column_count):
        width = min_width
        for row in rows:
            if column < len(row) - 1:
                width = max(width, len(row[column]) + padding)
        widths.append(width)

    rendered: list[str] = []
    for row in rows:
        parts: list[str] = []
        for column, cell in enumerate(row[:-1]):
            parts.append(cell)
            parts.append(
                _padding(len(cell), widths[column], tab_width=tab_width, pad_char=pad_char)
            )
        parts.append(row[-1])
        rendered.append("".join(parts))
    return "".join(f"{line}\n" for line in rendered)


def render_report(
    records: Iterable[ReviewerRecord],
    *,
    include_pull_requests: bool = False,
) -> str:
    """Render the sorted, filtered review table."""
    ranked = visible_records(sort_by_reviews(records))
    return align_columns(format_rows(ranked, include_pull_requests=include_pull_requests))


def write_report(
    records: Iterable[ReviewerRecord],
    stream: TextIO,
    *,
    include_pull_requests: bool = False,
) -> None:
    """Write the review table to stream in one piece."""
    text = render_report(records, include_pull_requests=include_pull_requests)
    try:
        stream.write(text)
        stream.flush()
    except (OSError, ValueError) as error:
        raise ReportOutputError(f"Could not write report: {error}") from error
