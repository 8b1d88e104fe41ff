"""Console output helpers for the clusterctl tools.

Usage:
    from clusterctl.cli.output import print_status, print_table

    print_status("HDFS started", "success")
    print_table(rows, columns=["node", "reachable"])
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from clusterctl.monitoring.diagnostic_reporter import ReportLine

_USE_COLORS = sys.stdout.isatty() and not os.environ.get("NO_COLOR")

_COLORS = {
    "red": "\033[91m",
    "green": "\033[92m",
    "yellow": "\033[93m",
    "blue": "\033[94m",
    "bold": "\033[1m",
}
_RESET = "\033[0m"

_MARKERS = {
    "info": ("[i]", "blue"),
    "success": ("[+]", "green"),
    "warning": ("[!]", "yellow"),
    "error": ("[x]", "red"),
}


def _color(text: str, color: str) -> str:
    if not _USE_COLORS:
        return text
    code = _COLORS.get(color, "")
    if not code:
        return text
    return f"{code}{text}{_RESET}"


def format_status(message: str, status: str = "info") -> str:
    marker, color = _MARKERS.get(status, _MARKERS["info"])
    return f"{_color(marker, color)} {message}"


def print_status(message: str, status: str = "info") -> None:
    """Print a message with a status marker ([i], [+], [!], [x])."""
    print(format_status(message, status))


def print_error(message: str) -> None:
    print_status(message, "error")


def print_success(message: str) -> None:
    print_status(message, "success")


def print_warning(message: str) -> None:
    print_status(message, "warning")


def print_section(title: str) -> None:
    print()
    print(_color(f"=== {title} ===", "bold"))


def print_table(
    data: Sequence[Mapping[str, Any]],
    columns: Sequence[str] | None = None,
    headers: Mapping[str, str] | None = None,
) -> None:
    """Print rows as an aligned text table."""
    if not data:
        print("(no data)")
        return

    columns = list(columns or data[0].keys())
    headers = headers or {}
    titles = [headers.get(c, c) for c in columns]
    cells = [["" if row.get(c) is None else str(row.get(c)) for c in columns] for row in data]
    widths = [max(len(titles[i]), *(len(r[i]) for r in cells)) for i in range(len(columns))]

    print("  ".join(_color(t.ljust(w), "bold") for t, w in zip(titles, widths)))
    print("  ".join("-" * w for w in widths))
    for row in cells:
        print("  ".join(v.ljust(w) for v, w in zip(row, widths)))


def print_report(lines: Iterable[ReportLine]) -> None:
    """Print rendered diagnostic lines."""
    for line in lines:
        if line.status == "section":
            print_section(line.text)
        elif line.status == "verbatim":
            print(line.text)
        else:
            print_status(line.text, line.status)
