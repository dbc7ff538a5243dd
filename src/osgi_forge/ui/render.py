"""Plain-text rendering of plans and build reports for the osgi-forge CLI.

File: src/osgi_forge/ui/render.py
Last updated: 2026-10-18

Purpose
- Turn plan records and build records into aligned tables on stdout.
- Respect the NO_COLOR environment variable and the --no-color CLI flag.

Diagnostics never go through here; they are log records on stderr.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from typing import Any

_BOLD = "\033[1m"
_RESET = "\033[0m"

_PLAN_HEADERS = ("#", "Bundle", "Version", "Kind", "Host")
_BUILT_HEADERS = ("Bundle", "Version", "Classpath entries")


def _color_allowed(no_color_flag: bool) -> bool:
    if no_color_flag or os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    """Left-aligned columns separated by two spaces, with a dashed rule under the header."""

    widths = [len(header) for header in headers]
    for row in rows:
        for index, cell in enumerate(row[: len(headers)]):
            widths[index] = max(widths[index], len(cell))

    def line(cells: Sequence[str]) -> str:
        padded = (cell.ljust(width) for cell, width in zip(cells, widths, strict=False))
        return "  ".join(padded).rstrip()

    return [line(headers), line(["-" * width for width in widths]), *map(line, rows)]


class CLIRenderer:
    def __init__(self, *, no_color: bool = False) -> None:
        self._color = _color_allowed(no_color)

    @property
    def color(self) -> bool:
        return self._color

    def heading(self, text: str) -> None:
        print(f"{_BOLD}{text}{_RESET}" if self._color else text)

    def text(self, line: str) -> None:
        print(line)

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        if rows:
            for line in format_table(headers, rows):
                print(f"  {line}")

    def plan(self, records: Sequence[Mapping[str, Any]]) -> None:
        self.heading(f"Build plan ({len(records)} bundle(s))")
        self.table(
            _PLAN_HEADERS,
            [
                [
                    str(record["position"]),
                    record["name"],
                    record["version"] or "-",
                    record["kind"],
                    record["fragment_host"] or "",
                ]
                for record in records
            ],
        )

    def unresolved(self, unresolved: Mapping[str, Sequence[Mapping[str, str]]]) -> None:
        """List references the run tolerated because unresolved bundles were allowed."""

        for title, key, verb in (
            ("Unresolved bundles:", "bundles", "required by"),
            ("Unresolved packages:", "packages", "imported by"),
        ):
            entries = unresolved.get(key) or []
            if not entries:
                continue
            print()
            self.heading(title)
            for entry in entries:
                owner = entry.get("required_by") or entry.get("imported_by")
                print(f"  - {entry['name']} ({verb} {owner})")

    def built(self, records: Sequence[Mapping[str, Any]], output_dir: str) -> None:
        print()
        self.heading("Built bundles:")
        self.table(
            _BUILT_HEADERS,
            [
                [record["name"], record["version"] or "-", str(len(record["exported_classpath"]))]
                for record in records
            ],
        )
        print()
        print(f"Output: {output_dir}")


def create_renderer(*, no_color: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color)


__all__ = ["CLIRenderer", "create_renderer", "format_table"]
