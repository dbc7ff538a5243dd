"""
osgi-forge - manifest header block parser

File: src/osgi_forge/manifest/headers.py
Last updated: 2026-10-18

Purpose
- Parse the raw text of a ``MANIFEST.MF`` into an ordered header -> value mapping.

Rules
- Blank lines are skipped.
- A line starting with whitespace continues the previous header: one leading
  whitespace character is dropped and the remainder is appended with no
  separator (72-column wrapping, not word joining).
- ``Name: value`` at line start opens a header; the value is left-trimmed.
- Reserved headers (per-entry ``Name`` sections and digests) are discarded
  together with their continuation lines.
- Duplicate headers and unrecognized lines are reported and otherwise ignored.

Non-functional requirements
- No diagnostic raised here is fatal; all go to the injected logger.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Final

from osgi_forge.constants import RESERVED_HEADERS

_HEADER_LINE_RE: Final[re.Pattern[str]] = re.compile(r"^(?P<name>[\w-]+)\s*:(?P<rest>.*)$")

_MODULE_LOGGER = logging.getLogger(__name__)


class HeaderBlock(Mapping[str, str]):
    """Ordered, read-only view of parsed manifest headers."""

    __slots__ = ("_headers", "label")

    def __init__(self, headers: Mapping[str, str], label: str) -> None:
        self._headers: dict[str, str] = dict(headers)
        self.label = label

    def __getitem__(self, name: str) -> str:
        return self._headers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"HeaderBlock({self._headers!r}, label={self.label!r})"


def parse_header_block(
    text: str,
    label: str,
    *,
    logger: logging.Logger | None = None,
) -> HeaderBlock:
    """Parse manifest ``text``; ``label`` prefixes every diagnostic (usually the file path)."""

    log = logger or _MODULE_LOGGER
    headers: dict[str, str] = {}
    last_header: str | None = None

    for lineno, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue

        if line[0].isspace():
            if last_header is None:
                log.warning(
                    "%s(%d): line starts with whitespace: %r",
                    label,
                    lineno,
                    line,
                    extra={"diagnostic": "orphan_continuation"},
                )
                continue
            if last_header in RESERVED_HEADERS:
                continue
            headers[last_header] += line[1:]
            continue

        match = _HEADER_LINE_RE.match(line)
        if match is None:
            log.warning(
                "%s(%d): unrecognized line %r",
                label,
                lineno,
                line,
                extra={"diagnostic": "unrecognized_line"},
            )
            continue

        last_header = match.group("name")
        if last_header in RESERVED_HEADERS:
            continue
        if last_header in headers:
            log.warning(
                "%s(%d): duplicate header %r",
                label,
                lineno,
                last_header,
                extra={"diagnostic": "duplicate_header"},
            )
        headers[last_header] = match.group("rest").lstrip()

    return HeaderBlock(headers, label)


__all__ = ["HeaderBlock", "parse_header_block"]
