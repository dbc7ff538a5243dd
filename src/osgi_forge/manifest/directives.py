"""Split manifest header values into a primary token plus ``key:=value`` directives."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from osgi_forge.constants import DIRECTIVE_RESOLUTION, DIRECTIVE_VISIBILITY

_QUOTED_RE: Final[re.Pattern[str]] = re.compile(r'"[^"]*"')
_ASSIGNMENT_RE: Final[re.Pattern[str]] = re.compile(r":?=")

_MODULE_LOGGER = logging.getLogger(__name__)


class Visibility(StrEnum):
    PRIVATE = "private"
    REEXPORT = "reexport"


class Resolution(StrEnum):
    MANDATORY = "mandatory"
    OPTIONAL = "optional"


@dataclass(frozen=True, slots=True)
class ValueWithDirectives:
    """One parsed manifest value: the primary token and its directives."""

    value: str
    directives: Mapping[str, str] = field(default_factory=dict)

    def directive(self, key: str) -> str | None:
        """Return the directive value, or ``None`` when the key is absent."""
        return self.directives.get(key)

    def has_directive(self, key: str) -> bool:
        return key in self.directives

    @property
    def visibility(self) -> Visibility:
        raw = self.directive(DIRECTIVE_VISIBILITY)
        if raw == Visibility.REEXPORT.value:
            return Visibility.REEXPORT
        return Visibility.PRIVATE

    @property
    def resolution(self) -> Resolution:
        raw = self.directive(DIRECTIVE_RESOLUTION)
        if raw == Resolution.OPTIONAL.value:
            return Resolution.OPTIONAL
        return Resolution.MANDATORY

    @property
    def is_reexport(self) -> bool:
        return self.visibility is Visibility.REEXPORT

    @property
    def is_optional(self) -> bool:
        return self.resolution is Resolution.OPTIONAL

    def __str__(self) -> str:
        if not self.directives:
            return self.value
        rendered = ";".join(f"{key}={value}" for key, value in self.directives.items())
        return f"{self.value}; {rendered}"


def strip_quoted(raw: str) -> str:
    """Blank out every double-quoted substring so delimiters inside quotes are inert.

    Quoted content is not recoverable afterwards; only the boundary safety of
    quoting is kept.
    """

    return _QUOTED_RE.sub("", raw)


def parse_value(
    raw: str,
    label: str,
    header: str,
    *,
    logger: logging.Logger | None = None,
) -> ValueWithDirectives:
    """Parse one ``value;key:=v;key=v`` item. ``raw`` must already be quote-stripped."""

    log = logger or _MODULE_LOGGER
    tokens = raw.strip().split(";")
    primary = tokens[0].strip()
    directives: dict[str, str] = {}

    for token in tokens[1:]:
        pair = token.strip()
        if not pair:
            continue
        parts = _ASSIGNMENT_RE.split(pair, maxsplit=1)
        if len(parts) != 2:
            log.warning(
                "%s: unparsable directive in %s: %r",
                label,
                header,
                pair,
                extra={"diagnostic": "unparsable_directive"},
            )
            continue
        key, value = parts[0].strip(), parts[1].strip()
        directives[key] = value

    return ValueWithDirectives(value=primary, directives=directives)


def parse_values(
    raw: str,
    label: str,
    header: str,
    *,
    logger: logging.Logger | None = None,
) -> list[ValueWithDirectives]:
    """Parse a comma-separated list header. Items with an empty primary value are skipped."""

    parsed: list[ValueWithDirectives] = []
    for item in raw.split(","):
        if not item.strip():
            continue
        value = parse_value(item, label, header, logger=logger)
        if not value.value:
            continue
        parsed.append(value)
    return parsed


__all__ = [
    "Resolution",
    "ValueWithDirectives",
    "Visibility",
    "parse_value",
    "parse_values",
    "strip_quoted",
]
