"""Reader for the Java-properties subset used by ``build.properties``.

Supported: ``key = value`` / ``key: value`` / ``key value`` separators,
backslash line continuation, ``#`` and ``!`` comment lines, and the common
escapes ``\\t``, ``\\n``, ``\\\\``. Unicode escapes are not interpreted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def parse_properties(text: str) -> dict[str, str]:
    properties: dict[str, str] = {}
    for logical in _logical_lines(text):
        key, value = _split_pair(logical)
        if key:
            properties[key] = value
    return properties


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated property value, dropping empty items."""

    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True, slots=True)
class BuildProperties:
    """Typed view over the keys the source materializer consumes."""

    values: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, bundle_root: Path, relative_path: str = "build.properties") -> BuildProperties:
        path = bundle_root / relative_path
        if not path.is_file():
            return cls()
        return cls(parse_properties(path.read_text(encoding="latin-1")))

    def source_folders(self, entry: str) -> list[str]:
        return split_list(self.values.get(f"source.{entry}"))

    def output_folders(self, entry: str) -> list[str]:
        return split_list(self.values.get(f"output.{entry}"))

    @property
    def bin_includes(self) -> list[str]:
        return split_list(self.values.get("bin.includes"))

    @property
    def javac_encoding(self) -> str | None:
        return self.values.get("javacDefaultEncoding..") or None

    def __contains__(self, key: object) -> bool:
        return key in self.values


def _logical_lines(text: str) -> list[str]:
    lines: list[str] = []
    pending: str | None = None
    for physical in text.splitlines():
        stripped = physical.lstrip()
        if pending is None:
            if not stripped or stripped[0] in "#!":
                continue
            current = stripped
        else:
            current = pending + stripped
        if _ends_with_continuation(current):
            pending = current[:-1]
            continue
        lines.append(current)
        pending = None
    if pending is not None:
        lines.append(pending)
    return lines


def _ends_with_continuation(line: str) -> bool:
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _split_pair(line: str) -> tuple[str, str]:
    key_chars: list[str] = []
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\" and index + 1 < len(line):
            key_chars.append(_unescape_char(line[index + 1]))
            index += 2
            continue
        if char in "=: \t\f":
            break
        key_chars.append(char)
        index += 1

    rest = line[index:].lstrip(" \t\f")
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(" \t\f")
    return "".join(key_chars), _unescape(rest)


def _unescape(value: str) -> str:
    chars: list[str] = []
    index = 0
    while index < len(value):
        char = value[index]
        if char == "\\" and index + 1 < len(value):
            chars.append(_unescape_char(value[index + 1]))
            index += 2
            continue
        chars.append(char)
        index += 1
    return "".join(chars)


def _unescape_char(char: str) -> str:
    return _ESCAPES.get(char, char)


__all__ = ["BuildProperties", "parse_properties", "split_list"]
