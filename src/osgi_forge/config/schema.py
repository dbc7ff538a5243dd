"""
osgi-forge - configuration schema and validation.

File: src/osgi_forge/config/schema.py
Last updated: 2026-10-18

Purpose
- Define the built-in defaults and the strict shape of ``forge.toml``.

Validation model
- Every table section declares its fields with one checker per field.
  A checker returns the normalized value or ``None`` after recording an issue.
- Unknown keys and missing fields are issues, so a typo in ``forge.toml``
  fails loudly instead of silently falling back to a default.
- ``placement`` is the one open table: its keys are bundle names.
- Issue paths are dotted (``build.jobs``) with ``[i]`` for array items and
  come out in a deterministic order.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, NotRequired, TypedDict

from osgi_forge.constants import CONFIG_SCHEMA_VERSION

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

SOURCE_KINDS: Final[tuple[str, ...]] = ("binary", "source")
PLACEMENT_POLICIES: Final[tuple[str, ...]] = ("before-fragments", "after-fragments")
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("text", "json")

# (section, key) settings resolved relative to the file that set them.
PATH_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("build", "output_dir"),
    ("observability", "log_dir"),
)


class MetaConfig(TypedDict):
    schema_version: int


class SourceConfig(TypedDict):
    kind: Literal["binary", "source"]
    path: str
    include: bool
    qualifier: NotRequired[str]


class SelectionConfig(TypedDict):
    bundles: list[str]


class ResolutionConfig(TypedDict):
    allow_unresolved: bool
    system_packages: list[str]


class BuildConfig(TypedDict):
    output_dir: str
    compiler: list[str]
    compiler_args: list[str]
    encoding: str
    package_jars: bool
    jobs: int


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["text", "json"]
    log_dir: str
    log_to_file: bool


class ForgeConfig(TypedDict):
    meta: MetaConfig
    sources: list[SourceConfig]
    selection: SelectionConfig
    resolution: ResolutionConfig
    placement: dict[str, str]
    build: BuildConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[ForgeConfig] = {
    "meta": {"schema_version": CONFIG_SCHEMA_VERSION},
    "sources": [],
    "selection": {"bundles": []},
    "resolution": {
        "allow_unresolved": False,
        "system_packages": [
            "java",
            "javax",
            "org.ietf.jgss",
            "org.omg",
            "org.w3c.dom",
            "org.xml.sax",
        ],
    },
    "placement": {"org.eclipse.swt": "after-fragments"},
    "build": {
        "output_dir": "build",
        "compiler": ["javac"],
        "compiler_args": ["-g", "-nowarn"],
        "encoding": "UTF-8",
        "package_jars": True,
        "jobs": 1,
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "text",
        "log_dir": "logs",
        "log_to_file": False,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Normalized config when valid; otherwise ``config`` is ``None`` and ``issues`` explain why."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue.path}: {issue.message}" for issue in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- unknown failure"))


_Issues = list[ConfigValidationIssue]
_Check = Callable[[object, str, _Issues], Any]


def default_config() -> ForgeConfig:
    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade forge.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade osgi-forge"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``. Tables merge; lists and scalars replace."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        if isinstance(value, Mapping):
            existing = merged.get(key)
            merged[key] = merge_config(existing if isinstance(existing, Mapping) else {}, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    issues: _Issues = []
    normalized = _check_root(config, issues)
    if issues or normalized is None:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Return the normalized config or raise ``ConfigValidationError``."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


# ---------------------------------------------------------------------------
# Field checkers
# ---------------------------------------------------------------------------


def _text(value: object, path: str, issues: _Issues) -> str | None:
    if not isinstance(value, str):
        issues.append(ConfigValidationIssue(path, f"expected string, got {type(value).__name__}"))
        return None
    if not value.strip():
        issues.append(ConfigValidationIssue(path, "must not be empty"))
        return None
    return value.strip()


def _path_text(value: object, path: str, issues: _Issues) -> str | None:
    text = _text(value, path, issues)
    if text is not None and "\x00" in text:
        issues.append(ConfigValidationIssue(path, "must not contain NUL bytes"))
        return None
    return text


def _text_list(value: object, path: str, issues: _Issues) -> list[str] | None:
    if not isinstance(value, (list, tuple)):
        message = f"expected array of strings, got {type(value).__name__}"
        issues.append(ConfigValidationIssue(path, message))
        return None
    items = [_text(item, f"{path}[{index}]", issues) for index, item in enumerate(value)]
    return [item for item in items if item is not None]


def _command(value: object, path: str, issues: _Issues) -> list[str] | None:
    if isinstance(value, (list, tuple)) and not value:
        issues.append(ConfigValidationIssue(path, "must not be empty"))
        return None
    return _text_list(value, path, issues)


def _flag(value: object, path: str, issues: _Issues) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.append(ConfigValidationIssue(path, f"expected boolean, got {type(value).__name__}"))
    return None


def _positive_int(value: object, path: str, issues: _Issues) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.append(ConfigValidationIssue(path, f"expected integer, got {type(value).__name__}"))
        return None
    if value < 1:
        issues.append(ConfigValidationIssue(path, "must be >= 1"))
        return None
    return value


def _one_of(choices: tuple[str, ...], *, fold_case: bool = False) -> _Check:
    def check(value: object, path: str, issues: _Issues) -> str | None:
        text = _text(value, path, issues)
        if text is None:
            return None
        if fold_case:
            text = text.upper()
        if text not in choices:
            expected = ", ".join(sorted(choices))
            message = f"invalid value {text!r}; expected one of: {expected}"
            issues.append(ConfigValidationIssue(path, message))
            return None
        return text

    return check


def _schema_version(value: object, path: str, issues: _Issues) -> int | None:
    version = _positive_int(value, path, issues)
    if version is not None and version != ConfigSchemaVersion:
        issues.append(ConfigValidationIssue(path, migration_guidance(version)))
        return None
    return version


# Section order fixes the order issues are reported in.
_SECTIONS: Final[dict[str, dict[str, _Check]]] = {
    "meta": {"schema_version": _schema_version},
    "selection": {"bundles": _text_list},
    "resolution": {"allow_unresolved": _flag, "system_packages": _text_list},
    "build": {
        "output_dir": _path_text,
        "compiler": _command,
        "compiler_args": _text_list,
        "encoding": _text,
        "package_jars": _flag,
        "jobs": _positive_int,
    },
    "observability": {
        "log_level": _one_of(LOG_LEVELS, fold_case=True),
        "log_format": _one_of(LOG_FORMATS),
        "log_dir": _path_text,
        "log_to_file": _flag,
    },
}

_SOURCE_FIELDS: Final[dict[str, _Check]] = {
    "kind": _one_of(SOURCE_KINDS),
    "path": _path_text,
    "include": _flag,
    "qualifier": _text,
}
_SOURCE_REQUIRED: Final[frozenset[str]] = frozenset({"kind", "path"})

_placement_policy = _one_of(PLACEMENT_POLICIES)


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


def _check_root(config: object, issues: _Issues) -> dict[str, Any] | None:
    root = _table(config, "<root>", issues)
    if root is None:
        return None
    _check_keys(root, set(_SECTIONS) | {"sources", "placement"}, "", issues)

    out: dict[str, Any] = {}
    for section, fields in _SECTIONS.items():
        if section in root:
            table = _table(root[section], section, issues)
            if table is not None:
                out[section] = _check_fields(table, fields, set(fields), section, issues)
    if "placement" in root:
        placement = _table(root["placement"], "placement", issues)
        if placement is not None:
            out["placement"] = {}
            for name in sorted(placement):
                policy = _placement_policy(placement[name], f"placement.{name}", issues)
                if policy is not None:
                    out["placement"][name] = policy
    if "sources" in root:
        out["sources"] = _check_sources(root["sources"], issues)
    return out


def _check_sources(value: object, issues: _Issues) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        message = f"expected array of tables, got {type(value).__name__}"
        issues.append(ConfigValidationIssue("sources", message))
        return []
    sources: list[dict[str, Any]] = []
    for index, raw in enumerate(value):
        path = f"sources[{index}]"
        table = _table(raw, path, issues)
        if table is not None:
            source: dict[str, Any] = {"include": False}
            source.update(
                _check_fields(table, _SOURCE_FIELDS, set(_SOURCE_REQUIRED), path, issues)
            )
            sources.append(source)
    return sources


def _check_fields(
    table: Mapping[str, object],
    fields: Mapping[str, _Check],
    required: set[str],
    path: str,
    issues: _Issues,
) -> dict[str, Any]:
    _check_keys(table, set(fields), path, issues, required=required)
    out: dict[str, Any] = {}
    for key, check in fields.items():
        if key in table:
            value = check(table[key], f"{path}.{key}", issues)
            if value is not None:
                out[key] = value
    return out


def _check_keys(
    table: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _Issues,
    *,
    required: set[str] | None = None,
) -> None:
    prefix = f"{path}." if path else ""
    for key in sorted(set(table) - allowed):
        issues.append(ConfigValidationIssue(f"{prefix}{key}", "unknown field"))
    for key in sorted((allowed if required is None else required) - set(table)):
        issues.append(ConfigValidationIssue(f"{prefix}{key}", "missing required field"))


def _table(value: object, path: str, issues: _Issues) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.append(ConfigValidationIssue(path, f"expected object, got {type(value).__name__}"))
        return None
    table: dict[str, object] = {}
    for key, item in value.items():
        if isinstance(key, str):
            table[key] = item
        else:
            message = f"object key must be string, got {type(key).__name__}"
            issues.append(ConfigValidationIssue(path, message))
    return table


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "PLACEMENT_POLICIES",
    "SOURCE_KINDS",
    "BuildConfig",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ForgeConfig",
    "ObservabilityConfig",
    "ResolutionConfig",
    "SelectionConfig",
    "SourceConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
