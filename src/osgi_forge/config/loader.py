"""
osgi-forge - runtime config loader.

File: src/osgi_forge/config/loader.py
Last updated: 2026-10-18

Purpose
- Produce the effective config of a run from four layers, lowest first:
  built-in defaults, ``forge.toml``, ``OSGI_FORGE_*`` environment variables,
  and CLI overrides.

Layering rules
- The file layer is validated on its own before env and CLI layers are
  applied, so a bad file is reported against file paths, not merged ones.
- Relative paths from the file resolve against the file's directory; paths
  from env and CLI resolve against the working directory.
- Only scalar and string-list settings are reachable from the environment.
  ``sources``, ``placement`` and ``meta`` hold data rather than settings.
- A missing default ``forge.toml`` is not an error; a missing explicit one is.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from osgi_forge.config.schema import (
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "forge.toml"
ENV_PREFIX: Final[str] = "OSGI_FORGE_"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})

_DATA_SECTIONS: Final[frozenset[str]] = frozenset({"placement", "sources", "meta"})


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


@dataclass(frozen=True, slots=True)
class _EnvSetting:
    """One environment variable bound to a config setting of a fixed type."""

    variable: str
    path: tuple[str, ...]
    kind: type

    def coerce(self, raw: str) -> object:
        text = raw.strip()
        if self.kind is list:
            return [item.strip() for item in text.split(",") if item.strip()]
        if self.kind is int:
            try:
                return int(text)
            except ValueError as exc:
                raise ConfigLoadError(f"{self._label} must be an integer") from exc
        if self.kind is bool:
            if text.lower() in _TRUTHY:
                return True
            if text.lower() in _FALSY:
                return False
            raise ConfigLoadError(
                f"{self._label} must be a boolean (true/false/1/0/yes/no/on/off)"
            )
        return text

    @property
    def _label(self) -> str:
        return f"{self.variable} -> {'.'.join(self.path)}"


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load the effective config. ``cli_overrides`` keys are dotted paths (``build.jobs``)."""

    path = resolve_config_path(config_path)
    file_layer = _read_toml(path, required=config_path is not None)

    config = assert_valid_config(merge_config(default_config(), file_layer))
    config = normalize_paths(config, base_dir=path.parent)

    env = os.environ if environ is None else environ
    env_layer: dict[str, Any] = {}
    for setting in _env_settings(config):
        if setting.variable in env:
            _assign(env_layer, setting.path, setting.coerce(env[setting.variable]))

    cli_layer: dict[str, Any] = {}
    for key, value in sorted((cli_overrides or {}).items()):
        parts = tuple(part for part in key.split(".") if part)
        if not parts:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        _assign(cli_layer, parts, value)

    config = assert_valid_config(merge_config(merge_config(config, env_layer), cli_layer))
    return normalize_paths(config, base_dir=Path.cwd())


def resolve_config_path(config_path: str | Path | None) -> Path:
    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Return a copy with path settings and source folders made absolute against ``base_dir``."""

    normalized = merge_config({}, config)
    for section, key in PATH_FIELDS:
        table = normalized.get(section)
        if isinstance(table, dict) and isinstance(table.get(key), str):
            table[key] = _absolute(table[key], base_dir)
    for source in normalized.get("sources") or []:
        if isinstance(source, dict) and isinstance(source.get("path"), str):
            source["path"] = _absolute(source["path"], base_dir)
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    return json.dumps(config, sort_keys=True, indent=2, ensure_ascii=False)


def env_bindings(config: Mapping[str, object]) -> dict[str, tuple[str, ...]]:
    """Environment variable name -> config path for every overridable setting."""

    return {setting.variable: setting.path for setting in _env_settings(config)}


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_settings(config: Mapping[str, object]) -> Iterator[_EnvSetting]:
    for path, value in _leaves(config):
        if path[0] in _DATA_SECTIONS:
            continue
        kind: type
        if isinstance(value, bool):
            kind = bool
        elif isinstance(value, int):
            kind = int
        elif isinstance(value, str):
            kind = str
        elif isinstance(value, list) and all(isinstance(item, str) for item in value):
            kind = list
        else:
            continue
        variable = ENV_PREFIX + "_".join(part.upper() for part in path)
        yield _EnvSetting(variable=variable, path=path, kind=kind)


def _leaves(
    table: Mapping[str, object], prefix: tuple[str, ...] = ()
) -> Iterator[tuple[tuple[str, ...], object]]:
    for key in sorted(table):
        value = table[key]
        if isinstance(value, Mapping):
            yield from _leaves(value, (*prefix, key))
        else:
            yield (*prefix, key), value


def _assign(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    *parents, leaf = path
    for part in parents:
        child = target.get(part)
        if not isinstance(child, dict):
            child = target[part] = {}
        target = child
    target[leaf] = value


def _absolute(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_bindings",
    "load_config",
    "normalize_paths",
    "resolve_config_path",
]
