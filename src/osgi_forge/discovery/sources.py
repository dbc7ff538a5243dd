"""Locate candidate bundles inside binary and source plugin folders."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Final

from osgi_forge.constants import ARCHIVE_SUFFIX, BUNDLE_MARKER_FILES
from osgi_forge.domain.location import BundleLocation, LocationKind
from osgi_forge.domain.models import Bundle, BundleSource, SourceKind
from osgi_forge.errors import SourceFolderError
from osgi_forge.resolution.registry import BundleRegistry

_MODULE_LOGGER = logging.getLogger(__name__)

# ``org.foo_1.2.3.v2024`` -> ``org.foo``; third and later segments may hold qualifiers.
_VERSION_SUFFIX_RE: Final[re.Pattern[str]] = re.compile(r"_\d+(?:\.\d+(?:\.[\w-]+)*)?$")


def strip_version_suffix(name: str) -> str:
    match = _VERSION_SUFFIX_RE.search(name)
    if match is None:
        return name
    return name[: match.start()]


def has_bundle_marker(directory: Path) -> bool:
    return any(directory.joinpath(*marker.split("/")).is_file() for marker in BUNDLE_MARKER_FILES)


def find_bundles(
    source: BundleSource,
    registry: BundleRegistry,
    *,
    logger: logging.Logger | None = None,
) -> list[Bundle]:
    """Scan ``source`` once, register every bundle found, and return them in scan order."""

    log = logger or _MODULE_LOGGER
    found: list[Bundle] = []
    for entry in _sorted_entries(source.path):
        bundle = _bundle_for_entry(source, entry)
        if bundle is None:
            continue
        registry.add_bundle(bundle)
        found.append(bundle)
    log.debug("%s: %d bundle(s) found", source, len(found))
    return found


def _sorted_entries(folder: Path) -> list[Path]:
    try:
        return sorted(folder.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        raise SourceFolderError(folder.as_posix(), exc.strerror or str(exc)) from exc


def _bundle_for_entry(source: BundleSource, entry: Path) -> Bundle | None:
    if entry.is_dir():
        if not has_bundle_marker(entry):
            return None
        if source.kind is SourceKind.SOURCE:
            return Bundle(
                name=entry.name,
                location=BundleLocation(LocationKind.SOURCE_DIRECTORY, entry),
                source=source,
            )
        return Bundle(
            name=strip_version_suffix(entry.name),
            location=BundleLocation(LocationKind.DIRECTORY, entry),
            source=source,
        )

    if source.kind is SourceKind.BINARY and entry.name.endswith(ARCHIVE_SUFFIX):
        stem = entry.name[: -len(ARCHIVE_SUFFIX)]
        return Bundle(
            name=strip_version_suffix(stem),
            location=BundleLocation(LocationKind.ARCHIVE, entry),
            source=source,
        )
    return None


class SourceCatalog:
    """Bundles found per source, in the order the sources were scanned."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: list[tuple[BundleSource, list[Bundle]]] = []

    @classmethod
    def scan(
        cls,
        sources: Iterable[BundleSource],
        registry: BundleRegistry,
        *,
        logger: logging.Logger | None = None,
    ) -> SourceCatalog:
        log = logger or _MODULE_LOGGER
        catalog = cls()
        for source in sources:
            log.info("Searching for bundles: %s...", source)
            bundles = find_bundles(source, registry, logger=log)
            log.info("... %d found", len(bundles))
            catalog.add(source, bundles)
        return catalog

    def add(self, source: BundleSource, bundles: Iterable[Bundle]) -> None:
        self._entries.append((source, list(bundles)))

    @property
    def sources(self) -> tuple[BundleSource, ...]:
        return tuple(source for source, _ in self._entries)

    def bundles_of(self, source: BundleSource) -> list[Bundle]:
        collected: list[Bundle] = []
        for candidate, bundles in self._entries:
            if candidate == source:
                collected.extend(bundles)
        return collected

    def __iter__(self) -> Iterator[tuple[BundleSource, list[Bundle]]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return sum(len(bundles) for _, bundles in self._entries)


__all__ = [
    "BundleSource",
    "SourceCatalog",
    "SourceKind",
    "find_bundles",
    "has_bundle_marker",
    "strip_version_suffix",
]
