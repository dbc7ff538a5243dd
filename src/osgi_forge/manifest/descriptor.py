"""Structured view of one bundle manifest, independent of any registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from osgi_forge.constants import (
    HEADER_BUNDLE_CLASSPATH,
    HEADER_BUNDLE_VERSION,
    HEADER_EXPORT_PACKAGE,
    HEADER_EXTENSIBLE_API,
    HEADER_FRAGMENT_HOST,
    HEADER_IMPORT_PACKAGE,
    HEADER_REQUIRE_BUNDLE,
    HEADER_SYMBOLIC_NAME,
)
from osgi_forge.manifest.directives import (
    ValueWithDirectives,
    parse_value,
    parse_values,
    strip_quoted,
)
from osgi_forge.manifest.headers import HeaderBlock, parse_header_block

_MODULE_LOGGER = logging.getLogger(__name__)


class Manifest:
    """Header accessors that apply quote stripping and directive parsing on read."""

    def __init__(self, headers: HeaderBlock, *, logger: logging.Logger | None = None) -> None:
        self.headers = headers
        self._logger = logger or _MODULE_LOGGER

    @classmethod
    def parse(cls, text: str, label: str, *, logger: logging.Logger | None = None) -> Manifest:
        return cls(parse_header_block(text, label, logger=logger), logger=logger)

    @property
    def label(self) -> str:
        return self.headers.label

    def value(self, name: str, default: str | None = None) -> str | None:
        parsed = self.value_with_directives(name)
        if parsed is None:
            return default
        return parsed.value

    def value_with_directives(self, name: str) -> ValueWithDirectives | None:
        raw = self.headers.get(name)
        if raw is None:
            return None
        return parse_value(strip_quoted(raw), self.label, name, logger=self._logger)

    def values_with_directives(self, name: str) -> list[ValueWithDirectives]:
        raw = self.headers.get(name)
        if raw is None:
            return []
        return parse_values(strip_quoted(raw), self.label, name, logger=self._logger)


@dataclass(frozen=True, slots=True)
class BundleDescriptor:
    """Dependency metadata extracted from a manifest.

    ``classpath_entries`` is empty when ``Bundle-ClassPath`` is absent; callers
    treat that as the single root entry ``.``.
    """

    symbolic_name: str | None = None
    version: str = ""
    required_bundles: tuple[ValueWithDirectives, ...] = ()
    fragment_host: str | None = None
    exported_packages: tuple[str, ...] = ()
    imported_packages: tuple[ValueWithDirectives, ...] = ()
    classpath_entries: tuple[str, ...] = ()
    extensible_api: bool = False

    @property
    def is_fragment(self) -> bool:
        return self.fragment_host is not None

    @classmethod
    def empty(cls) -> BundleDescriptor:
        return cls()

    @classmethod
    def from_manifest(
        cls,
        text: str,
        label: str,
        *,
        logger: logging.Logger | None = None,
    ) -> BundleDescriptor:
        manifest = Manifest.parse(text, label, logger=logger)
        return cls.from_parsed(manifest)

    @classmethod
    def from_parsed(cls, manifest: Manifest) -> BundleDescriptor:
        host = manifest.value(HEADER_FRAGMENT_HOST)
        return cls(
            symbolic_name=manifest.value(HEADER_SYMBOLIC_NAME) or None,
            version=manifest.value(HEADER_BUNDLE_VERSION, "") or "",
            required_bundles=tuple(manifest.values_with_directives(HEADER_REQUIRE_BUNDLE)),
            fragment_host=host or None,
            exported_packages=tuple(
                item.value for item in manifest.values_with_directives(HEADER_EXPORT_PACKAGE)
            ),
            imported_packages=tuple(manifest.values_with_directives(HEADER_IMPORT_PACKAGE)),
            classpath_entries=tuple(
                item.value for item in manifest.values_with_directives(HEADER_BUNDLE_CLASSPATH)
            ),
            extensible_api=manifest.value(HEADER_EXTENSIBLE_API) == "true",
        )


__all__ = ["BundleDescriptor", "Manifest"]
