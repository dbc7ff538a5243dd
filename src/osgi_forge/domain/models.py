"""Bundle domain model: identity, parsed dependency fields, and build output."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Protocol

from osgi_forge.constants import QUALIFIER_TOKEN, ROOT_CLASSPATH_ENTRY
from osgi_forge.domain.location import BundleLocation, decode_manifest
from osgi_forge.manifest.descriptor import BundleDescriptor

_MODULE_LOGGER = logging.getLogger(__name__)


class ParseState(StrEnum):
    UNPARSED = "unparsed"
    PARSED = "parsed"


class SourceKind(StrEnum):
    BINARY = "binary"
    SOURCE = "source"


class PlacementPolicy(StrEnum):
    """Where a host lands in the build plan relative to its fragments."""

    BEFORE_FRAGMENTS = "before-fragments"
    AFTER_FRAGMENTS = "after-fragments"


@dataclass(frozen=True, slots=True)
class BundleSource:
    """A folder of bundles plus the options attached to it."""

    kind: SourceKind
    path: Path
    include: bool = False
    qualifier: str | None = None

    def __str__(self) -> str:
        return f"{self.kind.value} plugins folder {self.path.as_posix()}"


class BundleLookup(Protocol):
    """Name resolution used while parsing; failures are recorded by the implementation."""

    def lookup(self, name: str, requester: Bundle, *, optional: bool = False) -> Bundle | None: ...


@dataclass(frozen=True, slots=True)
class BundleRequirement:
    bundle: Bundle
    reexported: bool = False


@dataclass(eq=False, slots=True)
class Bundle:
    """One discovered bundle.

    Created with identity and location only, filled once by :meth:`parse`, and
    once more by the build step (``exported_classpath``). Equality is identity.
    """

    name: str
    location: BundleLocation
    source: BundleSource | None = None
    declared_version: str = ""
    qualified_version: str = ""
    state: ParseState = ParseState.UNPARSED
    symbolic_name: str | None = None
    required_bundles: list[BundleRequirement] = field(default_factory=list)
    fragment_host: str | None = None
    exported_packages: list[str] = field(default_factory=list)
    imported_packages: list[str] = field(default_factory=list)
    optional_imports: set[str] = field(default_factory=set)
    classpath_entries: list[str] = field(default_factory=list)
    extensible_api: bool = False
    exported_classpath: list[str] = field(default_factory=list)

    @property
    def is_parsed(self) -> bool:
        return self.state is ParseState.PARSED

    @property
    def is_fragment(self) -> bool:
        return self.fragment_host is not None

    @property
    def is_source(self) -> bool:
        return self.location.is_source

    @property
    def effective_classpath(self) -> list[str]:
        """Raw classpath entries, defaulting to the bundle root."""
        return list(self.classpath_entries) or [ROOT_CLASSPATH_ENTRY]

    @property
    def is_single_archive_eligible(self) -> bool:
        """True when every classpath entry is the bundle root (no nested containers)."""
        return all(entry == ROOT_CLASSPATH_ENTRY for entry in self.effective_classpath)

    @property
    def required(self) -> list[Bundle]:
        return [requirement.bundle for requirement in self.required_bundles]

    def requires(self, other: Bundle) -> bool:
        return any(requirement.bundle is other for requirement in self.required_bundles)

    def add_requirement(self, other: Bundle, *, reexported: bool = False) -> bool:
        """Append a requirement unless ``other`` is already required. Returns whether added."""
        if self.requires(other):
            return False
        self.required_bundles.append(BundleRequirement(bundle=other, reexported=reexported))
        return True

    def parse(self, lookup: BundleLookup, *, logger: logging.Logger | None = None) -> None:
        """Read the manifest and fill dependency fields. Repeated calls are no-ops."""

        if self.state is ParseState.PARSED:
            return
        self.state = ParseState.PARSED
        log = logger or _MODULE_LOGGER
        log.debug("Parsing manifest for %s", self.name)

        label = self.location.manifest_label()
        try:
            data = self.location.read_manifest()
        except (OSError, zipfile.BadZipFile) as exc:
            log.warning(
                "%s: unreadable manifest (%s); treating bundle as having no dependencies",
                label,
                exc,
                extra={"diagnostic": "unreadable_manifest"},
            )
            data = None

        if data is None:
            descriptor = BundleDescriptor.empty()
        else:
            descriptor = BundleDescriptor.from_manifest(decode_manifest(data), label, logger=log)
        self.apply_descriptor(descriptor, lookup, logger=log)

    def apply_descriptor(
        self,
        descriptor: BundleDescriptor,
        lookup: BundleLookup,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        log = logger or _MODULE_LOGGER
        self.state = ParseState.PARSED
        self.symbolic_name = descriptor.symbolic_name
        if descriptor.symbolic_name is not None and descriptor.symbolic_name != self.name:
            log.info(
                "Bundle %s declares symbolic name %s",
                self.name,
                descriptor.symbolic_name,
            )

        self.declared_version = descriptor.version
        self.qualified_version = qualify_version(
            descriptor.version, self.source.qualifier if self.source is not None else None
        )

        for item in descriptor.required_bundles:
            resolved = lookup.lookup(item.value, self, optional=item.is_optional)
            if resolved is None:
                continue
            self.add_requirement(resolved, reexported=item.is_reexport)

        self.fragment_host = descriptor.fragment_host
        self.exported_packages = list(descriptor.exported_packages)
        self.imported_packages = [item.value for item in descriptor.imported_packages]
        self.optional_imports = {
            item.value for item in descriptor.imported_packages if item.is_optional
        }
        self.classpath_entries = list(descriptor.classpath_entries)
        self.extensible_api = descriptor.extensible_api

    def __str__(self) -> str:
        if self.source is None:
            return self.name
        return f"{self.name} in {self.source}"

    def __repr__(self) -> str:
        return f"Bundle(name={self.name!r}, location={self.location.path.as_posix()!r})"


def qualify_version(version: str, qualifier: str | None) -> str:
    """Replace the literal ``qualifier`` token in ``version`` when a qualifier is configured."""
    if not qualifier:
        return version
    return version.replace(QUALIFIER_TOKEN, qualifier)


__all__ = [
    "Bundle",
    "BundleLookup",
    "BundleRequirement",
    "BundleSource",
    "ParseState",
    "PlacementPolicy",
    "SourceKind",
    "qualify_version",
]
