"""
osgi-forge - bundle registry

File: src/osgi_forge/resolution/registry.py
Last updated: 2026-10-18

Purpose
- Own the name -> bundle, package -> exporter, and host -> fragments indexes.
- Record failed lookups for end-of-run diagnostics (never for retry).

Policies
- Name registration: last registration wins; the conflict warning names both
  origins.
- Package registration: last exporter wins, silently.
- Fragment and package indexes are global passes that run once every
  reachable bundle has been parsed.

Non-functional requirements
- Mutations are serialized by an internal lock so the traversal may parse
  bundles from a worker pool.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from osgi_forge.domain.models import Bundle

_MODULE_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UnresolvedReference:
    """A bundle name or package name that ``requester`` could not resolve."""

    name: str
    requester: Bundle

    def as_pair(self) -> tuple[str, str]:
        return (self.name, self.requester.name)


class BundleRegistry:
    """Lookup index over every discovered bundle."""

    def __init__(
        self,
        *,
        system_packages: Iterable[str] = (),
        logger: logging.Logger | None = None,
    ) -> None:
        self._logger = logger or _MODULE_LOGGER
        self._lock = threading.RLock()
        self._by_name: dict[str, Bundle] = {}
        self._registered: list[Bundle] = []
        self._by_package: dict[str, Bundle] = {}
        self._fragments: dict[Bundle, list[Bundle]] = {}
        self._host_of: dict[Bundle, Bundle] = {}
        self._unresolved_bundles: list[UnresolvedReference] = []
        self._unresolved_packages: list[UnresolvedReference] = []
        self._system_packages = tuple(
            prefix.strip().rstrip(".") for prefix in system_packages if prefix.strip()
        )

    # ------------------------------------------------------------------
    # Registration and name lookup
    # ------------------------------------------------------------------

    def add_bundle(self, bundle: Bundle) -> Bundle | None:
        """Register ``bundle`` under its name. Returns the bundle it displaced, if any."""

        with self._lock:
            previous = self._by_name.get(bundle.name)
            self._by_name[bundle.name] = bundle
            self._registered.append(bundle)
        if previous is not None and previous is not bundle:
            self._logger.warning(
                "Name conflict: bundle %s is defined in %s and %s; using the latter",
                bundle.name,
                previous.source if previous.source is not None else previous.location,
                bundle.source if bundle.source is not None else bundle.location,
                extra={"diagnostic": "name_conflict"},
            )
            return previous
        return None

    def get(self, name: str) -> Bundle | None:
        with self._lock:
            return self._by_name.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._by_name

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_name)

    @property
    def bundles(self) -> tuple[Bundle, ...]:
        """Bundles currently reachable by name, in registration order."""
        with self._lock:
            winners = set(self._by_name.values())
            return tuple(bundle for bundle in self._registered if bundle in winners)

    @property
    def registered(self) -> tuple[Bundle, ...]:
        """Every registration, including bundles displaced by a later name conflict."""
        with self._lock:
            return tuple(self._registered)

    def parsed_bundles(self) -> tuple[Bundle, ...]:
        return tuple(bundle for bundle in self.registered if bundle.is_parsed)

    def lookup(self, name: str, requester: Bundle, *, optional: bool = False) -> Bundle | None:
        """Resolve a bundle name; record a failure unless the reference is optional."""

        with self._lock:
            found = self._by_name.get(name)
            if found is None and not optional:
                self._record(self._unresolved_bundles, name, requester)
        if found is None:
            self._logger.debug(
                "%s: %s bundle %s not found",
                requester.name,
                "optional" if optional else "required",
                name,
            )
        return found

    # ------------------------------------------------------------------
    # Global indexing passes
    # ------------------------------------------------------------------

    def index_fragments(self) -> None:
        """Attach every parsed fragment to its resolved host, in registration order."""

        with self._lock:
            self._fragments = {}
            self._host_of = {}
        for bundle in self.parsed_bundles():
            if bundle.fragment_host is None:
                continue
            host = self.lookup(bundle.fragment_host, bundle)
            if host is None:
                continue
            with self._lock:
                self._fragments.setdefault(host, []).append(bundle)
                self._host_of[bundle] = host

    def index_packages(self) -> None:
        """Register every parsed bundle's exports; later exporters overwrite earlier ones."""

        with self._lock:
            self._by_package = {}
        for bundle in self.parsed_bundles():
            with self._lock:
                for package in bundle.exported_packages:
                    self._by_package[package] = bundle

    def resolve_packages(self) -> None:
        """Fold package imports into non-reexported bundle requirements."""

        for bundle in self.parsed_bundles():
            for package in bundle.imported_packages:
                optional = package in bundle.optional_imports or self.is_system_package(package)
                exporter = self.lookup_package(package, bundle, optional=optional)
                if exporter is None or exporter is bundle:
                    continue
                if self._is_attachment_edge(bundle, exporter):
                    continue
                bundle.add_requirement(exporter, reexported=False)

    def run_indexing_passes(self) -> None:
        self.index_fragments()
        self.index_packages()
        self.resolve_packages()

    # ------------------------------------------------------------------
    # Package and fragment queries
    # ------------------------------------------------------------------

    def lookup_package(
        self, package: str, requester: Bundle, *, optional: bool = False
    ) -> Bundle | None:
        with self._lock:
            found = self._by_package.get(package)
            if found is None and not optional:
                self._record(self._unresolved_packages, package, requester)
        return found

    def exporter_of(self, package: str) -> Bundle | None:
        with self._lock:
            return self._by_package.get(package)

    def fragments_of(self, host: Bundle) -> tuple[Bundle, ...]:
        with self._lock:
            return tuple(self._fragments.get(host, ()))

    def host_of(self, fragment: Bundle) -> Bundle | None:
        with self._lock:
            return self._host_of.get(fragment)

    def is_system_package(self, package: str) -> bool:
        return any(
            package == prefix or package.startswith(prefix + ".")
            for prefix in self._system_packages
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def unresolved_bundles(self) -> tuple[UnresolvedReference, ...]:
        with self._lock:
            return tuple(self._unresolved_bundles)

    @property
    def unresolved_packages(self) -> tuple[UnresolvedReference, ...]:
        with self._lock:
            return tuple(self._unresolved_packages)

    @property
    def has_unresolved(self) -> bool:
        with self._lock:
            return bool(self._unresolved_bundles or self._unresolved_packages)

    def _is_attachment_edge(self, bundle: Bundle, exporter: Bundle) -> bool:
        with self._lock:
            return self._host_of.get(bundle) is exporter or self._host_of.get(exporter) is bundle

    @staticmethod
    def _record(target: list[UnresolvedReference], name: str, requester: Bundle) -> None:
        for existing in target:
            if existing.name == name and existing.requester is requester:
                return
        target.append(UnresolvedReference(name=name, requester=requester))


__all__ = ["BundleRegistry", "UnresolvedReference"]
