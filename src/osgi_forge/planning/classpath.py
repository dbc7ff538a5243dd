"""Fold re-exported and extensible-API fragment classpaths into each bundle's exports."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from osgi_forge.domain.models import Bundle
from osgi_forge.resolution.registry import BundleRegistry

_MODULE_LOGGER = logging.getLogger(__name__)


def post_build(bundle: Bundle, own_entries: Sequence[str], registry: BundleRegistry) -> list[str]:
    """Compute and store ``bundle.exported_classpath``.

    Order: own entries, then each re-exported requirement's exported classpath
    in requirement order, then (extensible API only) each attached fragment's
    exported classpath. Duplicates are kept.
    """

    exported = list(own_entries)
    for requirement in bundle.required_bundles:
        if requirement.reexported:
            exported.extend(requirement.bundle.exported_classpath)
    if bundle.extensible_api:
        for fragment in registry.fragments_of(bundle):
            exported.extend(fragment.exported_classpath)
    bundle.exported_classpath = exported
    return exported


class ClasspathPropagator:
    """Finalize exported classpaths as plan entries finish building.

    A bundle is held back until every re-exported requirement has finalized and,
    for an extensible-API host, every attached fragment has too. Bundles without
    such dependencies finalize as soon as they report.
    """

    def __init__(self, registry: BundleRegistry, *, logger: logging.Logger | None = None) -> None:
        self._registry = registry
        self._logger = logger or _MODULE_LOGGER
        self._own: dict[Bundle, list[str]] = {}
        self._finalized: set[Bundle] = set()
        self._waiting: list[Bundle] = []

    def own_entries(self, bundle: Bundle) -> list[str]:
        return list(self._own.get(bundle, ()))

    def is_finalized(self, bundle: Bundle) -> bool:
        return bundle in self._finalized

    def visible_classpath(self, bundle: Bundle) -> list[str]:
        """What a dependent can compile against right now."""
        if bundle in self._finalized:
            return list(bundle.exported_classpath)
        return self.own_entries(bundle)

    def record(self, bundle: Bundle, own_entries: Sequence[str]) -> list[Bundle]:
        """Store ``bundle``'s own entries; return every bundle finalized as a result."""

        self._own[bundle] = list(own_entries)
        finalized: list[Bundle] = []
        if self._ready(bundle):
            self._finalize(bundle)
            finalized.append(bundle)
        else:
            self._logger.debug(
                "Deferring classpath of %s until %s finalize",
                bundle.name,
                ", ".join(blocker.name for blocker in self._blockers(bundle)),
            )
            self._waiting.append(bundle)

        finalized.extend(self._release_ready())
        return finalized

    def flush(self) -> list[Bundle]:
        """Finalize bundles still waiting on dependencies that never reported.

        Waiting bundles whose dependencies did finalize are released first; a
        bundle is forced, with a warning, only when no other one can progress.
        """

        flushed: list[Bundle] = []
        while self._waiting:
            released = self._release_ready()
            if released:
                flushed.extend(released)
                continue
            forced = self._waiting.pop(0)
            blockers = self._blockers(forced)
            missing_fragments = any(blocker.is_fragment for blocker in blockers)
            self._logger.warning(
                "Finalizing classpath of %s without %s",
                forced.name,
                ", ".join(blocker.name for blocker in blockers),
                extra={
                    "diagnostic": (
                        "incomplete_fragments" if missing_fragments else "incomplete_reexports"
                    )
                },
            )
            self._finalize(forced)
            flushed.append(forced)
        return flushed

    @property
    def pending(self) -> tuple[Bundle, ...]:
        return tuple(self._waiting)

    def _release_ready(self) -> list[Bundle]:
        released: list[Bundle] = []
        progressed = True
        while progressed:
            progressed = False
            for waiting in list(self._waiting):
                if self._ready(waiting):
                    self._waiting.remove(waiting)
                    self._finalize(waiting)
                    released.append(waiting)
                    progressed = True
        return released

    def _blockers(self, bundle: Bundle) -> list[Bundle]:
        # Everything post_build reads must already hold its final exports.
        needed = [
            requirement.bundle
            for requirement in bundle.required_bundles
            if requirement.reexported and requirement.bundle is not bundle
        ]
        if bundle.extensible_api:
            needed.extend(self._registry.fragments_of(bundle))
        return [dependency for dependency in needed if dependency not in self._finalized]

    def _ready(self, bundle: Bundle) -> bool:
        return bundle in self._own and not self._blockers(bundle)

    def _finalize(self, bundle: Bundle) -> None:
        post_build(bundle, self._own[bundle], self._registry)
        self._finalized.add(bundle)


__all__ = ["ClasspathPropagator", "post_build"]
