"""Selection rules deciding which discovered bundles seed the build."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from osgi_forge.discovery.sources import SourceCatalog
from osgi_forge.domain.models import Bundle, BundleSource
from osgi_forge.resolution.registry import BundleRegistry

_MODULE_LOGGER = logging.getLogger(__name__)


class SelectionRule(Protocol):
    def select(
        self,
        selected: list[Bundle],
        registry: BundleRegistry,
        catalog: SourceCatalog,
        *,
        logger: logging.Logger,
    ) -> list[Bundle]: ...


@dataclass(frozen=True, slots=True)
class SourceRule:
    """Select every bundle found in one source."""

    source: BundleSource

    def select(
        self,
        selected: list[Bundle],
        registry: BundleRegistry,
        catalog: SourceCatalog,
        *,
        logger: logging.Logger,
    ) -> list[Bundle]:
        return _extend_unique(selected, catalog.bundles_of(self.source))

    def __str__(self) -> str:
        return f"include all bundles in {self.source}"


@dataclass(frozen=True, slots=True)
class NameRule:
    """Select registry bundles whose names match any shell-style pattern."""

    patterns: tuple[str, ...]

    def select(
        self,
        selected: list[Bundle],
        registry: BundleRegistry,
        catalog: SourceCatalog,
        *,
        logger: logging.Logger,
    ) -> list[Bundle]:
        matched: list[Bundle] = []
        for pattern in self.patterns:
            hits = [
                bundle for bundle in registry.bundles if fnmatch.fnmatchcase(bundle.name, pattern)
            ]
            if not hits:
                logger.warning(
                    "Selection pattern %r matched no bundles",
                    pattern,
                    extra={"diagnostic": "empty_selection_pattern"},
                )
            matched.extend(hits)
        return _extend_unique(selected, matched)

    def __str__(self) -> str:
        return f"include bundles named {', '.join(self.patterns)}"


def apply_rules(
    rules: Sequence[SelectionRule],
    registry: BundleRegistry,
    catalog: SourceCatalog,
    *,
    logger: logging.Logger | None = None,
) -> list[Bundle]:
    """Run ``rules`` in order, each extending the selection without duplicates."""

    log = logger or _MODULE_LOGGER
    selected: list[Bundle] = []
    for rule in rules:
        log.info("Processing rule: %s", rule)
        selected = rule.select(selected, registry, catalog, logger=log)
        log.info("... %d bundle(s) selected", len(selected))
    return selected


def _extend_unique(selected: list[Bundle], candidates: Iterable[Bundle]) -> list[Bundle]:
    extended = list(selected)
    seen = set(extended)
    for bundle in candidates:
        if bundle not in seen:
            seen.add(bundle)
            extended.append(bundle)
    return extended


__all__ = ["NameRule", "SelectionRule", "SourceRule", "apply_rules"]
