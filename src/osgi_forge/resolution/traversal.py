"""Breadth-first closure over the required-bundles graph.

Parsing a bundle is what discovers its outgoing edges, so the walk parses each
bundle at most once before reading ``required_bundles``. The concurrent variant
parses one breadth-first level at a time on worker threads; levels are
processed in order, so the set of reached bundles is identical.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable

from osgi_forge.domain.models import Bundle
from osgi_forge.resolution.registry import BundleRegistry
from osgi_forge.utils.concurrency import map_in_threads

_MODULE_LOGGER = logging.getLogger(__name__)


def traverse(
    initial: Iterable[Bundle], visit: Callable[[Bundle], Iterable[Bundle]]
) -> list[Bundle]:
    """Visit every bundle reachable from ``initial`` exactly once, in FIFO order.

    ``visit`` returns the neighbours to enqueue; it may be the step that
    discovers them. Returns the bundles in visit order.
    """

    queue: deque[Bundle] = deque()
    seen: set[Bundle] = set()
    for bundle in initial:
        if bundle not in seen:
            seen.add(bundle)
            queue.append(bundle)

    visited: list[Bundle] = []
    while queue:
        bundle = queue.popleft()
        neighbours = visit(bundle)
        visited.append(bundle)
        for required in neighbours:
            if required not in seen:
                seen.add(required)
                queue.append(required)
    return visited


def parse_closure(
    initial: Iterable[Bundle],
    registry: BundleRegistry,
    *,
    logger: logging.Logger | None = None,
) -> list[Bundle]:
    """Parse ``initial`` and everything they transitively require."""

    log = logger or _MODULE_LOGGER

    def visit(bundle: Bundle) -> list[Bundle]:
        bundle.parse(registry, logger=log)
        return bundle.required

    return traverse(initial, visit)


async def parse_closure_concurrently(
    initial: Iterable[Bundle],
    registry: BundleRegistry,
    *,
    max_workers: int,
    logger: logging.Logger | None = None,
) -> list[Bundle]:
    """Level-synchronous variant of :func:`parse_closure` using worker threads."""

    log = logger or _MODULE_LOGGER
    seen: set[Bundle] = set()
    level: list[Bundle] = []
    for bundle in initial:
        if bundle not in seen:
            seen.add(bundle)
            level.append(bundle)

    visited: list[Bundle] = []
    depth = 0
    while level:
        log.debug("Parsing %d bundle(s) at depth %d", len(level), depth)
        await map_in_threads(
            lambda bundle: bundle.parse(registry, logger=log),
            level,
            max_workers=max_workers,
        )
        visited.extend(level)
        next_level: list[Bundle] = []
        for bundle in level:
            for required in bundle.required:
                if required not in seen:
                    seen.add(required)
                    next_level.append(required)
        level = next_level
        depth += 1
    return visited


__all__ = ["parse_closure", "parse_closure_concurrently", "traverse"]
