"""Depth-first linearization of the selected bundles into a build order."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from osgi_forge.domain.models import Bundle, PlacementPolicy
from osgi_forge.errors import DependencyCycleError
from osgi_forge.resolution.registry import BundleRegistry

_MODULE_LOGGER = logging.getLogger(__name__)


class BuildPlan:
    """Ordered, duplicate-free sequence of bundles; insertion order is build order."""

    __slots__ = ("_order", "_members")

    def __init__(self) -> None:
        self._order: list[Bundle] = []
        self._members: set[Bundle] = set()

    def add(self, bundle: Bundle) -> None:
        if bundle in self._members:
            raise ValueError(f"bundle {bundle.name} is already in the plan")
        self._members.add(bundle)
        self._order.append(bundle)

    def __contains__(self, bundle: object) -> bool:
        return bundle in self._members

    def __iter__(self) -> Iterator[Bundle]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(bundle.name for bundle in self._order)

    def index_of(self, bundle: Bundle) -> int:
        for position, member in enumerate(self._order):
            if member is bundle:
                return position
        raise KeyError(bundle.name)

    def to_records(self) -> list[dict[str, Any]]:
        """Plain-data rendering used by the JSON and YAML plan outputs."""

        records: list[dict[str, Any]] = []
        for position, bundle in enumerate(self._order, start=1):
            records.append(
                {
                    "position": position,
                    "name": bundle.name,
                    "version": bundle.qualified_version,
                    "kind": bundle.location.kind.value,
                    "location": bundle.location.path.as_posix(),
                    "fragment_host": bundle.fragment_host,
                    "requires": [
                        {"name": requirement.bundle.name, "reexport": requirement.reexported}
                        for requirement in bundle.required_bundles
                    ],
                }
            )
        return records


class PlacementTable:
    """Bundle name -> placement policy; unlisted bundles build before their fragments."""

    __slots__ = ("_policies",)

    def __init__(self, policies: Mapping[str, PlacementPolicy | str] | None = None) -> None:
        self._policies: dict[str, PlacementPolicy] = {}
        for name, policy in (policies or {}).items():
            self.set(name, policy)

    def set(self, name: str, policy: PlacementPolicy | str) -> None:
        self._policies[name] = PlacementPolicy(policy)

    def policy_for(self, bundle: Bundle) -> PlacementPolicy:
        return self._policies.get(bundle.name, PlacementPolicy.BEFORE_FRAGMENTS)

    def as_dict(self) -> dict[str, str]:
        return {name: policy.value for name, policy in sorted(self._policies.items())}


def contribute_to_plan(
    bundle: Bundle,
    plan: BuildPlan,
    registry: BundleRegistry,
    placement: PlacementTable,
    *,
    _in_progress: list[Bundle] | None = None,
) -> None:
    """Add ``bundle`` after everything it requires, with its fragments per ``placement``.

    Raises :class:`DependencyCycleError` when a bundle is re-entered while its
    own contribution is still running.
    """

    if bundle in plan:
        return
    in_progress = _in_progress if _in_progress is not None else []
    if any(active is bundle for active in in_progress):
        start = next(index for index, active in enumerate(in_progress) if active is bundle)
        cycle = [active.name for active in in_progress[start:]] + [bundle.name]
        raise DependencyCycleError(cycle)

    in_progress.append(bundle)
    try:
        for required in bundle.required:
            contribute_to_plan(required, plan, registry, placement, _in_progress=in_progress)

        fragments = registry.fragments_of(bundle)
        if placement.policy_for(bundle) is PlacementPolicy.AFTER_FRAGMENTS:
            for fragment in fragments:
                contribute_to_plan(fragment, plan, registry, placement, _in_progress=in_progress)
            plan.add(bundle)
        else:
            plan.add(bundle)
            for fragment in fragments:
                contribute_to_plan(fragment, plan, registry, placement, _in_progress=in_progress)
    finally:
        in_progress.pop()


def construct_build_plan(
    selection: Iterable[Bundle],
    registry: BundleRegistry,
    placement: PlacementTable | None = None,
    *,
    logger: logging.Logger | None = None,
) -> BuildPlan:
    """Build a fresh plan for ``selection``. Repeated calls yield the same order."""

    log = logger or _MODULE_LOGGER
    table = placement or PlacementTable()
    plan = BuildPlan()
    for bundle in selection:
        contribute_to_plan(bundle, plan, registry, table)
    log.info("Build plan holds %d bundle(s)", len(plan))
    return plan


__all__ = ["BuildPlan", "PlacementTable", "construct_build_plan", "contribute_to_plan"]
