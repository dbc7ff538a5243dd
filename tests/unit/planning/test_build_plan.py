"""
osgi-forge - unit tests for build plan construction

File: tests/unit/planning/test_build_plan.py
Last updated: 2026-10-18

What this test file should cover
- Dependencies precede dependents; no duplicates.
- Fragment placement under both policies.
- Idempotent construction and cycle detection.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from osgi_forge.domain.models import Bundle, PlacementPolicy
from osgi_forge.errors import DependencyCycleError
from osgi_forge.planning.build_plan import (
    BuildPlan,
    PlacementTable,
    construct_build_plan,
    contribute_to_plan,
)
from osgi_forge.resolution.registry import BundleRegistry
from osgi_forge.resolution.traversal import parse_closure

MakeBundle = Callable[..., Bundle]


def _resolve(make_bundle: MakeBundle, manifests: dict[str, dict[str, str]]) -> tuple[
    BundleRegistry, dict[str, Bundle]
]:
    registry = BundleRegistry()
    bundles = {name: make_bundle(name, headers) for name, headers in manifests.items()}
    for bundle in bundles.values():
        registry.add_bundle(bundle)
    parse_closure(bundles.values(), registry)
    registry.run_indexing_passes()
    return registry, bundles


def _names(plan: BuildPlan) -> list[str]:
    return list(plan.names)


def test_chain_is_built_dependencies_first(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {"A": {"Require-Bundle": "B"}, "B": {"Require-Bundle": "C"}, "C": {}},
    )

    plan = construct_build_plan([bundles["A"]], registry)

    assert _names(plan) == ["C", "B", "A"]


def test_diamond_contains_each_bundle_once(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {
            "app": {"Require-Bundle": "left,right"},
            "left": {"Require-Bundle": "base"},
            "right": {"Require-Bundle": "base"},
            "base": {},
        },
    )

    plan = construct_build_plan([bundles["app"], bundles["right"]], registry)

    assert _names(plan) == ["base", "left", "right", "app"]
    assert len(plan) == 4


def test_package_imports_order_exporter_first(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {"user": {"Import-Package": "org.api"}, "provider": {"Export-Package": "org.api"}},
    )

    plan = construct_build_plan([bundles["user"]], registry)

    assert _names(plan) == ["provider", "user"]


def test_fragments_follow_their_host_by_default(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {
            "host": {},
            "host.gtk": {"Fragment-Host": "host"},
            "host.win32": {"Fragment-Host": "host"},
            "app": {"Require-Bundle": "host"},
        },
    )

    plan = construct_build_plan([bundles["app"]], registry)

    assert _names(plan) == ["host", "host.gtk", "host.win32", "app"]


def test_after_fragments_policy_places_host_after_its_fragments(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {
            "org.eclipse.swt": {},
            "org.eclipse.swt.gtk": {"Fragment-Host": "org.eclipse.swt"},
            "app": {"Require-Bundle": "org.eclipse.swt"},
        },
    )
    placement = PlacementTable({"org.eclipse.swt": "after-fragments"})

    plan = construct_build_plan([bundles["app"]], registry, placement)

    assert _names(plan) == ["org.eclipse.swt.gtk", "org.eclipse.swt", "app"]


def test_fragment_dependencies_precede_the_fragment(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {
            "host": {},
            "native": {},
            "host.frag": {"Fragment-Host": "host", "Require-Bundle": "native"},
        },
    )

    plan = construct_build_plan([bundles["host"]], registry)

    assert _names(plan) == ["host", "native", "host.frag"]


def test_construct_build_plan_is_idempotent(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {
            "a": {"Require-Bundle": "b,c"},
            "b": {"Import-Package": "org.c"},
            "c": {"Export-Package": "org.c"},
            "c.frag": {"Fragment-Host": "c"},
        },
    )
    selection = [bundles["a"]]

    first = construct_build_plan(selection, registry)
    second = construct_build_plan(selection, registry)

    assert first is not second
    assert _names(first) == _names(second) == ["c", "c.frag", "b", "a"]


def test_required_bundle_cycle_raises_with_path(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {"a": {"Require-Bundle": "b"}, "b": {"Require-Bundle": "c"}, "c": {"Require-Bundle": "a"}},
    )

    with pytest.raises(DependencyCycleError) as excinfo:
        construct_build_plan([bundles["a"]], registry)

    assert excinfo.value.cycle == ("a", "b", "c", "a")
    assert "a -> b -> c -> a" in str(excinfo.value)


def test_contribute_to_plan_skips_bundles_already_in_plan(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(make_bundle, {"a": {"Require-Bundle": "b"}, "b": {}})
    plan = BuildPlan()
    plan.add(bundles["a"])

    contribute_to_plan(bundles["a"], plan, registry, PlacementTable())

    assert _names(plan) == ["a"]


def test_build_plan_rejects_duplicates(make_bundle: MakeBundle) -> None:
    plan = BuildPlan()
    bundle = make_bundle("x")
    plan.add(bundle)

    with pytest.raises(ValueError):
        plan.add(bundle)
    assert bundle in plan
    assert plan.index_of(bundle) == 0


def test_placement_table_defaults_to_before_fragments(make_bundle: MakeBundle) -> None:
    table = PlacementTable({"swt": PlacementPolicy.AFTER_FRAGMENTS})
    table.set("other", "before-fragments")

    assert table.policy_for(make_bundle("swt")) is PlacementPolicy.AFTER_FRAGMENTS
    assert table.policy_for(make_bundle("plain")) is PlacementPolicy.BEFORE_FRAGMENTS
    assert table.as_dict() == {"other": "before-fragments", "swt": "after-fragments"}


def test_plan_records_are_plain_data(make_bundle: MakeBundle) -> None:
    registry, bundles = _resolve(
        make_bundle,
        {"a": {"Require-Bundle": "b;visibility:=reexport", "Bundle-Version": "1.0"}, "b": {}},
    )

    records = construct_build_plan([bundles["a"]], registry).to_records()

    assert [record["name"] for record in records] == ["b", "a"]
    assert records[1]["position"] == 2
    assert records[1]["version"] == "1.0"
    assert records[1]["kind"] == "directory"
    assert records[1]["requires"] == [{"name": "b", "reexport": True}]
