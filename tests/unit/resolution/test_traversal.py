"""
osgi-forge - unit tests for reachability traversal

File: tests/unit/resolution/test_traversal.py
Last updated: 2026-10-18

What this test file should cover
- FIFO visiting with each bundle visited once.
- Sequential and threaded parse closures reaching the same bundles.
"""

from __future__ import annotations

from collections.abc import Callable

from osgi_forge.domain.models import Bundle
from osgi_forge.resolution.registry import BundleRegistry
from osgi_forge.resolution.traversal import (
    parse_closure,
    parse_closure_concurrently,
    traverse,
)

MakeBundle = Callable[..., Bundle]


def _graph(make_bundle: MakeBundle, edges: dict[str, list[str]]) -> dict[str, Bundle]:
    return {name: make_bundle(name) for name in edges}


def test_traverse_visits_each_node_once_in_fifo_order(make_bundle: MakeBundle) -> None:
    edges = {"a": ["b", "c"], "b": ["d"], "c": ["d"], "d": []}
    nodes = _graph(make_bundle, edges)
    visits: list[str] = []

    def visit(bundle: Bundle) -> list[Bundle]:
        visits.append(bundle.name)
        return [nodes[name] for name in edges[bundle.name]]

    order = traverse([nodes["a"]], visit)

    assert [bundle.name for bundle in order] == ["a", "b", "c", "d"]
    assert visits == ["a", "b", "c", "d"]


def test_traverse_seeds_with_whole_selection_and_tolerates_cycles(
    make_bundle: MakeBundle,
) -> None:
    edges = {"a": ["b"], "b": ["a", "c"], "c": ["a"]}
    nodes = _graph(make_bundle, edges)

    order = traverse(
        [nodes["c"], nodes["a"], nodes["c"]],
        lambda bundle: [nodes[name] for name in edges[bundle.name]],
    )

    assert [bundle.name for bundle in order] == ["c", "a", "b"]


def _registry_with_chain(make_bundle: MakeBundle) -> tuple[BundleRegistry, dict[str, Bundle]]:
    registry = BundleRegistry()
    bundles = {
        "app": make_bundle("app", {"Require-Bundle": "ui,core"}),
        "ui": make_bundle("ui", {"Require-Bundle": "core"}),
        "core": make_bundle("core", {"Export-Package": "org.core"}),
        "core.win32": make_bundle("core.win32", {"Fragment-Host": "core"}),
        "unrelated": make_bundle("unrelated", {"Import-Package": "org.core"}),
    }
    for bundle in bundles.values():
        registry.add_bundle(bundle)
    return registry, bundles


def test_parse_closure_follows_required_bundles_only(make_bundle: MakeBundle) -> None:
    registry, bundles = _registry_with_chain(make_bundle)

    parsed = parse_closure([bundles["app"]], registry)

    assert [bundle.name for bundle in parsed] == ["app", "ui", "core"]
    assert not bundles["core.win32"].is_parsed
    assert not bundles["unrelated"].is_parsed


def test_parse_closure_records_unresolved_names(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    app = make_bundle("app", {"Require-Bundle": "ghost"})
    registry.add_bundle(app)

    parse_closure([app], registry)

    assert [ref.as_pair() for ref in registry.unresolved_bundles] == [("ghost", "app")]


async def test_concurrent_parse_reaches_the_same_bundles(make_bundle: MakeBundle) -> None:
    registry, bundles = _registry_with_chain(make_bundle)

    parsed = await parse_closure_concurrently([bundles["app"]], registry, max_workers=4)

    assert {bundle.name for bundle in parsed} == {"app", "ui", "core"}
    assert len(parsed) == 3
    assert bundles["app"].required == [bundles["ui"], bundles["core"]]
