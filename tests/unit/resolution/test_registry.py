"""
osgi-forge - unit tests for the bundle registry

File: tests/unit/resolution/test_registry.py
Last updated: 2026-10-18

What this test file should cover
- Last-registration-wins naming with a conflict warning naming both origins.
- Unresolved names recorded once per (name, requester).
- Fragment, package-export, and package-import indexing passes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from osgi_forge.domain.models import Bundle, BundleSource, SourceKind
from osgi_forge.resolution.registry import BundleRegistry

MakeBundle = Callable[..., Bundle]


def _parsed(registry: BundleRegistry, *bundles: Bundle) -> None:
    for bundle in bundles:
        registry.add_bundle(bundle)
    for bundle in bundles:
        bundle.parse(registry)


def test_name_conflict_last_registration_wins(
    make_bundle: MakeBundle, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    first_source = BundleSource(SourceKind.BINARY, tmp_path / "eclipse")
    second_source = BundleSource(SourceKind.SOURCE, tmp_path / "workspace")
    first = make_bundle("org.a", source=first_source)
    second = Bundle(name="org.a", location=first.location, source=second_source)
    registry = BundleRegistry()

    with caplog.at_level(logging.WARNING):
        assert registry.add_bundle(first) is None
        assert registry.add_bundle(second) is first

    assert registry.get("org.a") is second
    assert registry.bundles == (second,)
    assert registry.registered == (first, second)
    message = caplog.records[0].getMessage()
    assert "Name conflict" in message
    assert str(first_source) in message
    assert str(second_source) in message


def test_unresolved_name_recorded_once_per_requester(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    a = make_bundle("a")
    b = make_bundle("b")

    for _ in range(3):
        assert registry.lookup("missing", a) is None
    registry.lookup("missing", b)

    assert [ref.as_pair() for ref in registry.unresolved_bundles] == [
        ("missing", "a"),
        ("missing", "b"),
    ]
    assert registry.has_unresolved


def test_optional_lookup_never_records(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()

    assert registry.lookup("missing", make_bundle("a"), optional=True) is None
    assert not registry.has_unresolved


def test_index_fragments_attaches_in_registration_order(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    host = make_bundle("org.host", {})
    frag1 = make_bundle("org.host.win32", {"Fragment-Host": "org.host"})
    frag2 = make_bundle("org.host.gtk", {"Fragment-Host": "org.host;bundle-version=1"})
    orphan = make_bundle("org.orphan.frag", {"Fragment-Host": "org.nowhere"})
    _parsed(registry, host, frag1, frag2, orphan)

    registry.index_fragments()

    assert registry.fragments_of(host) == (frag1, frag2)
    assert registry.host_of(frag2) is host
    assert registry.host_of(orphan) is None
    assert [ref.as_pair() for ref in registry.unresolved_bundles] == [
        ("org.nowhere", "org.orphan.frag")
    ]


def test_index_fragments_only_considers_parsed_bundles(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    host = make_bundle("org.host", {})
    unparsed = make_bundle("org.host.frag", {"Fragment-Host": "org.host"})
    registry.add_bundle(host)
    registry.add_bundle(unparsed)
    host.parse(registry)

    registry.index_fragments()

    assert registry.fragments_of(host) == ()


def test_last_exporter_wins(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    early = make_bundle("early", {"Export-Package": "org.shared,org.early"})
    late = make_bundle("late", {"Export-Package": "org.shared"})
    _parsed(registry, early, late)

    registry.index_packages()

    assert registry.exporter_of("org.shared") is late
    assert registry.exporter_of("org.early") is early


def test_resolve_packages_adds_non_reexported_requirements(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    exporter = make_bundle("exporter", {"Export-Package": "org.api"})
    importer = make_bundle("importer", {"Import-Package": "org.api"})
    _parsed(registry, exporter, importer)

    registry.run_indexing_passes()

    assert importer.required == [exporter]
    assert not importer.required_bundles[0].reexported


def test_resolve_packages_skips_self_and_existing_requirements(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    exporter = make_bundle(
        "exporter", {"Export-Package": "org.api,org.own", "Import-Package": "org.own"}
    )
    importer = make_bundle(
        "importer",
        {"Require-Bundle": "exporter;visibility:=reexport", "Import-Package": "org.api"},
    )
    _parsed(registry, exporter, importer)

    registry.run_indexing_passes()

    assert exporter.required == []
    assert importer.required == [exporter]
    assert importer.required_bundles[0].reexported


def test_resolve_packages_ignores_fragment_host_edges(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    host = make_bundle("org.host", {"Export-Package": "org.host.api", "Import-Package": "org.frag"})
    fragment = make_bundle(
        "org.host.frag",
        {
            "Fragment-Host": "org.host",
            "Export-Package": "org.frag",
            "Import-Package": "org.host.api",
        },
    )
    _parsed(registry, host, fragment)

    registry.run_indexing_passes()

    assert host.required == []
    assert fragment.required == []


def test_unresolved_packages_skip_optional_and_system_packages(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry(system_packages=["java", "javax.", "org.w3c.dom"])
    importer = make_bundle(
        "importer",
        {
            "Import-Package": (
                "java.util,javax.xml.parsers,org.w3c.dom,org.w3c.domino,"
                "org.maybe;resolution:=optional,org.gone"
            )
        },
    )
    _parsed(registry, importer)

    registry.run_indexing_passes()

    assert [ref.as_pair() for ref in registry.unresolved_packages] == [
        ("org.w3c.domino", "importer"),
        ("org.gone", "importer"),
    ]
    assert registry.unresolved_bundles == ()


@pytest.mark.parametrize(
    ("package", "expected"),
    [
        ("java", True),
        ("java.lang", True),
        ("javafx.scene", False),
        ("org.xml.sax.helpers", True),
        ("org.xml", False),
    ],
)
def test_system_package_prefix_matching(package: str, expected: bool) -> None:
    registry = BundleRegistry(system_packages=["java", "org.xml.sax"])

    assert registry.is_system_package(package) is expected


def test_indexing_passes_are_repeatable(make_bundle: MakeBundle) -> None:
    registry = BundleRegistry()
    host = make_bundle("host", {"Export-Package": "org.h"})
    frag = make_bundle("frag", {"Fragment-Host": "host"})
    user = make_bundle("user", {"Import-Package": "org.h"})
    _parsed(registry, host, frag, user)

    registry.run_indexing_passes()
    registry.run_indexing_passes()

    assert registry.fragments_of(host) == (frag,)
    assert user.required == [host]
