"""
osgi-forge - unit tests for the bundle domain model

File: tests/unit/domain/test_models.py
Last updated: 2026-10-18

What this test file should cover
- Parse idempotence and eager Require-Bundle resolution through a lookup.
- Qualifier substitution, missing manifests, archive-backed manifests.
- Classpath defaults and single-archive eligibility.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from osgi_forge.domain.location import BundleLocation, LocationKind
from osgi_forge.domain.models import (
    Bundle,
    BundleSource,
    ParseState,
    SourceKind,
    qualify_version,
)
from osgi_forge.resolution.registry import BundleRegistry


class _CountingLookup:
    def __init__(self, registry: BundleRegistry) -> None:
        self.registry = registry
        self.calls: list[tuple[str, str, bool]] = []

    def lookup(self, name: str, requester: Bundle, *, optional: bool = False) -> Bundle | None:
        self.calls.append((name, requester.name, optional))
        return self.registry.lookup(name, requester, optional=optional)


def test_parse_resolves_required_bundles_eagerly(make_bundle: Callable[..., Bundle]) -> None:
    registry = BundleRegistry()
    base = make_bundle("org.base", {"Bundle-Version": "1.0"})
    api = make_bundle("org.api", {"Require-Bundle": "org.base;visibility:=reexport"})
    registry.add_bundle(base)
    registry.add_bundle(api)

    api.parse(registry)

    assert api.state is ParseState.PARSED
    assert api.required == [base]
    assert api.required_bundles[0].reexported
    assert not base.is_parsed


def test_parse_is_idempotent(make_bundle: Callable[..., Bundle]) -> None:
    registry = BundleRegistry()
    base = make_bundle("org.base", {})
    user = make_bundle("org.user", {"Require-Bundle": "org.base,org.missing"})
    registry.add_bundle(base)
    registry.add_bundle(user)
    lookup = _CountingLookup(registry)

    user.parse(lookup)
    user.parse(lookup)

    assert [call[0] for call in lookup.calls] == ["org.base", "org.missing"]
    assert user.required == [base]
    assert [ref.as_pair() for ref in registry.unresolved_bundles] == [("org.missing", "org.user")]


def test_optional_require_bundle_is_not_recorded(make_bundle: Callable[..., Bundle]) -> None:
    registry = BundleRegistry()
    user = make_bundle("org.user", {"Require-Bundle": "org.gone;resolution:=optional"})
    registry.add_bundle(user)

    user.parse(registry)

    assert user.required == []
    assert registry.unresolved_bundles == ()


def test_duplicate_require_bundle_entries_are_collapsed(make_bundle: Callable[..., Bundle]) -> None:
    registry = BundleRegistry()
    base = make_bundle("org.base", {})
    user = make_bundle("org.user", {"Require-Bundle": "org.base,org.base;visibility:=reexport"})
    registry.add_bundle(base)

    user.parse(registry)

    assert len(user.required_bundles) == 1
    assert not user.required_bundles[0].reexported


def test_qualifier_token_is_replaced_by_source_qualifier(
    make_bundle: Callable[..., Bundle], tmp_path: Path
) -> None:
    source = BundleSource(SourceKind.SOURCE, tmp_path, qualifier="v20261018")
    bundle = make_bundle("org.q", {"Bundle-Version": "2.1.0.qualifier"}, source=source)

    bundle.parse(BundleRegistry())

    assert bundle.declared_version == "2.1.0.qualifier"
    assert bundle.qualified_version == "2.1.0.v20261018"


def test_qualify_version_without_qualifier_keeps_declared_version() -> None:
    assert qualify_version("1.0.0.qualifier", None) == "1.0.0.qualifier"
    assert qualify_version("1.0.0", "v1") == "1.0.0"


def test_missing_manifest_yields_empty_descriptor(make_bundle: Callable[..., Bundle]) -> None:
    bundle = make_bundle("org.bare")

    bundle.parse(BundleRegistry())

    assert bundle.is_parsed
    assert bundle.required == []
    assert bundle.fragment_host is None
    assert bundle.effective_classpath == ["."]


def test_archive_manifest_is_read_from_the_jar(
    tmp_path: Path, bundle_jar: Callable[..., Path]
) -> None:
    jar = bundle_jar(
        tmp_path / "org.jar_1.0.0.jar",
        {"Bundle-Version": "1.0.0", "Fragment-Host": "org.host", "Export-Package": "org.jar"},
    )
    bundle = Bundle(name="org.jar", location=BundleLocation(LocationKind.ARCHIVE, jar))

    bundle.parse(BundleRegistry())

    assert bundle.qualified_version == "1.0.0"
    assert bundle.is_fragment
    assert bundle.exported_packages == ["org.jar"]


def test_unreadable_archive_is_treated_as_dependency_free(tmp_path: Path) -> None:
    broken = tmp_path / "broken.jar"
    broken.write_bytes(b"not a zip file")
    bundle = Bundle(name="broken", location=BundleLocation(LocationKind.ARCHIVE, broken))

    bundle.parse(BundleRegistry())

    assert bundle.is_parsed
    assert bundle.required == []


def test_optional_imports_are_tracked(make_bundle: Callable[..., Bundle]) -> None:
    bundle = make_bundle(
        "org.imp", {"Import-Package": "org.a,org.b;resolution:=optional"}
    )

    bundle.parse(BundleRegistry())

    assert bundle.imported_packages == ["org.a", "org.b"]
    assert bundle.optional_imports == {"org.b"}


def test_single_archive_eligibility(make_bundle: Callable[..., Bundle]) -> None:
    plain = make_bundle("plain", {})
    rooted = make_bundle("rooted", {"Bundle-ClassPath": "."})
    nested = make_bundle("nested", {"Bundle-ClassPath": ".,lib/x.jar"})
    for bundle in (plain, rooted, nested):
        bundle.parse(BundleRegistry())

    assert plain.is_single_archive_eligible
    assert rooted.is_single_archive_eligible
    assert not nested.is_single_archive_eligible


def test_bundles_compare_by_identity(make_bundle: Callable[..., Bundle]) -> None:
    first = make_bundle("same")
    second = Bundle(name="same", location=first.location)

    assert first != second
    assert len({first, second}) == 2
