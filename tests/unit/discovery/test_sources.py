"""
osgi-forge - unit tests for plugin folder discovery

File: tests/unit/discovery/test_sources.py
Last updated: 2026-10-18

What this test file should cover
- Binary folders: version suffix stripped from directory and jar names.
- Source folders: directory names kept verbatim, jars ignored.
- Non-bundle entries skipped; unreadable folders raise SourceFolderError.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from osgi_forge.discovery.sources import (
    SourceCatalog,
    find_bundles,
    has_bundle_marker,
    strip_version_suffix,
)
from osgi_forge.domain.location import LocationKind
from osgi_forge.domain.models import BundleSource, SourceKind
from osgi_forge.errors import SourceFolderError
from osgi_forge.resolution.registry import BundleRegistry


@pytest.mark.parametrize(
    ("entry", "expected"),
    [
        ("org.eclipse.core.runtime_3.4.0.v20080512", "org.eclipse.core.runtime"),
        ("org.junit_4.13.2", "org.junit"),
        ("org.foo_1", "org.foo"),
        ("org.foo_1.2.3-SNAPSHOT", "org.foo"),
        ("org.foo", "org.foo"),
        ("org.foo_bar", "org.foo_bar"),
        ("org.foo_bar_2.0", "org.foo_bar"),
    ],
)
def test_strip_version_suffix(entry: str, expected: str) -> None:
    assert strip_version_suffix(entry) == expected


def test_bundle_markers(tmp_path: Path, bundle_dir: Callable[..., Path]) -> None:
    with_manifest = bundle_dir(tmp_path / "a", {})
    with_plugin_xml = tmp_path / "b"
    with_plugin_xml.mkdir()
    (with_plugin_xml / "plugin.xml").write_text("<plugin/>", encoding="utf-8")
    with_fragment_xml = tmp_path / "c"
    with_fragment_xml.mkdir()
    (with_fragment_xml / "fragment.xml").write_text("<fragment/>", encoding="utf-8")
    empty = tmp_path / "d"
    empty.mkdir()

    assert has_bundle_marker(with_manifest)
    assert has_bundle_marker(with_plugin_xml)
    assert has_bundle_marker(with_fragment_xml)
    assert not has_bundle_marker(empty)


def test_binary_folder_yields_directories_and_jars(
    binary_source: BundleSource,
    bundle_dir: Callable[..., Path],
    bundle_jar: Callable[..., Path],
) -> None:
    folder = binary_source.path
    bundle_dir(folder / "org.b_2.0.0", {})
    bundle_jar(folder / "org.a_1.0.0.v2026.jar", {"Bundle-Version": "1.0.0.v2026"})
    (folder / "notes.txt").write_text("ignored", encoding="utf-8")
    (folder / "not-a-bundle").mkdir()
    registry = BundleRegistry()

    found = find_bundles(binary_source, registry)

    assert [(bundle.name, bundle.location.kind) for bundle in found] == [
        ("org.a", LocationKind.ARCHIVE),
        ("org.b", LocationKind.DIRECTORY),
    ]
    assert all(bundle.source is binary_source for bundle in found)
    assert registry.get("org.a") is found[0]


def test_source_folder_keeps_names_verbatim(
    tmp_path: Path, bundle_dir: Callable[..., Path]
) -> None:
    folder = tmp_path / "workspace"
    bundle_dir(folder / "org.tool_1.0", {})
    (folder / "lib.jar").write_bytes(b"")
    source = BundleSource(SourceKind.SOURCE, folder)

    found = find_bundles(source, BundleRegistry())

    assert [bundle.name for bundle in found] == ["org.tool_1.0"]
    assert found[0].location.kind is LocationKind.SOURCE_DIRECTORY
    assert found[0].is_source


def test_missing_folder_raises_source_folder_error(tmp_path: Path) -> None:
    source = BundleSource(SourceKind.BINARY, tmp_path / "nowhere")

    with pytest.raises(SourceFolderError) as excinfo:
        find_bundles(source, BundleRegistry())

    assert excinfo.value.path.endswith("nowhere")


def test_catalog_keeps_scan_order_and_later_sources_override(
    tmp_path: Path, bundle_dir: Callable[..., Path]
) -> None:
    eclipse = BundleSource(SourceKind.BINARY, tmp_path / "eclipse")
    workspace = BundleSource(SourceKind.SOURCE, tmp_path / "ws", include=True)
    bundle_dir(eclipse.path / "org.shared_1.0.0", {})
    bundle_dir(eclipse.path / "org.lib_1.0.0", {})
    bundle_dir(workspace.path / "org.shared", {})
    registry = BundleRegistry()

    catalog = SourceCatalog.scan([eclipse, workspace], registry)

    assert catalog.sources == (eclipse, workspace)
    assert len(catalog) == 3
    assert [bundle.name for bundle in catalog.bundles_of(workspace)] == ["org.shared"]
    shared = registry.get("org.shared")
    assert shared is not None
    assert shared.source is workspace
