"""
osgi-forge - unit tests for bundle locations

File: tests/unit/domain/test_location.py
Last updated: 2026-10-18

What this test file should cover
- Manifest reads from directories and jars.
- Manifest decoding with a BOM or undecodable bytes.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from osgi_forge.domain.location import BundleLocation, LocationKind, decode_manifest


def test_directory_location_reads_manifest(tmp_path: Path, bundle_dir: Callable[..., Path]) -> None:
    root = bundle_dir(tmp_path / "org.a", {"Bundle-Version": "1.0"})
    location = BundleLocation(LocationKind.DIRECTORY, root)

    data = location.read_manifest()

    assert data is not None
    assert b"Bundle-Version: 1.0" in data
    assert location.manifest_label().endswith("org.a/META-INF/MANIFEST.MF")
    assert not location.is_archive


def test_directory_without_manifest_returns_none(tmp_path: Path) -> None:
    root = tmp_path / "org.b"
    root.mkdir()
    (root / "plugin.xml").write_text("<plugin/>", encoding="utf-8")

    assert BundleLocation(LocationKind.SOURCE_DIRECTORY, root).read_manifest() is None


def test_archive_location_label_and_files(tmp_path: Path, bundle_jar: Callable[..., Path]) -> None:
    jar = bundle_jar(tmp_path / "org.c.jar", {"Bundle-Version": "3"}, {"lib/x.jar": b"x"})
    location = BundleLocation(LocationKind.ARCHIVE, jar)

    with location.open_files() as files:
        assert files.is_file("lib/x.jar")
        assert not files.is_file("lib")
        assert files.display_path("lib/x.jar").endswith("org.c.jar:/lib/x.jar")

    assert location.is_archive
    assert location.manifest_label().endswith("org.c.jar:/META-INF/MANIFEST.MF")


def test_decode_manifest_tolerates_bom_and_bad_bytes() -> None:
    assert decode_manifest(b"\xef\xbb\xbfBundle-Version: 1\n") == "Bundle-Version: 1\n"
    assert "�" in decode_manifest(b"Bundle-Name: \xff\n")
