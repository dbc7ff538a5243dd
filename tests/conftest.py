"""Shared fixtures: on-disk bundle trees and a JDK-free fake compiler."""

from __future__ import annotations

import sys
import textwrap
import zipfile
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from osgi_forge.domain.location import BundleLocation, LocationKind
from osgi_forge.domain.models import Bundle, BundleSource, SourceKind

ManifestHeaders = Mapping[str, str]

# Reads the @argfile like javac does, then writes one .class per .java into -d.
_FAKE_COMPILER = textwrap.dedent(
    """
    import pathlib
    import shlex
    import sys

    argfile = pathlib.Path(sys.argv[1][1:])
    args = shlex.split(argfile.read_text(encoding="utf-8"))
    out = pathlib.Path(args[args.index("-d") + 1])
    log = out.parent.parent / "compiler-calls.txt"
    with log.open("a", encoding="utf-8") as handle:
        handle.write(" ".join(args) + "\\n")
    for arg in args:
        if arg.endswith(".java"):
            source = pathlib.Path(arg)
            if "FAIL" in source.read_text(encoding="utf-8"):
                print(f"{source}:1: error: cannot find symbol", file=sys.stderr)
                sys.exit(1)
            (out / (source.stem + ".class")).write_bytes(b"\\xca\\xfe\\xba\\xbe")
    """
)


def render_manifest(headers: ManifestHeaders) -> str:
    lines = ["Manifest-Version: 1.0"]
    lines.extend(f"{name}: {value}" for name, value in headers.items())
    return "\n".join(lines) + "\n"


def write_bundle_dir(root: Path, headers: ManifestHeaders | None = None) -> Path:
    """Create a directory bundle at ``root`` with an optional manifest."""

    root.mkdir(parents=True, exist_ok=True)
    if headers is not None:
        manifest = root / "META-INF" / "MANIFEST.MF"
        manifest.parent.mkdir(parents=True, exist_ok=True)
        manifest.write_text(render_manifest(headers), encoding="utf-8")
    return root


def write_bundle_jar(
    path: Path, headers: ManifestHeaders, extra: Mapping[str, bytes] | None = None
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("META-INF/MANIFEST.MF", render_manifest(headers))
        for name, data in (extra or {}).items():
            archive.writestr(name, data)
    return path


@pytest.fixture
def make_bundle(tmp_path: Path) -> Callable[..., Bundle]:
    """Factory for directory-backed bundles that have not been registered anywhere."""

    def _make(
        name: str,
        headers: ManifestHeaders | None = None,
        *,
        kind: LocationKind = LocationKind.DIRECTORY,
        source: BundleSource | None = None,
    ) -> Bundle:
        root = write_bundle_dir(tmp_path / "bundles" / name, headers)
        return Bundle(name=name, location=BundleLocation(kind, root), source=source)

    return _make


@pytest.fixture
def binary_source(tmp_path: Path) -> BundleSource:
    folder = tmp_path / "binary"
    folder.mkdir()
    return BundleSource(kind=SourceKind.BINARY, path=folder)


@pytest.fixture
def fake_compiler(tmp_path: Path) -> list[str]:
    """Compiler command that needs only the running interpreter."""

    script = tmp_path / "fake_javac.py"
    script.write_text(_FAKE_COMPILER, encoding="utf-8")
    return [sys.executable, str(script)]


@pytest.fixture
def bundle_dir() -> Callable[..., Path]:
    return write_bundle_dir


@pytest.fixture
def bundle_jar() -> Callable[..., Path]:
    return write_bundle_jar
