"""
osgi-forge - bundle materializers

File: src/osgi_forge/build/materializers.py
Last updated: 2026-10-18

Purpose
- Turn one plan entry into its own exported classpath entries on disk.

Functional requirements
- Binary directory bundles export their classpath entries resolved against
  the bundle directory; ``.`` is the directory itself.
- Binary archives export the archive when it has no nested classpath
  containers, otherwise they are extracted into the work tree first.
- Source bundles compile each classpath entry's source folders (from
  ``build.properties``) against the compile classpath, then either package a
  jar into ``<output>/plugins`` or export the compiled folders. An entry with
  no source folders but existing ``output.<entry>`` folders ships those
  prebuilt folders instead.

Non-functional requirements
- Archive extraction never writes outside the bundle's work directory.
- Every failure surfaces as ``BuildFailedError``.
"""

from __future__ import annotations

import logging
import re
import shutil
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Protocol

from osgi_forge.build.compiler import CompilerInvocation
from osgi_forge.build.properties import BuildProperties
from osgi_forge.constants import (
    ARCHIVE_SUFFIX,
    BUILD_PROPERTIES_PATH,
    MANIFEST_PATH,
    PLUGINS_DIR,
    ROOT_CLASSPATH_ENTRY,
    WORK_DIR,
)
from osgi_forge.domain.location import LocationKind
from osgi_forge.domain.models import Bundle
from osgi_forge.errors import BuildFailedError
from osgi_forge.planning.classpath import ClasspathPropagator
from osgi_forge.resolution.registry import BundleRegistry
from osgi_forge.utils.fs import atomic_output, ensure_directory, is_within, safe_delete

_MODULE_LOGGER = logging.getLogger(__name__)

_UNSAFE_SEGMENT_RE = re.compile(r"[^\w.-]+")


@dataclass(slots=True)
class BuildContext:
    """Shared state for one build run."""

    output_dir: Path
    compiler: CompilerInvocation
    registry: BundleRegistry
    propagator: ClasspathPropagator
    package_jars: bool = True
    logger: logging.Logger = field(default=_MODULE_LOGGER)

    @property
    def plugins_dir(self) -> Path:
        return self.output_dir / PLUGINS_DIR

    @property
    def work_dir(self) -> Path:
        return self.output_dir / WORK_DIR

    def bundle_work_dir(self, bundle: Bundle) -> Path:
        return self.work_dir / _safe_segment(bundle.name)

    def compile_classpath(self, bundle: Bundle) -> list[str]:
        """Visible classpaths of required bundles; fragments also see their host's."""

        entries: list[str] = []
        for required in bundle.required:
            entries.extend(self.propagator.visible_classpath(required))
        host = self.registry.host_of(bundle)
        if host is not None:
            entries.extend(self.propagator.visible_classpath(host))
            for required in host.required:
                if required is not bundle:
                    entries.extend(self.propagator.visible_classpath(required))
        return entries


class Materializer(Protocol):
    def materialize(self, bundle: Bundle, context: BuildContext) -> list[str]: ...


class BinaryDirectoryMaterializer:
    """Already-built directory bundle: export its entries in place."""

    def materialize(self, bundle: Bundle, context: BuildContext) -> list[str]:
        return resolve_entries(bundle.location.path, bundle, context.logger)


class BinaryArchiveMaterializer:
    """Already-built ``.jar`` bundle."""

    def materialize(self, bundle: Bundle, context: BuildContext) -> list[str]:
        archive = bundle.location.path
        if bundle.is_single_archive_eligible:
            return [str(archive)]

        target = context.bundle_work_dir(bundle) / "extracted"
        context.logger.info("Extracting %s for nested classpath entries", bundle.name)
        extract_archive(bundle.name, archive, target, root=context.output_dir)
        return resolve_entries(target, bundle, context.logger)


class SourceMaterializer:
    """Compile a source bundle and package or export the result."""

    def materialize(self, bundle: Bundle, context: BuildContext) -> list[str]:
        root = bundle.location.path
        properties = BuildProperties.load(root, BUILD_PROPERTIES_PATH)
        work = context.bundle_work_dir(bundle)
        if work.exists():
            safe_delete(work, ensure_directory(context.output_dir))
        ensure_directory(work)

        base_classpath = context.compile_classpath(bundle)
        compiled: dict[str, Path] = {}
        prebuilt: dict[str, list[Path]] = {}
        for entry in bundle.effective_classpath:
            folders = properties.source_folders(entry)
            if not folders:
                shipped = _existing_folders(root, properties.output_folders(entry))
                if shipped:
                    context.logger.debug(
                        "%s: using prebuilt output for entry %s", bundle.name, entry
                    )
                    prebuilt[entry] = shipped
                continue
            classes_dir = ensure_directory(work / "classes" / _safe_segment(entry))
            sources = _collect_sources(root, folders)
            if sources:
                context.compiler.compile(
                    bundle.name,
                    output_dir=classes_dir,
                    classpath=[
                        *base_classpath,
                        *(str(path) for path in compiled.values()),
                        *(str(path) for paths in prebuilt.values() for path in paths),
                    ],
                    sources=sources,
                    argfile=work / f"{_safe_segment(entry)}.args",
                    encoding=properties.javac_encoding,
                )
            else:
                context.logger.debug("%s: no Java sources for entry %s", bundle.name, entry)
            _copy_resources(root, folders, classes_dir)
            compiled[entry] = classes_dir

        if bundle.is_single_archive_eligible and context.package_jars:
            jar_path = context.plugins_dir / archive_file_name(bundle)
            root_classes = (
                [compiled[ROOT_CLASSPATH_ENTRY]]
                if ROOT_CLASSPATH_ENTRY in compiled
                else prebuilt.get(ROOT_CLASSPATH_ENTRY, [])
            )
            package_jar(bundle, root, root_classes, properties, jar_path)
            context.logger.info("Packaged %s", jar_path)
            return [str(jar_path)]

        exported: list[str] = []
        for entry in bundle.effective_classpath:
            if entry in compiled:
                exported.append(str(compiled[entry]))
            elif entry in prebuilt:
                exported.extend(str(path) for path in prebuilt[entry])
            elif entry == ROOT_CLASSPATH_ENTRY:
                exported.append(str(root))
            else:
                exported.append(str(root.joinpath(*PurePosixPath(entry).parts)))
        return exported


_DEFAULT_MATERIALIZERS: dict[LocationKind, Materializer] = {
    LocationKind.DIRECTORY: BinaryDirectoryMaterializer(),
    LocationKind.ARCHIVE: BinaryArchiveMaterializer(),
    LocationKind.SOURCE_DIRECTORY: SourceMaterializer(),
}


def materializer_for(bundle: Bundle) -> Materializer:
    return _DEFAULT_MATERIALIZERS[bundle.location.kind]


def archive_file_name(bundle: Bundle) -> str:
    if bundle.qualified_version:
        return f"{bundle.name}_{bundle.qualified_version}{ARCHIVE_SUFFIX}"
    return f"{bundle.name}{ARCHIVE_SUFFIX}"


def resolve_entries(root: Path, bundle: Bundle, logger: logging.Logger) -> list[str]:
    """Map raw classpath entries onto paths under ``root``."""

    resolved: list[str] = []
    for entry in bundle.effective_classpath:
        if entry == ROOT_CLASSPATH_ENTRY:
            resolved.append(str(root))
            continue
        path = root.joinpath(*PurePosixPath(entry).parts)
        if not path.exists():
            logger.warning(
                "%s: classpath entry %s does not exist under %s",
                bundle.name,
                entry,
                root,
                extra={"diagnostic": "missing_classpath_entry"},
            )
        resolved.append(str(path))
    return resolved


def extract_archive(bundle_name: str, archive: Path, target: Path, *, root: Path) -> None:
    ensure_directory(root)
    if target.exists():
        safe_delete(target, root)
    ensure_directory(target)
    try:
        with zipfile.ZipFile(archive) as source:
            for info in source.infolist():
                destination = target.joinpath(*PurePosixPath(info.filename).parts)
                if not is_within(destination, target):
                    raise BuildFailedError(
                        bundle_name, f"archive entry escapes extraction root: {info.filename}"
                    )
                if info.is_dir():
                    ensure_directory(destination)
                    continue
                ensure_directory(destination.parent)
                with source.open(info) as reader, destination.open("wb") as writer:
                    shutil.copyfileobj(reader, writer)
    except (OSError, zipfile.BadZipFile) as exc:
        raise BuildFailedError(bundle_name, f"cannot extract {archive}: {exc}") from exc


def package_jar(
    bundle: Bundle,
    root: Path,
    classes_dirs: Sequence[Path],
    properties: BuildProperties,
    jar_path: Path,
) -> None:
    """Write ``classes_dirs`` and the ``bin.includes`` files of ``root`` into ``jar_path``."""

    ensure_directory(jar_path.parent)
    includes = properties.bin_includes or ["META-INF/"]
    written: set[str] = set()
    try:
        with atomic_output(jar_path) as staging, zipfile.ZipFile(
            staging, "w", compression=zipfile.ZIP_DEFLATED
        ) as jar:
            manifest = root.joinpath(*PurePosixPath(MANIFEST_PATH).parts)
            if manifest.is_file():
                jar.write(manifest, MANIFEST_PATH)
                written.add(MANIFEST_PATH)
            for classes_dir in classes_dirs:
                _add_tree(jar, classes_dir, PurePosixPath(), written)
            for include in includes:
                normalized = include.strip().rstrip("/")
                if not normalized or normalized == ROOT_CLASSPATH_ENTRY:
                    continue
                source = root.joinpath(*PurePosixPath(normalized).parts)
                if source.is_dir():
                    _add_tree(jar, source, PurePosixPath(normalized), written)
                elif source.is_file():
                    _add_file(jar, source, PurePosixPath(normalized).as_posix(), written)
    except OSError as exc:
        raise BuildFailedError(bundle.name, f"cannot write {jar_path}: {exc}") from exc


def _add_tree(
    jar: zipfile.ZipFile, directory: Path, prefix: PurePosixPath, written: set[str]
) -> None:
    for path in sorted(directory.rglob("*")):
        if path.is_file():
            relative = prefix / PurePosixPath(path.relative_to(directory).as_posix())
            _add_file(jar, path, relative.as_posix(), written)


def _add_file(jar: zipfile.ZipFile, path: Path, arcname: str, written: set[str]) -> None:
    if arcname in written:
        return
    jar.write(path, arcname)
    written.add(arcname)


def _collect_sources(root: Path, folders: list[str]) -> list[Path]:
    sources: list[Path] = []
    for folder in folders:
        directory = root.joinpath(*PurePosixPath(folder).parts)
        if directory.is_dir():
            sources.extend(sorted(directory.rglob("*.java")))
    return sources


def _existing_folders(root: Path, folders: list[str]) -> list[Path]:
    directories = (root.joinpath(*PurePosixPath(folder).parts) for folder in folders)
    return [directory for directory in directories if directory.is_dir()]


def _copy_resources(root: Path, folders: list[str], destination: Path) -> None:
    for folder in folders:
        directory = root.joinpath(*PurePosixPath(folder).parts)
        if not directory.is_dir():
            continue
        for path in sorted(directory.rglob("*")):
            if not path.is_file() or path.suffix == ".java":
                continue
            target = destination / path.relative_to(directory)
            ensure_directory(target.parent)
            shutil.copy2(path, target)


def _safe_segment(value: str) -> str:
    if value == ROOT_CLASSPATH_ENTRY:
        return "root"
    return _UNSAFE_SEGMENT_RE.sub("_", value).strip("._") or "entry"


__all__ = [
    "BinaryArchiveMaterializer",
    "BinaryDirectoryMaterializer",
    "BuildContext",
    "Materializer",
    "SourceMaterializer",
    "archive_file_name",
    "extract_archive",
    "materializer_for",
    "package_jar",
    "resolve_entries",
]
