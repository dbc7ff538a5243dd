"""File access for bundle roots that are either plain directories or ``.jar`` archives."""

from __future__ import annotations

import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Protocol

from osgi_forge.constants import MANIFEST_PATH

if TYPE_CHECKING:
    from collections.abc import Iterator


class LocationKind(StrEnum):
    DIRECTORY = "directory"
    ARCHIVE = "archive"
    SOURCE_DIRECTORY = "source-directory"


class BundleFiles(Protocol):
    """Read-only access to files inside one bundle root, addressed by POSIX paths."""

    def is_file(self, relative_path: str) -> bool: ...

    def read_bytes(self, relative_path: str) -> bytes: ...

    def display_path(self, relative_path: str) -> str: ...


class DirectoryFiles:
    __slots__ = ("root",)

    def __init__(self, root: Path) -> None:
        self.root = root

    def is_file(self, relative_path: str) -> bool:
        return self._resolve(relative_path).is_file()

    def read_bytes(self, relative_path: str) -> bytes:
        return self._resolve(relative_path).read_bytes()

    def display_path(self, relative_path: str) -> str:
        return f"{self.root.as_posix()}/{relative_path}"

    def _resolve(self, relative_path: str) -> Path:
        return self.root.joinpath(*PurePosixPath(relative_path).parts)


class ArchiveFiles:
    __slots__ = ("archive_path", "_zip")

    def __init__(self, archive_path: Path, archive: zipfile.ZipFile) -> None:
        self.archive_path = archive_path
        self._zip = archive

    def is_file(self, relative_path: str) -> bool:
        try:
            info = self._zip.getinfo(relative_path)
        except KeyError:
            return False
        return not info.is_dir()

    def read_bytes(self, relative_path: str) -> bytes:
        return self._zip.read(relative_path)

    def display_path(self, relative_path: str) -> str:
        return f"{self.archive_path.as_posix()}:/{relative_path}"


@dataclass(frozen=True, slots=True)
class BundleLocation:
    """Where a discovered bundle lives on disk."""

    kind: LocationKind
    path: Path

    @property
    def is_archive(self) -> bool:
        return self.kind is LocationKind.ARCHIVE

    @property
    def is_source(self) -> bool:
        return self.kind is LocationKind.SOURCE_DIRECTORY

    @contextmanager
    def open_files(self) -> Iterator[BundleFiles]:
        if self.kind is LocationKind.ARCHIVE:
            with zipfile.ZipFile(self.path) as archive:
                yield ArchiveFiles(self.path, archive)
            return
        yield DirectoryFiles(self.path)

    def manifest_label(self) -> str:
        if self.kind is LocationKind.ARCHIVE:
            return f"{self.path.as_posix()}:/{MANIFEST_PATH}"
        return f"{self.path.as_posix()}/{MANIFEST_PATH}"

    def read_manifest(self) -> bytes | None:
        """Return raw manifest bytes, or ``None`` when the bundle has no manifest."""
        with self.open_files() as files:
            if not files.is_file(MANIFEST_PATH):
                return None
            return files.read_bytes(MANIFEST_PATH)

    def __str__(self) -> str:
        return self.path.as_posix()


def decode_manifest(data: bytes) -> str:
    """Decode manifest bytes as UTF-8, tolerating a BOM and invalid sequences."""
    return data.decode("utf-8-sig", errors="replace")


__all__ = [
    "ArchiveFiles",
    "BundleFiles",
    "BundleLocation",
    "DirectoryFiles",
    "LocationKind",
    "decode_manifest",
]
