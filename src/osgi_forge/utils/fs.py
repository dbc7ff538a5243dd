"""
osgi-forge - build tree file helpers

File: src/osgi_forge/utils/fs.py
Last updated: 2026-10-18

Purpose
- Publish build outputs (argument files, packaged jars) atomically: content
  is staged beside the destination and moved over it with ``os.replace``.
- Keep clean-up of per-bundle work trees inside the output directory.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

PathLike = str | os.PathLike[str]


def ensure_directory(path: PathLike) -> Path:
    created = Path(path)
    created.mkdir(parents=True, exist_ok=True)
    return created


@contextmanager
def atomic_output(path: PathLike) -> Iterator[Path]:
    """
    Yield a staging file in the destination's directory.

    Leaving the block normally moves the staging file over ``path``. If the
    block raises, the staging file is unlinked and ``path`` is left as it was.
    The destination directory must already exist.
    """

    destination = Path(path)
    directory = destination.parent.resolve(strict=True)
    handle, staged_name = tempfile.mkstemp(
        dir=directory, prefix=f".{destination.name}.", suffix=".tmp"
    )
    os.close(handle)
    staged = Path(staged_name)
    committed = False
    try:
        yield staged
        os.replace(staged, destination)
        committed = True
    finally:
        if not committed:
            staged.unlink(missing_ok=True)


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    with atomic_output(path) as staged:
        if isinstance(data, str):
            staged.write_text(data, encoding=encoding)
        else:
            staged.write_bytes(data)


def is_within(child: PathLike, parent: PathLike) -> bool:
    """``True`` when ``child`` resolves to ``parent`` or below it. Neither has to exist."""

    return Path(child).resolve().is_relative_to(Path(parent).resolve())


def safe_delete(path: PathLike, root: PathLike) -> None:
    """
    Remove a file, symlink or directory tree that lives strictly below ``root``.

    A missing ``path`` is a no-op. A symlink is removed itself, never what it
    points at. ``ValueError`` is raised for ``root`` itself or anything outside it.
    """

    boundary = Path(root).resolve(strict=True)
    victim = Path(path)
    if not os.path.lexists(victim):
        return

    # Resolve only the parent so a symlink is judged by where it sits.
    located = victim.parent.resolve(strict=True) / victim.name
    if located == boundary or not located.is_relative_to(boundary):
        raise ValueError(f"refusing to delete path outside {boundary}: {victim}")

    if victim.is_dir() and not victim.is_symlink():
        shutil.rmtree(victim)
    else:
        victim.unlink()


__all__ = [
    "atomic_output",
    "atomic_write",
    "ensure_directory",
    "is_within",
    "safe_delete",
]
