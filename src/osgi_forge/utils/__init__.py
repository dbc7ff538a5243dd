"""Filesystem and thread fan-out helpers shared by the build and resolution phases."""

from osgi_forge.utils.concurrency import map_in_threads
from osgi_forge.utils.fs import (
    atomic_output,
    atomic_write,
    ensure_directory,
    is_within,
    safe_delete,
)

__all__ = [
    "atomic_output",
    "atomic_write",
    "ensure_directory",
    "is_within",
    "map_in_threads",
    "safe_delete",
]
