"""
osgi-forge - resolution layer

File: src/osgi_forge/resolution/__init__.py
Last updated: 2026-10-18

Purpose
- Re-export the bundle registry and the dependency-closure traversal.
"""

from osgi_forge.resolution.registry import BundleRegistry, UnresolvedReference
from osgi_forge.resolution.traversal import (
    parse_closure,
    parse_closure_concurrently,
    traverse,
)

__all__ = [
    "BundleRegistry",
    "UnresolvedReference",
    "parse_closure",
    "parse_closure_concurrently",
    "traverse",
]
