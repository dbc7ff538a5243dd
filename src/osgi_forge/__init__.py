"""
osgi-forge - package root

File: src/osgi_forge/__init__.py
Last updated: 2026-10-18

Purpose
- Resolve OSGi bundles discovered in binary and source folders into a
  dependency-respecting build order and materialize them.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
