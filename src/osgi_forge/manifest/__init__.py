"""
osgi-forge - manifest parsing package

File: src/osgi_forge/manifest/__init__.py
Last updated: 2026-10-18

Purpose
- Turn raw ``MANIFEST.MF`` text into header blocks, directive-bearing values,
  and bundle descriptors.

Functional requirements
- Malformed input produces warnings and a partial result, never an exception.
"""

from osgi_forge.manifest.descriptor import BundleDescriptor, Manifest
from osgi_forge.manifest.directives import (
    Resolution,
    ValueWithDirectives,
    Visibility,
    parse_value,
    parse_values,
    strip_quoted,
)
from osgi_forge.manifest.headers import HeaderBlock, parse_header_block

__all__ = [
    "BundleDescriptor",
    "HeaderBlock",
    "Manifest",
    "Resolution",
    "ValueWithDirectives",
    "Visibility",
    "parse_header_block",
    "parse_value",
    "parse_values",
    "strip_quoted",
]
