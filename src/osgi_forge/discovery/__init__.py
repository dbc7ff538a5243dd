"""Bundle discovery across plugin folders and the selection rules applied to it."""

from osgi_forge.discovery.rules import NameRule, SelectionRule, SourceRule, apply_rules
from osgi_forge.discovery.sources import (
    BundleSource,
    SourceCatalog,
    SourceKind,
    find_bundles,
    has_bundle_marker,
    strip_version_suffix,
)

__all__ = [
    "BundleSource",
    "NameRule",
    "SelectionRule",
    "SourceCatalog",
    "SourceKind",
    "SourceRule",
    "apply_rules",
    "find_bundles",
    "has_bundle_marker",
    "strip_version_suffix",
]
