"""Domain model for discovered bundles and their on-disk locations."""

from osgi_forge.domain.location import (
    ArchiveFiles,
    BundleFiles,
    BundleLocation,
    DirectoryFiles,
    LocationKind,
    decode_manifest,
)
from osgi_forge.domain.models import (
    Bundle,
    BundleLookup,
    BundleRequirement,
    BundleSource,
    ParseState,
    PlacementPolicy,
    SourceKind,
    qualify_version,
)

__all__ = [
    "ArchiveFiles",
    "Bundle",
    "BundleFiles",
    "BundleLocation",
    "BundleLookup",
    "BundleRequirement",
    "BundleSource",
    "DirectoryFiles",
    "LocationKind",
    "ParseState",
    "PlacementPolicy",
    "SourceKind",
    "decode_manifest",
    "qualify_version",
]
