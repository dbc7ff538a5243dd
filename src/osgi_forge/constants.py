"""Stable constants shared across the resolver, planner, and build layers."""

from __future__ import annotations

from typing import Final

# Well-known bundle file locations, relative to the bundle root.
MANIFEST_PATH: Final[str] = "META-INF/MANIFEST.MF"
PLUGIN_XML_PATH: Final[str] = "plugin.xml"
FRAGMENT_XML_PATH: Final[str] = "fragment.xml"
BUILD_PROPERTIES_PATH: Final[str] = "build.properties"
BUNDLE_MARKER_FILES: Final[tuple[str, ...]] = (MANIFEST_PATH, PLUGIN_XML_PATH, FRAGMENT_XML_PATH)

ARCHIVE_SUFFIX: Final[str] = ".jar"

# Manifest headers consumed by descriptor extraction.
HEADER_REQUIRE_BUNDLE: Final[str] = "Require-Bundle"
HEADER_FRAGMENT_HOST: Final[str] = "Fragment-Host"
HEADER_EXPORT_PACKAGE: Final[str] = "Export-Package"
HEADER_IMPORT_PACKAGE: Final[str] = "Import-Package"
HEADER_BUNDLE_CLASSPATH: Final[str] = "Bundle-ClassPath"
HEADER_EXTENSIBLE_API: Final[str] = "Eclipse-ExtensibleAPI"
HEADER_BUNDLE_VERSION: Final[str] = "Bundle-Version"
HEADER_SYMBOLIC_NAME: Final[str] = "Bundle-SymbolicName"

# Headers whose content never enters a parsed header block.
RESERVED_HEADERS: Final[frozenset[str]] = frozenset(
    {"Name", "SHA1-Digest", "SHA-256-Digest", "MD5-Digest"}
)

DIRECTIVE_VISIBILITY: Final[str] = "visibility"
DIRECTIVE_RESOLUTION: Final[str] = "resolution"

# Bundle-ClassPath entry meaning "the bundle root itself".
ROOT_CLASSPATH_ENTRY: Final[str] = "."
QUALIFIER_TOKEN: Final[str] = "qualifier"

CONFIG_SCHEMA_VERSION: Final[int] = 1

PLUGINS_DIR: Final[str] = "plugins"
WORK_DIR: Final[str] = "work"

__all__ = [
    "ARCHIVE_SUFFIX",
    "BUILD_PROPERTIES_PATH",
    "BUNDLE_MARKER_FILES",
    "CONFIG_SCHEMA_VERSION",
    "DIRECTIVE_RESOLUTION",
    "DIRECTIVE_VISIBILITY",
    "FRAGMENT_XML_PATH",
    "HEADER_BUNDLE_CLASSPATH",
    "HEADER_BUNDLE_VERSION",
    "HEADER_EXPORT_PACKAGE",
    "HEADER_EXTENSIBLE_API",
    "HEADER_FRAGMENT_HOST",
    "HEADER_IMPORT_PACKAGE",
    "HEADER_REQUIRE_BUNDLE",
    "HEADER_SYMBOLIC_NAME",
    "MANIFEST_PATH",
    "PLUGINS_DIR",
    "PLUGIN_XML_PATH",
    "QUALIFIER_TOKEN",
    "RESERVED_HEADERS",
    "ROOT_CLASSPATH_ENTRY",
    "WORK_DIR",
]
