"""Build execution: compiler invocation, materializers, and the plan executor."""

from osgi_forge.build.compiler import CompilerInvocation, CompilerResult
from osgi_forge.build.executor import BuildExecutor, BuildReport, BuiltBundle
from osgi_forge.build.materializers import (
    BinaryArchiveMaterializer,
    BinaryDirectoryMaterializer,
    BuildContext,
    Materializer,
    SourceMaterializer,
    archive_file_name,
    materializer_for,
)
from osgi_forge.build.properties import BuildProperties, parse_properties, split_list

__all__ = [
    "BinaryArchiveMaterializer",
    "BinaryDirectoryMaterializer",
    "BuildContext",
    "BuildExecutor",
    "BuildProperties",
    "BuildReport",
    "BuiltBundle",
    "CompilerInvocation",
    "CompilerResult",
    "Materializer",
    "SourceMaterializer",
    "archive_file_name",
    "materializer_for",
    "parse_properties",
    "split_list",
]
