"""Run-fatal error types raised by the resolver, planner, and build layers."""

from __future__ import annotations

from collections.abc import Sequence


class ForgeError(RuntimeError):
    """Base class for conditions that stop a run."""


class SourceFolderError(ForgeError):
    """Raised when a configured bundle folder cannot be listed."""

    path: str

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"cannot scan bundle folder {path}: {reason}")


class NoBundlesSelectedError(ForgeError):
    """Raised when selection rules produced an empty bundle set."""

    def __init__(self) -> None:
        super().__init__("No bundles selected for building. Stop.")


class UnresolvedReferencesError(ForgeError):
    """Raised when bundle or package references remain unresolved after all passes."""

    bundles: tuple[tuple[str, str], ...]
    packages: tuple[tuple[str, str], ...]

    def __init__(
        self,
        bundles: Sequence[tuple[str, str]],
        packages: Sequence[tuple[str, str]],
    ) -> None:
        self.bundles = tuple(bundles)
        self.packages = tuple(packages)
        lines: list[str] = []
        if self.bundles:
            lines.append("Unresolved bundles:")
            lines.extend(f" - {name} (required by {owner})" for name, owner in self.bundles)
        if self.packages:
            lines.append("Unresolved packages:")
            lines.extend(f" - {name} (imported by {owner})" for name, owner in self.packages)
        lines.append("Stop.")
        super().__init__("\n".join(lines))


class DependencyCycleError(ForgeError):
    """Raised when plan construction re-enters a bundle that is still being contributed."""

    cycle: tuple[str, ...]

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        super().__init__(f"Required-bundle cycle detected: {' -> '.join(self.cycle)}")


class BuildFailedError(ForgeError):
    """Raised when a materializer (compiler or archive copier) reports failure."""

    bundle_name: str
    detail: str

    def __init__(self, bundle_name: str, detail: str) -> None:
        self.bundle_name = bundle_name
        self.detail = detail
        super().__init__(f"build failed for {bundle_name}: {detail}")


__all__ = [
    "BuildFailedError",
    "DependencyCycleError",
    "ForgeError",
    "NoBundlesSelectedError",
    "SourceFolderError",
    "UnresolvedReferencesError",
]
