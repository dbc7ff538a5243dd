"""
osgi-forge - run session orchestration.

File: src/osgi_forge/session.py
Last updated: 2026-10-18

Purpose
- Drive one run through its phases: discovery, selection, reachability parse,
  registry indexing, unresolved-reference check, plan construction, and
  (optionally) plan execution.

What should be included in this file
- ``SessionSettings``: the typed slice of effective config a run needs.
- ``BuildSession``: phase methods plus ``prepare_plan`` / ``build`` drivers.

Functional requirements
- Phases are strictly sequential; each phase logs under its own ``phase``
  correlation field.
- Empty selection and unresolved references (unless allowed) stop the run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from osgi_forge.build.compiler import CompilerInvocation
from osgi_forge.build.executor import BuildExecutor, BuildReport
from osgi_forge.build.materializers import BuildContext
from osgi_forge.discovery.rules import NameRule, SelectionRule, SourceRule, apply_rules
from osgi_forge.discovery.sources import SourceCatalog
from osgi_forge.domain.models import Bundle, BundleSource, PlacementPolicy, SourceKind
from osgi_forge.errors import NoBundlesSelectedError, UnresolvedReferencesError
from osgi_forge.observability.logging import correlation_scope
from osgi_forge.planning.build_plan import BuildPlan, PlacementTable, construct_build_plan
from osgi_forge.planning.classpath import ClasspathPropagator
from osgi_forge.resolution.registry import BundleRegistry
from osgi_forge.resolution.traversal import parse_closure, parse_closure_concurrently
from osgi_forge.utils.fs import ensure_directory

_MODULE_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionSettings:
    """Run inputs derived from the effective configuration."""

    sources: tuple[BundleSource, ...]
    selection_patterns: tuple[str, ...] = ()
    allow_unresolved: bool = False
    system_packages: tuple[str, ...] = ()
    placement: Mapping[str, str] = field(default_factory=dict)
    output_dir: Path = Path("build")
    compiler: tuple[str, ...] = ("javac",)
    compiler_args: tuple[str, ...] = ()
    encoding: str = "UTF-8"
    package_jars: bool = True
    jobs: int = 1

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SessionSettings:
        sources = tuple(
            BundleSource(
                kind=SourceKind(entry["kind"]),
                path=Path(entry["path"]),
                include=bool(entry.get("include", False)),
                qualifier=entry.get("qualifier"),
            )
            for entry in config["sources"]
        )
        resolution = config["resolution"]
        build = config["build"]
        return cls(
            sources=sources,
            selection_patterns=tuple(config["selection"]["bundles"]),
            allow_unresolved=bool(resolution["allow_unresolved"]),
            system_packages=tuple(resolution["system_packages"]),
            placement=dict(config["placement"]),
            output_dir=Path(build["output_dir"]),
            compiler=tuple(build["compiler"]),
            compiler_args=tuple(build["compiler_args"]),
            encoding=str(build["encoding"]),
            package_jars=bool(build["package_jars"]),
            jobs=int(build["jobs"]),
        )

    def selection_rules(self) -> list[SelectionRule]:
        """Source rules in source order, then one name rule for the configured patterns."""

        rules: list[SelectionRule] = [
            SourceRule(source) for source in self.sources if source.include
        ]
        if self.selection_patterns:
            rules.append(NameRule(self.selection_patterns))
        return rules


class BuildSession:
    """One resolve-plan-build run over a fixed set of sources."""

    def __init__(self, settings: SessionSettings, *, logger: logging.Logger | None = None) -> None:
        self._settings = settings
        self._logger = logger or _MODULE_LOGGER
        self._registry = BundleRegistry(
            system_packages=settings.system_packages, logger=self._logger
        )
        self._catalog = SourceCatalog()
        self._rules: list[SelectionRule] = settings.selection_rules()
        self._selected: list[Bundle] = []
        self._parsed: list[Bundle] = []

    @property
    def settings(self) -> SessionSettings:
        return self._settings

    @property
    def registry(self) -> BundleRegistry:
        return self._registry

    @property
    def catalog(self) -> SourceCatalog:
        return self._catalog

    @property
    def selected(self) -> tuple[Bundle, ...]:
        return tuple(self._selected)

    @property
    def parsed(self) -> tuple[Bundle, ...]:
        return tuple(self._parsed)

    def show_options_summary(self) -> None:
        log = self._logger
        log.info("OPTIONS SUMMARY")
        for source in self._settings.sources:
            qualifier = f" (qualifier {source.qualifier})" if source.qualifier else ""
            log.info("  %s%s", source, qualifier)
        for rule in self._rules:
            log.info("  rule: %s", rule)
        log.info("  output: %s", self._settings.output_dir.as_posix())

    def locate_bundles(self) -> SourceCatalog:
        with correlation_scope(phase="discovery"):
            self._catalog = SourceCatalog.scan(
                self._settings.sources, self._registry, logger=self._logger
            )
        return self._catalog

    def select_bundles(self) -> list[Bundle]:
        with correlation_scope(phase="selection"):
            self._selected = apply_rules(
                self._rules, self._registry, self._catalog, logger=self._logger
            )
        if not self._selected:
            raise NoBundlesSelectedError()
        return list(self._selected)

    def parse_bundles(self) -> list[Bundle]:
        jobs = self._settings.jobs
        with correlation_scope(phase="parse"):
            if jobs > 1:
                self._parsed = asyncio.run(
                    parse_closure_concurrently(
                        self._selected, self._registry, max_workers=jobs, logger=self._logger
                    )
                )
            else:
                self._parsed = parse_closure(self._selected, self._registry, logger=self._logger)
        self._logger.info("Parsed %d bundle(s)", len(self._parsed))
        return list(self._parsed)

    def index(self) -> None:
        with correlation_scope(phase="index"):
            self._registry.run_indexing_passes()

    def check_unresolved(self) -> None:
        registry = self._registry
        if not registry.has_unresolved:
            return
        bundles = [ref.as_pair() for ref in registry.unresolved_bundles]
        packages = [ref.as_pair() for ref in registry.unresolved_packages]
        if not self._settings.allow_unresolved:
            raise UnresolvedReferencesError(bundles, packages)

        for name, requester in bundles:
            self._logger.warning(
                "Unresolved bundle %s (required by %s)",
                name,
                requester,
                extra={"diagnostic": "unresolved_bundle"},
            )
        for package, requester in packages:
            self._logger.warning(
                "Unresolved package %s (imported by %s)",
                package,
                requester,
                extra={"diagnostic": "unresolved_package"},
            )

    def construct_plan(self) -> BuildPlan:
        placement = PlacementTable(
            {name: PlacementPolicy(policy) for name, policy in self._settings.placement.items()}
        )
        with correlation_scope(phase="plan"):
            return construct_build_plan(
                self._selected, self._registry, placement, logger=self._logger
            )

    def prepare_plan(self) -> BuildPlan:
        """Run every phase up to and including plan construction."""

        self.show_options_summary()
        self.locate_bundles()
        self.select_bundles()
        self.parse_bundles()
        self.index()
        self.check_unresolved()
        return self.construct_plan()

    def build(self, plan: BuildPlan, *, output_dir: Path | None = None) -> BuildReport:
        settings = self._settings
        target = ensure_directory(output_dir or settings.output_dir)
        compiler = CompilerInvocation(
            settings.compiler,
            extra_args=settings.compiler_args,
            encoding=settings.encoding,
            logger=self._logger,
        )
        context = BuildContext(
            output_dir=target,
            compiler=compiler,
            registry=self._registry,
            propagator=ClasspathPropagator(self._registry, logger=self._logger),
            package_jars=settings.package_jars,
            logger=self._logger,
        )
        with correlation_scope(phase="build"):
            report = BuildExecutor(context, logger=self._logger).run(plan)
        self._logger.info("Built %d bundle(s) into %s", len(report), target.as_posix())
        return report


def build_session_from_config(
    config: Mapping[str, Any],
    *,
    logger: logging.Logger | None = None,
) -> BuildSession:
    return BuildSession(SessionSettings.from_config(config), logger=logger)


__all__ = [
    "BuildSession",
    "SessionSettings",
    "build_session_from_config",
]
