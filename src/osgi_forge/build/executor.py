"""Sequential plan execution with classpath propagation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from osgi_forge.build.materializers import BuildContext, Materializer, materializer_for
from osgi_forge.domain.models import Bundle
from osgi_forge.errors import BuildFailedError
from osgi_forge.observability.logging import correlation_scope
from osgi_forge.planning.build_plan import BuildPlan

_MODULE_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BuiltBundle:
    name: str
    version: str
    own_entries: tuple[str, ...]
    duration_ms: float


@dataclass(slots=True)
class BuildReport:
    """Per-bundle outcome of one build run, in plan order."""

    built: list[BuiltBundle] = field(default_factory=list)
    exported: dict[str, list[str]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.built)

    def to_records(self) -> list[dict[str, Any]]:
        return [
            {
                "name": item.name,
                "version": item.version,
                "own_classpath": list(item.own_entries),
                "exported_classpath": list(self.exported.get(item.name, [])),
                "duration_ms": round(item.duration_ms, 3),
            }
            for item in self.built
        ]


class BuildExecutor:
    """Materialize plan entries in order; the first failure aborts the run."""

    def __init__(
        self,
        context: BuildContext,
        *,
        select_materializer: Callable[[Bundle], Materializer] = materializer_for,
        logger: logging.Logger | None = None,
    ) -> None:
        self._context = context
        self._select_materializer = select_materializer
        self._logger = logger or context.logger or _MODULE_LOGGER

    def run(self, plan: BuildPlan) -> BuildReport:
        report = BuildReport()
        total = len(plan)
        for position, bundle in enumerate(plan, start=1):
            with correlation_scope(bundle=bundle.name):
                self._logger.info("Building %s (%d/%d)", bundle.name, position, total)
                report.built.append(self._build_one(bundle))

        self._context.propagator.flush()
        for bundle in plan:
            report.exported[bundle.name] = list(bundle.exported_classpath)
        return report

    def _build_one(self, bundle: Bundle) -> BuiltBundle:
        materializer = self._select_materializer(bundle)
        started = time.perf_counter()
        try:
            own_entries = materializer.materialize(bundle, self._context)
        except BuildFailedError:
            raise
        except OSError as exc:
            raise BuildFailedError(bundle.name, str(exc)) from exc
        duration_ms = (time.perf_counter() - started) * 1000.0

        for finalized in self._context.propagator.record(bundle, own_entries):
            self._logger.debug(
                "Exported classpath of %s: %s",
                finalized.name,
                finalized.exported_classpath,
            )
        return BuiltBundle(
            name=bundle.name,
            version=bundle.qualified_version,
            own_entries=tuple(own_entries),
            duration_ms=duration_ms,
        )


__all__ = ["BuildExecutor", "BuildReport", "BuiltBundle"]
