"""
osgi-forge - process entrypoint

File: src/osgi_forge/main.py
Last updated: 2026-10-18

Maps the outcome of a CLI run onto the documented exit codes. Expected
failures print their message on stderr; anything unexpected prints a
traceback and exits with ``INTERNAL_ERROR``.
"""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

from osgi_forge.config.loader import ConfigLoadError
from osgi_forge.config.schema import ConfigValidationError
from osgi_forge.errors import (
    BuildFailedError,
    DependencyCycleError,
    NoBundlesSelectedError,
    SourceFolderError,
    UnresolvedReferencesError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    SUCCESS = 0
    NO_SELECTION = 1
    CONFIG_ERROR = 2
    UNRESOLVED = 3
    BUILD_FAILED = 4
    CYCLE = 5
    INTERNAL_ERROR = 6


_EXIT_CODE_BY_ERROR: dict[type[BaseException], ExitCode] = {
    ConfigLoadError: ExitCode.CONFIG_ERROR,
    ConfigValidationError: ExitCode.CONFIG_ERROR,
    SourceFolderError: ExitCode.CONFIG_ERROR,
    NoBundlesSelectedError: ExitCode.NO_SELECTION,
    UnresolvedReferencesError: ExitCode.UNRESOLVED,
    DependencyCycleError: ExitCode.CYCLE,
    BuildFailedError: ExitCode.BUILD_FAILED,
}

_KNOWN_CODES: frozenset[int] = frozenset(ExitCode)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return a process exit code; used by ``python -m`` and the script."""

    try:
        from osgi_forge.ui.cli import run_cli

        outcome: object = run_cli(argv)
    except SystemExit as exc:
        outcome = exc.code
    except Exception as exc:  # noqa: BLE001 - every failure becomes an exit code here.
        code = _exit_code_for(exc)
        if code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            _write_stderr(str(exc).strip() or type(exc).__name__)
        return int(code)
    return _as_exit_code(outcome)


def _as_exit_code(outcome: object) -> int:
    if outcome is None:
        return int(ExitCode.SUCCESS)
    if isinstance(outcome, int):
        return outcome if outcome in _KNOWN_CODES else int(ExitCode.INTERNAL_ERROR)
    # ``sys.exit("message")`` style outcomes carry the text to show.
    if isinstance(outcome, str) and outcome.strip():
        _write_stderr(outcome.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _exit_code_for(exc: BaseException) -> ExitCode:
    for link in _causal_chain(exc):
        for error_type, code in _EXIT_CODE_BY_ERROR.items():
            if isinstance(link, error_type):
                return code
    return ExitCode.INTERNAL_ERROR


def _causal_chain(exc: BaseException) -> Iterator[BaseException]:
    """``exc`` followed by its explicit cause or, failing that, its unsuppressed context."""

    visited: set[int] = set()
    link: BaseException | None = exc
    while link is not None and id(link) not in visited:
        visited.add(id(link))
        yield link
        if link.__cause__ is not None:
            link = link.__cause__
        elif not link.__suppress_context__:
            link = link.__context__
        else:
            link = None


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint"]
