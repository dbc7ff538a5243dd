"""External Java compiler invocation through an argument file."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from osgi_forge.errors import BuildFailedError
from osgi_forge.utils.fs import atomic_write

if TYPE_CHECKING:
    from collections.abc import Sequence

_MODULE_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompilerResult:
    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    duration_ms: float

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


def _quote_argument(argument: str) -> str:
    # javac argument files split on whitespace; quoted arguments may contain it.
    if argument and not any(char.isspace() or char in "\"'\\" for char in argument):
        return argument
    escaped = argument.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class CompilerInvocation:
    """Run the configured compiler command for one bundle's source set."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        extra_args: Sequence[str] = (),
        encoding: str = "UTF-8",
        logger: logging.Logger | None = None,
    ) -> None:
        normalized = tuple(item.strip() for item in command if item.strip())
        if not normalized:
            raise ValueError("compiler command must not be empty")
        self._command = normalized
        self._extra_args = tuple(extra_args)
        self._encoding = encoding
        self._logger = logger or _MODULE_LOGGER

    @property
    def command(self) -> tuple[str, ...]:
        return self._command

    def argument_lines(
        self,
        *,
        output_dir: Path,
        classpath: Sequence[str],
        sources: Sequence[Path],
        encoding: str | None = None,
    ) -> list[str]:
        arguments: list[str] = [*self._extra_args, "-d", str(output_dir)]
        if classpath:
            arguments.extend(["-cp", os.pathsep.join(classpath)])
        arguments.extend(["-encoding", encoding or self._encoding])
        arguments.extend(str(source) for source in sources)
        return arguments

    def compile(
        self,
        bundle_name: str,
        *,
        output_dir: Path,
        classpath: Sequence[str],
        sources: Sequence[Path],
        argfile: Path,
        encoding: str | None = None,
    ) -> CompilerResult:
        """Compile ``sources`` into ``output_dir``. Raises ``BuildFailedError`` on nonzero exit."""

        arguments = self.argument_lines(
            output_dir=output_dir, classpath=classpath, sources=sources, encoding=encoding
        )
        atomic_write(argfile, "\n".join(_quote_argument(item) for item in arguments) + "\n")
        command = (*self._command, f"@{argfile}")
        self._logger.info("Compiling %s (%d source file(s))", bundle_name, len(sources))
        self._logger.debug("Compiler command: %s", " ".join(command))

        started = time.perf_counter()
        try:
            completed = subprocess.run(
                list(command),
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise BuildFailedError(
                bundle_name, f"cannot run compiler {self._command[0]!r}: {exc}"
            ) from exc
        duration_ms = (time.perf_counter() - started) * 1000.0

        result = CompilerResult(
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            duration_ms=duration_ms,
        )
        if not result.succeeded:
            output = (result.stderr or result.stdout).strip()
            raise BuildFailedError(
                bundle_name,
                f"compiler exited with status {result.returncode}"
                + (f":\n{output}" if output else ""),
            )
        return result


__all__ = ["CompilerInvocation", "CompilerResult"]
