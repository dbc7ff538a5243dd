"""Command-line interface router for osgi-forge."""

from __future__ import annotations

import argparse
import json
import logging
import secrets
import sys
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final

import yaml

from osgi_forge import __version__
from osgi_forge.config import (
    ConfigLoadError,
    ConfigValidationError,
    assert_valid_config,
    dump_effective_config,
    env_bindings,
    load_config,
)
from osgi_forge.observability import (
    LoggingConfig,
    correlation_scope,
    setup_structured_logging,
    shutdown_logging,
)
from osgi_forge.planning import BuildPlan
from osgi_forge.session import BuildSession, SessionSettings
from osgi_forge.ui.render import CLIRenderer, create_renderer

LOGGER_NAME: Final[str] = "osgi_forge"


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


class _SourceFolderAction(argparse.Action):
    """Append a bundle folder; ``-I`` seen earlier on the line marks it for inclusion."""

    def __init__(self, option_strings: Sequence[str], dest: str, *, kind: str, **kwargs: Any):
        super().__init__(option_strings, dest, **kwargs)
        self.kind = kind

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: str | None = None,
    ) -> None:
        sources = list(getattr(namespace, self.dest, None) or [])
        sources.append(
            {
                "kind": self.kind,
                "path": str(values),
                "include": bool(getattr(namespace, "include_following", False)),
            }
        )
        setattr(namespace, self.dest, sources)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="osgi-forge",
        description=(
            "osgi-forge - resolve OSGi bundles into a build order and build them.\n\n"
            "Common workflows:\n"
            "  osgi-forge plan -B target/plugins -I -S plugins   Print the build order\n"
            "  osgi-forge build --output out                     Build the configured sources\n"
            "  osgi-forge config                                 Show effective config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to forge TOML config (default: ./forge.toml if present).",
    )
    common.add_argument(
        "-B",
        "--binary",
        dest="sources",
        action=_SourceFolderAction,
        kind="binary",
        metavar="FOLDER",
        help="Add a binary plugins FOLDER to the sources (replaces configured sources).",
    )
    common.add_argument(
        "-S",
        "--source",
        dest="sources",
        action=_SourceFolderAction,
        kind="source",
        metavar="FOLDER",
        help="Add a source plugins FOLDER to the sources (replaces configured sources).",
    )
    common.add_argument(
        "-I",
        "--include-following",
        dest="include_following",
        action="store_true",
        default=False,
        help="Include all bundles from the sources that follow on the command line.",
    )
    common.add_argument(
        "--no-include-following",
        dest="include_following",
        action="store_false",
        help="Stop including bundles from the sources that follow.",
    )
    common.add_argument(
        "--select",
        action="append",
        default=None,
        metavar="PATTERN",
        help="Select bundles whose names match a shell-style PATTERN (repeatable).",
    )
    common.add_argument(
        "--qualifier",
        default=None,
        help="Replace the 'qualifier' version token for sources that do not set one.",
    )
    common.add_argument(
        "--allow-unresolved",
        action="store_true",
        default=False,
        help="Report unresolved bundles and packages as warnings instead of stopping.",
    )
    common.add_argument(
        "--jobs",
        type=int,
        default=None,
        help="Worker threads used while parsing manifests.",
    )
    common.add_argument(
        "--log-level",
        default=None,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        type=str.upper,
        help="Console log level (default from config: INFO).",
    )
    common.add_argument(
        "--log-format",
        default=None,
        choices=("text", "json"),
        help="Console log format.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Shortcut for --log-level DEBUG.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # plan ----------------------------------------------------------------
    plan_parser = subparsers.add_parser(
        "plan",
        parents=[common],
        help="Resolve the selected bundles and print the build order",
        description=(
            "Discover bundles, resolve their dependencies, and print the build plan.\n\n"
            "Examples:\n"
            "  osgi-forge plan -B eclipse/plugins -I -S workspace\n"
            "  osgi-forge plan --select 'org.example.*' --json\n"
            "  osgi-forge plan --yaml > plan.yaml\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    plan_output = plan_parser.add_mutually_exclusive_group()
    plan_output.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    plan_output.add_argument("--yaml", action="store_true", help="Emit YAML output")
    plan_parser.set_defaults(handler=_cmd_plan)

    # build ---------------------------------------------------------------
    build_parser_ = subparsers.add_parser(
        "build",
        parents=[common],
        help="Resolve, plan, and build the selected bundles",
        description=(
            "Run the full pipeline and materialize every bundle of the plan.\n\n"
            "Examples:\n"
            "  osgi-forge build -B eclipse/plugins -I -S workspace --output out\n"
            "  osgi-forge build --config forge.toml --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    build_parser_.add_argument(
        "--output",
        default=None,
        help="Build output directory (default from config: ./build).",
    )
    build_parser_.add_argument(
        "--json", action="store_true", help="Emit deterministic JSON output"
    )
    build_parser_.set_defaults(handler=_cmd_build)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration",
        description=(
            "Display the merged configuration from defaults, file, env, and CLI.\n\n"
            "Examples:\n"
            "  osgi-forge config\n"
            "  osgi-forge config --env\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    config_parser.add_argument(
        "--env",
        action="store_true",
        help="List the OSGI_FORGE_* environment variables and the settings they override",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


def main(argv: Sequence[str] | None = None) -> int:
    return run_cli(argv)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_plan(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    with _logging_session(config) as (run_id, logger):
        session = BuildSession(SessionSettings.from_config(config), logger=logger)
        plan = session.prepare_plan()
        payload = _plan_payload(run_id, session, plan)

    if _flag(args, "json"):
        _emit_json(payload)
        return 0
    if _flag(args, "yaml"):
        sys.stdout.write(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))
        return 0

    renderer = _get_renderer(args)
    renderer.plan(payload["bundles"])
    renderer.unresolved(payload["unresolved"])
    return 0


def _cmd_build(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    with _logging_session(config) as (run_id, logger):
        session = BuildSession(SessionSettings.from_config(config), logger=logger)
        plan = session.prepare_plan()
        report = session.build(plan)
        logger.info("Done.")

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "build",
                "run_id": run_id,
                "output_dir": session.settings.output_dir.as_posix(),
                "bundles": report.to_records(),
            }
        )
        return 0

    renderer = _get_renderer(args)
    renderer.plan(plan.to_records())
    renderer.built(report.to_records(), session.settings.output_dir.as_posix())
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    renderer = _get_renderer(args)
    if _flag(args, "env"):
        rows = [[name, ".".join(path)] for name, path in sorted(env_bindings(config).items())]
        renderer.table(["Variable", "Setting"], rows)
        return 0

    renderer.text(dump_effective_config(config))
    return 0


# ---------------------------------------------------------------------------
# Helpers - config, logging, rendering
# ---------------------------------------------------------------------------


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(getattr(args, "config_path", None))

    try:
        loaded = load_config(config_path, cli_overrides=_cli_overrides(args))
        qualifier = _optional_str(getattr(args, "qualifier", None))
        if qualifier is not None:
            for source in loaded["sources"]:
                source.setdefault("qualifier", qualifier)
            loaded = assert_valid_config(loaded)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    return loaded


def _cli_overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {}
    sources = getattr(args, "sources", None)
    if sources:
        overrides["sources"] = list(sources)
    patterns = getattr(args, "select", None)
    if patterns:
        overrides["selection.bundles"] = list(patterns)
    if _flag(args, "allow_unresolved"):
        overrides["resolution.allow_unresolved"] = True
    jobs = getattr(args, "jobs", None)
    if jobs is not None:
        overrides["build.jobs"] = jobs
    output = _optional_str(getattr(args, "output", None))
    if output is not None:
        overrides["build.output_dir"] = output
    log_level = _optional_str(getattr(args, "log_level", None))
    if log_level is None and _flag(args, "verbose"):
        log_level = "DEBUG"
    if log_level is not None:
        overrides["observability.log_level"] = log_level
    log_format = _optional_str(getattr(args, "log_format", None))
    if log_format is not None:
        overrides["observability.log_format"] = log_format
    return overrides


@contextmanager
def _logging_session(config: Mapping[str, Any]) -> Iterator[tuple[str, logging.Logger]]:
    observability = config["observability"]
    run_id = _new_run_id()
    handle = setup_structured_logging(
        LoggingConfig(
            run_id=run_id,
            log_dir=Path(observability["log_dir"]),
            logger_name=LOGGER_NAME,
            level=observability["log_level"],
            log_format=observability["log_format"],
            log_to_file=bool(observability["log_to_file"]),
        )
    )
    try:
        with correlation_scope(run_id=run_id):
            yield run_id, handle.logger
    finally:
        shutdown_logging(handle)


def _new_run_id() -> str:
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"build-{stamp}-{secrets.token_hex(4)}"


def _plan_payload(run_id: str, session: BuildSession, plan: BuildPlan) -> dict[str, Any]:
    registry = session.registry
    return {
        "command": "plan",
        "run_id": run_id,
        "selected": [bundle.name for bundle in session.selected],
        "bundles": plan.to_records(),
        "unresolved": {
            "bundles": [
                {"name": ref.name, "required_by": ref.requester.name}
                for ref in registry.unresolved_bundles
            ],
            "packages": [
                {"name": ref.name, "imported_by": ref.requester.name}
                for ref in registry.unresolved_packages
            ],
        },
    }


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"))


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


__all__ = ["CLIError", "build_parser", "main", "run_cli"]
