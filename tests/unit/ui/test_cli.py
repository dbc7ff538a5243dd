"""
osgi-forge - unit tests for the plan command's machine-readable output

File: tests/unit/ui/test_cli.py
Last updated: 2026-10-18

What this test file should cover
- ``plan --allow-unresolved`` with ``--json`` and ``--yaml`` reports the
  unresolved references by bundle name and exits cleanly.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path

import pytest
import yaml

from osgi_forge.ui.cli import run_cli


@pytest.fixture
def broken_workspace(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, bundle_dir: Callable[..., Path]
) -> Path:
    for variable in [name for name in os.environ if name.startswith("OSGI_FORGE_")]:
        monkeypatch.delenv(variable)
    bundle_dir(
        tmp_path / "ws" / "com.acme.broken",
        {"Require-Bundle": "org.ghost", "Import-Package": "org.ghost.api"},
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


EXPECTED_UNRESOLVED = {
    "bundles": [{"name": "org.ghost", "required_by": "com.acme.broken"}],
    "packages": [{"name": "org.ghost.api", "imported_by": "com.acme.broken"}],
}


def test_plan_json_lists_unresolved_references_by_name(
    broken_workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = run_cli(["plan", "-I", "-S", "ws", "--allow-unresolved", "--json"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["unresolved"] == EXPECTED_UNRESOLVED
    assert payload["selected"] == ["com.acme.broken"]


def test_plan_yaml_lists_unresolved_references_by_name(
    broken_workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = run_cli(["plan", "-I", "-S", "ws", "--allow-unresolved", "--yaml"])

    assert exit_code == 0
    assert yaml.safe_load(capsys.readouterr().out)["unresolved"] == EXPECTED_UNRESOLVED
