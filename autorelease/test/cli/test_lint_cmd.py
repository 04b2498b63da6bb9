from __future__ import annotations

from pathlib import Path

import pytest
import typer

import autorelease.cli.commands.lint_cmd as lint_cmd
from autorelease.cli.context import CLIContext
from autorelease.core.config import Config
from autorelease.core.errors import ErrorCode
from autorelease.output.console import MockConsole

RELEASE_YML = "name: release\non:\n  push:\n    branches: [master]\n"


def _ctx(tmp_path: Path) -> CLIContext:
    return CLIContext(root=tmp_path, config=Config(), console=MockConsole())


def _workflow(root: Path, rel: str, text: str = RELEASE_YML) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_lint_passes_with_single_workflow(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = _ctx(tmp_path)
    monkeypatch.setattr(lint_cmd, "build_context", lambda **_: ctx)
    _workflow(tmp_path, ".github/workflows/release.yml")

    lint_cmd.lint_workflows(extra_dirs=[], root=None)

    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("no duplicated workflows")


def test_lint_fails_on_duplicated_workflow(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = _ctx(tmp_path)
    monkeypatch.setattr(lint_cmd, "build_context", lambda **_: ctx)
    _workflow(tmp_path, ".github/workflows/release.yml")
    _workflow(tmp_path, "crates/demo/.github/workflows/release.yml", RELEASE_YML + "\n\n")

    with pytest.raises(typer.Exit) as exc:
        lint_cmd.lint_workflows(extra_dirs=[], root=None)

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("crates/demo/.github/workflows/release.yml")
