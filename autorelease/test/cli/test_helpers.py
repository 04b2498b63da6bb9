from __future__ import annotations

from pathlib import Path

import pytest
import typer

from autorelease.cli.commands._helpers import (
    code_for_kind,
    code_for_run,
    exit_on_error,
    report_run,
)
from autorelease.cli.context import CLIContext
from autorelease.core.config import Config
from autorelease.core.errors import ErrorCode
from autorelease.core.result import Err, Ok
from autorelease.output.console import MockConsole
from autorelease.pipeline.errors import PipelineError
from autorelease.pipeline.model import PipelineRun, Stage
from autorelease.pipeline.trigger import TriggerEvent


def _ctx(tmp_path: Path) -> CLIContext:
    return CLIContext(root=tmp_path, config=Config(), console=MockConsole())


@pytest.mark.parametrize(
    ("kind", "code"),
    [
        ("trigger_rejected", ErrorCode.USER_ERROR),
        ("setup_failure", ErrorCode.SETUP_ERROR),
        ("verification_failure", ErrorCode.VERIFY_ERROR),
        ("auth_failure", ErrorCode.AUTH_ERROR),
        ("publish_failure", ErrorCode.PUBLISH_ERROR),
        ("version_already_published", ErrorCode.PUBLISH_ERROR),
        ("push_failure", ErrorCode.PUBLISHED_NOT_PUSHED),
        ("run_in_progress", ErrorCode.RUN_IN_PROGRESS),
    ],
)
def test_code_for_kind(kind: str, code: ErrorCode) -> None:
    assert code_for_kind(kind) == code  # type: ignore[arg-type]


def test_code_for_run() -> None:
    run = PipelineRun(trigger=TriggerEvent.manual())
    run.succeed()
    assert code_for_run(run) == ErrorCode.OK

    failed = PipelineRun(trigger=TriggerEvent.manual())
    failed.fail(Stage.AUTHENTICATING, PipelineError(kind="auth_failure", message="missing"))
    assert code_for_run(failed) == ErrorCode.AUTH_ERROR


def test_exit_on_error_prints_hint(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    error = PipelineError(kind="setup_failure", message="cargo not found", hint="install rustup")

    with pytest.raises(typer.Exit) as exc:
        exit_on_error(Err(error), ctx, ErrorCode.SETUP_ERROR)

    assert exc.value.exit_code == int(ErrorCode.SETUP_ERROR)
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.messages == ["error: cargo not found", "hint: install rustup"]


def test_exit_on_error_passes_ok(tmp_path: Path) -> None:
    exit_on_error(Ok(1), _ctx(tmp_path))


def test_report_failed_run(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    run = PipelineRun(trigger=TriggerEvent.manual(), run_id="r1", dry_run=True)
    run.fail(Stage.TESTING, PipelineError(kind="verification_failure", message="tests failed"))

    report_run(ctx, run)

    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("error: FailedAt(Testing) [dry run]")
    assert ctx.console.find("run: r1")
