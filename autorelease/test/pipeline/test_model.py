from __future__ import annotations

import pytest

from autorelease.pipeline.errors import PipelineError
from autorelease.pipeline.model import STAGE_ORDER, PipelineRun, Stage, StageResult
from autorelease.pipeline.trigger import TriggerEvent


def _run() -> PipelineRun:
    return PipelineRun(trigger=TriggerEvent.push("master"))


def test_stage_order() -> None:
    assert [s.title for s in STAGE_ORDER] == [
        "Checkout",
        "ToolSetup",
        "Building",
        "Testing",
        "Authenticating",
        "VersionBumping",
        "Publishing",
        "Pushing",
    ]


def test_new_run_is_running() -> None:
    run = _run()

    assert run.status == "running"
    assert not run.is_terminal
    assert run.outcome() == "Running"
    assert run.run_id


def test_results_must_follow_stage_order() -> None:
    run = _run()
    run.record(StageResult(stage=Stage.CHECKOUT, ok=True))
    run.record(StageResult(stage=Stage.TOOL_SETUP, ok=True))

    with pytest.raises(RuntimeError, match="out of order"):
        run.record(StageResult(stage=Stage.CHECKOUT, ok=True))


def test_nothing_recorded_after_failed_stage() -> None:
    run = _run()
    run.record(StageResult(stage=Stage.CHECKOUT, ok=False))

    with pytest.raises(RuntimeError, match="after failed"):
        run.record(StageResult(stage=Stage.TOOL_SETUP, ok=True))


def test_terminal_run_rejects_results() -> None:
    run = _run()
    run.succeed()

    with pytest.raises(RuntimeError, match="already succeeded"):
        run.record(StageResult(stage=Stage.CHECKOUT, ok=True))


def test_fail_reports_stage() -> None:
    run = _run()
    run.fail(Stage.TESTING, PipelineError(kind="verification_failure", message="tests failed"))

    assert run.status == "failed"
    assert run.outcome() == "FailedAt(Testing)"


def test_push_failure_is_published_but_not_pushed() -> None:
    run = _run()
    run.fail(Stage.PUSHING, PipelineError(kind="push_failure", message="rejected"))

    assert run.status == "published_but_not_pushed"
    assert run.outcome() == "PublishedButNotPushed"


def test_completed_stages() -> None:
    run = _run()
    run.record(StageResult(stage=Stage.CHECKOUT, ok=True))
    run.record(StageResult(stage=Stage.TOOL_SETUP, ok=False))

    assert run.completed_stages == (Stage.CHECKOUT,)
