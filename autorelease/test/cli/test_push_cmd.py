from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer

import autorelease.cli.commands.push_cmd as push_cmd
from autorelease.cli.context import CLIContext
from autorelease.core.config import Config
from autorelease.core.errors import ErrorCode
from autorelease.core.result import Err, Ok, Result
from autorelease.output.console import MockConsole
from autorelease.pipeline.errors import PipelineError
from autorelease.pipeline.model import PipelineRun, Stage
from autorelease.pipeline.record import RunRecord, RunRecordStore
from autorelease.pipeline.trigger import TriggerEvent


def _pending() -> RunRecord:
    return RunRecord(
        run_id="20260101T000000Z-deadbeef",
        status="published_but_not_pushed",
        outcome="PublishedButNotPushed",
        trigger="push",
        branch="master",
        dry_run=False,
        crate="demo",
        previous_version="1.2.3",
        version="1.2.4",
        tag="v1.2.4",
        release_commit="b" * 40,
        failed_stage="pushing",
        error_kind="push_failure",
        error_message="rejected",
        finished_at="2026-01-01T00:00:00Z",
    )


@pytest.fixture
def ctx(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CLIContext:
    context = CLIContext(root=tmp_path, config=Config(), console=MockConsole())
    monkeypatch.setattr(push_cmd, "build_context", lambda **_: context)
    monkeypatch.setattr(push_cmd, "build_collaborators", lambda *_, **__: object())
    return context


def _fake_resume(push_ok: bool, seen: list[RunRecord | None]):
    def fake(**kwargs: object) -> Result[PipelineRun, PipelineError]:
        record = kwargs["record"]
        assert record is None or isinstance(record, RunRecord)
        seen.append(record)
        if record is None:
            return Err(PipelineError(kind="trigger_rejected", message="nothing to push"))
        run = PipelineRun(
            trigger=TriggerEvent.manual(),
            dry_run=bool(kwargs["dry_run"]),
            run_id=str(kwargs["run_id"]),
            branch=record.branch,
            crate=record.crate,
            tag=record.tag,
            release_commit=record.release_commit,
        )
        if push_ok:
            run.succeed()
        else:
            run.fail(Stage.PUSHING, PipelineError(kind="push_failure", message="rejected"))
        return Ok(run)

    return fake


def test_push_pending_clears_pending_state(ctx: CLIContext, monkeypatch: pytest.MonkeyPatch) -> None:
    store = RunRecordStore(ctx.state_dir)
    assert store.save(_pending()) == Ok(None)
    seen: list[RunRecord | None] = []
    monkeypatch.setattr(push_cmd, "resume_push", _fake_resume(True, seen))

    push_cmd.push_pending(execute=True, root=None, config_path=None)

    assert seen == [_pending()]
    last = json.loads(store.last_run_path.read_text(encoding="utf-8"))
    assert last["status"] == "succeeded"


def test_push_pending_failure_keeps_exit_code(
    ctx: CLIContext, monkeypatch: pytest.MonkeyPatch
) -> None:
    assert RunRecordStore(ctx.state_dir).save(_pending()) == Ok(None)
    monkeypatch.setattr(push_cmd, "resume_push", _fake_resume(False, []))

    with pytest.raises(typer.Exit) as exc:
        push_cmd.push_pending(execute=True, root=None, config_path=None)

    assert exc.value.exit_code == int(ErrorCode.PUBLISHED_NOT_PUSHED)


def test_push_pending_without_record(ctx: CLIContext, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(push_cmd, "resume_push", _fake_resume(True, []))

    with pytest.raises(typer.Exit) as exc:
        push_cmd.push_pending(execute=False, root=None, config_path=None)

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("nothing to push")
