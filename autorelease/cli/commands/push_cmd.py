from __future__ import annotations

from pathlib import Path

import typer

from autorelease.cli.commands._helpers import (
    branch_lock,
    code_for_kind,
    code_for_run,
    exit_on_error,
    exit_with_code,
    report_run,
)
from autorelease.cli.context import build_context
from autorelease.core.result import Err
from autorelease.pipeline.model import new_run_id
from autorelease.pipeline.orchestrator import resume_push
from autorelease.pipeline.record import RunRecord, RunRecordStore
from autorelease.services.defaults import build_collaborators


def push_pending(
    execute: bool = typer.Option(
        False, "--execute", help="Push for real (default: dry run)."
    ),
    root: Path | None = typer.Option(None, "--root", help="Repository root (default: cwd)."),
    config_path: Path | None = typer.Option(None, "--config", help="Path to autorelease.toml."),
) -> None:
    """Push the release commit and tag of a published-but-not-pushed run.

    Never publishes: the version is already on the registry.
    """
    ctx = build_context(root=root, config_path=config_path)
    config = ctx.config

    store = RunRecordStore(ctx.state_dir)
    loaded = store.load_last()
    exit_on_error(loaded, ctx)
    assert not isinstance(loaded, Err)
    record = loaded.value

    run_id = new_run_id()
    branch = (record.branch if record is not None else None) or config.release.branch
    ctx.console.header("Push pending release" + ("" if execute else " (dry run)"))

    with branch_lock(ctx, branch=branch, run_id=run_id):
        result = resume_push(
            record=record,
            config=config,
            deps=build_collaborators(ctx.root, config),
            console=ctx.console,
            dry_run=not execute,
            run_id=run_id,
        )
        if isinstance(result, Err):
            exit_on_error(result, ctx, code_for_kind(result.error.kind))
            return

        pipeline_run = result.value
        saved = store.save(RunRecord.from_run(pipeline_run))
        if isinstance(saved, Err):
            ctx.console.warning(saved.error.pretty())

    report_run(ctx, pipeline_run)
    code = code_for_run(pipeline_run)
    if code.is_error:
        exit_with_code(int(code))
