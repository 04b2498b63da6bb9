from __future__ import annotations

import os
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
from autorelease.cli.context import CLIContext, build_context
from autorelease.core.errors import ErrorCode
from autorelease.core.result import Err
from autorelease.output.console import Style
from autorelease.pipeline.credential import Credential
from autorelease.pipeline.model import new_run_id
from autorelease.pipeline.orchestrator import run_pipeline
from autorelease.pipeline.record import RunRecord, RunRecordStore
from autorelease.pipeline.trigger import TriggerEvent
from autorelease.services.defaults import build_collaborators


def run(
    event: str | None = typer.Option(
        None, "--event", help="Trigger kind: push or manual (default: manual)."
    ),
    branch: str | None = typer.Option(None, "--branch", help="Branch the trigger refers to."),
    from_env: bool = typer.Option(
        False, "--from-env", help="Read the trigger from GitHub Actions variables."
    ),
    execute: bool = typer.Option(
        False, "--execute", help="Commit, publish and push for real (default: dry run)."
    ),
    root: Path | None = typer.Option(None, "--root", help="Repository root (default: cwd)."),
    config_path: Path | None = typer.Option(None, "--config", help="Path to autorelease.toml."),
) -> None:
    """Build, test, bump, publish and push a patch release."""
    ctx = build_context(root=root, config_path=config_path)
    trigger = _resolve_trigger(ctx, event=event, branch=branch, from_env=from_env)
    config = ctx.config
    dry_run = not execute

    store = RunRecordStore(ctx.state_dir)
    previous = store.load_last()
    exit_on_error(previous, ctx)
    assert not isinstance(previous, Err)

    run_id = new_run_id()
    ctx.console.header(f"Release on {trigger.describe()}" + (" (dry run)" if dry_run else ""))
    ctx.console.print(f"root: {ctx.root}", Style.DIM)

    with branch_lock(ctx, branch=trigger.branch or config.release.branch, run_id=run_id):
        result = run_pipeline(
            trigger=trigger,
            config=config,
            deps=build_collaborators(ctx.root, config),
            credential=Credential.from_env(os.environ, config.registry.credential_env),
            console=ctx.console,
            dry_run=dry_run,
            previous=previous.value,
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


def _resolve_trigger(
    ctx: CLIContext, *, event: str | None, branch: str | None, from_env: bool
) -> TriggerEvent:
    if from_env:
        if event is not None or branch is not None:
            ctx.console.error("--from-env cannot be combined with --event/--branch")
            exit_with_code(int(ErrorCode.USER_ERROR))
        result = TriggerEvent.from_github_env(os.environ)
        exit_on_error(result, ctx)
        assert not isinstance(result, Err)
        return result.value

    match event:
        case "push":
            if branch is None:
                ctx.console.error("--event push requires --branch")
                exit_with_code(int(ErrorCode.USER_ERROR))
            return TriggerEvent.push(branch)
        case "manual" | None:
            return TriggerEvent.manual(branch)
        case _:
            ctx.console.error(f"unknown --event: {event} (expected push or manual)")
            exit_with_code(int(ErrorCode.USER_ERROR))
