"""Shared helpers for CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from autorelease.core.errors import ErrorCode
from autorelease.core.result import Err, Result
from autorelease.output.console import Style
from autorelease.pipeline.errors import PipelineErrorKind
from autorelease.pipeline.lock import BranchLock
from autorelease.pipeline.model import PipelineRun

if TYPE_CHECKING:
    from autorelease.cli.context import CLIContext


T = TypeVar("T")
E = TypeVar("E")

_KIND_CODES: dict[PipelineErrorKind, ErrorCode] = {
    "trigger_rejected": ErrorCode.USER_ERROR,
    "invalid_config": ErrorCode.USER_ERROR,
    "run_in_progress": ErrorCode.RUN_IN_PROGRESS,
    "setup_failure": ErrorCode.SETUP_ERROR,
    "verification_failure": ErrorCode.VERIFY_ERROR,
    "auth_failure": ErrorCode.AUTH_ERROR,
    "publish_failure": ErrorCode.PUBLISH_ERROR,
    "version_already_published": ErrorCode.PUBLISH_ERROR,
    "push_failure": ErrorCode.PUBLISHED_NOT_PUSHED,
}


def code_for_kind(kind: PipelineErrorKind) -> ErrorCode:
    return _KIND_CODES[kind]


def code_for_run(run: PipelineRun) -> ErrorCode:
    """Exit code of a finished run."""
    match run.status:
        case "succeeded":
            return ErrorCode.OK
        case "published_but_not_pushed":
            return ErrorCode.PUBLISHED_NOT_PUSHED
        case _:
            if run.error is None:
                return ErrorCode.USER_ERROR
            return code_for_kind(run.error.kind)


def exit_on_error(
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.USER_ERROR,
) -> None:
    """Exit with error if result is Err, otherwise return.

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        raise typer.Exit(code=int(error_code))


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)


def report_run(ctx: CLIContext, run: PipelineRun) -> None:
    """Print the final outcome line of a run."""
    console = ctx.console
    console.newline()
    release = f"{run.crate} {run.version} ({run.tag})" if run.version is not None else ""
    suffix = " [dry run]" if run.dry_run else ""

    match run.status:
        case "succeeded":
            console.success(f"Succeeded {release}{suffix}".rstrip())
        case "published_but_not_pushed":
            console.error(f"PublishedButNotPushed {release}".rstrip())
            console.print(
                "hint: the version is on the registry; fix the remote and run "
                "`autorelease push-pending --execute`",
                Style.DIM,
            )
        case _:
            console.error(f"{run.outcome()}{suffix}")
    console.print(f"run: {run.run_id}", Style.DIM)


@contextmanager
def branch_lock(ctx: CLIContext, *, branch: str, run_id: str) -> Iterator[None]:
    """Hold the per-branch run lock for the block; exit if another run holds it."""
    lock = BranchLock(
        lock_dir=ctx.lock_dir,
        branch=branch,
        max_age_seconds=ctx.config.lock.max_age_seconds,
    )
    acquired = lock.acquire(run_id)
    if isinstance(acquired, Err):
        exit_on_error(acquired, ctx, code_for_kind(acquired.error.kind))
    try:
        yield
    finally:
        released = lock.release(run_id)
        if isinstance(released, Err):
            ctx.console.warning(released.error.pretty())
