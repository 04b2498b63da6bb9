"""Release orchestrator.

Sequences a release run: checkout (with commit identity), tool setup,
build, test, registry authentication, patch version bump, publish, and
push of the release commit and tag.

Publishing is reachable only through successful Building and Testing
stages, and the credential is discarded once the run leaves its scope,
whatever the outcome. A failure after the version has been published is
reported as ``published_but_not_pushed`` rather than a plain failure; the
local release commit is kept so ``resume_push`` can finish the job
without ever publishing again.
"""

from __future__ import annotations

import dataclasses
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from autorelease.core.config import Config
from autorelease.core.result import Err, Ok, Result
from autorelease.git.repository import GitIdentity
from autorelease.output.console import ConsoleProtocol, Style
from autorelease.pipeline.credential import Credential, credential_scope
from autorelease.pipeline.errors import PipelineError
from autorelease.pipeline.model import STAGE_ORDER, PipelineRun, Stage, StageResult, new_run_id
from autorelease.pipeline.ports import Collaborators, SourceSnapshot
from autorelease.pipeline.record import RunRecord
from autorelease.pipeline.semver import parse_version
from autorelease.pipeline.trigger import TriggerEvent, accept_trigger
from autorelease.platform.files import FileSnapshot

if TYPE_CHECKING:
    from autorelease.services.registry import RegistrySession

StageAction = Callable[[], Result[str, PipelineError]]

__all__ = ["release_message", "resume_push", "run_pipeline"]


def release_message(crate: str, version: object) -> str:
    """Commit and tag message of a release."""
    return f"chore: Release {crate} version {version}"


def run_pipeline(
    *,
    trigger: TriggerEvent,
    config: Config,
    deps: Collaborators,
    credential: Credential | None,
    console: ConsoleProtocol,
    dry_run: bool = False,
    previous: RunRecord | None = None,
    run_id: str | None = None,
) -> Result[PipelineRun, PipelineError]:
    """Run the full release sequence for one trigger.

    Returns ``Err`` only when the trigger is rejected (no run exists).
    Otherwise the returned run is terminal and carries its own outcome.
    """
    accepted = accept_trigger(trigger, release_branch=config.release.branch)
    if isinstance(accepted, Err):
        return accepted

    run = PipelineRun(trigger=trigger, dry_run=dry_run, run_id=run_id or new_run_id())
    with credential_scope(credential):
        release = _Release(
            run=run,
            config=config,
            deps=deps,
            credential=credential,
            console=console,
            previous=previous,
        )
        release.execute()
    return Ok(run)


def resume_push(
    *,
    record: RunRecord | None,
    config: Config,
    deps: Collaborators,
    console: ConsoleProtocol,
    dry_run: bool = False,
    run_id: str | None = None,
) -> Result[PipelineRun, PipelineError]:
    """Retry only the Pushing stage of a published-but-not-pushed run."""
    if record is None or not record.is_pending_push:
        state = record.outcome if record is not None else "no recorded run"
        return Err(
            PipelineError(
                kind="trigger_rejected",
                message="nothing to push",
                hint=f"last run: {state}",
            )
        )

    version = record.semver
    if version is None or record.tag is None or record.release_commit is None:
        return Err(
            PipelineError(
                kind="invalid_config",
                message=f"run record {record.run_id} has no version, tag or release commit",
            )
        )

    run = PipelineRun(
        trigger=TriggerEvent.manual(record.branch),
        dry_run=dry_run,
        run_id=run_id or new_run_id(),
    )
    run.branch = record.branch
    run.crate = record.crate
    run.previous_version = parse_version(record.previous_version or "")
    run.version = version
    run.tag = tag = record.tag
    run.release_commit = release_commit = record.release_commit
    crate = record.crate or ""

    def push() -> Result[str, PipelineError]:
        snapshot = deps.source.checkout(remote=config.release.remote, dry_run=True)
        if isinstance(snapshot, Err):
            return Err(_as_push_failure(snapshot.error))
        if snapshot.value.head_sha != release_commit:
            return Err(
                PipelineError(
                    kind="push_failure",
                    message="HEAD is not the recorded release commit",
                    hint=f"expected {release_commit[:12]}, found {snapshot.value.head_sha[:12]}",
                )
            )
        branch = record.branch or snapshot.value.branch or config.release.branch
        run.branch = branch
        return _push(
            deps=deps,
            config=config,
            console=console,
            branch=branch,
            tag=tag,
            message=release_message(crate, version),
            dry_run=dry_run,
        )

    runner = _StageRunner(run=run, console=console)
    if runner(Stage.PUSHING, push):
        run.succeed()
    return Ok(run)


class _StageRunner:
    """Announce, time and record one stage at a time."""

    def __init__(self, *, run: PipelineRun, console: ConsoleProtocol) -> None:
        self._run = run
        self._console = console

    def __call__(self, stage: Stage, action: StageAction) -> bool:
        self._console.step(STAGE_ORDER.index(stage) + 1, len(STAGE_ORDER), stage.title)
        started = time.monotonic()
        result = action()
        duration = time.monotonic() - started

        if isinstance(result, Err):
            error = result.error
            self._run.record(
                StageResult(stage=stage, ok=False, output=error.output, duration=duration)
            )
            self._run.fail(stage, error)
            self._console.error(f"{stage.title} failed: {error.message}")
            if error.hint:
                self._console.print(error.hint, Style.DIM)
            return False

        self._run.record(StageResult(stage=stage, ok=True, output=result.value, duration=duration))
        self._console.success(f"{stage.title} ({duration:.1f}s)")
        return True


class _Release:
    def __init__(
        self,
        *,
        run: PipelineRun,
        config: Config,
        deps: Collaborators,
        credential: Credential | None,
        console: ConsoleProtocol,
        previous: RunRecord | None,
    ) -> None:
        self._run = run
        self._config = config
        self._deps = deps
        self._credential = credential
        self._console = console
        self._previous = previous
        self._identity = GitIdentity(name=config.identity.name, email=config.identity.email)
        self._stage = _StageRunner(run=run, console=console)

        self._snapshot: SourceSnapshot | None = None
        self._session: RegistrySession | None = None
        self._files: FileSnapshot | None = None

    def execute(self) -> None:
        run = self._run
        steps: tuple[tuple[Stage, StageAction], ...] = (
            (Stage.CHECKOUT, self._checkout),
            (Stage.TOOL_SETUP, self._tool_setup),
            (Stage.BUILDING, self._building),
            (Stage.TESTING, self._testing),
            (Stage.AUTHENTICATING, self._authenticating),
            (Stage.VERSION_BUMPING, self._version_bumping),
            (Stage.PUBLISHING, self._publishing),
        )
        for stage, action in steps:
            ok = self._stage(stage, action)
            if stage is Stage.PUBLISHING:
                self._close_session()
            if not ok:
                if stage in (Stage.VERSION_BUMPING, Stage.PUBLISHING):
                    self._rollback()
                return

        if self._stage(Stage.PUSHING, self._pushing):
            run.succeed()

    # -- stages ---------------------------------------------------------

    def _checkout(self) -> Result[str, PipelineError]:
        identity = self._identity
        if not identity.name.strip() or "@" not in identity.email:
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message="commit identity is incomplete",
                    hint="Set [identity] name and email in autorelease.toml.",
                )
            )

        snapshot = self._deps.source.checkout(
            remote=self._config.release.remote, dry_run=self._run.dry_run
        )
        if isinstance(snapshot, Err):
            return snapshot
        snap = snapshot.value

        wanted = self._run.trigger.branch
        if wanted is not None and snap.branch is not None and snap.branch != wanted:
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message=f"checked out '{snap.branch}' but the trigger is for '{wanted}'",
                )
            )

        self._snapshot = snap
        self._run.branch = snap.branch or wanted or self._config.release.branch
        self._console.print(f"HEAD {snap.head_sha[:12]} ({snap.branch or 'detached'})", Style.DIM)
        self._console.print(f"identity: {identity.name} <{identity.email}>", Style.DIM)
        return Ok(f"{snap.head_sha}\n{identity.name} <{identity.email}>")

    def _tool_setup(self) -> Result[str, PipelineError]:
        return self._deps.tools.acquire(cwd=self._deps.root, console=self._console)

    def _building(self) -> Result[str, PipelineError]:
        return self._deps.build.build(cwd=self._deps.root, console=self._console)

    def _testing(self) -> Result[str, PipelineError]:
        return self._deps.build.test(cwd=self._deps.root, console=self._console)

    def _authenticating(self) -> Result[str, PipelineError]:
        credential = self._credential
        if self._run.dry_run and (credential is None or credential.is_blank()):
            self._console.warning("no registry credential; dry run continues unauthenticated")
            return Ok("skipped: no credential (dry run)")

        session = self._deps.registry.authenticate(credential)
        if isinstance(session, Err):
            return session
        self._session = session.value
        return Ok("registry session opened")

    def _version_bumping(self) -> Result[str, PipelineError]:
        deps = self._deps
        package = deps.manifest.read_package()
        if isinstance(package, Err):
            return package
        pkg = package.value

        current = pkg.version
        bumped = current.bump_patch()
        tag = bumped.to_tag(self._config.release.tag_prefix)
        self._run.crate = pkg.name
        self._run.previous_version = current
        self._run.version = bumped
        self._run.tag = tag

        exists = deps.source.tag_exists(remote=self._config.release.remote, tag=tag)
        if isinstance(exists, Err):
            return exists
        if exists.value:
            return Err(
                PipelineError(
                    kind="version_already_published",
                    message=f"tag {tag} already exists",
                    hint="The manifest version is behind the released tags.",
                )
            )

        message = release_message(pkg.name, bumped)
        self._console.print(f"{pkg.name} {current} -> {bumped} ({tag})", Style.INFO)
        if self._run.dry_run:
            self._console.print(f"would commit: {message}", Style.DIM)
            return Ok(f"{current} -> {bumped} (dry run)")

        self._files = FileSnapshot.capture(deps.manifest.tracked_files())
        written = deps.manifest.write_version(package=pkg, version=bumped)
        if isinstance(written, Err):
            return written
        if not written.value:
            return Err(
                PipelineError(
                    kind="publish_failure",
                    message="version bump changed no files",
                    hint=f"{pkg.name} already at {bumped}?",
                )
            )

        commit = deps.source.commit_release(
            paths=written.value, message=message, identity=self._identity
        )
        if isinstance(commit, Err):
            return commit
        self._run.release_commit = commit.value
        self._console.print(f"commit {commit.value[:12]}: {message}", Style.DIM)
        return Ok(f"{current} -> {bumped}\n{commit.value}")

    def _publishing(self) -> Result[str, PipelineError]:
        deps = self._deps
        crate = self._run.crate or ""
        version = str(self._run.version)

        previous = self._previous
        if previous is not None and previous.is_pending_push and previous.version == version:
            return Err(
                PipelineError(
                    kind="version_already_published",
                    message=f"{crate} {version} was published by run {previous.run_id}",
                    hint="Run `autorelease push-pending` to push it instead.",
                )
            )

        published = deps.registry.is_published(crate=crate, version=version)
        if isinstance(published, Err):
            return published
        if published.value:
            return Err(
                PipelineError(
                    kind="version_already_published",
                    message=f"{crate} {version} is already on the registry",
                    hint="Versions are immutable; a new release needs a new version.",
                )
            )

        session = self._session
        if session is None:
            self._console.print(f"would publish {crate} {version}", Style.DIM)
            return Ok("skipped: no registry session (dry run)")

        return deps.registry.publish(
            session,
            cwd=deps.root,
            console=self._console,
            dry_run=self._run.dry_run,
        )

    def _pushing(self) -> Result[str, PipelineError]:
        branch = self._run.branch or self._config.release.branch
        return _push(
            deps=self._deps,
            config=self._config,
            console=self._console,
            branch=branch,
            tag=self._run.tag or "",
            message=release_message(self._run.crate or "", self._run.version),
            dry_run=self._run.dry_run,
        )

    # -- cleanup --------------------------------------------------------

    def _close_session(self) -> None:
        self._session = None
        if self._credential is not None:
            self._credential.discard()

    def _rollback(self) -> None:
        """Undo the local release commit and manifest edits."""
        snapshot = self._snapshot
        if snapshot is None or (self._run.release_commit is None and self._files is None):
            return

        if self._run.release_commit is not None:
            reset = self._deps.source.rollback(snapshot)
            if isinstance(reset, Err):
                self._console.warning(f"rollback failed: {reset.error.pretty()}")
                return
            self._run.release_commit = None

        if self._files is not None:
            changed = self._files.changed()
            try:
                self._files.restore()
            except OSError as e:
                self._console.warning(f"failed to restore manifest files: {e}")
                return
            if changed:
                names = ", ".join(p.name for p in changed)
                self._console.print(f"restored {names}", Style.DIM)

        self._console.print(f"rolled back to {snapshot.head_sha[:12]}", Style.DIM)


def _push(
    *,
    deps: Collaborators,
    config: Config,
    console: ConsoleProtocol,
    branch: str,
    tag: str,
    message: str,
    dry_run: bool,
) -> Result[str, PipelineError]:
    remote = config.release.remote
    if dry_run:
        console.print(f"would tag {tag} and push {branch} + {tag} to {remote}", Style.DIM)
        return Ok("skipped (dry run)")

    identity = GitIdentity(name=config.identity.name, email=config.identity.email)
    pushed = deps.source.push_release(
        remote=remote, branch=branch, tag=tag, message=message, identity=identity
    )
    if isinstance(pushed, Err):
        return Err(_as_push_failure(pushed.error))
    console.print(f"pushed {branch} and {tag} to {remote}", Style.DIM)
    return Ok(f"{remote} {branch} {tag}")


def _as_push_failure(error: PipelineError) -> PipelineError:
    if error.kind == "push_failure":
        return error
    return dataclasses.replace(error, kind="push_failure")
