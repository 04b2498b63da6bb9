"""Domain model of a release run: stages, results and run outcome."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal
from uuid import uuid4

from autorelease.pipeline.errors import PipelineError
from autorelease.pipeline.semver import SemVer
from autorelease.pipeline.trigger import TriggerEvent

RunStatus = Literal["running", "succeeded", "failed", "published_but_not_pushed"]


class Stage(StrEnum):
    """In-progress states of a run, in execution order."""

    CHECKOUT = "checkout"
    TOOL_SETUP = "tool_setup"
    BUILDING = "building"
    TESTING = "testing"
    AUTHENTICATING = "authenticating"
    VERSION_BUMPING = "version_bumping"
    PUBLISHING = "publishing"
    PUSHING = "pushing"

    @property
    def title(self) -> str:
        return _TITLES[self]


_TITLES: dict[Stage, str] = {
    Stage.CHECKOUT: "Checkout",
    Stage.TOOL_SETUP: "ToolSetup",
    Stage.BUILDING: "Building",
    Stage.TESTING: "Testing",
    Stage.AUTHENTICATING: "Authenticating",
    Stage.VERSION_BUMPING: "VersionBumping",
    Stage.PUBLISHING: "Publishing",
    Stage.PUSHING: "Pushing",
}

STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


@dataclass(frozen=True, slots=True)
class StageResult:
    """Outcome of one stage. ``output`` is opaque captured text."""

    stage: Stage
    ok: bool
    output: str = ""
    duration: float = 0.0


def new_run_id() -> str:
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{uuid4().hex[:8]}"


def _empty_stages() -> list[StageResult]:
    return []


@dataclass(slots=True)
class PipelineRun:
    """One execution of the pipeline.

    Stage results are appended strictly in ``STAGE_ORDER``; once ``status``
    leaves ``running`` the run is terminal and no longer accepts results.
    """

    trigger: TriggerEvent
    dry_run: bool = False
    run_id: str = field(default_factory=new_run_id)
    stages: list[StageResult] = field(default_factory=_empty_stages)
    status: RunStatus = "running"
    failed_stage: Stage | None = None
    error: PipelineError | None = None
    previous_version: SemVer | None = None
    version: SemVer | None = None
    branch: str | None = None
    crate: str | None = None
    tag: str | None = None
    release_commit: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != "running"

    @property
    def completed_stages(self) -> tuple[Stage, ...]:
        return tuple(r.stage for r in self.stages if r.ok)

    def record(self, result: StageResult) -> None:
        if self.is_terminal:
            raise RuntimeError(f"run {self.run_id} is already {self.status}")
        if self.stages:
            last = self.stages[-1]
            if not last.ok:
                raise RuntimeError(f"stage {result.stage} recorded after failed {last.stage}")
            if STAGE_ORDER.index(result.stage) <= STAGE_ORDER.index(last.stage):
                raise RuntimeError(f"stage {result.stage} recorded out of order after {last.stage}")
        self.stages.append(result)

    def fail(self, stage: Stage, error: PipelineError) -> None:
        self.failed_stage = stage
        self.error = error
        self.status = "published_but_not_pushed" if error.kind == "push_failure" else "failed"

    def succeed(self) -> None:
        self.status = "succeeded"

    def outcome(self) -> str:
        """Report string for the host: Succeeded, FailedAt(Stage) or PublishedButNotPushed."""
        match self.status:
            case "succeeded":
                return "Succeeded"
            case "published_but_not_pushed":
                return "PublishedButNotPushed"
            case "failed":
                stage = self.failed_stage.title if self.failed_stage else "Unknown"
                return f"FailedAt({stage})"
            case _:
                return "Running"
