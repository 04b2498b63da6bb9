"""Trigger events: why a run was started, and whether it may start."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

from autorelease.core.result import Err, Ok, Result
from autorelease.pipeline.errors import PipelineError

TriggerKind = Literal["push", "manual"]

_GITHUB_EVENTS: dict[str, TriggerKind] = {
    "push": "push",
    "workflow_dispatch": "manual",
}


@dataclass(frozen=True, slots=True)
class TriggerEvent:
    kind: TriggerKind
    branch: str | None = None

    @classmethod
    def push(cls, branch: str) -> TriggerEvent:
        return cls(kind="push", branch=branch)

    @classmethod
    def manual(cls, branch: str | None = None) -> TriggerEvent:
        return cls(kind="manual", branch=branch)

    @classmethod
    def from_github_env(cls, env: Mapping[str, str]) -> Result[TriggerEvent, PipelineError]:
        """Build a trigger from GitHub Actions variables.

        Reads ``GITHUB_EVENT_NAME`` (push / workflow_dispatch) and
        ``GITHUB_REF_NAME``; tag pushes (``GITHUB_REF_TYPE=tag``) are rejected.
        """
        event = env.get("GITHUB_EVENT_NAME", "").strip()
        kind = _GITHUB_EVENTS.get(event)
        if kind is None:
            return Err(
                PipelineError(
                    kind="trigger_rejected",
                    message=f"unsupported trigger event: {event or '(unset)'}",
                    hint="Releases run on 'push' or 'workflow_dispatch'.",
                )
            )

        ref_type = env.get("GITHUB_REF_TYPE", "branch").strip() or "branch"
        branch = env.get("GITHUB_REF_NAME", "").strip() or None
        if kind == "push" and (branch is None or ref_type != "branch"):
            return Err(
                PipelineError(
                    kind="trigger_rejected",
                    message="push trigger without a branch ref",
                    hint="Tag pushes never start a release run.",
                )
            )
        return Ok(cls(kind=kind, branch=branch if ref_type == "branch" else None))

    def describe(self) -> str:
        if self.kind == "push":
            return f"push to {self.branch}"
        return "manual dispatch" + (f" on {self.branch}" if self.branch else "")


def accept_trigger(trigger: TriggerEvent, *, release_branch: str) -> Result[None, PipelineError]:
    """Only a push to the release branch or a manual dispatch may start a run."""
    if trigger.kind == "manual":
        return Ok(None)
    if trigger.branch == release_branch:
        return Ok(None)
    return Err(
        PipelineError(
            kind="trigger_rejected",
            message=f"push to '{trigger.branch}' does not trigger a release",
            hint=f"Only pushes to '{release_branch}' are released.",
        )
    )
