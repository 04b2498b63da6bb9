"""Error type for release runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PipelineErrorKind = Literal[
    "trigger_rejected",
    "run_in_progress",
    "invalid_config",
    "setup_failure",
    "verification_failure",
    "auth_failure",
    "publish_failure",
    "version_already_published",
    "push_failure",
]


@dataclass(frozen=True, slots=True)
class PipelineError:
    """Canonical failure payload, rendered by the CLI without further lookups.

    ``output`` carries the captured stdout/stderr of the failing command,
    if any; it is shown to the operator but never interpreted.
    """

    kind: PipelineErrorKind
    message: str
    hint: str | None = None
    output: str = ""

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
