"""Build and test invocation.

The commands themselves are opaque: success is exit status 0, and the
captured output is kept on the stage result for the operator.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from autorelease.core.result import Err, Ok, Result
from autorelease.output.console import ConsoleProtocol, Style
from autorelease.pipeline.errors import PipelineError
from autorelease.platform.process import CompletedCommand, run_captured


@dataclass(frozen=True, slots=True)
class CommandBuildSystem:
    build_command: tuple[str, ...]
    test_command: tuple[str, ...]
    timeout: float | None = None

    def build(self, *, cwd: Path, console: ConsoleProtocol) -> Result[str, PipelineError]:
        return self._invoke(self.build_command, label="build", cwd=cwd, console=console)

    def test(self, *, cwd: Path, console: ConsoleProtocol) -> Result[str, PipelineError]:
        return self._invoke(self.test_command, label="tests", cwd=cwd, console=console)

    def _invoke(
        self,
        argv: tuple[str, ...],
        *,
        label: str,
        cwd: Path,
        console: ConsoleProtocol,
    ) -> Result[str, PipelineError]:
        console.print(" ".join(argv), Style.DIM)
        result = run_captured(argv, cwd, timeout=self.timeout)
        if isinstance(result, Err):
            e = result.error
            return Err(
                PipelineError(
                    kind="verification_failure",
                    message=f"{label} failed: {e}",
                    hint=e.detail(),
                    output=e.output,
                )
            )
        _echo_tail(result.value, console)
        return Ok(result.value.output)


def _echo_tail(done: CompletedCommand, console: ConsoleProtocol, limit: int = 5) -> None:
    lines = [ln for ln in done.output.splitlines() if ln.strip()]
    for line in lines[-limit:]:
        console.print(f"  {line}", Style.DIM)
