"""Release tool acquisition.

Checks that the required executables are on PATH and runs the configured
install commands (for example ``cargo install cargo-release``). Any failure
aborts the run before anything is built.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from autorelease.core.result import Err, Ok, Result
from autorelease.output.console import ConsoleProtocol, Style
from autorelease.pipeline.errors import PipelineError
from autorelease.platform.process import run_captured

Which = Callable[[str], str | None]

_INSTALL_HINTS: dict[str, str] = {
    "cargo": "Install Rust via https://rustup.rs/",
    "git": "Install git from your system package manager.",
}


@dataclass(frozen=True, slots=True)
class ToolInstaller:
    required: tuple[str, ...]
    install: tuple[tuple[str, ...], ...]
    timeout: float | None = None
    which: Which = shutil.which

    def acquire(self, *, cwd: Path, console: ConsoleProtocol) -> Result[str, PipelineError]:
        """Install configured tools, then verify every required tool resolves."""
        lines: list[str] = []

        for argv in self.install:
            console.print(" ".join(argv), Style.DIM)
            result = run_captured(argv, cwd, timeout=self.timeout)
            if isinstance(result, Err):
                e = result.error
                return Err(
                    PipelineError(
                        kind="setup_failure",
                        message=f"tool installation failed: {e}",
                        hint=e.detail(),
                        output=e.output,
                    )
                )
            lines.append(result.value.output)

        missing: list[str] = []
        for tool in self.required:
            path = self.which(tool)
            if path is None:
                missing.append(tool)
                continue
            console.print(f"{tool}: {path}", Style.DIM)
            lines.append(f"{tool}: {path}")

        if missing:
            hints = [_INSTALL_HINTS[t] for t in missing if t in _INSTALL_HINTS]
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message=f"required tools not found on PATH: {', '.join(missing)}",
                    hint=" ".join(hints) or None,
                )
            )

        return Ok("\n".join(line for line in lines if line))
