"""Subprocess execution with Result-based error handling.

Every external collaborator (git, cargo, install commands) runs through
this module so that output capture, timeouts and environment handling are
uniform. Secrets are passed with ``extra_env`` only; they never appear in
the argv recorded on ``ProcessError`` or ``CompletedCommand``.

Usage:
    result = run_captured(["cargo", "build", "--verbose"], cwd=repo_root, timeout=1800)
    match result:
        case Ok(done):
            print(done.output)
        case Err(error):
            print(f"{error}: {error.stderr}")
"""

from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from autorelease.core.result import Err, Ok, Result

__all__ = ["CompletedCommand", "ProcessError", "run", "run_captured"]


@dataclass(frozen=True, slots=True)
class CompletedCommand:
    """A command that exited with status 0."""

    command: tuple[str, ...]
    stdout: str
    stderr: str
    duration: float

    @property
    def output(self) -> str:
        """stdout and stderr joined, the way a CI log shows them."""
        return "\n".join(part for part in (self.stdout.rstrip(), self.stderr.rstrip()) if part)


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: The exit code of the process (-1 if it never ran or timed out).
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
        timed_out: True if the process was killed after the timeout.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        if self.timed_out:
            return f"{cmd_str} timed out"
        return f"{cmd_str} failed (exit {self.returncode})"

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout.rstrip(), self.stderr.rstrip()) if part)

    def detail(self) -> str | None:
        """Best single line to show as a hint: last stderr line, else last stdout line."""
        for text in (self.stderr, self.stdout):
            lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
            if lines:
                return lines[-1]
        return None


def _decode(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def run_captured(
    cmd: list[str] | tuple[str, ...],
    cwd: Path,
    *,
    extra_env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> Result[CompletedCommand, ProcessError]:
    """Execute a command, capturing stdout and stderr.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        extra_env: Variables added on top of the current environment, for
            this process only.
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(CompletedCommand) on exit status 0, Err(ProcessError) otherwise.
    """
    command = tuple(cmd)
    env = None
    if extra_env:
        env = {**os.environ, **extra_env}

    started = time.monotonic()
    try:
        proc = subprocess.run(
            list(command),
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=command,
                returncode=-1,
                stdout=_decode(e.stdout),
                stderr=f"Command timed out after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(ProcessError(command=command, returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=command,
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(
        CompletedCommand(
            command=command,
            stdout=proc.stdout,
            stderr=proc.stderr,
            duration=time.monotonic() - started,
        )
    )


def run(
    cmd: list[str] | tuple[str, ...],
    cwd: Path,
    *,
    extra_env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return its stdout."""
    result = run_captured(cmd, cwd, extra_env=extra_env, timeout=timeout)
    if isinstance(result, Err):
        return result
    return Ok(result.value.stdout)
