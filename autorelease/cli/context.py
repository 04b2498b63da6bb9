from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from autorelease.core.config import CONFIG_FILENAME, Config, load_config, load_config_or_default
from autorelease.core.errors import ErrorCode
from autorelease.core.result import Err
from autorelease.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol

    @property
    def state_dir(self) -> Path:
        return self.root / self.config.release.state_dir

    @property
    def lock_dir(self) -> Path:
        return self.state_dir / "locks"


def build_context(
    *,
    root: Path | None = None,
    config_path: Path | None = None,
    stderr: bool = False,
) -> CLIContext:
    try:
        resolved = (root or Path.cwd()).expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --root: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if not resolved.is_dir():
        typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    # An explicit --config must exist; the default location is optional.
    if config_path is not None:
        config_result = load_config(config_path)
    else:
        config_result = load_config_or_default(resolved / CONFIG_FILENAME)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        root=resolved,
        config=config_result.value,
        console=RichConsole(stderr=stderr),
    )
