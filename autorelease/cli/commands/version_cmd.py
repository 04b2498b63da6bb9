from __future__ import annotations

from pathlib import Path

import typer

from autorelease.cli.commands._helpers import exit_on_error
from autorelease.cli.context import build_context
from autorelease.core.result import Err
from autorelease.services.manifest import CargoManifest


def next_version(
    tag: bool = typer.Option(False, "--tag", help="Print the release tag instead."),
    root: Path | None = typer.Option(None, "--root", help="Repository root (default: cwd)."),
    config_path: Path | None = typer.Option(None, "--config", help="Path to autorelease.toml."),
) -> None:
    """Print the version the next release would publish."""
    # stdout carries only the version; diagnostics go to stderr.
    ctx = build_context(root=root, config_path=config_path, stderr=True)
    manifest = CargoManifest(ctx.root / ctx.config.release.manifest)

    package = manifest.read_package()
    exit_on_error(package, ctx)
    assert not isinstance(package, Err)

    bumped = package.value.version.bump_patch()
    typer.echo(bumped.to_tag(ctx.config.release.tag_prefix) if tag else str(bumped))
