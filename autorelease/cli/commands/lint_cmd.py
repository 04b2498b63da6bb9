from __future__ import annotations

from pathlib import Path

import typer

from autorelease.cli.commands._helpers import exit_on_error, exit_with_code
from autorelease.cli.context import build_context
from autorelease.core.errors import ErrorCode
from autorelease.core.result import Err
from autorelease.output.console import Style
from autorelease.services.workflows import find_duplicates, find_workflow_files


def lint_workflows(
    extra_dirs: list[Path] = typer.Option(
        [], "--dir", help="Additional directory of workflow files to compare."
    ),
    root: Path | None = typer.Option(None, "--root", help="Repository root (default: cwd)."),
) -> None:
    """Report CI workflow files that are exact copies of each other."""
    ctx = build_context(root=root)
    extras = tuple(extra_dirs)

    files = find_workflow_files(ctx.root, extras)
    ctx.console.print(f"workflows scanned: {len(files)}", Style.DIM)

    result = find_duplicates(ctx.root, extras)
    exit_on_error(result, ctx)
    assert not isinstance(result, Err)

    if not result.value:
        ctx.console.success("no duplicated workflows")
        return

    for group in result.value:
        ctx.console.error(f"duplicated workflow ({group.digest[:12]}):")
        for path in group.paths:
            shown = path.relative_to(ctx.root) if path.is_relative_to(ctx.root) else path
            ctx.console.print(f"  {shown}", Style.DIM)
    ctx.console.print(
        "hint: identical release workflows race to publish the same version; keep one",
        Style.DIM,
    )
    exit_with_code(int(ErrorCode.USER_ERROR))
