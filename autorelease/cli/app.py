from __future__ import annotations

import typer

from autorelease import __version__
from autorelease.cli.commands.lint_cmd import lint_workflows
from autorelease.cli.commands.push_cmd import push_pending
from autorelease.cli.commands.run_cmd import run
from autorelease.cli.commands.version_cmd import next_version


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(run)
app.command("push-pending")(push_pending)
app.command("next-version")(next_version)
app.command("lint-workflows")(lint_workflows)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def main() -> None:
    app()
