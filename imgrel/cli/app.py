from __future__ import annotations

from pathlib import Path

import typer

from imgrel import __version__
from imgrel.cli.commands.image_cmd import build, push, release, run
from imgrel.cli.commands.plan_cmd import tags, version
from imgrel.cli.context import GlobalOptions


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Build, tag and push a versioned service image.",
)


# Commands
app.command()(version)
app.command()(tags)
app.command()(build)
app.command()(push)
app.command()(release)
app.command()(run)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    show_version: bool = typer.Option(False, "--version", help="Show imgrel version and exit."),
    project: Path = typer.Option(
        Path("."), "--project", "-C", help="Project root (build context, git work tree)"
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: <project>/imgrel.toml)", show_default=False
    ),
    manifest: Path | None = typer.Option(
        None, "--manifest", help="Manifest declaring the version", show_default=False
    ),
    registry: str | None = typer.Option(
        None, "--registry", help="Registry host [env: REGISTRY]", show_default=False
    ),
    repository: str | None = typer.Option(
        None, "--repository", help="Repository path [env: REPOSITORY]", show_default=False
    ),
    image: str | None = typer.Option(
        None, "--image", help="Image name [env: IMAGE_NAME]", show_default=False
    ),
    platform: str | None = typer.Option(
        None, "--platform", help="Target platform [env: IMAGE_PLATFORM]", show_default=False
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print container commands only"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Stream build and push output"),
    require_clean: bool = typer.Option(
        False, "--require-clean", help="Refuse to build from a tree with uncommitted changes"
    ),
) -> None:
    if show_version:
        typer.echo(__version__)
        raise typer.Exit(code=0)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    ctx.obj = GlobalOptions(
        project=project,
        config=config,
        manifest=manifest,
        registry=registry,
        repository=repository,
        image=image,
        platform=platform,
        dry_run=dry_run,
        verbose=verbose,
        require_clean=require_clean,
    )


def main() -> None:
    app()
