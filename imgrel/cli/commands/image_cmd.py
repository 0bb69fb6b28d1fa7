"""Image commands: build, push, release, run."""

from __future__ import annotations

import typer

from imgrel.cli.commands._helpers import unwrap_or_exit
from imgrel.cli.context import build_context
from imgrel.output.console import Style


def build(ctx: typer.Context) -> None:
    """Build the image and tag it with the full version."""
    cli = build_context(ctx)
    result, provenance = unwrap_or_exit(cli.pipeline().build(), cli)
    cli.console.success(str(result.image))
    if result.image_id:
        cli.console.print(f"id: {result.image_id}", Style.DIM)
    cli.console.print(f"revision: {provenance.source_revision}", Style.DIM)


def push(ctx: typer.Context) -> None:
    """Tag the built image with every computed tag and push them in order."""
    cli = build_context(ctx)
    pushed = unwrap_or_exit(cli.pipeline().push(), cli)
    cli.console.success(f"{len(pushed)} tag(s) pushed")


def release(ctx: typer.Context) -> None:
    """Build, then push all tags. Nothing is pushed if the build fails."""
    cli = build_context(ctx)
    outcome = unwrap_or_exit(cli.pipeline().release(), cli)
    cli.console.success(
        f"released {outcome.provenance.version} ({outcome.provenance.source_revision[:12]})"
    )
    for ref in outcome.pushed:
        cli.console.print(f"  {ref}", Style.DIM)


def run(ctx: typer.Context) -> None:
    """Run the full-version image locally for a smoke test."""
    cli = build_context(ctx)
    unwrap_or_exit(cli.pipeline().run_image(), cli)
