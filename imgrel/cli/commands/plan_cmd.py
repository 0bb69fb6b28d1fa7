"""Read-only commands: show the resolved version and tag set."""

from __future__ import annotations

import typer

from imgrel.cli.commands._helpers import unwrap_or_exit
from imgrel.cli.context import build_context


def version(ctx: typer.Context) -> None:
    """Print the version declared in the manifest."""
    cli = build_context(ctx)
    plan = unwrap_or_exit(cli.pipeline().plan(), cli)
    typer.echo(str(plan.version))


def tags(ctx: typer.Context) -> None:
    """Print the registry references a push would publish, in push order."""
    cli = build_context(ctx)
    plan = unwrap_or_exit(cli.pipeline().plan(), cli)
    for ref in plan.tags:
        typer.echo(str(ref))
