"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from imgrel.core.result import Err, Ok, Result
from imgrel.output.errors import print_release_error, release_error_exit_code
from imgrel.release.errors import ReleaseError

if TYPE_CHECKING:
    from imgrel.cli.context import CLIContext


def unwrap_or_exit[T](result: Result[T, ReleaseError], ctx: CLIContext) -> T:
    """Return the value, or report the failure and exit non-zero.

    Replaces the pattern repeated by every command:
        match result:
            case Err(e):
                print_release_error(e, ctx.console)
                raise typer.Exit(code=release_error_exit_code(e))
            case Ok(value):
                ...
    """
    match result:
        case Err(error):
            print_release_error(error, ctx.console)
            raise typer.Exit(code=release_error_exit_code(error))
        case Ok(value):
            return value
