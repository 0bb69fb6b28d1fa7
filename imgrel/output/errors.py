"""Error presentation.

Maps every pipeline failure to an operator-facing message (with the context
needed to act on it) and a stable exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from imgrel.core.config import ConfigError
from imgrel.core.errors import ErrorCode
from imgrel.output.console import Style
from imgrel.release.errors import (
    BuildFailed,
    ManifestMalformed,
    ManifestNotFound,
    PushFailed,
    ReleaseError,
    RevisionUnavailable,
    RunFailed,
    VersionFieldMissing,
    VersionFormatInvalid,
)

if TYPE_CHECKING:
    from imgrel.output.console import ConsoleProtocol

__all__ = ["print_release_error", "release_error_exit_code", "LOG_TAIL_LINES"]

LOG_TAIL_LINES = 40


def print_release_error(error: ReleaseError | ConfigError, console: ConsoleProtocol) -> None:
    """Print a failure with its context."""
    match error:
        case ConfigError(message=message, path=path):
            console.error(message)
            if path is not None:
                console.print(f"config: {path}", Style.DIM)
        case ManifestNotFound(path=path):
            console.error(f"manifest not found: {path}")
            console.print("hint: pass --manifest or set build.manifest in imgrel.toml", Style.DIM)
        case ManifestMalformed(path=path, reason=reason):
            console.error(f"cannot parse manifest {path}: {reason}")
        case VersionFieldMissing(path=path, field=field):
            console.error(f"no '{field}' declared in {path}")
        case VersionFormatInvalid(value=value, reason=reason):
            console.error(f"invalid version {value!r}: {reason}")
            console.print("hint: expected MAJOR.MINOR.PATCH", Style.DIM)
        case RevisionUnavailable(reason=reason):
            console.error(f"source revision unavailable: {reason}")
        case BuildFailed(stage=stage, exit_code=code, log=log):
            console.error(f"{stage} stage failed (exit {code})")
            _print_log_tail(log, console)
        case PushFailed(tag=tag, step=step, cause=cause, exit_code=code):
            console.error(f"{step} failed for {tag} (exit {code}); remaining tags not pushed")
            _print_log_tail(cause, console)
        case RunFailed(image=image, exit_code=code):
            console.error(f"{image} exited with {code}")


def release_error_exit_code(error: ReleaseError | ConfigError) -> int:
    match error:
        case (
            ConfigError()
            | ManifestNotFound()
            | ManifestMalformed()
            | VersionFieldMissing()
            | VersionFormatInvalid()
        ):
            return int(ErrorCode.USER_ERROR)
        case RevisionUnavailable():
            return int(ErrorCode.ENV_ERROR)
        case BuildFailed(stage="prepare"):
            return int(ErrorCode.IO_ERROR)
        case BuildFailed() | RunFailed():
            return int(ErrorCode.BUILD_ERROR)
        case PushFailed():
            return int(ErrorCode.PUSH_ERROR)
    # Fallback for exhaustiveness
    return int(ErrorCode.BUILD_ERROR)


def _print_log_tail(log: str, console: ConsoleProtocol) -> None:
    lines = log.rstrip().splitlines()
    if not lines:
        return
    if len(lines) > LOG_TAIL_LINES:
        console.print(f"... ({len(lines) - LOG_TAIL_LINES} earlier lines omitted)", Style.DIM)
        lines = lines[-LOG_TAIL_LINES:]
    for line in lines:
        console.print(line, Style.DIM)
