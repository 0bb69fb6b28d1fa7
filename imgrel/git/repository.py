"""Git queries needed for build provenance.

Only read-only commands are issued. All operations return Result types.

Usage:
    repo = Repository(Path("."), runner)
    match repo.head_revision():
        case Ok(sha):
            print(sha)
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from imgrel.core.result import Err, Ok, Result
from imgrel.platform.process import CommandRunner, ProcessError

__all__ = ["GitError", "Repository"]

_REVISION_RE = re.compile(r"[0-9a-f]{4,64}")


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """Working tree of the project being released."""

    def __init__(self, path: Path, runner: CommandRunner) -> None:
        self.path = path
        self._runner = runner

    def head_revision(self) -> Result[str, GitError]:
        """Full commit id of the checked-out HEAD.

        Runs `git rev-parse HEAD`. Fails outside a work tree, on an unborn
        branch, or when git is not installed.
        """
        result = self._run(["rev-parse", "--verify", "HEAD"])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="rev-parse",
                        message=e.output or "git rev-parse failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                sha = stdout.strip()
                if not _REVISION_RE.fullmatch(sha):
                    return Err(
                        GitError(
                            command="rev-parse",
                            message=f"unexpected revision output: {sha!r}",
                        )
                    )
                return Ok(sha)

    def dirty_paths(self) -> Result[list[str], GitError]:
        """Paths under ``path`` with uncommitted changes (staged, unstaged or untracked).

        Porcelain output is relative to the top of the work tree; paths are
        returned relative to ``path`` so a project living in a subdirectory
        of its repository sees its own layout.
        """
        prefix = self._run(["rev-parse", "--show-prefix"])
        if isinstance(prefix, Err):
            e = prefix.error
            return Err(
                GitError(
                    command="rev-parse",
                    message=e.output or "git rev-parse failed",
                    returncode=e.returncode,
                )
            )

        result = self._run(["status", "--porcelain", "--", "."])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="status",
                        message=e.output or "git status failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                subdir = prefix.value.strip()
                return Ok(
                    [ln[3:].removeprefix(subdir) for ln in stdout.splitlines() if len(ln) > 3]
                )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        return self._runner.run(["git", "-C", str(self.path), *args], cwd=self.path)
