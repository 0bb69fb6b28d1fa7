"""External process execution with Result-based error handling.

Everything the pipeline delegates to another program (git, the container
executor) goes through a ``CommandRunner``. Orchestrators only see the
protocol, so tests substitute a scripted fake and never touch docker.

Interrupts: when the operator hits Ctrl-C while a child is running, the
child is terminated (then killed after a grace period) before the
``KeyboardInterrupt`` propagates. No build or push is left running.

Usage:
    runner = SubprocessRunner(console=console, verbose=True)
    match runner.run(["docker", "push", ref], cwd=root, stream=True):
        case Ok(output):
            ...
        case Err(error):
            print(error.returncode, error.output)
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from imgrel.core.result import Err, Ok, Result

if TYPE_CHECKING:
    from imgrel.output.console import ConsoleProtocol

__all__ = [
    "CommandRunner",
    "DryRunRunner",
    "ProcessError",
    "SubprocessRunner",
    "run",
]

_TERMINATE_GRACE_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, or -1 if the process could not be started.
        stdout: Standard output (merged with stderr for streamed commands).
        stderr: Standard error.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Everything the process printed, stdout first."""
        parts = [p for p in (self.stdout.strip(), self.stderr.strip()) if p]
        return "\n".join(parts)

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


class CommandRunner(Protocol):
    """Capability to run external commands.

    ``run`` captures output and returns it; with ``stream=True`` output is
    also forwarded to the console as it arrives. ``attach`` hands the
    terminal to the child (interactive commands).
    """

    def run(
        self, cmd: list[str], *, cwd: Path, stream: bool = False
    ) -> Result[str, ProcessError]: ...

    def attach(self, cmd: list[str], *, cwd: Path) -> Result[None, ProcessError]: ...


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return stdout or error.

    ``subprocess.run`` kills the child if the wait is interrupted.

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def _terminate(proc: subprocess.Popen[str]) -> None:
    """Stop a child process: SIGTERM first, SIGKILL if it lingers."""
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=_TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


class SubprocessRunner:
    """Production runner backed by ``subprocess``."""

    def __init__(
        self,
        console: ConsoleProtocol | None = None,
        *,
        verbose: bool = False,
        timeout: float | None = None,
    ) -> None:
        self._console = console
        self._verbose = verbose
        self._timeout = timeout

    def run(
        self, cmd: list[str], *, cwd: Path, stream: bool = False
    ) -> Result[str, ProcessError]:
        if not stream:
            return run(cmd, cwd=cwd, timeout=self._timeout)
        return self._run_streaming(cmd, cwd=cwd)

    def attach(self, cmd: list[str], *, cwd: Path) -> Result[None, ProcessError]:
        try:
            proc = subprocess.Popen(cmd, cwd=str(cwd))
        except OSError as e:
            return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

        try:
            returncode = proc.wait()
        except KeyboardInterrupt:
            _terminate(proc)
            raise

        if returncode != 0:
            return Err(ProcessError(command=tuple(cmd), returncode=returncode, stdout="", stderr=""))
        return Ok(None)

    def _run_streaming(self, cmd: list[str], *, cwd: Path) -> Result[str, ProcessError]:
        from imgrel.output.console import Style

        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(cwd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

        lines: list[str] = []
        try:
            assert proc.stdout is not None
            for line in proc.stdout:
                lines.append(line)
                if self._verbose and self._console is not None:
                    self._console.print(line.rstrip("\n"), Style.DIM)
            returncode = proc.wait()
        except KeyboardInterrupt:
            _terminate(proc)
            raise
        finally:
            if proc.stdout is not None:
                proc.stdout.close()

        output = "".join(lines)
        if returncode != 0:
            return Err(
                ProcessError(command=tuple(cmd), returncode=returncode, stdout=output, stderr="")
            )
        return Ok(output)


class DryRunRunner:
    """Runner that prints commands instead of executing them.

    Programs listed in ``passthrough`` (read-only queries such as git) are
    still executed by the wrapped runner so the printed plan is accurate.
    """

    def __init__(
        self,
        inner: CommandRunner,
        console: ConsoleProtocol,
        *,
        passthrough: Sequence[str] = ("git",),
    ) -> None:
        self._inner = inner
        self._console = console
        self._passthrough = frozenset(passthrough)

    def run(
        self, cmd: list[str], *, cwd: Path, stream: bool = False
    ) -> Result[str, ProcessError]:
        if cmd and cmd[0] in self._passthrough:
            return self._inner.run(cmd, cwd=cwd, stream=stream)
        self._echo(cmd)
        return Ok("")

    def attach(self, cmd: list[str], *, cwd: Path) -> Result[None, ProcessError]:
        self._echo(cmd)
        return Ok(None)

    def _echo(self, cmd: list[str]) -> None:
        from imgrel.output.console import Style

        self._console.print(f"would run: {_quote(cmd)}", Style.DIM)


def _quote(cmd: list[str]) -> str:
    import shlex

    return " ".join(shlex.quote(part) for part in cmd)
