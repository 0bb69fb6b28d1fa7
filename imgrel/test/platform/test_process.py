"""Tests for imgrel.platform.process module."""

from __future__ import annotations

import subprocess
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from imgrel.core.result import Err, Ok
from imgrel.output.console import MockConsole, Style
from imgrel.platform import process
from imgrel.platform.process import DryRunRunner, ProcessError, SubprocessRunner, run
from imgrel.test.fakes import FakeRunner

PY = sys.executable


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(("git", "status"), 128, "", "fatal: not a git repository")
        assert str(error) == "git status failed (exit 128)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(("docker", "build", "--no-cache", "-t", "i:1"), 1, "", "")
        assert str(error) == "docker build --no-cache ... failed (exit 1)"

    def test_output_joins_streams(self) -> None:
        error = ProcessError(("docker",), 1, "step 1\n", "denied\n")
        assert error.output == "step 1\ndenied"

    def test_output_skips_empty_streams(self) -> None:
        assert ProcessError(("docker",), 1, "", "denied").output == "denied"


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "print('hello')"], cwd=tmp_path)
        assert result == Ok("hello\n")

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import sys; sys.stderr.write('nope'); sys.exit(42)"], cwd=tmp_path
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert result.error.stderr == "nope"

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_timeout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2)

        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr


class TestSubprocessRunner:
    def test_captured_run(self, tmp_path: Path) -> None:
        result = SubprocessRunner().run([PY, "-c", "print('abc123')"], cwd=tmp_path)
        assert result == Ok("abc123\n")

    def test_streamed_run_merges_stderr(self, tmp_path: Path) -> None:
        code = "import sys; print('out', flush=True); sys.stderr.write('err\\n')"

        result = SubprocessRunner().run([PY, "-c", code], cwd=tmp_path, stream=True)

        assert isinstance(result, Ok)
        assert "out" in result.value
        assert "err" in result.value

    def test_streamed_failure_keeps_log(self, tmp_path: Path) -> None:
        code = "import sys; print('compiling'); sys.exit(101)"

        result = SubprocessRunner().run([PY, "-c", code], cwd=tmp_path, stream=True)

        assert isinstance(result, Err)
        assert result.error.returncode == 101
        assert result.error.output == "compiling"

    def test_verbose_echoes_lines(self, tmp_path: Path) -> None:
        console = MockConsole()
        runner = SubprocessRunner(console, verbose=True)

        runner.run([PY, "-c", "print('layer 1'); print('layer 2')"], cwd=tmp_path, stream=True)

        assert console.messages == ["layer 1", "layer 2"]
        assert {o.style for o in console.outputs} == {Style.DIM}

    def test_quiet_by_default(self, tmp_path: Path) -> None:
        console = MockConsole()
        SubprocessRunner(console).run([PY, "-c", "print('x')"], cwd=tmp_path, stream=True)
        assert console.outputs == []

    def test_streamed_command_not_found(self, tmp_path: Path) -> None:
        result = SubprocessRunner().run(["nonexistent_command_12345"], cwd=tmp_path, stream=True)
        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_attach_exit_status(self, tmp_path: Path) -> None:
        runner = SubprocessRunner()
        assert runner.attach([PY, "-c", "pass"], cwd=tmp_path) == Ok(None)

        result = runner.attach([PY, "-c", "import sys; sys.exit(3)"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 3


class _InterruptedProc:
    """Popen stand-in whose output stream is interrupted by Ctrl-C."""

    instances: list[_InterruptedProc] = []

    def __init__(self, *args: object, **kwargs: object) -> None:
        self.terminated = False
        self.stdout = self
        _InterruptedProc.instances.append(self)

    def __iter__(self) -> Iterator[str]:
        raise KeyboardInterrupt

    def close(self) -> None:
        pass

    def poll(self) -> int | None:
        return 0 if self.terminated else None

    def terminate(self) -> None:
        self.terminated = True

    def wait(self, timeout: float | None = None) -> int:
        return -15


class TestInterrupt:
    def test_terminate_stops_child(self, tmp_path: Path) -> None:
        proc = subprocess.Popen([PY, "-c", "import time; time.sleep(60)"], cwd=tmp_path)

        process._terminate(proc)

        assert proc.poll() is not None

    def test_terminate_ignores_finished_child(self, tmp_path: Path) -> None:
        proc = subprocess.Popen([PY, "-c", "pass"], cwd=tmp_path)
        proc.wait()
        process._terminate(proc)
        assert proc.returncode == 0

    def test_interrupt_terminates_streamed_child(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _InterruptedProc.instances.clear()
        monkeypatch.setattr(process.subprocess, "Popen", _InterruptedProc)

        with pytest.raises(KeyboardInterrupt):
            SubprocessRunner().run(["docker", "build", "."], cwd=tmp_path, stream=True)

        (proc,) = _InterruptedProc.instances
        assert proc.terminated


class TestDryRunRunner:
    def test_prints_instead_of_running(self, tmp_path: Path) -> None:
        inner = FakeRunner()
        console = MockConsole()

        result = DryRunRunner(inner, console).run(
            ["docker", "build", "--build-arg", "IMAGE_CREATE_DATE=2026-03-01T12:00:00Z", "."],
            cwd=tmp_path,
            stream=True,
        )

        assert result == Ok("")
        assert inner.calls == []
        assert console.messages == [
            "would run: docker build --build-arg IMAGE_CREATE_DATE=2026-03-01T12:00:00Z ."
        ]

    def test_quotes_arguments_with_spaces(self, tmp_path: Path) -> None:
        console = MockConsole()
        DryRunRunner(FakeRunner(), console).run(["docker", "tag", "a b"], cwd=tmp_path)
        assert console.messages == ["would run: docker tag 'a b'"]

    def test_git_passes_through(self, tmp_path: Path) -> None:
        inner = FakeRunner().on("git", "rev-parse", result=Ok("abc123\n"))

        result = DryRunRunner(inner, MockConsole()).run(
            ["git", "rev-parse", "HEAD"], cwd=tmp_path
        )

        assert result == Ok("abc123\n")
        assert inner.commands == [["git", "rev-parse", "HEAD"]]

    def test_attach_is_not_executed(self, tmp_path: Path) -> None:
        inner = FakeRunner()
        assert DryRunRunner(inner, MockConsole()).attach(["docker", "run"], cwd=tmp_path) == Ok(
            None
        )
        assert inner.calls == []
