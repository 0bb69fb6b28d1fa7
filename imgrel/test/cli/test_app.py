from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

import imgrel.cli.context as cli_context
from imgrel import __version__
from imgrel.cli.app import app
from imgrel.output.console import ConsoleProtocol, MockConsole
from imgrel.platform.process import CommandRunner
from imgrel.test.fakes import FakeRunner, failure, release_runner

runner = CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in ("REGISTRY", "REPOSITORY", "IMAGE_NAME", "IMAGE_PLATFORM"):
        monkeypatch.delenv(name, raising=False)
    (tmp_path / "Cargo.toml").write_text(
        '[package]\nname = "config-manager"\nversion = "1.4.2"\n', encoding="utf-8"
    )
    (tmp_path / "imgrel.toml").write_text(
        '[image]\nregistry = "r"\nrepository = "p"\nname = "i"\n', encoding="utf-8"
    )
    return tmp_path


@pytest.fixture
def console(monkeypatch: pytest.MonkeyPatch) -> MockConsole:
    mock = MockConsole()

    def fake_make_console() -> ConsoleProtocol:
        return mock

    monkeypatch.setattr(cli_context, "make_console", fake_make_console)
    return mock


def _use_runner(monkeypatch: pytest.MonkeyPatch, fake: FakeRunner) -> FakeRunner:
    def fake_make_runner(_console: ConsoleProtocol, *, verbose: bool) -> CommandRunner:
        return fake

    monkeypatch.setattr(cli_context, "make_runner", fake_make_runner)
    return fake


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_version_command(project: Path, console: MockConsole) -> None:
    result = runner.invoke(app, ["-C", str(project), "version"])
    assert result.exit_code == 0
    assert result.stdout == "1.4.2\n"


def test_tags_from_config_file(project: Path, console: MockConsole) -> None:
    result = runner.invoke(app, ["-C", str(project), "tags"])
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["r/p/i:1.4.2", "r/p/i:1", "r/p/i:1.4"]


def test_env_overrides_config_file(
    project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("REGISTRY", "localhost:5000")

    result = runner.invoke(app, ["-C", str(project), "tags"])

    assert result.stdout.splitlines()[0] == "localhost:5000/p/i:1.4.2"


def test_flags_override_env(
    project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("IMAGE_NAME", "from-env")

    result = runner.invoke(app, ["-C", str(project), "--image", "from-flag", "tags"])

    assert result.stdout.splitlines()[0] == "r/p/from-flag:1.4.2"


def test_manifest_flag(project: Path, console: MockConsole) -> None:
    other = project / "svc.toml"
    other.write_text('version = "2.0"\n', encoding="utf-8")

    result = runner.invoke(app, ["-C", str(project), "--manifest", str(other), "tags"])

    assert result.stdout.splitlines() == ["r/p/i:2.0", "r/p/i:2"]


def test_missing_manifest_is_user_error(tmp_path: Path, console: MockConsole) -> None:
    result = runner.invoke(app, ["-C", str(tmp_path), "version"])

    assert result.exit_code == 1
    assert console.has_error()
    assert "manifest not found" in console.text


def test_invalid_config_is_user_error(project: Path, console: MockConsole) -> None:
    (project / "imgrel.toml").write_text("[runtime]\nuid = 0\n", encoding="utf-8")

    result = runner.invoke(app, ["-C", str(project), "tags"])

    assert result.exit_code == 1
    assert "uid" in console.text


def test_release_success(
    project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    fake = _use_runner(monkeypatch, release_runner())

    result = runner.invoke(app, ["-C", str(project), "release"])

    assert result.exit_code == 0
    assert [c[-1] for c in fake.commands_of("docker", "push")] == [
        "r/p/i:1.4.2",
        "r/p/i:1",
        "r/p/i:1.4",
    ]
    assert "OK released 1.4.2 (abc123)" in console.messages


def test_release_build_failure_exit_code(
    project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    fake = _use_runner(
        monkeypatch,
        release_runner().on("build", "--target", result=failure(["docker", "build"], 101)),
    )

    result = runner.invoke(app, ["-C", str(project), "release"])

    assert result.exit_code == 3
    assert "compile stage failed (exit 101)" in console.text
    assert fake.commands_of("docker", "push") == []


def test_release_push_failure_exit_code(
    project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_runner(
        monkeypatch,
        release_runner().on("docker", "push", result=failure(["docker", "push"], 1, "denied")),
    )

    result = runner.invoke(app, ["-C", str(project), "release"])

    assert result.exit_code == 4
    assert "push failed for r/p/i:1.4.2" in console.text


def test_missing_revision_exit_code(
    project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_runner(
        monkeypatch,
        release_runner().on(
            "git", "rev-parse", result=failure(["git", "rev-parse"], 128, "not a git repository")
        ),
    )

    result = runner.invoke(app, ["-C", str(project), "build"])

    assert result.exit_code == 2
    assert "source revision unavailable" in console.text


def test_dry_run_release_runs_no_docker(
    project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    fake = _use_runner(monkeypatch, release_runner())

    result = runner.invoke(app, ["-C", str(project), "--dry-run", "release"])

    assert result.exit_code == 0
    assert fake.commands_of("docker") == []
    assert fake.commands_of("git", "rev-parse") != []
    assert any(m.startswith("would run: docker push r/p/i:1.4") for m in console.messages)


def test_push_command_uses_existing_image(
    project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    fake = _use_runner(monkeypatch, release_runner())

    result = runner.invoke(app, ["-C", str(project), "push"])

    assert result.exit_code == 0
    assert fake.commands_of("docker", "build") == []
    assert "OK 3 tag(s) pushed" in console.messages


def test_run_command(project: Path, console: MockConsole, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _use_runner(monkeypatch, FakeRunner())

    result = runner.invoke(app, ["-C", str(project), "run"])

    assert result.exit_code == 0
    assert fake.calls[0].attached
    assert fake.calls[0].cmd[-1] == "r/p/i:1.4.2"
