from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from imgrel.core.config import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    ReleaseConfig,
    apply_env,
    load_config,
    load_config_or_default,
)
from imgrel.core.result import Err, Ok, Result
from imgrel.output.console import ConsoleProtocol, RichConsole
from imgrel.output.errors import print_release_error, release_error_exit_code
from imgrel.platform.process import CommandRunner, DryRunRunner, SubprocessRunner
from imgrel.release.pipeline import ReleasePipeline


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Options given before the command name."""

    project: Path = Path(".")
    config: Path | None = None
    manifest: Path | None = None
    registry: str | None = None
    repository: str | None = None
    image: str | None = None
    platform: str | None = None
    dry_run: bool = False
    verbose: bool = False
    require_clean: bool = False


@dataclass(frozen=True, slots=True)
class CLIContext:
    project_root: Path
    config: ReleaseConfig
    console: ConsoleProtocol
    runner: CommandRunner
    options: GlobalOptions

    def pipeline(self) -> ReleasePipeline:
        manifest = self.options.manifest
        if manifest is not None and not manifest.is_absolute():
            manifest = Path.cwd() / manifest
        return ReleasePipeline(
            config=self.config,
            project_root=self.project_root,
            runner=self.runner,
            console=self.console,
            manifest=manifest,
            require_clean=self.options.require_clean,
        )


def make_console() -> ConsoleProtocol:
    return RichConsole()


def make_runner(console: ConsoleProtocol, *, verbose: bool) -> CommandRunner:
    return SubprocessRunner(console, verbose=verbose)


def resolve_config(options: GlobalOptions, project_root: Path) -> Result[ReleaseConfig, ConfigError]:
    """Defaults < config file < environment < flags."""
    if options.config is not None:
        loaded = load_config(options.config)
    else:
        loaded = load_config_or_default(project_root / DEFAULT_CONFIG_FILE)
    if isinstance(loaded, Err):
        return loaded

    config = apply_env(loaded.value, os.environ).with_image(
        registry=options.registry,
        repository=options.repository,
        name=options.image,
        platform=options.platform,
    )
    problem = config.validate()
    if problem is not None:
        return Err(ConfigError(problem, path=options.config))
    return Ok(config)


def build_context(ctx: typer.Context) -> CLIContext:
    options = ctx.obj if isinstance(ctx.obj, GlobalOptions) else GlobalOptions()
    console = make_console()
    project_root = options.project.expanduser().resolve()

    config = resolve_config(options, project_root)
    if isinstance(config, Err):
        print_release_error(config.error, console)
        raise typer.Exit(code=release_error_exit_code(config.error))

    runner = make_runner(console, verbose=options.verbose)
    if options.dry_run:
        runner = DryRunRunner(runner, console)

    return CLIContext(
        project_root=project_root,
        config=config.value,
        console=console,
        runner=runner,
        options=options,
    )
