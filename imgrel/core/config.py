"""Typed release configuration.

``ReleaseConfig`` is built once at startup and passed explicitly to every
component. Values are layered, lowest precedence first:

1. built-in defaults (below)
2. ``imgrel.toml`` (tables ``[image]``, ``[build]``, ``[runtime]``)
3. environment variables (``REGISTRY``, ``REPOSITORY``, ``IMAGE_NAME``,
   ``IMAGE_PLATFORM``)
4. command-line flags
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_table

__all__ = [
    "BuildConfig",
    "ConfigError",
    "ImageConfig",
    "ReleaseConfig",
    "RuntimeConfig",
    "apply_env",
    "load_config",
    "load_config_or_default",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_REGISTRY",
    "DEFAULT_REPOSITORY",
    "DEFAULT_IMAGE_NAME",
    "DEFAULT_PLATFORM",
    "DEFAULT_UID",
]

DEFAULT_CONFIG_FILE = "imgrel.toml"

# -----------------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------------

DEFAULT_REGISTRY = "acr4yrmmmgrhcdk6.azurecr.io"
DEFAULT_REPOSITORY = "aheld"
DEFAULT_IMAGE_NAME = "hello-kubernetes"
DEFAULT_PLATFORM = "linux/amd64"

DEFAULT_EXECUTOR = "docker"
DEFAULT_MANIFEST = "Cargo.toml"
# Memory cap for the build container (docker build --memory), e.g. "9g".
# Unset by default since not every builder accepts the flag.
DEFAULT_MEMORY: str | None = None
DEFAULT_TOOLCHAIN_IMAGE = "rust:latest"
DEFAULT_BUILD_COMMAND = "cargo build --release"
DEFAULT_ARTIFACT_DIR = "target/release"
DEFAULT_BINARY = "config-manager"

DEFAULT_RUNTIME_BASE = "gcr.io/distroless/cc"
DEFAULT_USER = "demo"
DEFAULT_UID = 10001
DEFAULT_WORKDIR = "/demo"

_USER_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Config file cannot be loaded or holds invalid values."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ImageConfig:
    """Where the image is published and for which platform."""

    registry: str = DEFAULT_REGISTRY
    repository: str = DEFAULT_REPOSITORY
    name: str = DEFAULT_IMAGE_NAME
    platform: str = DEFAULT_PLATFORM


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Compile-stage settings.

    ``dockerfile`` set means "use this file as-is" instead of rendering the
    built-in two-stage Dockerfile. Relative paths resolve against the
    project root. Such a file must define a stage named ``build`` (built
    alone with ``--target build``) and a stage named ``runtime`` (rebuilt
    with ``--no-cache-filter runtime``).
    """

    executor: str = DEFAULT_EXECUTOR
    manifest: str = DEFAULT_MANIFEST
    context: str = "."
    dockerfile: str | None = None
    memory: str | None = DEFAULT_MEMORY
    toolchain_image: str = DEFAULT_TOOLCHAIN_IMAGE
    command: str = DEFAULT_BUILD_COMMAND
    artifact_dir: str = DEFAULT_ARTIFACT_DIR
    binary: str = DEFAULT_BINARY


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Assemble-stage settings: base image and the unprivileged identity."""

    base_image: str = DEFAULT_RUNTIME_BASE
    user: str = DEFAULT_USER
    uid: int = DEFAULT_UID
    workdir: str = DEFAULT_WORKDIR


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Process-wide release configuration."""

    image: ImageConfig = field(default_factory=ImageConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseConfig:
        """Create config from a parsed TOML mapping; missing keys keep defaults."""
        image: StrDict = get_table(data, "image") or {}
        build: StrDict = get_table(data, "build") or {}
        runtime: StrDict = get_table(data, "runtime") or {}

        memory = get_str(build, "memory") or DEFAULT_MEMORY

        uid = get_int(runtime, "uid")
        if "uid" in runtime and uid is None:
            raise ValueError("runtime.uid must be an integer")

        return cls(
            image=ImageConfig(
                registry=_get_str_allow_empty(image, "registry", DEFAULT_REGISTRY),
                repository=_get_str_allow_empty(image, "repository", DEFAULT_REPOSITORY),
                name=get_str(image, "name") or DEFAULT_IMAGE_NAME,
                platform=get_str(image, "platform") or DEFAULT_PLATFORM,
            ),
            build=BuildConfig(
                executor=get_str(build, "executor") or DEFAULT_EXECUTOR,
                manifest=get_str(build, "manifest") or DEFAULT_MANIFEST,
                context=get_str(build, "context") or ".",
                dockerfile=get_str(build, "dockerfile"),
                memory=memory,
                toolchain_image=get_str(build, "toolchain_image") or DEFAULT_TOOLCHAIN_IMAGE,
                command=get_str(build, "command") or DEFAULT_BUILD_COMMAND,
                artifact_dir=get_str(build, "artifact_dir") or DEFAULT_ARTIFACT_DIR,
                binary=get_str(build, "binary") or DEFAULT_BINARY,
            ),
            runtime=RuntimeConfig(
                base_image=get_str(runtime, "base_image") or DEFAULT_RUNTIME_BASE,
                user=get_str(runtime, "user") or DEFAULT_USER,
                uid=DEFAULT_UID if uid is None else uid,
                workdir=get_str(runtime, "workdir") or DEFAULT_WORKDIR,
            ),
        )

    def with_image(
        self,
        *,
        registry: str | None = None,
        repository: str | None = None,
        name: str | None = None,
        platform: str | None = None,
    ) -> ReleaseConfig:
        """Return a copy with the given image coordinates overridden."""
        image = self.image
        if registry is not None:
            image = replace(image, registry=registry)
        if repository is not None:
            image = replace(image, repository=repository)
        if name is not None:
            image = replace(image, name=name)
        if platform is not None:
            image = replace(image, platform=platform)
        return replace(self, image=image)

    def validate(self) -> str | None:
        """Return a description of the first invalid value, if any."""
        if not self.image.name:
            return "image name must not be empty"
        if not _USER_RE.match(self.runtime.user):
            return f"runtime.user is not a valid user name: {self.runtime.user!r}"
        if self.runtime.uid <= 0:
            return f"runtime.uid must be a positive, unprivileged id (got {self.runtime.uid})"
        if "/" in self.build.binary:
            return f"build.binary must be a file name, not a path: {self.build.binary!r}"
        return None


def _get_str_allow_empty(table: Mapping[str, object], key: str, default: str) -> str:
    # registry/repository may be set to "" to build local-only references
    value = table.get(key)
    if isinstance(value, str):
        return value.strip()
    return default


def apply_env(config: ReleaseConfig, environ: Mapping[str, str]) -> ReleaseConfig:
    """Overlay image coordinates from environment variables."""
    return config.with_image(
        registry=environ.get("REGISTRY"),
        repository=environ.get("REPOSITORY"),
        name=environ.get("IMAGE_NAME") or None,
        platform=environ.get("IMAGE_PLATFORM") or None,
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and validate configuration from a TOML file.

    Args:
        path: Path to imgrel.toml

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        config = ReleaseConfig.from_dict(result.value)
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))

    problem = config.validate()
    if problem is not None:
        return Err(ConfigError(problem, path=path))
    return Ok(config)


def load_config_or_default(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Like load_config, but a missing file yields the defaults."""
    if not path.exists():
        return Ok(ReleaseConfig())
    return load_config(path)
