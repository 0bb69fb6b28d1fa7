"""Build orchestration: compile stage, then assemble stage.

Both stages run through the container executor (``docker`` by default):

1. ``compile``: ``--target build`` with ``--no-cache``. Nothing from an
   earlier run is reused, so the binary always comes from the current tree.
2. ``assemble``: the full Dockerfile with ``--no-cache-filter runtime``.
   The compile layers just produced by step 1 are reused; the runtime stage,
   which carries the provenance build args, is always rebuilt.
3. ``inspect``: resolve the image id of the full-version tag.

A failing stage stops the build; later stages never run.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from imgrel.core.config import ReleaseConfig
from imgrel.core.result import Err, Ok, Result
from imgrel.output.console import ConsoleProtocol, Style
from imgrel.platform.files import atomic_write_text
from imgrel.platform.process import CommandRunner, ProcessError
from imgrel.release.dockerfile import COMPILE_STAGE, RUNTIME_STAGE, render_dockerfile
from imgrel.release.errors import BuildFailed, BuildStage
from imgrel.release.provenance import ProvenanceRecord
from imgrel.release.tags import ImageCoordinates, ImageRef
from imgrel.release.version import VersionSpec

__all__ = ["BuildResult", "ImageBuilder", "WORK_DIR_NAME"]

WORK_DIR_NAME = ".imgrel"

_COMPILE_TAG_SUFFIX = "-build"


@dataclass(frozen=True, slots=True)
class BuildResult:
    """The image produced by a build.

    Attributes:
        image: Full-version reference the image was tagged with.
        image_id: Executor's content id (empty in dry-run mode).
    """

    image: ImageRef
    image_id: str

    @property
    def source(self) -> str:
        """What to point new tags at: the id when known, else the ref."""
        return self.image_id or str(self.image)


class ImageBuilder:
    """Runs the two-stage build for one project."""

    def __init__(
        self,
        *,
        config: ReleaseConfig,
        project_root: Path,
        runner: CommandRunner,
        console: ConsoleProtocol,
    ) -> None:
        self._config = config
        self._root = project_root
        self._runner = runner
        self._console = console

    @property
    def coordinates(self) -> ImageCoordinates:
        return ImageCoordinates.from_config(self._config.image)

    def build(
        self,
        version: VersionSpec,
        provenance: ProvenanceRecord,
        platform: str | None = None,
    ) -> Result[BuildResult, BuildFailed]:
        """Build the image for ``version`` and tag it with the full version.

        Args:
            version: Resolved version; its string form is the image tag.
            provenance: Values embedded as build args.
            platform: Target platform (defaults to the configured one).
        """
        target_platform = platform or self._config.image.platform
        image = self.coordinates.ref(str(version))

        dockerfile = self._dockerfile()
        if isinstance(dockerfile, Err):
            return dockerfile

        compile_cmd = self._build_cmd(
            dockerfile=dockerfile.value,
            platform=target_platform,
            tag=f"{image}{_COMPILE_TAG_SUFFIX}",
            cache=["--no-cache"],
            extra=["--target", COMPILE_STAGE],
        )
        compiled = self._stage("compile", compile_cmd)
        if isinstance(compiled, Err):
            return compiled

        build_args: list[str] = []
        for name, value in provenance.as_build_args().items():
            build_args += ["--build-arg", f"{name}={value}"]

        assemble_cmd = self._build_cmd(
            dockerfile=dockerfile.value,
            platform=target_platform,
            tag=str(image),
            cache=["--no-cache-filter", RUNTIME_STAGE],
            extra=build_args,
        )
        assembled = self._stage("assemble", assemble_cmd)
        if isinstance(assembled, Err):
            return assembled

        inspect_cmd = [
            self._config.build.executor,
            "image",
            "inspect",
            "--format",
            "{{.Id}}",
            str(image),
        ]
        inspected = self._stage("inspect", inspect_cmd, stream=False)
        if isinstance(inspected, Err):
            return inspected

        return Ok(BuildResult(image=image, image_id=inspected.value.strip()))

    def _dockerfile(self) -> Result[Path, BuildFailed]:
        configured = self._config.build.dockerfile
        if configured is not None:
            path = self._root / configured
            if not path.is_file():
                return Err(
                    BuildFailed(stage="prepare", exit_code=-1, log=f"Dockerfile not found: {path}")
                )
            return Ok(path)

        path = self._root / WORK_DIR_NAME / "Dockerfile"
        try:
            atomic_write_text(path, render_dockerfile(self._config))
        except OSError as e:
            return Err(
                BuildFailed(stage="prepare", exit_code=-1, log=f"cannot write {path}: {e}")
            )
        return Ok(path)

    def _build_cmd(
        self,
        *,
        dockerfile: Path,
        platform: str,
        tag: str,
        cache: list[str],
        extra: list[str],
    ) -> list[str]:
        build = self._config.build
        cmd = [build.executor, "build", *cache, "--platform", platform]
        if build.memory:
            cmd += ["--memory", build.memory]
        cmd += [*extra, "-f", str(dockerfile), "-t", tag, str(self._root / build.context)]
        return cmd

    def _stage(
        self, stage: BuildStage, cmd: list[str], *, stream: bool = True
    ) -> Result[str, BuildFailed]:
        self._console.print(f"[{stage}] {' '.join(cmd)}", Style.DIM)
        result = self._runner.run(cmd, cwd=self._root, stream=stream)
        if isinstance(result, Err):
            return Err(_failed(stage, result.error))
        return result


def _failed(stage: BuildStage, error: ProcessError) -> BuildFailed:
    return BuildFailed(stage=stage, exit_code=error.returncode, log=error.output)
