"""Push orchestration.

For each reference of the tag set, in order: ``docker tag`` then ``docker
push``. The first failure stops the sequence; a release with some tags
published and others silently missing is worse than a clear failure.

Tags are mutable on the registry: pushing ``1`` or ``1.4`` again moves the
floating tag to the new image.
"""

from __future__ import annotations

from pathlib import Path

from imgrel.core.config import ReleaseConfig
from imgrel.core.result import Err, Ok, Result
from imgrel.output.console import ConsoleProtocol, Style
from imgrel.platform.process import CommandRunner
from imgrel.release.build import BuildResult
from imgrel.release.errors import PushFailed, PushStep
from imgrel.release.tags import ImageRef, TagSet

__all__ = ["ImagePusher"]


class ImagePusher:
    def __init__(
        self,
        *,
        config: ReleaseConfig,
        project_root: Path,
        runner: CommandRunner,
        console: ConsoleProtocol,
    ) -> None:
        self._executor = config.build.executor
        self._root = project_root
        self._runner = runner
        self._console = console

    def locate(self, image: ImageRef) -> Result[BuildResult, PushFailed]:
        """Find a previously built local image to push."""
        cmd = [self._executor, "image", "inspect", "--format", "{{.Id}}", str(image)]
        result = self._step(image, "inspect", cmd, stream=False)
        if isinstance(result, Err):
            return result
        return Ok(BuildResult(image=image, image_id=result.value.strip()))

    def push(self, build: BuildResult, tags: TagSet) -> Result[list[ImageRef], PushFailed]:
        """Tag and push every reference in order.

        Returns:
            Ok(pushed references) when all succeeded, else Err for the first
            failing reference. Later references are not attempted.
        """
        pushed: list[ImageRef] = []
        for ref in tags:
            tagged = self._step(ref, "tag", [self._executor, "tag", build.source, str(ref)])
            if isinstance(tagged, Err):
                return tagged

            sent = self._step(ref, "push", [self._executor, "push", str(ref)], stream=True)
            if isinstance(sent, Err):
                return sent

            pushed.append(ref)
            self._console.success(f"pushed {ref}")
        return Ok(pushed)

    def _step(
        self, ref: ImageRef, step: PushStep, cmd: list[str], *, stream: bool = False
    ) -> Result[str, PushFailed]:
        self._console.print(f"[{step}] {' '.join(cmd)}", Style.DIM)
        result = self._runner.run(cmd, cwd=self._root, stream=stream)
        if isinstance(result, Err):
            e = result.error
            return Err(PushFailed(tag=str(ref), step=step, cause=e.output, exit_code=e.returncode))
        return result
