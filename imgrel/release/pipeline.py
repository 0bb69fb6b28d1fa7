"""Release pipeline: manifest -> version -> tags, provenance -> build -> push.

Stages run strictly in sequence and the first ``Err`` ends the run. No
stage retries and no fallback value (version, revision) is ever substituted.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from imgrel.core.config import ReleaseConfig
from imgrel.core.result import Err, Ok, Result
from imgrel.git.repository import Repository
from imgrel.output.console import ConsoleProtocol, Style
from imgrel.platform.process import CommandRunner
from imgrel.release.build import WORK_DIR_NAME, BuildResult, ImageBuilder
from imgrel.release.errors import ReleaseError, RevisionUnavailable, RunFailed
from imgrel.release.manifest import read_manifest_version
from imgrel.release.provenance import ProvenanceCollector, ProvenanceRecord, utc_now
from imgrel.release.push import ImagePusher
from imgrel.release.tags import ImageCoordinates, ImageRef, TagSet, compute_tag_set
from imgrel.release.version import VersionSpec, parse_version

__all__ = ["ReleasePipeline", "ReleasePlan", "ReleaseOutcome"]

_DIRTY_PATHS_SHOWN = 5


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    """Everything derivable from the manifest alone."""

    manifest: Path
    version: VersionSpec
    tags: TagSet

    @property
    def image(self) -> ImageRef:
        """The full-version reference (first tag)."""
        return self.tags[0]


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    build: BuildResult
    provenance: ProvenanceRecord
    pushed: tuple[ImageRef, ...]


class ReleasePipeline:
    """One pipeline run for the project at ``project_root``."""

    def __init__(
        self,
        *,
        config: ReleaseConfig,
        project_root: Path,
        runner: CommandRunner,
        console: ConsoleProtocol,
        manifest: Path | None = None,
        require_clean: bool = False,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._root = project_root
        self._runner = runner
        self._console = console
        self._manifest = manifest or (project_root / config.build.manifest)
        self._require_clean = require_clean
        self._collector = ProvenanceCollector(
            Repository(project_root, runner),
            started_at=clock(),
            clock=clock,
            sleep=sleep,
        )
        self._builder = ImageBuilder(
            config=config, project_root=project_root, runner=runner, console=console
        )
        self._pusher = ImagePusher(
            config=config, project_root=project_root, runner=runner, console=console
        )

    def plan(self) -> Result[ReleasePlan, ReleaseError]:
        coordinates = ImageCoordinates.from_config(self._config.image)

        def to_plan(version: VersionSpec) -> ReleasePlan:
            return ReleasePlan(
                manifest=self._manifest,
                version=version,
                tags=compute_tag_set(version, coordinates),
            )

        return read_manifest_version(self._manifest).flat_map(parse_version).map(to_plan)

    def build(self) -> Result[tuple[BuildResult, ProvenanceRecord], ReleaseError]:
        plan = self.plan()
        if isinstance(plan, Err):
            return plan
        return self._build(plan.value)

    def push(self) -> Result[tuple[ImageRef, ...], ReleaseError]:
        """Push an image built by an earlier ``build`` run."""
        plan = self.plan()
        if isinstance(plan, Err):
            return plan

        self._console.header(f"push {plan.value.version}")
        located = self._pusher.locate(plan.value.image)
        if isinstance(located, Err):
            return located
        return self._pusher.push(located.value, plan.value.tags).map(tuple)

    def release(self) -> Result[ReleaseOutcome, ReleaseError]:
        """Build, then push every tag. Nothing is pushed if the build fails."""
        plan = self.plan()
        if isinstance(plan, Err):
            return plan

        built = self._build(plan.value)
        if isinstance(built, Err):
            return built
        result, provenance = built.value

        self._console.header(f"push {plan.value.version}")
        pushed = self._pusher.push(result, plan.value.tags)
        if isinstance(pushed, Err):
            return pushed
        return Ok(ReleaseOutcome(build=result, provenance=provenance, pushed=tuple(pushed.value)))

    def run_image(self) -> Result[ImageRef, ReleaseError]:
        """Start the full-version image interactively for a smoke test."""
        plan = self.plan()
        if isinstance(plan, Err):
            return plan

        image = plan.value.image
        cmd = [self._config.build.executor, "run", "--rm", "-ti", str(image)]
        self._console.print(" ".join(cmd), Style.DIM)
        ran = self._runner.attach(cmd, cwd=self._root)
        if isinstance(ran, Err):
            return Err(RunFailed(image=str(image), exit_code=ran.error.returncode))
        return Ok(image)

    def _build(
        self, plan: ReleasePlan
    ) -> Result[tuple[BuildResult, ProvenanceRecord], ReleaseError]:
        self._console.header(f"provenance {plan.version}")
        checked = self._check_tree()
        if isinstance(checked, Err):
            return checked

        provenance = self._collector.capture(plan.version)
        if isinstance(provenance, Err):
            return provenance
        record = provenance.value
        self._console.print(f"revision: {record.source_revision}", Style.DIM)
        self._console.print(f"created:  {record.build_timestamp_utc}", Style.DIM)

        self._console.header(f"build {plan.image} ({self._config.image.platform})")
        built = self._builder.build(plan.version, record, self._config.image.platform)
        if isinstance(built, Err):
            return built
        self._console.success(f"built {built.value.image}")
        return Ok((built.value, record))

    def _check_tree(self) -> Result[None, RevisionUnavailable]:
        status = self._collector.dirty_paths()
        if isinstance(status, Err):
            if self._require_clean:
                return status
            self._console.warning(f"cannot check for uncommitted changes: {status.error.reason}")
            return Ok(None)

        dirty = [p for p in status.value if not _is_work_dir(p)]
        if not dirty:
            return Ok(None)

        shown = ", ".join(dirty[:_DIRTY_PATHS_SHOWN])
        if len(dirty) > _DIRTY_PATHS_SHOWN:
            shown += f" (+{len(dirty) - _DIRTY_PATHS_SHOWN} more)"
        if self._require_clean:
            return Err(
                RevisionUnavailable(reason=f"working tree has uncommitted changes: {shown}")
            )
        self._console.warning(f"uncommitted changes are not part of the revision: {shown}")
        return Ok(None)


def _is_work_dir(path: str) -> bool:
    return path.rstrip("/") == WORK_DIR_NAME or path.startswith(f"{WORK_DIR_NAME}/")
