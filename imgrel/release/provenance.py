"""Build provenance: version, UTC build timestamp, source revision.

The timestamp is taken when ``capture`` is called (right before the build
is invoked), truncated to whole seconds. Every stamp issued by a collector
is strictly later than the run start and than the previous stamp; when the
wall clock has not yet moved past that point the collector waits for the
next second.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from imgrel.core.result import Err, Ok, Result
from imgrel.git.repository import GitError, Repository
from imgrel.release.errors import RevisionUnavailable
from imgrel.release.version import VersionSpec

__all__ = [
    "ProvenanceCollector",
    "ProvenanceRecord",
    "format_timestamp",
    "utc_now",
]

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_MIN_SLEEP_SECONDS = 0.01


@dataclass(frozen=True, slots=True)
class ProvenanceRecord:
    version: str
    build_timestamp_utc: str
    source_revision: str

    def as_build_args(self) -> dict[str, str]:
        """Build parameters understood by the assemble stage."""
        return {
            "IMAGE_VERSION": self.version,
            "IMAGE_CREATE_DATE": self.build_timestamp_utc,
            "IMAGE_SOURCE_REVISION": self.source_revision,
        }


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def _whole_seconds(moment: datetime) -> datetime:
    return moment.astimezone(UTC).replace(microsecond=0)


def _unavailable(error: GitError) -> RevisionUnavailable:
    return RevisionUnavailable(reason=f"git {error.command} failed: {error.message}")


class ProvenanceCollector:
    """Captures provenance for the working tree of ``repo``.

    Args:
        repo: Repository whose HEAD is being built.
        started_at: Start of the pipeline run.
        clock: Wall clock returning aware datetimes.
        sleep: Used to wait for the next second.
    """

    def __init__(
        self,
        repo: Repository,
        *,
        started_at: datetime,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._repo = repo
        self._clock = clock
        self._sleep = sleep
        self._floor = _whole_seconds(started_at)

    def capture(self, version: VersionSpec) -> Result[ProvenanceRecord, RevisionUnavailable]:
        revision = self._repo.head_revision().map_err(_unavailable)
        if isinstance(revision, Err):
            return revision

        stamp = self._next_stamp()
        return Ok(
            ProvenanceRecord(
                version=str(version),
                build_timestamp_utc=format_timestamp(stamp),
                source_revision=revision.value,
            )
        )

    def dirty_paths(self) -> Result[list[str], RevisionUnavailable]:
        """Uncommitted paths of the project, relative to its root."""
        return self._repo.dirty_paths().map_err(_unavailable)

    def _next_stamp(self) -> datetime:
        now = _whole_seconds(self._clock())
        while now <= self._floor:
            remaining = (self._floor + timedelta(seconds=1) - self._clock()).total_seconds()
            self._sleep(max(remaining, _MIN_SLEEP_SECONDS))
            now = _whole_seconds(self._clock())
        self._floor = now
        return now
