"""Failure types of the release pipeline.

Each failure is a frozen dataclass carrying enough context (path, field,
stage, tag, exit code, log) to diagnose the problem without re-running.
They are returned inside ``Err`` and matched structurally by the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

__all__ = [
    "BuildFailed",
    "BuildStage",
    "ManifestError",
    "ManifestMalformed",
    "ManifestNotFound",
    "PushFailed",
    "PushStep",
    "ReleaseError",
    "RevisionUnavailable",
    "RunFailed",
    "VersionFieldMissing",
    "VersionFormatInvalid",
]

BuildStage = Literal["prepare", "compile", "assemble", "inspect"]
PushStep = Literal["inspect", "tag", "push"]


@dataclass(frozen=True, slots=True)
class ManifestNotFound:
    path: Path


@dataclass(frozen=True, slots=True)
class ManifestMalformed:
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class VersionFieldMissing:
    path: Path
    field: str


@dataclass(frozen=True, slots=True)
class VersionFormatInvalid:
    value: str
    reason: str


@dataclass(frozen=True, slots=True)
class RevisionUnavailable:
    reason: str


@dataclass(frozen=True, slots=True)
class BuildFailed:
    """A build stage exited non-zero (or could not be started).

    Attributes:
        stage: Which stage failed.
        exit_code: Exit status of the external process (-1 if not started).
        log: Captured output of the failing process, verbatim.
    """

    stage: BuildStage
    exit_code: int
    log: str


@dataclass(frozen=True, slots=True)
class PushFailed:
    """Tagging or pushing one reference failed; later tags were not attempted.

    Attributes:
        tag: Fully qualified reference being processed.
        step: Which operation failed for that reference.
        cause: Output of the failing process.
        exit_code: Exit status of the external process.
    """

    tag: str
    step: PushStep
    cause: str
    exit_code: int


@dataclass(frozen=True, slots=True)
class RunFailed:
    """The local smoke-test container exited non-zero."""

    image: str
    exit_code: int


ManifestError = ManifestNotFound | ManifestMalformed | VersionFieldMissing

ReleaseError = (
    ManifestNotFound
    | ManifestMalformed
    | VersionFieldMissing
    | VersionFormatInvalid
    | RevisionUnavailable
    | BuildFailed
    | PushFailed
    | RunFailed
)
