from __future__ import annotations

import re
from dataclasses import dataclass

from imgrel.core.result import Err, Ok, Result
from imgrel.release.errors import VersionFormatInvalid

_NUMERIC_RE = re.compile(r"0|[1-9][0-9]*")


@dataclass(frozen=True, slots=True)
class VersionSpec:
    """Parsed ``MAJOR.MINOR[.PATCH...]`` version.

    ``patch`` holds every field after the minor one, verbatim, so suffixes
    like ``3-rc.1`` or ``3.4`` survive parsing. It is None for two-field
    versions.
    """

    major: int
    minor: int
    patch: str | None = None

    @property
    def major_minor(self) -> str:
        return f"{self.major}.{self.minor}"

    def __str__(self) -> str:
        if self.patch is None:
            return self.major_minor
        return f"{self.major_minor}.{self.patch}"


def parse_version(text: str) -> Result[VersionSpec, VersionFormatInvalid]:
    fields = text.split(".", 2)
    if len(fields) < 2:
        return Err(VersionFormatInvalid(value=text, reason="expected at least MAJOR.MINOR"))

    major, minor = fields[0], fields[1]
    for name, value in (("major", major), ("minor", minor)):
        if not _NUMERIC_RE.fullmatch(value):
            return Err(
                VersionFormatInvalid(
                    value=text,
                    reason=f"{name} component {value!r} is not a non-negative integer",
                )
            )

    patch: str | None = None
    if len(fields) == 3:
        patch = fields[2]
        if not patch:
            return Err(VersionFormatInvalid(value=text, reason="patch component is empty"))

    return Ok(VersionSpec(major=int(major), minor=int(minor), patch=patch))
