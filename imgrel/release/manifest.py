"""Manifest reader: the project's declared version string.

Supported manifests:
- ``*.json`` (package.json style): top-level ``version``
- anything else is read as TOML, looking in order at ``[package]``
  (Cargo.toml), ``[workspace.package]`` (Cargo workspaces), ``[project]``
  (pyproject.toml) and finally a top-level ``version`` key.

The reader never substitutes a default: a manifest without a version is an
error.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path

from imgrel.core.result import Err, Ok, Result
from imgrel.core.structured import StrDict, as_str_dict, get_table
from imgrel.release.errors import (
    ManifestError,
    ManifestMalformed,
    ManifestNotFound,
    VersionFieldMissing,
)

__all__ = ["read_manifest_version"]

_VERSION_KEY = "version"

# (table path, label used in error messages)
_TOML_LOCATIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("package",), "package.version"),
    (("workspace", "package"), "workspace.package.version"),
    (("project",), "project.version"),
    ((), "version"),
)


def read_manifest_version(path: Path) -> Result[str, ManifestError]:
    """Return the version string declared in the manifest at ``path``."""
    if not path.is_file():
        return Err(ManifestNotFound(path=path))

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(ManifestMalformed(path=path, reason=f"cannot read file: {e}"))

    if path.suffix.lower() == ".json":
        parsed = _parse_json(path, text)
        if isinstance(parsed, Err):
            return parsed
        return _version_from_table(path, parsed.value, _VERSION_KEY)

    parsed = _parse_toml(path, text)
    if isinstance(parsed, Err):
        return parsed
    return _version_from_toml(path, parsed.value)


def _parse_json(path: Path, text: str) -> Result[StrDict, ManifestError]:
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ManifestMalformed(path=path, reason=f"invalid JSON: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(ManifestMalformed(path=path, reason="JSON root must be an object"))
    return Ok(data)


def _parse_toml(path: Path, text: str) -> Result[StrDict, ManifestError]:
    try:
        return Ok(tomllib.loads(text))
    except tomllib.TOMLDecodeError as e:
        return Err(ManifestMalformed(path=path, reason=f"invalid TOML: {e}"))


def _version_from_toml(path: Path, data: StrDict) -> Result[str, ManifestError]:
    for table_path, label in _TOML_LOCATIONS:
        table: StrDict | None = data
        for key in table_path:
            table = get_table(table, key) if table is not None else None
        if table is None or _VERSION_KEY not in table:
            continue
        # Cargo's `version.workspace = true` defers to [workspace.package]
        if as_str_dict(table[_VERSION_KEY]) is not None:
            continue
        return _version_from_table(path, table, label)

    return Err(VersionFieldMissing(path=path, field=_VERSION_KEY))


def _version_from_table(path: Path, table: StrDict, label: str) -> Result[str, ManifestError]:
    if _VERSION_KEY not in table:
        return Err(VersionFieldMissing(path=path, field=label))

    value = table[_VERSION_KEY]
    if not isinstance(value, str):
        return Err(
            ManifestMalformed(
                path=path,
                reason=f"{label} must be a string, got {type(value).__name__}",
            )
        )

    version = value.strip()
    if not version:
        return Err(VersionFieldMissing(path=path, field=label))
    return Ok(version)
