from __future__ import annotations

import pytest

from imgrel.core.result import Err, Ok
from imgrel.release.errors import VersionFormatInvalid
from imgrel.release.version import VersionSpec, parse_version


@pytest.mark.parametrize("text", ["0.0.0", "1.2.3", "2.5.1", "10.20.30", "1.0.0-rc.1", "1.2.3.4"])
def test_parse_roundtrips(text: str) -> None:
    result = parse_version(text)
    assert isinstance(result, Ok)
    assert str(result.value) == text


def test_parse_major_minor_patch() -> None:
    assert parse_version("2.5.1") == Ok(VersionSpec(major=2, minor=5, patch="1"))


def test_parse_keeps_suffixes_verbatim_in_patch() -> None:
    assert parse_version("1.4.0-beta.2+build.7") == Ok(VersionSpec(1, 4, "0-beta.2+build.7"))
    assert parse_version("1.2.3.4") == Ok(VersionSpec(1, 2, "3.4"))


def test_parse_two_fields_has_no_patch() -> None:
    result = parse_version("3.1")
    assert result == Ok(VersionSpec(3, 1, None))
    assert isinstance(result, Ok)
    assert str(result.value) == "3.1"


@pytest.mark.parametrize(
    "text",
    [
        "5",
        "",
        "v1.2.3",
        "1.x.3",
        "-1.2.3",
        "+1.2.3",
        " 1.2.3",
        "01.2.3",
        "1.02.3",
        "1..3",
        "1.2.",
        "1\n.2.3",
    ],
)
def test_parse_rejects_invalid(text: str) -> None:
    result = parse_version(text)
    assert isinstance(result, Err)
    assert isinstance(result.error, VersionFormatInvalid)
    assert result.error.value == text


def test_single_field_reason_mentions_minor() -> None:
    result = parse_version("5")
    assert isinstance(result, Err)
    assert "MAJOR.MINOR" in result.error.reason


def test_version_spec_is_frozen() -> None:
    spec = VersionSpec(1, 2, "3")
    with pytest.raises(AttributeError):
        spec.major = 2  # type: ignore[misc]
