"""Release domain: manifest, version, tags, provenance, build, push."""

from imgrel.release.errors import ReleaseError
from imgrel.release.tags import ImageCoordinates, ImageRef, TagSet, compute_tag_set
from imgrel.release.version import VersionSpec, parse_version

__all__ = [
    "ImageCoordinates",
    "ImageRef",
    "ReleaseError",
    "TagSet",
    "VersionSpec",
    "compute_tag_set",
    "parse_version",
]
