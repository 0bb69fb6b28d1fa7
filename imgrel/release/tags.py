"""Registry tag set computation.

A release publishes the image under its full version plus two floating
tags (``major`` and ``major.minor``) that move forward with every release.
The order of the returned tags is the push order.
"""

from __future__ import annotations

from dataclasses import dataclass

from imgrel.core.config import ImageConfig
from imgrel.release.version import VersionSpec

__all__ = ["ImageCoordinates", "ImageRef", "TagSet", "compute_tag_set"]


@dataclass(frozen=True, slots=True)
class ImageCoordinates:
    """Registry location of an image, without tag.

    Empty ``registry`` or ``repository`` segments are left out, which gives
    plain local names such as ``hello-kubernetes``.
    """

    registry: str
    repository: str
    image_name: str

    @classmethod
    def from_config(cls, image: ImageConfig) -> ImageCoordinates:
        return cls(registry=image.registry, repository=image.repository, image_name=image.name)

    @property
    def name(self) -> str:
        parts = [p.strip("/") for p in (self.registry, self.repository) if p.strip("/")]
        return "/".join([*parts, self.image_name])

    def ref(self, tag: str) -> ImageRef:
        return ImageRef(name=self.name, tag=tag)


@dataclass(frozen=True, slots=True)
class ImageRef:
    """Fully qualified image reference ``name:tag``."""

    name: str
    tag: str

    def __str__(self) -> str:
        return f"{self.name}:{self.tag}"


type TagSet = tuple[ImageRef, ...]


def tag_suffixes(version: VersionSpec) -> list[str]:
    """Tag suffixes in push order, without duplicates."""
    candidates = [str(version), str(version.major), version.major_minor]
    suffixes: list[str] = []
    for candidate in candidates:
        if candidate not in suffixes:
            suffixes.append(candidate)
    return suffixes


def compute_tag_set(version: VersionSpec, coordinates: ImageCoordinates) -> TagSet:
    """Full version first, then ``major``, then ``major.minor``."""
    return tuple(coordinates.ref(suffix) for suffix in tag_suffixes(version))
