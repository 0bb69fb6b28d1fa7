"""Result type for the release pipeline.

Every pipeline stage returns either ``Ok(value)`` or ``Err(error)``. Stages
are chained with ``flat_map`` (or an explicit ``isinstance`` check) so the
first failure short-circuits the rest of the run without raising.

Usage:
    match parse_version("1.4.2"):
        case Ok(spec):
            print(spec.major)
        case Err(error):
            print(error.reason)

    version = read_manifest_version(path).flat_map(parse_version)
    revision = repo.head_revision().map_err(lambda e: e.message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeGuard, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful stage outcome.

    Attributes:
        value: What the stage produced.
    """

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the value with a function that cannot fail."""
        return Ok(f(self.value))

    def map_err(self, f: Callable[[E], F]) -> Ok[T]:
        return self

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Feed the value into the next stage.

        Args:
            f: Next stage, returning its own Result.

        Returns:
            Whatever the next stage returned.
        """
        return f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed stage outcome.

    Attributes:
        error: The typed failure (see ``imgrel.release.errors``).
    """

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> None:
        """Raise with the contained error.

        Raises:
            ValueError: Always.
        """
        raise ValueError(f"called unwrap on Err: {self.error}")

    def map(self, f: Callable[[T], U]) -> Err[E]:
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        """Convert the error, e.g. to attach the stage it came from."""
        return Err(f(self.error))

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Err[E]:
        """Skip the next stage; the failure propagates unchanged."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]


def is_ok[T, E](result: Result[T, E]) -> TypeGuard[Ok[T]]:
    """Narrow a Result to Ok for static type checkers."""
    return isinstance(result, Ok)


def is_err[T, E](result: Result[T, E]) -> TypeGuard[Err[E]]:
    """Narrow a Result to Err for static type checkers."""
    return isinstance(result, Err)
