"""Process execution and filesystem helpers."""

from .files import atomic_write_text
from .process import (
    CommandRunner,
    DryRunRunner,
    ProcessError,
    SubprocessRunner,
    run,
)

__all__ = [
    "atomic_write_text",
    "CommandRunner",
    "DryRunRunner",
    "ProcessError",
    "SubprocessRunner",
    "run",
]
