"""Exit codes for the imgrel CLI.

Each fatal pipeline failure maps to one of these codes. The values are the
process exit status seen by CI and must remain stable:
- 0: Success
- 1: User error (manifest, version string, config file, bad arguments)
- 2: Environment error (no git metadata, executor missing)
- 3: Build error (compile or assemble stage failed)
- 4: Push error (tag or push against the registry failed)
- 5: I/O error (unreadable files)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    PUSH_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
