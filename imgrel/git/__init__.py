"""Read-only git queries.

Usage:
    from imgrel.git import Repository

    repo = Repository(Path("."), runner)
    sha = repo.head_revision()
"""

from imgrel.git.repository import GitError, Repository

__all__ = ["GitError", "Repository"]
