"""Git operations used by the release run.

Usage:
    from autorelease.git import GitIdentity, Repository

    repo = Repository(Path("."))
    repo.commit(paths=[Path("Cargo.toml")], message="chore: release", identity=identity)
"""

from autorelease.git.repository import (
    GitError,
    GitIdentity,
    GitStatus,
    Repository,
    StatusEntry,
)

__all__ = [
    "GitError",
    "GitIdentity",
    "GitStatus",
    "Repository",
    "StatusEntry",
]
