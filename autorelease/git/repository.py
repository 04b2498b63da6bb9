"""Git repository abstraction for the release run.

All operations return Result types. The commit identity is passed per
command with ``git -c user.name=... -c user.email=...`` so a run never
touches global or repository git configuration.

Usage:
    repo = Repository(Path("."))
    match repo.head_sha():
        case Ok(sha):
            print(sha)
        case Err(e):
            print(f"{e.command}: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from autorelease.core.result import Err, Ok, Result
from autorelease.platform.process import ProcessError
from autorelease.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone", "ls-remote"})

__all__ = [
    "GitError",
    "GitIdentity",
    "GitStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message (stderr, or a fallback)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class GitIdentity:
    name: str
    email: str

    def config_args(self) -> list[str]:
        return ["-c", f"user.name={self.name}", "-c", f"user.email={self.email}"]


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry of ``git status --porcelain``.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path
    """

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"


@dataclass(frozen=True, slots=True)
class GitStatus:
    branch: str | None
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)


class Repository:
    """Git operations on the repository being released.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a git work tree (``.git`` dir or worktree file)."""
        return (self.path / ".git").exists()

    def status(self) -> Result[GitStatus, GitError]:
        """Branch and working tree state from ``git status --porcelain=v1 -b``."""
        result = self._run(["status", "--porcelain=v1", "-b"])
        if isinstance(result, Err):
            return Err(_git_error("status", result.error))
        return Ok(_parse_status(result.value))

    def head_sha(self) -> Result[str, GitError]:
        result = self._run(["rev-parse", "HEAD"])
        if isinstance(result, Err):
            return Err(_git_error("rev-parse HEAD", result.error))
        return Ok(result.value.strip())

    def fetch_tags(self, remote: str) -> Result[None, GitError]:
        result = self._run(["fetch", "--tags", "--prune-tags", remote])
        if isinstance(result, Err):
            return Err(_git_error(f"fetch --tags {remote}", result.error))
        return Ok(None)

    def tag_exists(self, tag: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"refs/tags/{tag}"])
        return isinstance(result, Ok)

    def remote_tag_exists(self, remote: str, tag: str) -> Result[bool, GitError]:
        result = self._run(["ls-remote", "--tags", remote, f"refs/tags/{tag}"])
        if isinstance(result, Err):
            return Err(_git_error(f"ls-remote {remote}", result.error))
        return Ok(bool(result.value.strip()))

    def tracked(self, paths: list[Path]) -> Result[list[Path], GitError]:
        """The subset of ``paths`` that git tracks; ignored and untracked files drop out."""
        rels = [self._rel(p) for p in paths]
        result = self._run(["ls-files", "--", *rels])
        if isinstance(result, Err):
            return Err(_git_error("ls-files", result.error))
        listed = {line.strip() for line in result.value.splitlines() if line.strip()}
        return Ok([p for p, rel in zip(paths, rels, strict=True) if rel in listed])

    def commit(
        self,
        *,
        paths: list[Path],
        message: str,
        identity: GitIdentity,
    ) -> Result[str, GitError]:
        """Stage ``paths`` and commit them. Returns the new commit sha."""
        rels = [self._rel(p) for p in paths]
        add = self._run(["add", "--", *rels])
        if isinstance(add, Err):
            return Err(_git_error("add", add.error))

        commit = self._run([*identity.config_args(), "commit", "-m", message, "--", *rels])
        if isinstance(commit, Err):
            return Err(_git_error("commit", commit.error))
        return self.head_sha()

    def create_tag(self, *, tag: str, message: str, identity: GitIdentity) -> Result[None, GitError]:
        """Create an annotated tag on HEAD."""
        result = self._run([*identity.config_args(), "tag", "-a", tag, "-m", message])
        if isinstance(result, Err):
            return Err(_git_error(f"tag {tag}", result.error))
        return Ok(None)

    def reset_hard(self, sha: str) -> Result[None, GitError]:
        result = self._run(["reset", "--hard", sha])
        if isinstance(result, Err):
            return Err(_git_error(f"reset --hard {sha[:8]}", result.error))
        return Ok(None)

    def push(self, *, remote: str, branch: str, tag: str) -> Result[None, GitError]:
        """Push HEAD to ``branch`` and ``tag`` in one atomic update.

        Either both refs land on the remote or neither does.
        """
        result = self._run(
            [
                "push",
                "--atomic",
                remote,
                f"HEAD:refs/heads/{branch}",
                f"refs/tags/{tag}",
            ]
        )
        if isinstance(result, Err):
            return Err(_git_error(f"push {remote}", result.error))
        return Ok(None)

    def _rel(self, path: Path) -> str:
        rel = path.relative_to(self.path) if path.is_absolute() else path
        return rel.as_posix()

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = next((a for a in args if not a.startswith("-") and "=" not in a), "")
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)


def _git_error(command: str, error: ProcessError) -> GitError:
    message = error.stderr.strip() or error.stdout.strip() or f"git {command} failed"
    return GitError(command=command, message=message, returncode=error.returncode)


def _parse_status(output: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 -b`` output."""
    lines = [ln for ln in output.splitlines() if ln.strip()]
    if not lines:
        return GitStatus(branch=None)

    branch: str | None = None
    first = lines[0]
    if first.startswith("##"):
        lines = lines[1:]
        s = first[2:].strip().split(" [", 1)[0]
        s = s.split("...", 1)[0].strip()
        # "No commits yet on main" / "HEAD (no branch)"
        if s.startswith("No commits yet on "):
            s = s.removeprefix("No commits yet on ")
        branch = None if s.startswith("HEAD") else s

    entries: list[StatusEntry] = []
    for line in lines:
        if len(line) < 4:
            continue
        entries.append(StatusEntry(xy=line[:2], path=line[3:]))

    return GitStatus(branch=branch, entries=tuple(entries))
