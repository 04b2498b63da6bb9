"""Source control adapter for the release run, backed by ``git``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from autorelease.core.result import Err, Ok, Result
from autorelease.git.repository import GitError, GitIdentity, Repository
from autorelease.pipeline.errors import PipelineErrorKind, PipelineError
from autorelease.pipeline.ports import SourceSnapshot


def _error(kind: PipelineErrorKind, e: GitError, hint: str | None = None) -> PipelineError:
    return PipelineError(kind=kind, message=f"git {e.command} failed: {e.message}", hint=hint)


@dataclass(frozen=True, slots=True)
class GitSourceControl:
    repo: Repository

    @classmethod
    def at(cls, root: Path) -> GitSourceControl:
        return cls(repo=Repository(root))

    def checkout(self, *, remote: str, dry_run: bool) -> Result[SourceSnapshot, PipelineError]:
        """Verify a clean work tree and record HEAD.

        Outside a dry run, tags are fetched so the tag check sees the remote.
        """
        repo = self.repo
        if not repo.exists():
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message=f"not a git repository: {repo.path}",
                    hint="Run from a checkout of the repository being released.",
                )
            )

        status = repo.status()
        if isinstance(status, Err):
            return Err(_error("setup_failure", status.error))
        dirty = [e.path for e in status.value.entries if not e.is_untracked]
        if dirty:
            shown = ", ".join(dirty[:5]) + (" ..." if len(dirty) > 5 else "")
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message=f"working tree has uncommitted changes: {shown}",
                    hint="A release is cut from a clean checkout.",
                )
            )

        head = repo.head_sha()
        if isinstance(head, Err):
            return Err(_error("setup_failure", head.error))

        if not dry_run:
            fetched = repo.fetch_tags(remote)
            if isinstance(fetched, Err):
                return Err(_error("setup_failure", fetched.error, hint=f"Is '{remote}' reachable?"))

        return Ok(SourceSnapshot(head_sha=head.value, branch=status.value.branch))

    def tag_exists(self, *, remote: str, tag: str) -> Result[bool, PipelineError]:
        if self.repo.tag_exists(tag):
            return Ok(True)
        remote_tag = self.repo.remote_tag_exists(remote, tag)
        if isinstance(remote_tag, Err):
            return Err(_error("publish_failure", remote_tag.error, hint=f"Is '{remote}' reachable?"))
        return remote_tag

    def commit_release(
        self, *, paths: list[Path], message: str, identity: GitIdentity
    ) -> Result[str, PipelineError]:
        """Commit the tracked subset of ``paths``.

        A lockfile the crate ignores (or never added) is rewritten on disk
        but stays out of the release commit.
        """
        tracked = self.repo.tracked(paths)
        if isinstance(tracked, Err):
            return Err(_error("publish_failure", tracked.error))
        if not tracked.value:
            return Err(
                PipelineError(
                    kind="publish_failure",
                    message="none of the bumped files are tracked by git",
                    hint=", ".join(p.name for p in paths),
                )
            )

        committed = self.repo.commit(paths=tracked.value, message=message, identity=identity)
        if isinstance(committed, Err):
            return Err(_error("publish_failure", committed.error))
        return committed

    def rollback(self, snapshot: SourceSnapshot) -> Result[None, PipelineError]:
        reset = self.repo.reset_hard(snapshot.head_sha)
        if isinstance(reset, Err):
            return Err(_error("publish_failure", reset.error))
        return Ok(None)

    def push_release(
        self, *, remote: str, branch: str, tag: str, message: str, identity: GitIdentity
    ) -> Result[None, PipelineError]:
        """Tag HEAD (unless an earlier attempt already did) and push both refs."""
        repo = self.repo
        if not repo.tag_exists(tag):
            tagged = repo.create_tag(tag=tag, message=message, identity=identity)
            if isinstance(tagged, Err):
                return Err(_error("push_failure", tagged.error))

        pushed = repo.push(remote=remote, branch=branch, tag=tag)
        if isinstance(pushed, Err):
            return Err(
                _error(
                    "push_failure",
                    pushed.error,
                    hint="The version is published; run `autorelease push-pending` once fixed.",
                )
            )
        return Ok(None)
