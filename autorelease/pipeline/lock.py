"""Per-branch run lock.

At most one release run may be in flight for a given branch. The lock is
a file created with ``O_EXCL`` that records the owning run id and the
acquisition time; a lock older than ``max_age_seconds`` is considered
abandoned (the host killed the run) and may be reclaimed.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from autorelease.core.result import Err, Ok, Result
from autorelease.core.structured import as_str_dict, get_number, get_str
from autorelease.pipeline.errors import PipelineError

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def lock_filename(branch: str) -> str:
    return _UNSAFE.sub("_", branch) + ".lock"


@dataclass(frozen=True, slots=True)
class LockInfo:
    run_id: str
    acquired_at: float


@dataclass(frozen=True, slots=True)
class BranchLock:
    lock_dir: Path
    branch: str
    max_age_seconds: float
    clock: Callable[[], float] = time.time

    @property
    def path(self) -> Path:
        return self.lock_dir / lock_filename(self.branch)

    def acquire(self, run_id: str) -> Result[None, PipelineError]:
        try:
            self.lock_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message=f"cannot create lock directory: {e}",
                    hint=str(self.lock_dir),
                )
            )

        created = self._create(run_id)
        if isinstance(created, Err):
            return created
        if created.value:
            return Ok(None)

        holder = self.read()
        # A lock being written right now has no payload yet; age it by mtime.
        acquired_at = holder.acquired_at if holder is not None else self._mtime()
        if acquired_at is not None and self.clock() - acquired_at < self.max_age_seconds:
            return Err(self._held(holder))
        return self.reclaim(holder, run_id)

    def reclaim(self, stale: LockInfo | None, run_id: str) -> Result[None, PipelineError]:
        """Replace the lock judged stale from ``stale``.

        The lock file is first renamed aside, which only one contender can
        do. If the file moved is not the one judged stale, another run
        reclaimed it first: its lock is put back and the branch stays held.
        """
        tombstone = self.path.with_name(f"{self.path.name}.{uuid4().hex[:8]}.stale")
        try:
            os.rename(self.path, tombstone)
        except FileNotFoundError:
            return Err(self._lost_race())
        except OSError as e:
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message=f"cannot reclaim lock file: {e}",
                    hint=str(self.path),
                )
            )

        moved = _read_info(tombstone)
        if moved != stale:
            try:
                # link() never replaces a lock created in the meantime.
                with contextlib.suppress(FileExistsError):
                    os.link(tombstone, self.path)
            finally:
                tombstone.unlink(missing_ok=True)
            return Err(self._held(moved))
        tombstone.unlink(missing_ok=True)

        created = self._create(run_id)
        if isinstance(created, Err):
            return created
        if not created.value:
            return Err(self._lost_race())
        return Ok(None)

    def release(self, run_id: str) -> Result[None, PipelineError]:
        holder = self.read()
        if holder is None:
            self.path.unlink(missing_ok=True)
            return Ok(None)
        if holder.run_id != run_id:
            return Err(
                PipelineError(
                    kind="run_in_progress",
                    message=f"lock for '{self.branch}' is held by run {holder.run_id}",
                )
            )
        self.path.unlink(missing_ok=True)
        return Ok(None)

    def read(self) -> LockInfo | None:
        return _read_info(self.path)

    def _held(self, holder: LockInfo | None) -> PipelineError:
        owner = holder.run_id if holder is not None else "unknown"
        return PipelineError(
            kind="run_in_progress",
            message=f"a release run is already in progress for '{self.branch}'",
            hint=f"run {owner} holds {self.path}",
        )

    def _lost_race(self) -> PipelineError:
        return PipelineError(
            kind="run_in_progress",
            message=f"lost the race for the '{self.branch}' lock",
        )

    def _create(self, run_id: str) -> Result[bool, PipelineError]:
        payload = json.dumps({"run_id": run_id, "acquired_at": self.clock()})
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return Ok(False)
        except OSError as e:
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message=f"cannot create lock file: {e}",
                    hint=str(self.path),
                )
            )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        return Ok(True)

    def _mtime(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None


def _read_info(path: Path) -> LockInfo | None:
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    data = as_str_dict(obj)
    if data is None:
        return None
    run_id = get_str(data, "run_id")
    acquired_at = get_number(data, "acquired_at")
    if run_id is None or acquired_at is None:
        return None
    return LockInfo(run_id=run_id, acquired_at=acquired_at)
