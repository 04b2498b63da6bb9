from __future__ import annotations

import json
from pathlib import Path

from autorelease.core.result import Err, Ok
from autorelease.pipeline.lock import BranchLock, lock_filename


class FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _lock(tmp_path: Path, clock: FakeClock, branch: str = "master") -> BranchLock:
    return BranchLock(lock_dir=tmp_path / "locks", branch=branch, max_age_seconds=100, clock=clock)


def test_lock_filename_is_sanitised() -> None:
    assert lock_filename("master") == "master.lock"
    assert lock_filename("release/1.x") == "release_1.x.lock"


def test_acquire_and_release(tmp_path: Path) -> None:
    lock = _lock(tmp_path, FakeClock(1000.0))

    assert isinstance(lock.acquire("run-1"), Ok)
    info = lock.read()
    assert info is not None
    assert info.run_id == "run-1"
    assert info.acquired_at == 1000.0

    assert isinstance(lock.release("run-1"), Ok)
    assert not lock.path.exists()


def test_second_acquisition_fails(tmp_path: Path) -> None:
    clock = FakeClock(1000.0)
    first = _lock(tmp_path, clock)
    second = _lock(tmp_path, clock)

    assert isinstance(first.acquire("run-1"), Ok)
    result = second.acquire("run-2")

    assert isinstance(result, Err)
    assert result.error.kind == "run_in_progress"
    assert "run-1" in (result.error.hint or "")


def test_other_branches_are_independent(tmp_path: Path) -> None:
    clock = FakeClock(1000.0)

    assert isinstance(_lock(tmp_path, clock, "master").acquire("run-1"), Ok)
    assert isinstance(_lock(tmp_path, clock, "main").acquire("run-2"), Ok)


def test_stale_lock_is_reclaimed(tmp_path: Path) -> None:
    clock = FakeClock(1000.0)
    lock = _lock(tmp_path, clock)
    assert isinstance(lock.acquire("run-1"), Ok)

    clock.now = 1000.0 + 101
    assert isinstance(lock.acquire("run-2"), Ok)

    info = lock.read()
    assert info is not None and info.run_id == "run-2"


def test_release_by_other_run_is_refused(tmp_path: Path) -> None:
    lock = _lock(tmp_path, FakeClock(1000.0))
    assert isinstance(lock.acquire("run-1"), Ok)

    result = lock.release("run-2")

    assert isinstance(result, Err)
    assert lock.path.exists()


def test_fresh_unreadable_lock_counts_as_held(tmp_path: Path) -> None:
    lock = BranchLock(lock_dir=tmp_path, branch="master", max_age_seconds=3600)
    lock.path.write_text("", encoding="utf-8")

    result = lock.acquire("run-1")

    assert isinstance(result, Err)
    assert result.error.kind == "run_in_progress"


def test_lock_payload_is_json(tmp_path: Path) -> None:
    lock = _lock(tmp_path, FakeClock(5.0))
    assert isinstance(lock.acquire("run-1"), Ok)

    assert json.loads(lock.path.read_text(encoding="utf-8")) == {"run_id": "run-1", "acquired_at": 5.0}


def test_stale_lock_reclaimed_by_one_contender_only(tmp_path: Path) -> None:
    clock = FakeClock(1000.0)
    host_a = _lock(tmp_path, clock)
    host_b = _lock(tmp_path, clock)
    assert isinstance(host_a.acquire("crashed-run"), Ok)
    clock.now = 1000.0 + 101

    # Both hosts read the same stale lock before either replaces it.
    seen_by_b = host_b.read()
    assert isinstance(host_a.acquire("run-a"), Ok)
    result = host_b.reclaim(seen_by_b, "run-b")

    assert isinstance(result, Err)
    assert result.error.kind == "run_in_progress"
    info = host_a.read()
    assert info is not None and info.run_id == "run-a"
    assert sorted(p.name for p in host_a.lock_dir.iterdir()) == ["master.lock"]


def test_reclaim_after_lock_vanished_is_refused(tmp_path: Path) -> None:
    clock = FakeClock(1000.0)
    lock = _lock(tmp_path, clock)
    assert isinstance(lock.acquire("crashed-run"), Ok)
    stale = lock.read()
    lock.path.unlink()

    result = lock.reclaim(stale, "run-b")

    assert isinstance(result, Err)
    assert result.error.kind == "run_in_progress"
    assert not lock.path.exists()


def test_reclaim_leaves_no_tombstone(tmp_path: Path) -> None:
    clock = FakeClock(1000.0)
    lock = _lock(tmp_path, clock)
    assert isinstance(lock.acquire("crashed-run"), Ok)
    clock.now = 5000.0

    assert isinstance(lock.acquire("run-2"), Ok)

    assert sorted(p.name for p in lock.lock_dir.iterdir()) == ["master.lock"]


def test_unusable_lock_dir_is_setup_failure(tmp_path: Path) -> None:
    # A git worktree has a .git file, not a directory.
    (tmp_path / ".git").write_text("gitdir: /elsewhere\n", encoding="utf-8")
    lock = BranchLock(
        lock_dir=tmp_path / ".git" / "autorelease" / "locks", branch="master", max_age_seconds=60
    )

    result = lock.acquire("run-1")

    assert isinstance(result, Err)
    assert result.error.kind == "setup_failure"
