"""Filesystem helpers: atomic writes and restorable snapshots."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

__all__ = ["FileSnapshot", "atomic_write_text"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace.

    Raises:
        OSError: The directory is not writable or the replace failed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


@dataclass(frozen=True, slots=True)
class FileSnapshot:
    """Content of a set of files at one point in time.

    ``None`` content means the file did not exist; restoring removes it.
    """

    entries: tuple[tuple[Path, str | None], ...]

    @classmethod
    def capture(cls, paths: list[Path]) -> FileSnapshot:
        entries: list[tuple[Path, str | None]] = []
        for path in paths:
            try:
                entries.append((path, path.read_text(encoding="utf-8")))
            except FileNotFoundError:
                entries.append((path, None))
        return cls(entries=tuple(entries))

    def changed(self) -> list[Path]:
        """Paths whose current content differs from the snapshot."""
        out: list[Path] = []
        for path, content in self.entries:
            try:
                current: str | None = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                current = None
            if current != content:
                out.append(path)
        return out

    def restore(self) -> None:
        """Put every file back the way it was captured.

        Raises:
            OSError: A file could not be written or removed.
        """
        for path, content in self.entries:
            if content is None:
                path.unlink(missing_ok=True)
            else:
                atomic_write_text(path, content)
