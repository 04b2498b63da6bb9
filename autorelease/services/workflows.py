"""Detection of duplicated CI workflow definitions.

A release workflow copied into a second location (a nested crate's
``.github/workflows``, a leftover after a rename) usually means two
pipelines racing to publish the same version. Identical files are grouped
by the SHA-256 of their normalised content.
"""

from __future__ import annotations

import hashlib
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path

from autorelease.core.result import Err, Ok, Result

_SKIP_DIRS = frozenset({".git", "target", "node_modules", ".venv", "venv", "__pycache__"})
_SUFFIXES = frozenset({".yml", ".yaml"})


@dataclass(frozen=True, slots=True)
class WorkflowError:
    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class DuplicateWorkflows:
    digest: str
    paths: tuple[Path, ...]


def normalise(text: str) -> str:
    """Ignore line endings, trailing whitespace and trailing blank lines."""
    lines = [ln.rstrip() for ln in text.replace("\r\n", "\n").split("\n")]
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines) + "\n"


def find_workflow_files(root: Path, extra_dirs: tuple[Path, ...] = ()) -> list[Path]:
    """Every workflow file under any ``.github/workflows`` below root, plus extra dirs."""
    dirs: set[Path] = set()
    for candidate in _walk_dirs(root):
        if candidate.name == "workflows" and candidate.parent.name == ".github":
            dirs.add(candidate)
    for extra in extra_dirs:
        resolved = extra if extra.is_absolute() else root / extra
        if resolved.is_dir():
            dirs.add(resolved)

    files: list[Path] = []
    for d in sorted(dirs):
        files.extend(sorted(p for p in d.iterdir() if p.is_file() and p.suffix in _SUFFIXES))
    return files


def find_duplicates(
    root: Path, extra_dirs: tuple[Path, ...] = ()
) -> Result[list[DuplicateWorkflows], WorkflowError]:
    groups: dict[str, list[Path]] = defaultdict(list)
    for path in find_workflow_files(root, extra_dirs):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return Err(WorkflowError(message=f"failed to read workflow: {e}", path=path))
        digest = hashlib.sha256(normalise(text).encode("utf-8")).hexdigest()
        groups[digest].append(path)

    duplicates = [
        DuplicateWorkflows(digest=digest, paths=tuple(paths))
        for digest, paths in sorted(groups.items(), key=lambda kv: str(kv[1][0]))
        if len(paths) > 1
    ]
    return Ok(duplicates)


def _walk_dirs(root: Path) -> list[Path]:
    out: list[Path] = []
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            children = sorted(p for p in current.iterdir() if p.is_dir())
        except OSError:
            continue
        for child in children:
            if child.name in _SKIP_DIRS:
                continue
            out.append(child)
            stack.append(child)
    return out
