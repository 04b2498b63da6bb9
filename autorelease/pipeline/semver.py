from __future__ import annotations

import re
from dataclasses import dataclass


_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def to_tag(self, prefix: str = "v") -> str:
        return f"{prefix}{self}"

    def bump_patch(self) -> SemVer:
        # Releases only ever bump the patch component.
        return SemVer(self.major, self.minor, self.patch + 1)


def parse_version(text: str) -> SemVer | None:
    """Parse a plain ``MAJOR.MINOR.PATCH``; pre-release/build suffixes are rejected."""
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def parse_tag(tag: str, prefix: str = "v") -> SemVer | None:
    if not tag.startswith(prefix):
        return None
    return parse_version(tag[len(prefix) :])
