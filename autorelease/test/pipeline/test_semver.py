from __future__ import annotations

import pytest

from autorelease.pipeline.semver import SemVer, parse_tag, parse_version


def test_parse_version_plain() -> None:
    assert parse_version("1.2.3") == SemVer(1, 2, 3)
    assert parse_version(" 0.10.0\n") == SemVer(0, 10, 0)


@pytest.mark.parametrize("text", ["1.2", "1.2.3.4", "01.2.3", "1.2.3-rc.1", "1.2.3+build", "v1.2.3", ""])
def test_parse_version_rejects_non_plain(text: str) -> None:
    assert parse_version(text) is None


def test_bump_patch_only_touches_patch() -> None:
    assert SemVer(1, 2, 3).bump_patch() == SemVer(1, 2, 4)
    assert SemVer(0, 9, 99).bump_patch() == SemVer(0, 9, 100)


def test_to_tag_prefix() -> None:
    assert SemVer(1, 2, 4).to_tag() == "v1.2.4"
    assert SemVer(1, 2, 4).to_tag("") == "1.2.4"


def test_parse_tag() -> None:
    assert parse_tag("v1.2.4") == SemVer(1, 2, 4)
    assert parse_tag("release-1.0.0", "release-") == SemVer(1, 0, 0)
    assert parse_tag("1.2.4") is None


def test_ordering() -> None:
    assert SemVer(1, 2, 3) < SemVer(1, 2, 4) < SemVer(1, 3, 0) < SemVer(2, 0, 0)
