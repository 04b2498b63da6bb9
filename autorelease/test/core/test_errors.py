from __future__ import annotations

from autorelease.core.errors import ErrorCode


def test_exit_codes_are_stable() -> None:
    assert {code.name: int(code) for code in ErrorCode} == {
        "OK": 0,
        "USER_ERROR": 1,
        "SETUP_ERROR": 2,
        "VERIFY_ERROR": 3,
        "AUTH_ERROR": 4,
        "PUBLISH_ERROR": 5,
        "PUBLISHED_NOT_PUSHED": 6,
        "RUN_IN_PROGRESS": 7,
    }


def test_str() -> None:
    assert str(ErrorCode.PUBLISHED_NOT_PUSHED) == "published not pushed"


def test_success_and_error() -> None:
    assert ErrorCode.OK.is_success
    assert not ErrorCode.OK.is_error
    assert all(code.is_error for code in ErrorCode if code is not ErrorCode.OK)
