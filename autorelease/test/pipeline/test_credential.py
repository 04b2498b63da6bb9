from __future__ import annotations

import pytest

from autorelease.pipeline.credential import Credential, credential_scope


def test_repr_and_str_never_reveal_secret() -> None:
    credential = Credential("cio-secret")

    assert "cio-secret" not in repr(credential)
    assert "cio-secret" not in str(credential)
    assert "cio-secret" not in f"{credential}"


def test_reveal_strips_whitespace() -> None:
    assert Credential("  token\n").reveal() == "token"


def test_reveal_after_discard_raises() -> None:
    credential = Credential("token")
    credential.discard()

    assert credential.is_discarded
    with pytest.raises(RuntimeError, match="scope closed"):
        credential.reveal()


def test_redact() -> None:
    credential = Credential("token123")

    assert credential.redact("auth token123 rejected") == "auth *** rejected"


def test_blank() -> None:
    assert Credential("  ").is_blank()
    assert not Credential("x").is_blank()


def test_from_env() -> None:
    assert Credential.from_env({}, "CRATES_IO_TOKEN") is None
    credential = Credential.from_env({"CRATES_IO_TOKEN": "abc"}, "CRATES_IO_TOKEN")
    assert credential is not None and credential.reveal() == "abc"


def test_scope_discards_on_exception() -> None:
    credential = Credential("token")

    with pytest.raises(ValueError):
        with credential_scope(credential):
            raise ValueError("boom")

    assert credential.is_discarded


def test_scope_accepts_missing_credential() -> None:
    with credential_scope(None) as held:
        assert held is None
