from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import pytest

import autorelease.services.registry as registry_mod
from autorelease.core.result import Err, Ok, Result
from autorelease.output.console import MockConsole
from autorelease.pipeline.credential import Credential
from autorelease.platform.process import CompletedCommand, ProcessError
from autorelease.services.http import HttpError
from autorelease.services.registry import (
    TOKEN_ENV,
    CargoRegistry,
    RegistrySession,
    index_path,
    parse_index_versions,
)


@dataclass
class FakeHttp:
    responses: dict[str, Result[str, HttpError]] = field(default_factory=dict)
    urls: list[str] = field(default_factory=list)

    def get_text(self, url: str) -> Result[str, HttpError]:
        self.urls.append(url)
        return self.responses.get(url, Err(HttpError(url=url, status=404, message="Not Found")))


def _registry(http: FakeHttp | None = None, *, check_index: bool = True) -> CargoRegistry:
    return CargoRegistry(
        credential_env="CRATES_IO_TOKEN",
        index_url="https://index.crates.io",
        publish_command=("cargo", "publish"),
        http=http or FakeHttp(),
        check_index=check_index,
    )


@pytest.mark.parametrize(
    ("crate", "path"),
    [
        ("a", "1/a"),
        ("ab", "2/ab"),
        ("abc", "3/a/abc"),
        ("serde", "se/rd/serde"),
        ("Demo-Crate", "de/mo/demo-crate"),
    ],
)
def test_index_path(crate: str, path: str) -> None:
    assert index_path(crate) == path


def test_parse_index_versions_skips_garbage() -> None:
    payload = '{"name":"demo","vers":"1.2.3"}\n\nnot json\n{"name":"demo","vers":"1.2.4"}\n[]\n'

    assert parse_index_versions(payload) == frozenset({"1.2.3", "1.2.4"})


class TestAuthenticate:
    def test_missing(self) -> None:
        result = _registry().authenticate(None)

        assert isinstance(result, Err)
        assert result.error.kind == "auth_failure"
        assert "CRATES_IO_TOKEN" in (result.error.hint or "")

    def test_blank(self) -> None:
        result = _registry().authenticate(Credential("   "))

        assert isinstance(result, Err)
        assert result.error.message == "registry credential is empty"

    def test_malformed(self) -> None:
        result = _registry().authenticate(Credential("two words"))

        assert isinstance(result, Err)
        assert result.error.kind == "auth_failure"

    def test_discarded(self) -> None:
        credential = Credential("token")
        credential.discard()

        assert isinstance(_registry().authenticate(credential), Err)

    def test_valid(self) -> None:
        credential = Credential("token")

        assert _registry().authenticate(credential) == Ok(RegistrySession(credential=credential))


class TestIsPublished:
    def test_version_listed(self) -> None:
        url = "https://index.crates.io/de/mo/demo"
        http = FakeHttp(responses={url: Ok('{"vers":"1.2.3"}\n{"vers":"1.2.4"}\n')})

        assert _registry(http).is_published(crate="demo", version="1.2.4") == Ok(True)
        assert http.urls == [url]

    def test_version_not_listed(self) -> None:
        url = "https://index.crates.io/de/mo/demo"
        http = FakeHttp(responses={url: Ok('{"vers":"1.2.3"}\n')})

        assert _registry(http).is_published(crate="demo", version="1.2.4") == Ok(False)

    def test_unknown_crate(self) -> None:
        assert _registry().is_published(crate="demo", version="0.1.0") == Ok(False)

    def test_unreachable_index_is_publish_failure(self) -> None:
        url = "https://index.crates.io/de/mo/demo"
        http = FakeHttp(responses={url: Err(HttpError(url=url, status=0, message="timed out"))})

        result = _registry(http).is_published(crate="demo", version="1.2.4")

        assert isinstance(result, Err)
        assert result.error.kind == "publish_failure"
        assert result.error.message == "registry index unreachable"

    def test_check_disabled(self) -> None:
        http = FakeHttp()

        assert _registry(http, check_index=False).is_published(crate="demo", version="1") == Ok(False)
        assert http.urls == []


@dataclass
class Recorded:
    argv: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


def _patch_run(
    monkeypatch: pytest.MonkeyPatch,
    result: Result[CompletedCommand, ProcessError],
) -> Recorded:
    recorded = Recorded()

    def fake_run(
        cmd: list[str],
        cwd: Path,
        *,
        extra_env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Result[CompletedCommand, ProcessError]:
        recorded.argv = list(cmd)
        recorded.env = dict(extra_env or {})
        return result

    monkeypatch.setattr(registry_mod, "run_captured", fake_run)
    return recorded


def _failure(stderr: str) -> Err[ProcessError]:
    return Err(ProcessError(command=("cargo", "publish"), returncode=101, stdout="", stderr=stderr))


class TestPublish:
    def test_token_only_in_subprocess_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        done = CompletedCommand(command=("cargo", "publish"), stdout="", stderr="Uploading demo")
        recorded = _patch_run(monkeypatch, Ok(done))
        console = MockConsole()
        session = RegistrySession(credential=Credential("cio-token"))

        result = _registry().publish(session, cwd=tmp_path, console=console, dry_run=False)

        assert result == Ok("Uploading demo")
        assert recorded.argv == ["cargo", "publish"]
        assert recorded.env == {TOKEN_ENV: "cio-token"}
        assert "cio-token" not in console.text

    def test_dry_run_flag(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        done = CompletedCommand(command=("cargo", "publish"), stdout="", stderr="")
        recorded = _patch_run(monkeypatch, Ok(done))
        session = RegistrySession(credential=Credential("t"))

        _registry().publish(session, cwd=tmp_path, console=MockConsole(), dry_run=True)

        assert recorded.argv == ["cargo", "publish", "--dry-run"]

    def test_already_uploaded(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _patch_run(monkeypatch, _failure("error: crate version `1.2.4` is already uploaded"))
        session = RegistrySession(credential=Credential("t"))

        result = _registry().publish(session, cwd=tmp_path, console=MockConsole(), dry_run=False)

        assert isinstance(result, Err)
        assert result.error.kind == "version_already_published"

    def test_rejected_token(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _patch_run(monkeypatch, _failure("error: 403 Forbidden: token cio-token is invalid"))
        session = RegistrySession(credential=Credential("cio-token"))

        result = _registry().publish(session, cwd=tmp_path, console=MockConsole(), dry_run=False)

        assert isinstance(result, Err)
        assert result.error.kind == "auth_failure"
        assert "cio-token" not in result.error.output

    def test_other_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _patch_run(monkeypatch, _failure("error: failed to verify package tarball"))
        session = RegistrySession(credential=Credential("t"))

        result = _registry().publish(session, cwd=tmp_path, console=MockConsole(), dry_run=False)

        assert isinstance(result, Err)
        assert result.error.kind == "publish_failure"
        assert result.error.hint == "error: failed to verify package tarball"
