"""Collaborator interfaces the orchestrator depends on.

Concrete adapters live in ``autorelease.services``; tests substitute
in-memory fakes. Every method reports failure as ``Err(PipelineError)``
with the kind appropriate to the stage that calls it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from autorelease.core.result import Result
from autorelease.pipeline.credential import Credential
from autorelease.pipeline.errors import PipelineError
from autorelease.pipeline.semver import SemVer

if TYPE_CHECKING:
    from autorelease.git.repository import GitIdentity
    from autorelease.output.console import ConsoleProtocol
    from autorelease.services.manifest import CargoPackage
    from autorelease.services.registry import RegistrySession


@dataclass(frozen=True, slots=True)
class SourceSnapshot:
    head_sha: str
    branch: str | None


class SourceControl(Protocol):
    def checkout(self, *, remote: str, dry_run: bool) -> Result[SourceSnapshot, PipelineError]: ...

    def tag_exists(self, *, remote: str, tag: str) -> Result[bool, PipelineError]: ...

    def commit_release(
        self, *, paths: list[Path], message: str, identity: GitIdentity
    ) -> Result[str, PipelineError]: ...

    def rollback(self, snapshot: SourceSnapshot) -> Result[None, PipelineError]: ...

    def push_release(
        self, *, remote: str, branch: str, tag: str, message: str, identity: GitIdentity
    ) -> Result[None, PipelineError]: ...


class ToolSetup(Protocol):
    def acquire(self, *, cwd: Path, console: ConsoleProtocol) -> Result[str, PipelineError]: ...


class BuildSystem(Protocol):
    def build(self, *, cwd: Path, console: ConsoleProtocol) -> Result[str, PipelineError]: ...

    def test(self, *, cwd: Path, console: ConsoleProtocol) -> Result[str, PipelineError]: ...


class Manifest(Protocol):
    def tracked_files(self) -> list[Path]: ...

    def read_package(self) -> Result[CargoPackage, PipelineError]: ...

    def write_version(
        self, *, package: CargoPackage, version: SemVer
    ) -> Result[list[Path], PipelineError]: ...


class Registry(Protocol):
    def authenticate(
        self, credential: Credential | None
    ) -> Result[RegistrySession, PipelineError]: ...

    def is_published(self, *, crate: str, version: str) -> Result[bool, PipelineError]: ...

    def publish(
        self,
        session: RegistrySession,
        *,
        cwd: Path,
        console: ConsoleProtocol,
        dry_run: bool,
    ) -> Result[str, PipelineError]: ...


@dataclass(frozen=True, slots=True)
class Collaborators:
    """Everything a run touches outside the process, passed in explicitly."""

    root: Path
    source: SourceControl
    tools: ToolSetup
    build: BuildSystem
    manifest: Manifest
    registry: Registry
