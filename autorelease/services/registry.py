"""Package registry access (crates.io by default).

Authentication never writes a token to disk: instead of ``cargo login``
(which persists ``credentials.toml``) the session hands the token to the
single ``cargo publish`` subprocess through ``CARGO_REGISTRY_TOKEN``.
Published versions are read from the sparse index so a version that is
already on the registry is refused before any upload is attempted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from autorelease.core.result import Err, Ok, Result
from autorelease.core.structured import as_str_dict, get_str
from autorelease.output.console import ConsoleProtocol, Style
from autorelease.pipeline.credential import Credential
from autorelease.pipeline.errors import PipelineError
from autorelease.platform.process import run_captured
from autorelease.services.http import HttpClient

TOKEN_ENV = "CARGO_REGISTRY_TOKEN"

_ALREADY_PUBLISHED_MARKERS = ("already exists", "already uploaded")
_AUTH_MARKERS = ("401", "403", "unauthorized", "invalid token", "not authorized")


@dataclass(frozen=True, slots=True)
class RegistrySession:
    credential: Credential


def index_path(crate: str) -> str:
    """Relative sparse-index path of a crate (cargo's registry layout)."""
    name = crate.lower()
    match len(name):
        case 1:
            return f"1/{name}"
        case 2:
            return f"2/{name}"
        case 3:
            return f"3/{name[0]}/{name}"
        case _:
            return f"{name[0:2]}/{name[2:4]}/{name}"


def parse_index_versions(payload: str) -> frozenset[str]:
    """Versions listed in a sparse-index file (one JSON object per line)."""
    versions: set[str] = set()
    for line in payload.splitlines():
        if not line.strip():
            continue
        try:
            obj: object = json.loads(line)
        except json.JSONDecodeError:
            continue
        entry = as_str_dict(obj)
        if entry is None:
            continue
        vers = get_str(entry, "vers")
        if vers is not None:
            versions.add(vers)
    return frozenset(versions)


@dataclass(frozen=True, slots=True)
class CargoRegistry:
    credential_env: str
    index_url: str
    publish_command: tuple[str, ...]
    http: HttpClient
    check_index: bool = True
    timeout: float | None = None

    def authenticate(self, credential: Credential | None) -> Result[RegistrySession, PipelineError]:
        if credential is None or credential.is_discarded:
            return Err(
                PipelineError(
                    kind="auth_failure",
                    message="registry credential is missing",
                    hint=f"Set the {self.credential_env} secret for this pipeline.",
                )
            )
        if credential.is_blank():
            return Err(
                PipelineError(
                    kind="auth_failure",
                    message="registry credential is empty",
                    hint=f"Check the value of {self.credential_env}.",
                )
            )
        if any(ch.isspace() for ch in credential.reveal()):
            return Err(
                PipelineError(
                    kind="auth_failure",
                    message="registry credential is malformed",
                    hint=f"{self.credential_env} must be a single token without whitespace.",
                )
            )
        return Ok(RegistrySession(credential=credential))

    def is_published(self, *, crate: str, version: str) -> Result[bool, PipelineError]:
        if not self.check_index:
            return Ok(False)

        url = f"{self.index_url}/{index_path(crate)}"
        result = self.http.get_text(url)
        if isinstance(result, Err):
            e = result.error
            if e.is_not_found:
                # Crate never published.
                return Ok(False)
            return Err(
                PipelineError(
                    kind="publish_failure",
                    message="registry index unreachable",
                    hint=str(e),
                )
            )
        return Ok(version in parse_index_versions(result.value))

    def publish(
        self,
        session: RegistrySession,
        *,
        cwd: Path,
        console: ConsoleProtocol,
        dry_run: bool,
    ) -> Result[str, PipelineError]:
        argv = [*self.publish_command]
        if dry_run:
            argv.append("--dry-run")
        console.print(" ".join(argv), Style.DIM)

        credential = session.credential
        result = run_captured(
            argv,
            cwd,
            extra_env={TOKEN_ENV: credential.reveal()},
            timeout=self.timeout,
        )
        if isinstance(result, Err):
            e = result.error
            output = credential.redact(e.output)
            detail = e.detail()
            hint = credential.redact(detail) if detail else None
            lowered = output.lower()
            if any(marker in lowered for marker in _ALREADY_PUBLISHED_MARKERS):
                return Err(
                    PipelineError(
                        kind="version_already_published",
                        message="registry already has this version",
                        hint="Versions are immutable; a new release needs a new version.",
                        output=output,
                    )
                )
            if any(marker in lowered for marker in _AUTH_MARKERS):
                return Err(
                    PipelineError(
                        kind="auth_failure",
                        message="registry rejected the credential",
                        hint=f"Check or rotate {self.credential_env}.",
                        output=output,
                    )
                )
            return Err(
                PipelineError(
                    kind="publish_failure",
                    message=f"publish failed: {e}",
                    hint=hint,
                    output=output,
                )
            )
        return Ok(credential.redact(result.value.output))
