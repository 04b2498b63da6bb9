"""Persisted summary of the last release run.

``last-run.json`` in the state directory is what makes a
``published_but_not_pushed`` outcome recoverable: it names the version
already on the registry and the local release commit still to be pushed,
so a follow-up run refuses to publish that version again and
``push-pending`` can finish the job.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from autorelease.core.result import Err, Ok, Result
from autorelease.core.structured import as_str_dict, get_int, get_str
from autorelease.pipeline.errors import PipelineError
from autorelease.pipeline.model import PipelineRun, RunStatus
from autorelease.pipeline.semver import SemVer, parse_version
from autorelease.platform.files import atomic_write_text

RECORD_SCHEMA = 1
LAST_RUN_FILENAME = "last-run.json"
RUNS_DIRNAME = "runs"

_STATUSES: frozenset[str] = frozenset({"succeeded", "failed", "published_but_not_pushed"})


@dataclass(frozen=True, slots=True)
class RunRecord:
    run_id: str
    status: RunStatus
    outcome: str
    trigger: str
    branch: str | None
    dry_run: bool
    crate: str | None
    previous_version: str | None
    version: str | None
    tag: str | None
    release_commit: str | None
    failed_stage: str | None
    error_kind: str | None
    error_message: str | None
    finished_at: str

    @property
    def is_pending_push(self) -> bool:
        return self.status == "published_but_not_pushed"

    @property
    def semver(self) -> SemVer | None:
        return parse_version(self.version) if self.version else None

    @classmethod
    def from_run(cls, run: PipelineRun) -> RunRecord:
        if not run.is_terminal:
            raise ValueError(f"run {run.run_id} is still running")
        return cls(
            run_id=run.run_id,
            status=run.status,
            outcome=run.outcome(),
            trigger=run.trigger.kind,
            branch=run.branch,
            dry_run=run.dry_run,
            crate=run.crate,
            previous_version=str(run.previous_version) if run.previous_version else None,
            version=str(run.version) if run.version else None,
            tag=run.tag,
            release_commit=run.release_commit,
            failed_stage=run.failed_stage.value if run.failed_stage else None,
            error_kind=run.error.kind if run.error else None,
            error_message=run.error.message if run.error else None,
            finished_at=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "schema": RECORD_SCHEMA,
            "run_id": self.run_id,
            "status": self.status,
            "outcome": self.outcome,
            "trigger": self.trigger,
            "branch": self.branch,
            "dry_run": self.dry_run,
            "crate": self.crate,
            "previous_version": self.previous_version,
            "version": self.version,
            "tag": self.tag,
            "release_commit": self.release_commit,
            "failed_stage": self.failed_stage,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
            "finished_at": self.finished_at,
        }


@dataclass(frozen=True, slots=True)
class RunRecordStore:
    state_dir: Path

    @property
    def last_run_path(self) -> Path:
        return self.state_dir / LAST_RUN_FILENAME

    def save(self, record: RunRecord) -> Result[None, PipelineError]:
        text = json.dumps(record.to_dict(), indent=2) + "\n"
        try:
            atomic_write_text(self.state_dir / RUNS_DIRNAME / f"{record.run_id}.json", text)
            # A dry run never changes what is pending.
            if not record.dry_run:
                atomic_write_text(self.last_run_path, text)
        except OSError as e:
            return Err(
                PipelineError(
                    kind="setup_failure",
                    message=f"failed to write run record: {e}",
                    hint=str(self.state_dir),
                )
            )
        return Ok(None)

    def load_last(self) -> Result[RunRecord | None, PipelineError]:
        path = self.last_run_path
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Ok(None)
        except OSError as e:
            return Err(_invalid(f"failed to read run record: {e}", path))

        try:
            obj: object = json.loads(text)
        except json.JSONDecodeError as e:
            return Err(_invalid(f"invalid JSON in run record: {e}", path))

        data = as_str_dict(obj)
        if data is None:
            return Err(_invalid("run record root must be an object", path))
        if get_int(data, "schema") != RECORD_SCHEMA:
            return Err(_invalid(f"unsupported run record schema: {data.get('schema')}", path))

        run_id = get_str(data, "run_id")
        status = get_str(data, "status")
        if run_id is None or status not in _STATUSES:
            return Err(_invalid("run record is missing run_id or has an unknown status", path))

        dry_run = data.get("dry_run")
        return Ok(
            RunRecord(
                run_id=run_id,
                status=status,  # type: ignore[arg-type]
                outcome=get_str(data, "outcome") or "",
                trigger=get_str(data, "trigger") or "manual",
                branch=get_str(data, "branch"),
                dry_run=dry_run is True,
                crate=get_str(data, "crate"),
                previous_version=get_str(data, "previous_version"),
                version=get_str(data, "version"),
                tag=get_str(data, "tag"),
                release_commit=get_str(data, "release_commit"),
                failed_stage=get_str(data, "failed_stage"),
                error_kind=get_str(data, "error_kind"),
                error_message=get_str(data, "error_message"),
                finished_at=get_str(data, "finished_at") or "",
            )
        )


def _invalid(message: str, path: Path) -> PipelineError:
    return PipelineError(kind="invalid_config", message=message, hint=str(path))
