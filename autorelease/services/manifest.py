"""Cargo manifest version access.

Reads ``[package]`` name/version from ``Cargo.toml`` and rewrites the
version in place (``Cargo.toml`` and the matching ``Cargo.lock`` entry),
leaving formatting and comments untouched.
"""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass
from pathlib import Path

from autorelease.core.result import Err, Ok, Result
from autorelease.core.structured import get_str, get_table
from autorelease.pipeline.errors import PipelineError
from autorelease.pipeline.semver import SemVer, parse_version
from autorelease.platform.files import atomic_write_text

_SECTION_RE = re.compile(r"(?m)^\s*\[")
_PACKAGE_HEADER_RE = re.compile(r"(?m)^\s*\[package\]\s*(#.*)?$")
_VERSION_LINE_RE = re.compile(r'(?m)^(\s*version\s*=\s*")([^"]+)(".*)$')


@dataclass(frozen=True, slots=True)
class CargoPackage:
    name: str
    version: SemVer


@dataclass(frozen=True, slots=True)
class CargoManifest:
    path: Path

    @property
    def lock_path(self) -> Path:
        return self.path.with_name("Cargo.lock")

    def tracked_files(self) -> list[Path]:
        """Files a version bump may modify."""
        return [self.path, self.lock_path]

    def read_package(self) -> Result[CargoPackage, PipelineError]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            return Err(_error(f"failed to read {self.path.name}: {e}", self.path))

        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            return Err(_error(f"invalid TOML in {self.path.name}: {e}", self.path))

        package = get_table(data, "package")
        if package is None:
            return Err(_error(f"missing [package] section in {self.path.name}", self.path))

        name = get_str(package, "name")
        if name is None:
            return Err(_error(f"missing package name in {self.path.name}", self.path))

        raw_version = package.get("version")
        if not isinstance(raw_version, str):
            return Err(
                _error(
                    f"package version in {self.path.name} must be a literal string",
                    "Inherited (workspace) versions are not supported.",
                )
            )

        version = parse_version(raw_version)
        if version is None:
            return Err(
                _error(
                    f"unsupported package version: {raw_version}",
                    "Expected MAJOR.MINOR.PATCH without pre-release or build metadata.",
                )
            )

        return Ok(CargoPackage(name=name, version=version))

    def write_version(self, *, package: CargoPackage, version: SemVer) -> Result[list[Path], PipelineError]:
        """Set the package version; returns the files actually changed."""
        changed: list[Path] = []

        manifest = _rewrite_manifest(self.path, str(version))
        if isinstance(manifest, Err):
            return manifest
        if manifest.value:
            changed.append(self.path)

        if self.lock_path.exists():
            lock = _rewrite_lock(self.lock_path, package.name, str(version))
            if isinstance(lock, Err):
                return lock
            if lock.value:
                changed.append(self.lock_path)

        return Ok(changed)


def _error(message: str, hint: object) -> PipelineError:
    return PipelineError(kind="publish_failure", message=message, hint=str(hint))


def _rewrite_manifest(path: Path, version: str) -> Result[bool, PipelineError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(_error(f"failed to read {path.name}: {e}", path))

    header = _PACKAGE_HEADER_RE.search(text)
    if header is None:
        return Err(_error(f"missing [package] section in {path.name}", path))

    body_start = header.end()
    next_section = _SECTION_RE.search(text, body_start)
    body_end = next_section.start() if next_section else len(text)

    m = _VERSION_LINE_RE.search(text, body_start, body_end)
    if m is None:
        return Err(_error(f"missing package version in {path.name}", path))
    if m.group(2) == version:
        return Ok(False)

    out = text[: m.start(2)] + version + text[m.end(2) :]
    try:
        atomic_write_text(path, out)
    except OSError as e:
        return Err(_error(f"failed to write {path.name}: {e}", path))
    return Ok(True)


def _rewrite_lock(path: Path, name: str, version: str) -> Result[bool, PipelineError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(_error(f"failed to read {path.name}: {e}", path))

    block = re.compile(
        r'(\[\[package\]\]\s*\nname\s*=\s*"' + re.escape(name) + r'"\s*\nversion\s*=\s*")([^"]+)(")'
    )
    m = block.search(text)
    if m is None:
        # A lockfile without our package (e.g. not yet generated for it) is left alone.
        return Ok(False)
    if m.group(2) == version:
        return Ok(False)

    out = text[: m.start(2)] + version + text[m.end(2) :]
    try:
        atomic_write_text(path, out)
    except OSError as e:
        return Err(_error(f"failed to write {path.name}: {e}", path))
    return Ok(True)
