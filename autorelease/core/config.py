"""Typed configuration for release runs.

The defaults reproduce the original CI workflow for a Cargo crate: release
from ``master``, push to ``origin``, tag as ``vX.Y.Z``, build and test with
verbose cargo, authenticate with the ``CRATES_IO_TOKEN`` secret.

Everything a run needs (identity, tools, commands, registry) is carried here
and handed to the orchestrator explicitly; nothing is read from or written to
global git or cargo configuration.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_argv_list,
    get_bool,
    get_number,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "CONFIG_FILENAME",
    "CommandsConfig",
    "Config",
    "ConfigError",
    "IdentityConfig",
    "LockConfig",
    "RegistryConfig",
    "ReleaseConfig",
    "TimeoutsConfig",
    "ToolsConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "autorelease.toml"

DEFAULT_BRANCH = "master"
DEFAULT_REMOTE = "origin"
DEFAULT_TAG_PREFIX = "v"
DEFAULT_MANIFEST = "Cargo.toml"
# Inside the git dir: never tracked, never packaged by `cargo publish`.
DEFAULT_STATE_DIR = ".git/autorelease"

DEFAULT_IDENTITY_NAME = "github-actions[bot]"
DEFAULT_IDENTITY_EMAIL = "41898282+github-actions[bot]@users.noreply.github.com"

DEFAULT_CREDENTIAL_ENV = "CRATES_IO_TOKEN"
DEFAULT_INDEX_URL = "https://index.crates.io"

DEFAULT_STAGE_TIMEOUT_SECONDS = 30 * 60
DEFAULT_LOCK_MAX_AGE_SECONDS = 2 * 60 * 60


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    branch: str = DEFAULT_BRANCH
    remote: str = DEFAULT_REMOTE
    tag_prefix: str = DEFAULT_TAG_PREFIX
    manifest: str = DEFAULT_MANIFEST
    state_dir: str = DEFAULT_STATE_DIR


@dataclass(frozen=True, slots=True)
class IdentityConfig:
    """Author/committer identity for the release commit and tag."""

    name: str = DEFAULT_IDENTITY_NAME
    email: str = DEFAULT_IDENTITY_EMAIL


@dataclass(frozen=True, slots=True)
class ToolsConfig:
    required: tuple[str, ...] = ("cargo", "git")
    install: tuple[tuple[str, ...], ...] = ()


@dataclass(frozen=True, slots=True)
class CommandsConfig:
    build: tuple[str, ...] = ("cargo", "build", "--verbose")
    test: tuple[str, ...] = ("cargo", "test", "--verbose")
    publish: tuple[str, ...] = ("cargo", "publish")


@dataclass(frozen=True, slots=True)
class RegistryConfig:
    credential_env: str = DEFAULT_CREDENTIAL_ENV
    index_url: str = DEFAULT_INDEX_URL
    check_index: bool = True


@dataclass(frozen=True, slots=True)
class TimeoutsConfig:
    stage_seconds: float = DEFAULT_STAGE_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class LockConfig:
    max_age_seconds: float = DEFAULT_LOCK_MAX_AGE_SECONDS


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)
    lock: LockConfig = field(default_factory=LockConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: A present key has the wrong type or an empty value.
        """
        release: StrDict = get_table(data, "release") or {}
        identity: StrDict = get_table(data, "identity") or {}
        tools: StrDict = get_table(data, "tools") or {}
        commands: StrDict = get_table(data, "commands") or {}
        registry: StrDict = get_table(data, "registry") or {}
        timeouts: StrDict = get_table(data, "timeouts") or {}
        lock: StrDict = get_table(data, "lock") or {}

        defaults = cls()
        return cls(
            release=ReleaseConfig(
                branch=_str(release, "branch", defaults.release.branch),
                remote=_str(release, "remote", defaults.release.remote),
                tag_prefix=_prefix(release, defaults.release.tag_prefix),
                manifest=_str(release, "manifest", defaults.release.manifest),
                state_dir=_str(release, "state_dir", defaults.release.state_dir),
            ),
            identity=IdentityConfig(
                name=_str(identity, "name", defaults.identity.name),
                email=_str(identity, "email", defaults.identity.email),
            ),
            tools=ToolsConfig(
                required=_str_list(tools, "required", defaults.tools.required),
                install=_argv_list(tools, "install", defaults.tools.install),
            ),
            commands=CommandsConfig(
                build=_argv(commands, "build", defaults.commands.build),
                test=_argv(commands, "test", defaults.commands.test),
                publish=_argv(commands, "publish", defaults.commands.publish),
            ),
            registry=RegistryConfig(
                credential_env=_str(
                    registry, "credential_env", defaults.registry.credential_env
                ),
                index_url=_str(registry, "index_url", defaults.registry.index_url).rstrip("/"),
                check_index=_bool(registry, "check_index", defaults.registry.check_index),
            ),
            timeouts=TimeoutsConfig(
                stage_seconds=_positive(timeouts, "stage_seconds", defaults.timeouts.stage_seconds),
            ),
            lock=LockConfig(
                max_age_seconds=_positive(lock, "max_age_seconds", defaults.lock.max_age_seconds),
            ),
        )


def _str(table: StrDict, key: str, default: str) -> str:
    if key not in table:
        return default
    value = get_str(table, key)
    if value is None:
        raise ValueError(f"'{key}' must be a non-empty string")
    return value


def _prefix(table: StrDict, default: str) -> str:
    # An empty tag prefix is legitimate (tags like "1.2.3").
    if "tag_prefix" not in table:
        return default
    value = table["tag_prefix"]
    if not isinstance(value, str) or value != value.strip():
        raise ValueError("'tag_prefix' must be a string without surrounding whitespace")
    return value


def _bool(table: StrDict, key: str, default: bool) -> bool:
    if key not in table:
        return default
    value = get_bool(table, key)
    if value is None:
        raise ValueError(f"'{key}' must be a boolean")
    return value


def _positive(table: StrDict, key: str, default: float) -> float:
    if key not in table:
        return default
    value = get_number(table, key)
    if value is None:
        raise ValueError(f"'{key}' must be a number")
    if value <= 0:
        raise ValueError(f"'{key}' must be positive")
    return value


def _str_list(table: StrDict, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if key not in table:
        return default
    value = get_str_list(table, key)
    if value is None:
        raise ValueError(f"'{key}' must be a list of non-empty strings")
    return value


def _argv(table: StrDict, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = _str_list(table, key, default)
    if not value:
        raise ValueError(f"'{key}' must not be empty")
    return value


def _argv_list(
    table: StrDict, key: str, default: tuple[tuple[str, ...], ...]
) -> tuple[tuple[str, ...], ...]:
    if key not in table:
        return default
    value = get_argv_list(table, key)
    if value is None:
        raise ValueError(f"'{key}' must be a list of command lines (lists of strings)")
    return value


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to autorelease.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config if the file exists, else defaults.

    Unlike a missing file, a present but broken file is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
