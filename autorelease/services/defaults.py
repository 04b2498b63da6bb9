"""Production wiring of the orchestrator's collaborators from configuration."""

from __future__ import annotations

from pathlib import Path

from autorelease.core.config import Config
from autorelease.pipeline.ports import Collaborators
from autorelease.services.build import CommandBuildSystem
from autorelease.services.http import HttpClient, UrllibHttpClient
from autorelease.services.manifest import CargoManifest
from autorelease.services.registry import CargoRegistry
from autorelease.services.source import GitSourceControl
from autorelease.services.tools import ToolInstaller


def build_collaborators(
    root: Path, config: Config, *, http: HttpClient | None = None
) -> Collaborators:
    timeout = config.timeouts.stage_seconds
    return Collaborators(
        root=root,
        source=GitSourceControl.at(root),
        tools=ToolInstaller(
            required=config.tools.required,
            install=config.tools.install,
            timeout=timeout,
        ),
        build=CommandBuildSystem(
            build_command=config.commands.build,
            test_command=config.commands.test,
            timeout=timeout,
        ),
        manifest=CargoManifest(root / config.release.manifest),
        registry=CargoRegistry(
            credential_env=config.registry.credential_env,
            index_url=config.registry.index_url,
            publish_command=config.commands.publish,
            http=http or UrllibHttpClient(),
            check_index=config.registry.check_index,
            timeout=timeout,
        ),
    )
