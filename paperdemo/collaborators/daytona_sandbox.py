"""Sandbox provider backed by the Daytona async SDK."""

import logging
import shlex
from typing import Optional

from daytona import AsyncDaytona, CreateSandboxFromSnapshotParams, DaytonaConfig

from ..config import Settings, get_settings
from ..core.errors import SandboxExecutionError, SandboxProvisionError
from .protocols import CommandResult, RuntimeSpec

logger = logging.getLogger(__name__)


class DaytonaEnvironment:
    """A provisioned Daytona sandbox."""

    def __init__(self, sandbox):
        self._sandbox = sandbox

    @property
    def id(self) -> str:
        return self._sandbox.id

    @property
    def sandbox(self):
        return self._sandbox

    async def write_file(self, path: str, content: bytes) -> None:
        await self._sandbox.fs.upload_file(content, path)

    async def exec_command(self, command: str, background: bool = False) -> CommandResult:
        if background:
            # Detach so exec returns once the process is spawned
            command = f"nohup sh -c {shlex.quote(command)} > /tmp/bg.log 2>&1 &"
        response = await self._sandbox.process.exec(command)
        return CommandResult(
            exit_code=getattr(response, "exit_code", 0),
            output=getattr(response, "result", "") or "",
        )

    async def exposed_address(self, port: int) -> str:
        preview = await self._sandbox.get_preview_link(port)
        return preview.url.rstrip("/")


class DaytonaSandboxProvider:
    """Creates one public Daytona sandbox per request and deletes it."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        api_key = self.settings.daytona_api_key
        self._client = AsyncDaytona(
            DaytonaConfig(
                api_key=api_key.get_secret_value() if api_key else None,
                api_url=self.settings.daytona_api_url,
                target=self.settings.daytona_target,
            )
        )

    async def create(self, spec: RuntimeSpec) -> DaytonaEnvironment:
        try:
            sandbox = await self._client.create(
                CreateSandboxFromSnapshotParams(
                    language=spec.language,
                    env_vars=spec.env_vars,
                    labels={"name": spec.name, **spec.labels},
                    public=spec.public,
                )
            )
        except Exception as e:
            raise SandboxProvisionError(f"Failed to create sandbox {spec.name}: {e}") from e

        logger.info(f"[SANDBOX] Created Daytona sandbox {sandbox.id} for {spec.name}")
        return DaytonaEnvironment(sandbox)

    async def delete(self, env: DaytonaEnvironment) -> None:
        try:
            await self._client.delete(env.sandbox)
        except Exception as e:
            raise SandboxExecutionError(f"Failed to delete sandbox {env.id}: {e}") from e
        logger.info(f"[SANDBOX] Deleted Daytona sandbox {env.id}")

    async def close(self) -> None:
        await self._client.close()
