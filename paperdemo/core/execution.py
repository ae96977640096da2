"""Sandbox execution: serve generated code in an isolated environment.

:meth:`SandboxExecutionCoordinator.execute` owns the ``executing`` stage of
an artifact. It provisions one sandbox, writes the code into it, starts a
static file server, fetches the served page, stores it as a blob and moves
the artifact to ``ready``, or to ``failed`` on any error. Every sandbox that
was created is deleted before the call returns.
"""

import asyncio
import logging
import shlex
from typing import Awaitable, Callable, List, Optional

import httpx

from ..collaborators.protocols import BlobStore, RuntimeSpec, SandboxEnvironment, SandboxProvider
from ..config import Settings, get_settings
from ..database.repository import ArtifactRepository
from ..models.enums import ArtifactStatus
from ..models.schemas import ExecutionResults
from .errors import NotFound, SandboxExecutionError, SandboxProvisionError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class SandboxExecutionCoordinator:
    """Runs the ``executing -> {ready, failed}`` transition of an artifact."""

    def __init__(
        self,
        artifacts: ArtifactRepository,
        blob_store: BlobStore,
        provider: SandboxProvider,
        settings: Optional[Settings] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.artifacts = artifacts
        self.blob_store = blob_store
        self.provider = provider
        self.settings = settings or get_settings()
        self._http_transport = http_transport
        self._sleep = sleep

    async def execute(self, artifact_id: str, reraise: bool = False) -> Optional[str]:
        """Execute an artifact's code in a fresh sandbox.

        Args:
            artifact_id: Artifact in ``executing``.
            reraise: Re-raise the error after recording it. Only the
                synchronous entry point sets this; dispatched runs do not.

        Returns:
            The output blob id on success, else None.
        """
        artifact = await self.artifacts.get_by_id(artifact_id)
        if artifact is None:
            logger.error(f"[SANDBOX {artifact_id}] Artifact not found, nothing to record")
            if reraise:
                raise NotFound("artifact", artifact_id)
            return None

        if artifact.status != ArtifactStatus.EXECUTING:
            logger.warning(f"[SANDBOX {artifact_id}] Skipping, status is {artifact.status.value}")
            return None

        env: Optional[SandboxEnvironment] = None
        sandbox_id = ""
        logs: List[str] = []

        try:
            try:
                env = await self.provider.create(
                    RuntimeSpec(
                        name=f"demo-{artifact_id}",
                        language=self.settings.sandbox_language,
                        labels={"artifact_id": artifact_id},
                    )
                )
            except SandboxProvisionError:
                raise
            except Exception as e:
                raise SandboxProvisionError(f"Failed to create sandbox: {e}") from e

            sandbox_id = env.id
            logger.info(f"[SANDBOX {artifact_id}] Provisioned sandbox {sandbox_id}")

            await self._deploy(env, artifact.generated_code, logs)
            await self._start_server(env, logs)

            base_url = await env.exposed_address(self.settings.sandbox_port)
            output_html = await self._probe(f"{base_url}/{self.settings.sandbox_file_name}", logs)

            blob_id = await self.blob_store.store(output_html.encode("utf-8"), "text/html")
            await self.artifacts.transition(
                artifact_id,
                ArtifactStatus.READY,
                execution_results=ExecutionResults(
                    sandbox_id=sandbox_id,
                    output_html=output_html,
                    logs=logs,
                ),
                output_blob_id=blob_id,
            )
            logger.info(f"[SANDBOX {artifact_id}] Demo ready, output blob {blob_id}")
            return blob_id

        except Exception as e:
            logger.exception(f"[SANDBOX {artifact_id}] Execution failed: {e}")
            await self.artifacts.transition(
                artifact_id,
                ArtifactStatus.FAILED,
                execution_results=ExecutionResults(
                    sandbox_id=sandbox_id,
                    logs=logs,
                    errors=[str(e) or type(e).__name__],
                ),
            )
            if reraise:
                raise
            return None

        finally:
            if env is not None:
                await self._teardown(artifact_id, env)

    async def _deploy(self, env: SandboxEnvironment, code: str, logs: List[str]) -> None:
        workdir = self.settings.sandbox_workdir
        result = await env.exec_command(f"mkdir -p {shlex.quote(workdir)}")
        if result.exit_code != 0:
            raise SandboxExecutionError(f"Could not create {workdir}: {result.output}")

        path = f"{workdir}/{self.settings.sandbox_file_name}"
        await env.write_file(path, code.encode("utf-8"))
        logs.append(f"Wrote {len(code)} chars to {path}")

    async def _start_server(self, env: SandboxEnvironment, logs: List[str]) -> None:
        command = (
            f"python3 -m http.server {self.settings.sandbox_port} "
            f"--directory {shlex.quote(self.settings.sandbox_workdir)}"
        )
        result = await env.exec_command(command, background=True)
        if result.exit_code != 0:
            raise SandboxExecutionError(f"Static server failed to start: {result.output}")
        logs.append(f"Started static server on port {self.settings.sandbox_port}")

    async def _probe(self, url: str, logs: List[str]) -> str:
        """Fetch the served page once the server has had time to start.

        The provider gives no readiness signal. ``fixed_delay`` waits the
        settling interval and fetches once; ``poll`` also retries connection
        errors and non-success responses with exponential backoff.
        """
        settings = self.settings
        await self._sleep(settings.sandbox_settle_seconds)

        attempts = 1 if settings.sandbox_probe_strategy == "fixed_delay" else max(1, settings.sandbox_probe_attempts)
        delay = settings.sandbox_probe_backoff
        last_error = "Failed to fetch demo"

        async with httpx.AsyncClient(
            timeout=settings.sandbox_fetch_timeout,
            transport=self._http_transport,
            follow_redirects=True,
        ) as client:
            for attempt in range(1, attempts + 1):
                try:
                    response = await client.get(url)
                    if response.is_success:
                        logs.append(f"GET {url} -> {response.status_code} (attempt {attempt})")
                        return response.text
                    last_error = f"Failed to fetch demo: {response.status_code} {response.reason_phrase}"
                except httpx.HTTPError as e:
                    last_error = f"Failed to fetch demo: {e}"

                logs.append(f"{last_error} (attempt {attempt}/{attempts})")
                if attempt < attempts:
                    await self._sleep(delay)
                    delay = min(delay * 2, settings.sandbox_probe_max_backoff)

        raise SandboxExecutionError(last_error)

    async def _teardown(self, artifact_id: str, env: SandboxEnvironment) -> None:
        try:
            await self.provider.delete(env)
            logger.info(f"[SANDBOX {artifact_id}] Sandbox {env.id} cleaned up")
        except Exception as e:
            logger.warning(f"[SANDBOX {artifact_id}] Failed to delete sandbox {env.id}: {e}")
