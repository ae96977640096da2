"""Wiring of store, collaborators, dispatcher and pipeline stages.

The API process and the Celery worker both build a :class:`Runtime`. The
production collaborators are created by :func:`build_runtime`; tests call
:func:`assemble_runtime` with in-memory doubles.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from .collaborators.protocols import BlobStore, CodeGenerator, DocumentAnalyzer, SandboxProvider
from .collaborators.storage import LocalBlobStore
from .config import Settings, get_settings
from .core.documents import DocumentService
from .core.execution import SandboxExecutionCoordinator
from .core.generation import ArtifactGenerationOrchestrator
from .core.ingestion import DocumentIngestionCoordinator
from .core.owners import OwnerService
from .database.engine import create_engine_for, create_session_maker, init_database
from .database.repository import ArtifactRepository, DocumentRepository, OwnerRepository
from .database.store import StateStore
from .orchestrator.dispatcher import (
    AsyncioDispatcher,
    CeleryDispatcher,
    Dispatcher,
    TASK_EXECUTE_ARTIFACT,
    TASK_RUN_EXTRACTION,
)

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Everything a process needs to run the pipelines."""

    settings: Settings
    engine: AsyncEngine
    store: StateStore
    owner_repo: OwnerRepository
    document_repo: DocumentRepository
    artifact_repo: ArtifactRepository
    blob_store: BlobStore
    analyzer: DocumentAnalyzer
    generator: CodeGenerator
    sandbox_provider: SandboxProvider
    dispatcher: Dispatcher
    owners: OwnerService
    documents: DocumentService
    ingestion: DocumentIngestionCoordinator
    generation: ArtifactGenerationOrchestrator
    execution: SandboxExecutionCoordinator

    async def startup(self) -> None:
        """Create tables and start the dispatcher."""
        await init_database(self.engine, Path(self.settings.database_path))
        await self.dispatcher.start()

    async def shutdown(self) -> None:
        """Stop the dispatcher and release collaborators and connections."""
        await self.dispatcher.stop()
        close = getattr(self.sandbox_provider, "close", None)
        if close is not None:
            try:
                await close()
            except Exception as e:
                logger.warning(f"[RUNTIME] Failed to close sandbox provider: {e}")
        await self.engine.dispose()


def register_handlers(dispatcher: Dispatcher, runtime: Runtime) -> None:
    """Bind task names to stage coroutines on an in-process dispatcher."""
    if not isinstance(dispatcher, AsyncioDispatcher):
        return
    dispatcher.register(TASK_RUN_EXTRACTION, runtime.ingestion.run_extraction)
    dispatcher.register(TASK_EXECUTE_ARTIFACT, runtime.execution.execute)


def assemble_runtime(
    settings: Settings,
    blob_store: BlobStore,
    analyzer: DocumentAnalyzer,
    generator: CodeGenerator,
    sandbox_provider: SandboxProvider,
    dispatcher: Dispatcher,
    engine: Optional[AsyncEngine] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Runtime:
    """Build a runtime from explicit collaborators.

    Args:
        settings: Application settings.
        blob_store: Blob storage.
        analyzer: Model reading uploaded papers.
        generator: Model writing demo code.
        sandbox_provider: Source of sandbox environments.
        dispatcher: Task dispatcher; in-process dispatchers get the stage
            handlers registered.
        engine: Database engine, created from ``settings.database_path`` if omitted.
        http_transport: Transport for the sandbox fetch, mainly for tests.

    Returns:
        The wired runtime. Call :meth:`Runtime.startup` before use.
    """
    engine = engine or create_engine_for(Path(settings.database_path))
    store = StateStore(create_session_maker(engine))

    owner_repo = OwnerRepository(store)
    document_repo = DocumentRepository(store)
    artifact_repo = ArtifactRepository(store)

    owners = OwnerService(owner_repo)

    runtime = Runtime(
        settings=settings,
        engine=engine,
        store=store,
        owner_repo=owner_repo,
        document_repo=document_repo,
        artifact_repo=artifact_repo,
        blob_store=blob_store,
        analyzer=analyzer,
        generator=generator,
        sandbox_provider=sandbox_provider,
        dispatcher=dispatcher,
        owners=owners,
        documents=DocumentService(owners, document_repo, artifact_repo, blob_store, dispatcher),
        ingestion=DocumentIngestionCoordinator(document_repo, blob_store, analyzer),
        generation=ArtifactGenerationOrchestrator(
            document_repo,
            artifact_repo,
            generator,
            dispatcher,
            owner_service=owners,
            settings=settings,
        ),
        execution=SandboxExecutionCoordinator(
            artifact_repo,
            blob_store,
            sandbox_provider,
            settings=settings,
            http_transport=http_transport,
        ),
    )
    register_handlers(dispatcher, runtime)
    return runtime


def build_dispatcher(settings: Settings) -> Dispatcher:
    """Dispatcher for the configured backend."""
    if settings.dispatcher_backend == "celery":
        from .orchestrator.celery_app import celery_app

        return CeleryDispatcher(celery_app)
    return AsyncioDispatcher(workers=settings.dispatcher_workers)


def build_runtime(settings: Optional[Settings] = None, dispatcher: Optional[Dispatcher] = None) -> Runtime:
    """Build a runtime with the production collaborators."""
    from .collaborators.claude_agent import ClaudeAgentClient
    from .collaborators.daytona_sandbox import DaytonaSandboxProvider

    settings = settings or get_settings()
    agent = ClaudeAgentClient(settings)

    logger.info(f"[RUNTIME] Building runtime with {settings.dispatcher_backend} dispatcher")
    return assemble_runtime(
        settings=settings,
        blob_store=LocalBlobStore(settings.storage_dir, settings.public_base_url),
        analyzer=agent,
        generator=agent,
        sandbox_provider=DaytonaSandboxProvider(settings),
        dispatcher=dispatcher or build_dispatcher(settings),
    )
