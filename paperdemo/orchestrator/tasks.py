"""Celery tasks running the pipeline stages in background workers.

Each task builds a private runtime on a fresh event loop, runs one stage
and disposes the runtime. The stages record their own failures, so the
tasks have no retry policy.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

from celery.exceptions import SoftTimeLimitExceeded

from ..config import get_settings
from .celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run async coroutine in sync context."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _with_runtime(stage: Callable[[Any], Awaitable[Any]]) -> Any:
    from ..runtime import build_runtime

    runtime = build_runtime(get_settings())
    await runtime.startup()
    try:
        return await stage(runtime)
    finally:
        await runtime.shutdown()


@celery_app.task(bind=True, name="paperdemo.run_extraction", track_started=True)
def run_extraction_task(self, document_id: str) -> Dict[str, Any]:
    """Extract content and metadata for a document.

    Args:
        document_id: Document in ``processing``.

    Returns:
        The document id and whether it reached ``ready``.
    """
    task_id = self.request.id
    logger.info(f"[TASK {task_id}] Extraction for document {document_id}")

    try:
        parsed = _run_async(_with_runtime(lambda rt: rt.ingestion.run_extraction(document_id)))
    except SoftTimeLimitExceeded:
        logger.error(f"[TASK {task_id}] Soft time limit exceeded!")
        return {"document_id": document_id, "ready": False, "error": "Task exceeded soft time limit"}

    return {"document_id": document_id, "ready": parsed is not None}


@celery_app.task(bind=True, name="paperdemo.execute_artifact", track_started=True)
def execute_artifact_task(self, artifact_id: str) -> Dict[str, Any]:
    """Run an artifact's code in a sandbox and record the result.

    Args:
        artifact_id: Artifact in ``executing``.

    Returns:
        The artifact id and the output blob id, if any.
    """
    task_id = self.request.id
    logger.info(f"[TASK {task_id}] Sandbox execution for artifact {artifact_id}")

    try:
        blob_id = _run_async(_with_runtime(lambda rt: rt.execution.execute(artifact_id)))
    except SoftTimeLimitExceeded:
        logger.error(f"[TASK {task_id}] Soft time limit exceeded!")
        return {"artifact_id": artifact_id, "output_blob_id": None, "error": "Task exceeded soft time limit"}

    return {"artifact_id": artifact_id, "output_blob_id": blob_id}
