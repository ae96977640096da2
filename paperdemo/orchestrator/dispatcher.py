"""Task dispatch between pipeline stages.

Stages never await each other inline. A stage that finishes its part of
the pipeline enqueues a named task message; a worker picks it up and runs
the handler registered for that name. Two backends are provided:

- ``AsyncioDispatcher``: an ``asyncio.Queue`` drained by a fixed pool of
  worker coroutines inside the API process.
- ``CeleryDispatcher``: hands the message to the Celery broker, where the
  tasks in :mod:`paperdemo.orchestrator.tasks` run it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

TASK_RUN_EXTRACTION = "run_extraction"
TASK_EXECUTE_ARTIFACT = "execute_artifact"

TASK_NAMES = (TASK_RUN_EXTRACTION, TASK_EXECUTE_ARTIFACT)

Handler = Callable[..., Awaitable[Any]]


@dataclass
class TaskMessage:
    """A unit of work travelling through the dispatcher."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Dispatcher(Protocol):
    """Fire-and-forget scheduling of named pipeline tasks."""

    async def dispatch(self, name: str, **payload: Any) -> None:
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


class AsyncioDispatcher:
    """In-process dispatcher backed by an ``asyncio.Queue``.

    Handler exceptions are logged and dropped: the stages record their own
    failures in the store, and nothing is reported back to the enqueuer.
    """

    def __init__(self, workers: int = 4):
        self.workers = max(1, workers)
        self._handlers: Dict[str, Handler] = {}
        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []

    def register(self, name: str, handler: Handler) -> None:
        """Bind a task name to a coroutine function."""
        self._handlers[name] = handler
        logger.debug(f"[DISPATCH] Registered handler for {name}")

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        """Start the worker pool. Calling it twice is a no-op."""
        if self._tasks:
            return
        self._queue = asyncio.Queue()
        self._tasks = [
            asyncio.create_task(self._worker(index), name=f"dispatch-worker-{index}")
            for index in range(self.workers)
        ]
        logger.info(f"[DISPATCH] Started {self.workers} workers")

    async def dispatch(self, name: str, **payload: Any) -> None:
        """Enqueue a task; returns as soon as the message is queued.

        Raises:
            ValueError: If no handler is registered for ``name``.
        """
        if name not in self._handlers:
            raise ValueError(f"No handler registered for task: {name}")
        if not self._tasks:
            await self.start()
        await self._queue.put(TaskMessage(name=name, payload=payload))
        logger.info(f"[DISPATCH] Queued {name} {payload}")

    async def join(self) -> None:
        """Wait until every queued message has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, drain: bool = True) -> None:
        """Stop the worker pool, optionally draining the queue first."""
        if not self._tasks:
            return
        if drain:
            await self.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._queue = None
        logger.info("[DISPATCH] Workers stopped")

    async def _worker(self, index: int) -> None:
        while True:
            message = await self._queue.get()
            try:
                logger.info(f"[DISPATCH worker-{index}] Running {message.name} {message.payload}")
                await self._handlers[message.name](**message.payload)
            except Exception as e:
                logger.exception(f"[DISPATCH worker-{index}] Task {message.name} failed: {e}")
            finally:
                self._queue.task_done()


class CeleryDispatcher:
    """Dispatcher that publishes task messages to a Celery broker."""

    def __init__(self, app, queue: str = "pipeline"):
        self.app = app
        self.queue = queue

    @staticmethod
    def celery_task_name(name: str) -> str:
        return f"paperdemo.{name}"

    async def dispatch(self, name: str, **payload: Any) -> None:
        if name not in TASK_NAMES:
            raise ValueError(f"Unknown task: {name}")
        # send_task talks to the broker synchronously
        result = await asyncio.to_thread(
            self.app.send_task,
            self.celery_task_name(name),
            kwargs=payload,
            queue=self.queue,
        )
        logger.info(f"[DISPATCH] Sent {name} to Celery as {result.id}")

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass
