"""Task dispatch between pipeline stages."""

from .dispatcher import (
    AsyncioDispatcher,
    CeleryDispatcher,
    Dispatcher,
    TaskMessage,
    TASK_EXECUTE_ARTIFACT,
    TASK_NAMES,
    TASK_RUN_EXTRACTION,
)

__all__ = [
    "AsyncioDispatcher",
    "CeleryDispatcher",
    "Dispatcher",
    "TaskMessage",
    "TASK_EXECUTE_ARTIFACT",
    "TASK_NAMES",
    "TASK_RUN_EXTRACTION",
]
