"""Pipeline stages and owner-scoped services.

Only the error taxonomy is re-exported here; the stage modules import the
database layer, which itself imports :mod:`paperdemo.core.errors`.
"""

from .errors import (
    DuplicateKey,
    ExtractionError,
    GenerationError,
    InvalidTransition,
    NotFound,
    PaperDemoError,
    SandboxExecutionError,
    SandboxProvisionError,
    StorageError,
    Unauthenticated,
    Unauthorized,
)

__all__ = [
    "DuplicateKey",
    "ExtractionError",
    "GenerationError",
    "InvalidTransition",
    "NotFound",
    "PaperDemoError",
    "SandboxExecutionError",
    "SandboxProvisionError",
    "StorageError",
    "Unauthenticated",
    "Unauthorized",
]
