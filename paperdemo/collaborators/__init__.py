"""External collaborators: interfaces and production adapters.

The Claude and Daytona adapters import their SDKs at module import time,
so they are not re-exported here; import them from their modules.
"""

from .identity import HeaderIdentityProvider
from .protocols import (
    BlobStore,
    CodeGenerator,
    CommandResult,
    DocumentAnalyzer,
    IdentityProvider,
    RuntimeSpec,
    SandboxEnvironment,
    SandboxProvider,
)
from .storage import LocalBlobStore

__all__ = [
    "BlobStore",
    "CodeGenerator",
    "CommandResult",
    "DocumentAnalyzer",
    "HeaderIdentityProvider",
    "IdentityProvider",
    "LocalBlobStore",
    "RuntimeSpec",
    "SandboxEnvironment",
    "SandboxProvider",
]
