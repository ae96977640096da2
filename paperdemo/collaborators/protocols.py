"""Interfaces of the external systems the pipelines call.

Each collaborator is a narrow ``typing.Protocol``. Production adapters live
next to this module; tests supply in-memory doubles.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, runtime_checkable

from ..models.schemas import Identity


@dataclass
class RuntimeSpec:
    """What a sandbox environment must provide."""

    name: str
    language: str = "python"
    env_vars: Dict[str, str] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)
    public: bool = True


@dataclass
class CommandResult:
    """Outcome of a command run inside a sandbox."""

    exit_code: int
    output: str = ""


@runtime_checkable
class IdentityProvider(Protocol):
    """Resolves the current caller."""

    def current_identity(self) -> Optional[Identity]:
        ...


@runtime_checkable
class BlobStore(Protocol):
    """Append-only blob storage."""

    async def store(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store bytes and return a new blob id."""
        ...

    async def get_url(self, blob_id: str) -> Optional[str]:
        """Return a fetchable address for a blob, or None if it does not exist."""
        ...

    async def read(self, blob_id: str) -> bytes:
        """Return the bytes of a blob."""
        ...


@runtime_checkable
class DocumentAnalyzer(Protocol):
    """Model that reads a document and answers in text."""

    async def analyze(self, file_address: str, instructions: str) -> str:
        ...


@runtime_checkable
class CodeGenerator(Protocol):
    """Model that turns a prompt into text, bounded in length."""

    async def generate(self, prompt: str) -> str:
        ...


@runtime_checkable
class SandboxEnvironment(Protocol):
    """One provisioned, isolated execution environment."""

    @property
    def id(self) -> str:
        ...

    async def write_file(self, path: str, content: bytes) -> None:
        ...

    async def exec_command(self, command: str, background: bool = False) -> CommandResult:
        ...

    async def exposed_address(self, port: int) -> str:
        """Externally reachable base URL for a port."""
        ...


@runtime_checkable
class SandboxProvider(Protocol):
    """Creates and deletes sandbox environments; calls must be paired."""

    async def create(self, spec: RuntimeSpec) -> SandboxEnvironment:
        ...

    async def delete(self, env: SandboxEnvironment) -> None:
        ...


__all__ = [
    "BlobStore",
    "CodeGenerator",
    "CommandResult",
    "DocumentAnalyzer",
    "IdentityProvider",
    "RuntimeSpec",
    "SandboxEnvironment",
    "SandboxProvider",
]
