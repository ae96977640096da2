"""Error taxonomy for the ingestion and generation pipelines.

Access errors (``Unauthenticated``, ``Unauthorized``, ``NotFound``) are
raised to the caller of an entry operation before any state is touched.
The remaining errors are raised inside a running stage and end up recorded
in the entity's terminal status by that stage.
"""


class PaperDemoError(Exception):
    """Base class for all pipeline errors."""
    pass


class Unauthenticated(PaperDemoError):
    """No resolvable caller identity."""
    pass


class Unauthorized(PaperDemoError):
    """The caller does not own the target record."""
    pass


class NotFound(PaperDemoError):
    """A referenced document, artifact or blob does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class ExtractionError(PaperDemoError):
    """The analysis call failed or the source file was unreachable."""
    pass


class GenerationError(PaperDemoError):
    """The model call failed or returned unusable output."""
    pass


class SandboxProvisionError(PaperDemoError):
    """The sandbox environment could not be created."""
    pass


class SandboxExecutionError(PaperDemoError):
    """Deploying, serving or fetching inside the sandbox failed."""
    pass


class StorageError(PaperDemoError):
    """A blob read or write failed."""
    pass


class InvalidTransition(PaperDemoError):
    """A status patch would move a record backward or off its graph."""
    pass


class DuplicateKey(PaperDemoError):
    """An insert violated a unique index."""
    pass
