"""Enumeration types for the Paper Demo Generator."""

from enum import Enum
from typing import Dict, FrozenSet, Optional, Type, TypeVar


class EntityKind(str, Enum):
    """Record kinds held by the state store."""

    OWNER = "owner"
    DOCUMENT = "document"
    ARTIFACT = "artifact"


class DocumentStatus(str, Enum):
    """States of the document ingestion pipeline."""

    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class ArtifactStatus(str, Enum):
    """States of the artifact generation pipeline."""

    GENERATING = "generating"
    EXECUTING = "executing"
    READY = "ready"
    FAILED = "failed"


class CodeType(str, Enum):
    """Kinds of generated code."""

    HTML = "html"


class AnalysisPath(str, Enum):
    """Which branch of the analysis parser produced a result."""

    STRICT = "strict"
    FALLBACK = "fallback"


# ─────────────────────────────────────────────────────────────────────────────
# Status graphs
# ─────────────────────────────────────────────────────────────────────────────

DOCUMENT_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.READY, DocumentStatus.ERROR}),
    DocumentStatus.READY: frozenset(),
    DocumentStatus.ERROR: frozenset(),
}

ARTIFACT_TRANSITIONS: Dict[ArtifactStatus, FrozenSet[ArtifactStatus]] = {
    ArtifactStatus.GENERATING: frozenset({ArtifactStatus.EXECUTING, ArtifactStatus.FAILED}),
    ArtifactStatus.EXECUTING: frozenset({ArtifactStatus.READY, ArtifactStatus.FAILED}),
    ArtifactStatus.READY: frozenset(),
    ArtifactStatus.FAILED: frozenset(),
}


def can_transition(src: Enum, dst: Enum) -> bool:
    """Check whether a status move is declared in its entity's graph."""
    if isinstance(src, ArtifactStatus) and isinstance(dst, ArtifactStatus):
        return dst in ARTIFACT_TRANSITIONS[src]
    if isinstance(src, DocumentStatus) and isinstance(dst, DocumentStatus):
        return dst in DOCUMENT_TRANSITIONS[src]
    return False


def is_terminal(status: Enum) -> bool:
    """True for statuses with no outgoing transitions."""
    if isinstance(status, ArtifactStatus):
        return not ARTIFACT_TRANSITIONS[status]
    if isinstance(status, DocumentStatus):
        return not DOCUMENT_TRANSITIONS[status]
    return False


StatusT = TypeVar("StatusT", bound=Enum)


def parse_status(enum_cls: Type[StatusT], value: object) -> Optional[StatusT]:
    """Parse a persisted status value, returning None for unknown values.

    Observers render None as an invalid status instead of failing.
    """
    try:
        return enum_cls(value)
    except ValueError:
        return None
