"""Models package."""

from .enums import (
    AnalysisPath,
    ArtifactStatus,
    CodeType,
    DocumentStatus,
    EntityKind,
    can_transition,
    parse_status,
)
from .schemas import (
    Artifact,
    DocumentMetadata,
    Document,
    ExecutionResults,
    Identity,
    Owner,
)

__all__ = [
    "AnalysisPath",
    "ArtifactStatus",
    "CodeType",
    "DocumentStatus",
    "EntityKind",
    "can_transition",
    "parse_status",
    "Artifact",
    "DocumentMetadata",
    "Document",
    "ExecutionResults",
    "Identity",
    "Owner",
]
