"""Database module for the Paper Demo Generator."""

from .engine import (
    create_engine_for,
    create_session_maker,
    get_db_path,
    get_engine,
    get_session_maker,
    init_database,
    reset_engine,
)
from .models import ArtifactRecord, DocumentRecord, OwnerRecord
from .repository import ArtifactRepository, DocumentRepository, OwnerRepository
from .store import StateStore

__all__ = [
    "ArtifactRecord",
    "ArtifactRepository",
    "DocumentRecord",
    "DocumentRepository",
    "OwnerRecord",
    "OwnerRepository",
    "StateStore",
    "create_engine_for",
    "create_session_maker",
    "get_db_path",
    "get_engine",
    "get_session_maker",
    "init_database",
    "reset_engine",
]
