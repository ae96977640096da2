"""Record store shared by every pipeline stage.

The store offers four operations over three record kinds: ``insert``,
``get``, ``patch`` and ``list_by_index``. Each call opens its own session
and commits before returning, so a patch is visible to any reader that
starts after it returns. Records are plain dicts at this layer; the typed
repositories in :mod:`paperdemo.database.repository` sit on top.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Type

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from ..core.errors import DuplicateKey, NotFound
from ..models.enums import EntityKind
from .models import ArtifactRecord, DocumentRecord, OwnerRecord

logger = logging.getLogger(__name__)

KIND_MODELS: Dict[EntityKind, Type[SQLModel]] = {
    EntityKind.OWNER: OwnerRecord,
    EntityKind.DOCUMENT: DocumentRecord,
    EntityKind.ARTIFACT: ArtifactRecord,
}

# (kind, index name) -> indexed column
INDEXES: Dict[Tuple[EntityKind, str], str] = {
    (EntityKind.OWNER, "by_external_id"): "external_id",
    (EntityKind.DOCUMENT, "by_owner"): "owner_id",
    (EntityKind.ARTIFACT, "by_document"): "document_id",
    (EntityKind.ARTIFACT, "by_owner"): "owner_id",
}


def _model_for(kind: EntityKind) -> Type[SQLModel]:
    return KIND_MODELS[EntityKind(kind)]


def _column_names(model: Type[SQLModel]) -> set:
    return set(model.__table__.columns.keys())


def _normalize(value: Any) -> Any:
    """Convert enums and pydantic models into column-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


def _check_fields(model: Type[SQLModel], fields: Dict[str, Any], allow_id: bool) -> Dict[str, Any]:
    allowed = _column_names(model)
    if not allow_id:
        allowed.discard("id")
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields for {model.__tablename__}: {sorted(unknown)}")
    return {key: _normalize(value) for key, value in fields.items()}


class StateStore:
    """Async record store over SQLModel tables."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def insert(self, kind: EntityKind, fields: Dict[str, Any]) -> str:
        """Insert a record and return its id.

        Raises:
            DuplicateKey: If a unique index is violated.
        """
        model = _model_for(kind)
        record = model(**_check_fields(model, fields, allow_id=True))

        async with self._session_maker() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateKey(f"Duplicate {EntityKind(kind).value}: {e.orig}") from e
            record_id = record.id

        logger.debug(f"[STORE] insert {EntityKind(kind).value} {record_id}")
        return record_id

    async def get(self, kind: EntityKind, record_id: str) -> Optional[Dict[str, Any]]:
        """Get a record by id, or None."""
        model = _model_for(kind)
        async with self._session_maker() as session:
            record = await session.get(model, record_id)
            return record.model_dump() if record is not None else None

    async def patch(self, kind: EntityKind, record_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite the given fields of one record, leaving the rest untouched.

        Raises:
            NotFound: If the record does not exist.
            ValueError: If a field is not a column of the record kind.
        """
        model = _model_for(kind)
        values = _check_fields(model, fields, allow_id=False)
        if not values:
            return

        async with self._session_maker() as session:
            result = await session.execute(
                update(model).where(model.id == record_id).values(**values)
            )
            await session.commit()

        if result.rowcount == 0:
            raise NotFound(EntityKind(kind).value, record_id)
        logger.debug(f"[STORE] patch {EntityKind(kind).value} {record_id}: {sorted(values)}")

    async def list_by_index(
        self,
        kind: EntityKind,
        index: str,
        value: Any,
        order: Literal["asc", "desc"] = "desc",
    ) -> List[Dict[str, Any]]:
        """List records whose indexed column equals ``value``, by creation time."""
        kind = EntityKind(kind)
        column_name = INDEXES.get((kind, index))
        if column_name is None:
            raise ValueError(f"Unknown index {index!r} for {kind.value}")

        model = _model_for(kind)
        column = getattr(model, column_name)
        ordering = model.created_at.desc() if order == "desc" else model.created_at.asc()

        async with self._session_maker() as session:
            result = await session.execute(
                select(model).where(column == _normalize(value)).order_by(ordering)
            )
            return [record.model_dump() for record in result.scalars().all()]
