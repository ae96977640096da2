"""Typed repositories over the record store."""

from typing import Any, Dict, List, Optional

from ..core.errors import InvalidTransition, NotFound
from ..models.enums import ArtifactStatus, DocumentStatus, EntityKind, can_transition
from ..models.schemas import (
    Artifact,
    Document,
    DocumentMetadata,
    ExecutionResults,
    Owner,
)
from .store import StateStore


def _to_owner(row: Dict[str, Any]) -> Owner:
    return Owner(**row)


def _to_document(row: Dict[str, Any]) -> Document:
    data = dict(row)
    raw_metadata = data.pop("doc_metadata", None)
    return Document(
        **data,
        metadata=DocumentMetadata(**raw_metadata) if raw_metadata is not None else None,
    )


def _to_artifact(row: Dict[str, Any]) -> Artifact:
    data = dict(row)
    raw_results = data.pop("execution_results", None)
    return Artifact(
        **data,
        execution_results=ExecutionResults(**raw_results) if raw_results is not None else None,
    )


class OwnerRepository:
    """Repository for owner records."""

    def __init__(self, store: StateStore):
        self.store = store

    async def create(
        self,
        external_id: str,
        email: str,
        name: str,
        organization_id: Optional[str] = None,
    ) -> str:
        """Create a new owner."""
        return await self.store.insert(
            EntityKind.OWNER,
            {
                "external_id": external_id,
                "email": email,
                "name": name,
                "organization_id": organization_id,
            },
        )

    async def get_by_id(self, owner_id: str) -> Optional[Owner]:
        """Get owner by ID."""
        row = await self.store.get(EntityKind.OWNER, owner_id)
        return _to_owner(row) if row else None

    async def get_by_external_id(self, external_id: str) -> Optional[Owner]:
        """Get owner by external identity key."""
        rows = await self.store.list_by_index(EntityKind.OWNER, "by_external_id", external_id)
        return _to_owner(rows[0]) if rows else None


class DocumentRepository:
    """Repository for document records."""

    def __init__(self, store: StateStore):
        self.store = store

    async def create(self, owner_id: str, title: str, file_name: str, file_blob_id: str) -> str:
        """Create a document in ``processing``."""
        return await self.store.insert(
            EntityKind.DOCUMENT,
            {
                "owner_id": owner_id,
                "title": title,
                "file_name": file_name,
                "file_blob_id": file_blob_id,
                "status": DocumentStatus.PROCESSING,
            },
        )

    async def get_by_id(self, document_id: str) -> Optional[Document]:
        """Get document by ID."""
        row = await self.store.get(EntityKind.DOCUMENT, document_id)
        return _to_document(row) if row else None

    async def get_by_owner(self, owner_id: str) -> List[Document]:
        """Get an owner's documents, newest first."""
        rows = await self.store.list_by_index(EntityKind.DOCUMENT, "by_owner", owner_id)
        return [_to_document(row) for row in rows]

    async def mark_ready(
        self,
        document_id: str,
        content: str,
        metadata: DocumentMetadata,
        file_url: Optional[str] = None,
    ) -> None:
        """Move a document to ``ready`` with its extracted fields in one patch."""
        fields: Dict[str, Any] = {
            "status": DocumentStatus.READY,
            "extracted_content": content,
            "doc_metadata": metadata,
        }
        if file_url is not None:
            fields["file_url"] = file_url
        await self.store.patch(EntityKind.DOCUMENT, document_id, fields)

    async def mark_error(self, document_id: str) -> None:
        """Move a document to ``error``; extracted fields stay absent."""
        await self.store.patch(EntityKind.DOCUMENT, document_id, {"status": DocumentStatus.ERROR})


class ArtifactRepository:
    """Repository for artifact records.

    Status changes go through :meth:`transition`, which rejects any move
    that is not declared in the artifact status graph.
    """

    def __init__(self, store: StateStore):
        self.store = store

    async def create(self, owner_id: str, document_id: str, concept: str) -> str:
        """Create an artifact in ``generating`` with empty code."""
        return await self.store.insert(
            EntityKind.ARTIFACT,
            {
                "owner_id": owner_id,
                "document_id": document_id,
                "concept": concept,
                "status": ArtifactStatus.GENERATING,
                "generated_code": "",
            },
        )

    async def get_by_id(self, artifact_id: str) -> Optional[Artifact]:
        """Get artifact by ID."""
        row = await self.store.get(EntityKind.ARTIFACT, artifact_id)
        return _to_artifact(row) if row else None

    async def get_by_document(self, document_id: str) -> List[Artifact]:
        """Get a document's artifacts, newest first."""
        rows = await self.store.list_by_index(EntityKind.ARTIFACT, "by_document", document_id)
        return [_to_artifact(row) for row in rows]

    async def get_by_owner(self, owner_id: str) -> List[Artifact]:
        """Get an owner's artifacts, newest first."""
        rows = await self.store.list_by_index(EntityKind.ARTIFACT, "by_owner", owner_id)
        return [_to_artifact(row) for row in rows]

    async def transition(
        self,
        artifact_id: str,
        new_status: ArtifactStatus,
        **fields: Any,
    ) -> None:
        """Advance an artifact's status, writing ``fields`` in the same patch.

        Raises:
            NotFound: If the artifact does not exist.
            InvalidTransition: If the move is not in the status graph.
        """
        row = await self.store.get(EntityKind.ARTIFACT, artifact_id)
        if row is None:
            raise NotFound(EntityKind.ARTIFACT.value, artifact_id)

        current = ArtifactStatus(row["status"])
        if not can_transition(current, new_status):
            raise InvalidTransition(
                f"Artifact {artifact_id}: {current.value} -> {new_status.value} is not allowed"
            )

        await self.store.patch(EntityKind.ARTIFACT, artifact_id, {"status": new_status, **fields})
