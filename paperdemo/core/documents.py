"""Owner-scoped reads and document creation."""

import logging
from typing import List, Optional

from ..collaborators.protocols import BlobStore
from ..database.repository import ArtifactRepository, DocumentRepository
from ..models.schemas import Artifact, Document, Identity
from ..orchestrator.dispatcher import Dispatcher, TASK_RUN_EXTRACTION
from .owners import OwnerService

logger = logging.getLogger(__name__)


def default_title(file_name: str) -> str:
    """Title used when the uploader gives none: the file name without ``.pdf``."""
    if file_name.lower().endswith(".pdf"):
        return file_name[:-4]
    return file_name


class DocumentService:
    """Creates documents and serves an owner's documents and artifacts.

    Every call resolves the caller first, so an unknown identity raises
    ``Unauthenticated``. Records owned by someone else are reported as
    absent rather than forbidden.
    """

    def __init__(
        self,
        owner_service: OwnerService,
        documents: DocumentRepository,
        artifacts: ArtifactRepository,
        blob_store: BlobStore,
        dispatcher: Dispatcher,
    ):
        self.owner_service = owner_service
        self.documents = documents
        self.artifacts = artifacts
        self.blob_store = blob_store
        self.dispatcher = dispatcher

    async def create_document(
        self,
        identity: Optional[Identity],
        file_name: str,
        file_blob_id: str,
        title: Optional[str] = None,
    ) -> str:
        """Register an uploaded file and schedule its extraction.

        Returns:
            The new document id, before extraction has run.
        """
        owner_id = await self.owner_service.resolve_owner(identity)
        document_id = await self.documents.create(
            owner_id=owner_id,
            title=title or default_title(file_name),
            file_name=file_name,
            file_blob_id=file_blob_id,
        )
        logger.info(f"[DOCUMENTS] Created document {document_id} for owner {owner_id}")

        try:
            await self.dispatcher.dispatch(TASK_RUN_EXTRACTION, document_id=document_id)
        except Exception as e:
            logger.exception(f"[DOCUMENTS {document_id}] Could not schedule extraction: {e}")
            await self.documents.mark_error(document_id)

        return document_id

    async def get_document(self, identity: Optional[Identity], document_id: str) -> Optional[Document]:
        owner_id = await self.owner_service.resolve_owner(identity)
        document = await self.documents.get_by_id(document_id)
        if document is None or document.owner_id != owner_id:
            return None
        return await self._with_file_url(document)

    async def list_documents(self, identity: Optional[Identity]) -> List[Document]:
        """The caller's documents, newest first."""
        owner_id = await self.owner_service.resolve_owner(identity)
        documents = await self.documents.get_by_owner(owner_id)
        return [await self._with_file_url(document) for document in documents]

    async def get_artifact(self, identity: Optional[Identity], artifact_id: str) -> Optional[Artifact]:
        owner_id = await self.owner_service.resolve_owner(identity)
        artifact = await self.artifacts.get_by_id(artifact_id)
        if artifact is None or artifact.owner_id != owner_id:
            return None
        return await self._with_output_url(artifact)

    async def list_artifacts(self, identity: Optional[Identity], document_id: str) -> List[Artifact]:
        """The caller's artifacts of a document, newest first."""
        owner_id = await self.owner_service.resolve_owner(identity)
        artifacts = await self.artifacts.get_by_document(document_id)
        return [
            await self._with_output_url(artifact)
            for artifact in artifacts
            if artifact.owner_id == owner_id
        ]

    async def _with_file_url(self, document: Document) -> Document:
        url = await self.blob_store.get_url(document.file_blob_id)
        return document.model_copy(update={"file_url": url})

    async def _with_output_url(self, artifact: Artifact) -> Artifact:
        if not artifact.output_blob_id:
            return artifact.model_copy(update={"output_url": None})
        url = await self.blob_store.get_url(artifact.output_blob_id)
        return artifact.model_copy(update={"output_url": url})
