"""Document ingestion: extract text and metadata from an uploaded paper.

A document is created in ``processing`` and handed to
:meth:`DocumentIngestionCoordinator.run_extraction` through the
dispatcher. The coordinator moves it exactly once, to ``ready`` with the
extracted fields or to ``error`` with nothing else changed.
"""

import logging
from typing import Optional

from ..collaborators.protocols import BlobStore, DocumentAnalyzer
from ..database.repository import DocumentRepository
from ..models.enums import DocumentStatus
from .errors import ExtractionError, NotFound
from .parsing import ParsedAnalysis, parse_analysis

logger = logging.getLogger(__name__)

ANALYSIS_INSTRUCTIONS = """Analyze this academic paper PDF and extract the following information in a structured format:
1. Full text content
2. Paper title
3. Authors (comma-separated list)
4. Abstract
5. Key keywords or topics (comma-separated list)

Format your response as JSON with keys: content, title, authors, abstract, keywords"""


class DocumentIngestionCoordinator:
    """Runs the ``processing -> {ready, error}`` transition of a document."""

    def __init__(
        self,
        documents: DocumentRepository,
        blob_store: BlobStore,
        analyzer: DocumentAnalyzer,
    ):
        self.documents = documents
        self.blob_store = blob_store
        self.analyzer = analyzer

    async def run_extraction(self, document_id: str) -> Optional[ParsedAnalysis]:
        """Extract a document's content and record the outcome.

        Args:
            document_id: Document to process.

        Returns:
            The parsed analysis when the document reached ``ready``, else None.

        Raises:
            NotFound: If the document does not exist. No status is changed.
        """
        document = await self.documents.get_by_id(document_id)
        if document is None:
            raise NotFound("document", document_id)

        if document.status != DocumentStatus.PROCESSING:
            # Redelivered task; the first run already decided the outcome
            logger.warning(f"[INGEST {document_id}] Skipping, status is already {document.status.value}")
            return None

        logger.info(f"[INGEST {document_id}] Extracting content from {document.file_name}")

        try:
            file_url = await self.blob_store.get_url(document.file_blob_id)
            if not file_url:
                raise ExtractionError(f"Document file not found in storage: {document.file_blob_id}")

            raw = await self.analyzer.analyze(file_url, ANALYSIS_INSTRUCTIONS)

            parsed = parse_analysis(raw)
            logger.info(
                f"[INGEST {document_id}] Parsed via {parsed.path.value} path: "
                f"{len(parsed.content)} chars, {len(parsed.authors)} authors, "
                f"{len(parsed.keywords)} keywords"
            )

            await self.documents.mark_ready(
                document_id,
                content=parsed.content,
                metadata=parsed.metadata,
                file_url=file_url,
            )

        except Exception as e:
            logger.exception(f"[INGEST {document_id}] Extraction failed: {e}")
            await self.documents.mark_error(document_id)
            return None

        logger.info(f"[INGEST {document_id}] Document ready")
        return parsed
