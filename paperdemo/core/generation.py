"""Artifact generation: turn a paper and a concept into demo code.

:meth:`ArtifactGenerationOrchestrator.generate` runs synchronously up to
the ``generating -> executing`` patch, then hands the artifact to the
sandbox stage through the dispatcher and returns its id without waiting.
"""

import logging
import re
from typing import Optional

from ..collaborators.protocols import CodeGenerator
from ..config import Settings, get_settings
from ..database.repository import ArtifactRepository, DocumentRepository
from ..models.enums import ArtifactStatus, DocumentStatus
from ..models.schemas import ExecutionResults, Identity
from ..orchestrator.dispatcher import Dispatcher, TASK_EXECUTE_ARTIFACT
from .errors import GenerationError, NotFound, Unauthorized
from .owners import OwnerService

logger = logging.getLogger(__name__)

# First fenced block; the closing fence is the first fence line after the opening one
_FENCED_BLOCK_RE = re.compile(r"^```[\w+-]*[^\S\n]*\n(.*?)^```", re.DOTALL | re.MULTILINE)
_FENCE_LINE_RE = re.compile(r"^```[\w+-]*[^\S\n]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?```\s*$")

GENERATION_PROMPT = """You are an expert at creating interactive visual demonstrations of academic concepts.

Paper Title: {title}
Paper Content: {content}

Concept to Demonstrate: {concept}

Generate a complete, self-contained HTML file that visually demonstrates this concept. Requirements:
1. Include ALL CSS inline in a <style> tag (no external stylesheets)
2. Include ALL JavaScript inline in a <script> tag (no external dependencies)
3. Make it interactive and animated where appropriate
4. Use modern HTML5, CSS3, and vanilla JavaScript
5. Work without any external dependencies, network requests or CDN links
6. Be responsive and mobile-friendly
7. Keep total size under {max_kb}KB
8. Use clear visual design with smooth animations
9. Add explanatory text to help understand the concept

Return ONLY the complete HTML code, no markdown formatting, no explanations, just pure HTML starting with {sentinel}."""


def build_generation_prompt(
    title: str,
    content: Optional[str],
    concept: str,
    settings: Optional[Settings] = None,
) -> str:
    """Build the generation prompt for one concept of a paper."""
    settings = settings or get_settings()
    return GENERATION_PROMPT.format(
        title=title,
        content=content or "No content available",
        concept=concept,
        max_kb=settings.max_demo_size_kb,
        sentinel=settings.document_sentinel,
    )


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences around generated code.

    Takes the contents of the first fenced block (```html ... ```),
    dropping any prose around it. Without a complete block, a lone
    opening or closing fence line is removed.
    """
    code = text.strip()
    match = _FENCED_BLOCK_RE.search(code)
    if match:
        return match.group(1).strip()
    if code.startswith("```"):
        code = _FENCE_LINE_RE.sub("", code, count=1)
    code = _TRAILING_FENCE_RE.sub("", code)
    return code.strip()


def trim_to_sentinel(code: str, sentinel: str) -> str:
    """Drop any prose the model wrote before the document-start sentinel."""
    index = code.lower().find(sentinel.lower())
    if index > 0:
        return code[index:]
    return code


def clean_generated_code(text: str, sentinel: str) -> str:
    """Turn a raw model answer into the literal artifact code."""
    return trim_to_sentinel(strip_code_fences(text), sentinel)


class ArtifactGenerationOrchestrator:
    """Runs the ``generating`` stage of an artifact and schedules execution."""

    def __init__(
        self,
        documents: DocumentRepository,
        artifacts: ArtifactRepository,
        generator: CodeGenerator,
        dispatcher: Dispatcher,
        owner_service: Optional[OwnerService] = None,
        settings: Optional[Settings] = None,
    ):
        self.documents = documents
        self.artifacts = artifacts
        self.generator = generator
        self.dispatcher = dispatcher
        self.owner_service = owner_service
        self.settings = settings or get_settings()

    async def generate(self, document_id: str, concept: str, owner_id: str) -> str:
        """Create an artifact for a concept of a document and start its pipeline.

        Args:
            document_id: Source document.
            concept: Natural-language description of what to demonstrate.
            owner_id: Owner making the request.

        Returns:
            The new artifact id. The artifact may already be ``failed``.

        Raises:
            NotFound: If the document does not exist.
            Unauthorized: If the document belongs to another owner.
        """
        document = await self.documents.get_by_id(document_id)
        if document is None:
            raise NotFound("document", document_id)
        if document.owner_id != owner_id:
            raise Unauthorized("Unauthorized")
        if document.status != DocumentStatus.READY:
            logger.warning(f"[GENERATE] Document {document_id} is {document.status.value}, generating anyway")

        artifact_id = await self.artifacts.create(owner_id, document_id, concept)
        logger.info(f"[GENERATE {artifact_id}] Generating demo for concept: {concept[:80]}")

        try:
            prompt = build_generation_prompt(document.title, document.extracted_content, concept, self.settings)
            raw = await self.generator.generate(prompt)
            code = clean_generated_code(raw or "", self.settings.document_sentinel)
            if not code:
                raise GenerationError("Model returned no code")
            if not code.lower().startswith(self.settings.document_sentinel.lower()):
                logger.warning(f"[GENERATE {artifact_id}] Code does not start with {self.settings.document_sentinel}")

            await self.artifacts.transition(artifact_id, ArtifactStatus.EXECUTING, generated_code=code)
            logger.info(f"[GENERATE {artifact_id}] Generated {len(code)} chars of code")

        except Exception as e:
            logger.exception(f"[GENERATE {artifact_id}] Generation failed: {e}")
            await self._fail(artifact_id, e)
            return artifact_id

        # Scheduled only after the executing patch has returned
        try:
            await self.dispatcher.dispatch(TASK_EXECUTE_ARTIFACT, artifact_id=artifact_id)
        except Exception as e:
            logger.exception(f"[GENERATE {artifact_id}] Could not schedule execution: {e}")
            await self._fail(artifact_id, e)

        return artifact_id

    async def generate_for_identity(self, document_id: str, concept: str, identity: Optional[Identity]) -> str:
        """Resolve the caller to an owner, then :meth:`generate`."""
        if self.owner_service is None:
            raise RuntimeError("Owner service not configured")
        owner_id = await self.owner_service.resolve_owner(identity)
        return await self.generate(document_id, concept, owner_id)

    async def _fail(self, artifact_id: str, error: Exception) -> None:
        await self.artifacts.transition(
            artifact_id,
            ArtifactStatus.FAILED,
            execution_results=ExecutionResults(sandbox_id="", errors=[str(error) or type(error).__name__]),
        )
