"""Tests for artifact generation."""

import pytest
import pytest_asyncio

from paperdemo.core.errors import GenerationError, NotFound, Unauthenticated, Unauthorized
from paperdemo.core.generation import ArtifactGenerationOrchestrator, build_generation_prompt
from paperdemo.models import ArtifactStatus, DocumentMetadata
from paperdemo.orchestrator.dispatcher import TASK_EXECUTE_ARTIFACT

from tests.fakes import FakeGenerator, RecordingDispatcher

HTML = "<!DOCTYPE html>\n<html><body><h1>Attention</h1></body></html>"


@pytest.fixture
def make_orchestrator(document_repo, artifact_repo, owner_service, settings):
    def _make(generator, dispatcher=None):
        return ArtifactGenerationOrchestrator(
            document_repo,
            artifact_repo,
            generator,
            dispatcher or RecordingDispatcher(),
            owner_service=owner_service,
            settings=settings,
        )

    return _make


@pytest_asyncio.fixture
async def ready_document_id(document_repo, document_id):
    await document_repo.mark_ready(document_id, "Paper body text", DocumentMetadata())
    return document_id


class StatusCapturingDispatcher(RecordingDispatcher):
    """Records the artifact status visible when execution is scheduled."""

    def __init__(self, artifact_repo):
        super().__init__()
        self.artifact_repo = artifact_repo
        self.seen_status = None
        self.seen_code = None

    async def dispatch(self, name, **payload):
        artifact = await self.artifact_repo.get_by_id(payload["artifact_id"])
        self.seen_status = artifact.status
        self.seen_code = artifact.generated_code
        await super().dispatch(name, **payload)


# =============================================================================
# Prompt
# =============================================================================


class TestGenerationPrompt:
    def test_prompt_embeds_paper_and_constraints(self, settings):
        prompt = build_generation_prompt("Attention", "Body", "multi-head attention", settings)

        assert "Paper Title: Attention" in prompt
        assert "Paper Content: Body" in prompt
        assert "Concept to Demonstrate: multi-head attention" in prompt
        assert "under 100KB" in prompt
        assert "<!DOCTYPE html>" in prompt

    def test_missing_content_placeholder(self, settings):
        prompt = build_generation_prompt("T", None, "c", settings)

        assert "Paper Content: No content available" in prompt


# =============================================================================
# Generate
# =============================================================================


class TestGenerate:
    @pytest.mark.asyncio
    async def test_fenced_code_is_stripped_and_execution_scheduled(
        self, make_orchestrator, artifact_repo, ready_document_id, owner_id
    ):
        generator = FakeGenerator(response=f"```html\n{HTML}\n```")
        dispatcher = StatusCapturingDispatcher(artifact_repo)

        artifact_id = await make_orchestrator(generator, dispatcher).generate(
            ready_document_id, "multi-head attention", owner_id
        )

        artifact = await artifact_repo.get_by_id(artifact_id)
        assert artifact.status == ArtifactStatus.EXECUTING
        assert artifact.generated_code == HTML
        assert artifact.concept == "multi-head attention"
        assert dispatcher.dispatched == [(TASK_EXECUTE_ARTIFACT, {"artifact_id": artifact_id})]
        # Scheduled only after the executing patch was visible
        assert dispatcher.seen_status == ArtifactStatus.EXECUTING
        assert dispatcher.seen_code == HTML

    @pytest.mark.asyncio
    async def test_prompt_uses_extracted_content(self, make_orchestrator, ready_document_id, owner_id):
        generator = FakeGenerator(response=HTML)

        await make_orchestrator(generator).generate(ready_document_id, "concept", owner_id)

        assert "Paper body text" in generator.prompts[0]
        assert "Attention Is All You Need" in generator.prompts[0]

    @pytest.mark.asyncio
    async def test_model_failure_marks_failed(self, make_orchestrator, artifact_repo, ready_document_id, owner_id):
        generator = FakeGenerator(error=GenerationError("rate limited"))
        dispatcher = RecordingDispatcher()

        artifact_id = await make_orchestrator(generator, dispatcher).generate(ready_document_id, "c", owner_id)

        artifact = await artifact_repo.get_by_id(artifact_id)
        assert artifact.status == ArtifactStatus.FAILED
        assert artifact.execution_results.sandbox_id == ""
        assert artifact.execution_results.errors == ["rate limited"]
        assert dispatcher.dispatched == []

    @pytest.mark.asyncio
    async def test_empty_code_marks_failed(self, make_orchestrator, artifact_repo, ready_document_id, owner_id):
        artifact_id = await make_orchestrator(FakeGenerator(response="```html\n```")).generate(
            ready_document_id, "c", owner_id
        )

        artifact = await artifact_repo.get_by_id(artifact_id)
        assert artifact.status == ArtifactStatus.FAILED
        assert artifact.generated_code == ""

    @pytest.mark.asyncio
    async def test_dispatch_failure_marks_failed(self, make_orchestrator, artifact_repo, ready_document_id, owner_id):
        dispatcher = RecordingDispatcher(error=ConnectionError("broker down"))

        artifact_id = await make_orchestrator(FakeGenerator(response=HTML), dispatcher).generate(
            ready_document_id, "c", owner_id
        )

        artifact = await artifact_repo.get_by_id(artifact_id)
        assert artifact.status == ArtifactStatus.FAILED
        assert artifact.execution_results.errors == ["broker down"]

    @pytest.mark.asyncio
    async def test_processing_document_is_still_generated(
        self, make_orchestrator, artifact_repo, document_id, owner_id
    ):
        generator = FakeGenerator(response=HTML)

        artifact_id = await make_orchestrator(generator).generate(document_id, "c", owner_id)

        artifact = await artifact_repo.get_by_id(artifact_id)
        assert artifact.status == ArtifactStatus.EXECUTING
        assert "No content available" in generator.prompts[0]


# =============================================================================
# Access checks
# =============================================================================


class TestAccess:
    @pytest.mark.asyncio
    async def test_missing_document(self, make_orchestrator, artifact_repo, owner_id):
        generator = FakeGenerator(response=HTML)

        with pytest.raises(NotFound):
            await make_orchestrator(generator).generate("missing", "c", owner_id)

        assert generator.prompts == []
        assert await artifact_repo.get_by_owner(owner_id) == []

    @pytest.mark.asyncio
    async def test_foreign_document_is_unauthorized(
        self, make_orchestrator, artifact_repo, owner_service, other_identity, ready_document_id
    ):
        other_owner_id = await owner_service.ensure_owner(other_identity)
        generator = FakeGenerator(response=HTML)

        with pytest.raises(Unauthorized):
            await make_orchestrator(generator).generate(ready_document_id, "c", other_owner_id)

        assert generator.prompts == []
        assert await artifact_repo.get_by_document(ready_document_id) == []

    @pytest.mark.asyncio
    async def test_generate_for_identity_resolves_owner(
        self, make_orchestrator, artifact_repo, identity, ready_document_id, owner_id
    ):
        artifact_id = await make_orchestrator(FakeGenerator(response=HTML)).generate_for_identity(
            ready_document_id, "c", identity
        )

        artifact = await artifact_repo.get_by_id(artifact_id)
        assert artifact.owner_id == owner_id

    @pytest.mark.asyncio
    async def test_generate_without_identity(self, make_orchestrator, ready_document_id):
        with pytest.raises(Unauthenticated):
            await make_orchestrator(FakeGenerator(response=HTML)).generate_for_identity(
                ready_document_id, "c", None
            )
