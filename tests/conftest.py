"""
Shared pytest fixtures for the Paper Demo Generator tests.

Each test gets its own SQLite file under ``tmp_path`` and its own engine,
so the store never outlives the event loop of the test that created it.
"""

from pathlib import Path

import pytest
import pytest_asyncio

from paperdemo.config import Settings
from paperdemo.database import (
    ArtifactRepository,
    DocumentRepository,
    OwnerRepository,
    StateStore,
    create_engine_for,
    create_session_maker,
    init_database,
)
from paperdemo.models import Identity
from paperdemo.core.owners import OwnerService

from tests.fakes import FakeBlobStore, FakeSandboxProvider, RecordingDispatcher


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at tmp_path, with no sandbox waits."""
    return Settings(
        _env_file=None,
        database_path=str(tmp_path / "paperdemo.db"),
        storage_dir=str(tmp_path / "blobs"),
        scratch_dir=str(tmp_path / "scratch"),
        public_base_url="http://testserver",
        sandbox_settle_seconds=0.0,
        sandbox_probe_strategy="poll",
        sandbox_probe_attempts=3,
        sandbox_probe_backoff=0.0,
        sandbox_probe_max_backoff=0.0,
    )


# =============================================================================
# Store
# =============================================================================


@pytest_asyncio.fixture
async def engine(settings):
    db_path = Path(settings.database_path)
    engine = create_engine_for(db_path)
    await init_database(engine, db_path)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine):
    return StateStore(create_session_maker(engine))


@pytest.fixture
def owner_repo(store):
    return OwnerRepository(store)


@pytest.fixture
def document_repo(store):
    return DocumentRepository(store)


@pytest.fixture
def artifact_repo(store):
    return ArtifactRepository(store)


@pytest.fixture
def owner_service(owner_repo):
    return OwnerService(owner_repo)


# =============================================================================
# Identities and records
# =============================================================================


@pytest.fixture
def identity():
    return Identity(subject="user_alice", email="alice@example.com", name="Alice")


@pytest.fixture
def other_identity():
    return Identity(subject="user_bob", email="bob@example.com", name="Bob")


@pytest_asyncio.fixture
async def owner_id(owner_service, identity):
    return await owner_service.ensure_owner(identity)


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest_asyncio.fixture
async def pdf_blob_id(blob_store):
    return await blob_store.store(b"%PDF-1.4 fake paper", "application/pdf")


@pytest_asyncio.fixture
async def document_id(document_repo, owner_id, pdf_blob_id):
    return await document_repo.create(
        owner_id=owner_id,
        title="Attention Is All You Need",
        file_name="attention.pdf",
        file_blob_id=pdf_blob_id,
    )


@pytest.fixture
def sandbox_provider():
    return FakeSandboxProvider()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()
