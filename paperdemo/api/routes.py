"""FastAPI routes for papers, demos and blobs."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..collaborators.identity import HeaderIdentityProvider
from ..collaborators.storage import LocalBlobStore
from ..models.schemas import (
    Artifact,
    BlobResponse,
    CreateDocumentRequest,
    CreatedResponse,
    Document,
    GenerateArtifactRequest,
    HealthResponse,
    Identity,
    Owner,
)
from ..runtime import Runtime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["paper-demo-generator"])


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def get_identity(request: Request) -> Optional[Identity]:
    return HeaderIdentityProvider(request.headers).current_identity()


@router.get("/health", response_model=HealthResponse)
async def health_check(runtime: Runtime = Depends(get_runtime)):
    """Health check endpoint."""
    return HealthResponse(
        version=runtime.settings.app_version,
        details={"dispatcher": runtime.settings.dispatcher_backend},
    )


# ─────────────────────────────────────────────────────────────────────────────
# Owners
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/owners/ensure", response_model=CreatedResponse)
async def ensure_owner(
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    """Create the caller's owner record on first sign-in."""
    owner_id = await runtime.owners.ensure_owner(identity)
    return CreatedResponse(id=owner_id)


@router.get("/owners/me", response_model=Optional[Owner])
async def current_owner(
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    return await runtime.owners.current_owner(identity)


# ─────────────────────────────────────────────────────────────────────────────
# Blobs
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/blobs", response_model=BlobResponse, status_code=status.HTTP_201_CREATED)
async def upload_blob(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    """Store the raw request body as a blob.

    The content type of the request becomes the content type of the blob.
    """
    await runtime.owners.resolve_owner(identity)

    data = await request.body()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")

    content_type = request.headers.get("content-type", "application/octet-stream")
    blob_id = await runtime.blob_store.store(data, content_type)
    return BlobResponse(blob_id=blob_id, url=await runtime.blob_store.get_url(blob_id))


@router.get("/blobs/{blob_id}")
async def download_blob(blob_id: str, runtime: Runtime = Depends(get_runtime)):
    """Serve a blob. Blob ids are unguessable, so reads are not owner-checked."""
    data = await runtime.blob_store.read(blob_id)
    media_type = "application/octet-stream"
    if isinstance(runtime.blob_store, LocalBlobStore):
        media_type = await runtime.blob_store.content_type(blob_id)
    return Response(content=data, media_type=media_type)


# ─────────────────────────────────────────────────────────────────────────────
# Documents
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/documents", response_model=CreatedResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_document(
    body: CreateDocumentRequest,
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    """Register an uploaded paper. Extraction runs in the background."""
    document_id = await runtime.documents.create_document(
        identity,
        file_name=body.file_name,
        file_blob_id=body.file_blob_id,
        title=body.title,
    )
    return CreatedResponse(id=document_id)


@router.get("/documents", response_model=List[Document])
async def list_documents(
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    return await runtime.documents.list_documents(identity)


@router.get("/documents/{document_id}", response_model=Document)
async def get_document(
    document_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    document = await runtime.documents.get_document(identity, document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"document not found: {document_id}")
    return document


# ─────────────────────────────────────────────────────────────────────────────
# Artifacts
# ─────────────────────────────────────────────────────────────────────────────

@router.post(
    "/documents/{document_id}/artifacts",
    response_model=CreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate_artifact(
    document_id: str,
    body: GenerateArtifactRequest,
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    """Generate demo code for a concept and schedule its execution.

    Returns once the code is generated; sandbox execution continues in the
    background. Poll the artifact for its final status.
    """
    artifact_id = await runtime.generation.generate_for_identity(document_id, body.concept, identity)
    return CreatedResponse(id=artifact_id)


@router.get("/documents/{document_id}/artifacts", response_model=List[Artifact])
async def list_artifacts(
    document_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    return await runtime.documents.list_artifacts(identity, document_id)


@router.get("/artifacts/{artifact_id}", response_model=Artifact)
async def get_artifact(
    artifact_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    artifact = await runtime.documents.get_artifact(identity, artifact_id)
    if artifact is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"artifact not found: {artifact_id}")
    return artifact

