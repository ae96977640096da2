"""Pydantic schemas for the Paper Demo Generator."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from .enums import ArtifactStatus, CodeType, DocumentStatus


class Identity(BaseModel):
    """Caller identity resolved by the identity provider."""

    subject: str = Field(..., description="Stable external identity key")
    email: Optional[str] = Field(default=None, description="Contact address")
    name: Optional[str] = Field(default=None, description="Display name")
    organization_id: Optional[str] = Field(default=None, description="Organization key")


class Owner(BaseModel):
    """Stored owner record."""

    id: str
    external_id: str
    email: str = ""
    name: str = ""
    organization_id: Optional[str] = None
    created_at: Optional[datetime] = None


class DocumentMetadata(BaseModel):
    """Structured metadata extracted from a paper."""

    authors: List[str] = Field(default_factory=list)
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)


class Document(BaseModel):
    """Stored document record."""

    id: str
    owner_id: str
    title: str
    file_name: str
    file_blob_id: str
    file_url: Optional[str] = None
    status: DocumentStatus
    extracted_content: Optional[str] = None
    metadata: Optional[DocumentMetadata] = None
    created_at: Optional[datetime] = None


class ExecutionResults(BaseModel):
    """Output of one sandbox execution attempt."""

    sandbox_id: str = ""
    output_html: Optional[str] = None
    logs: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class Artifact(BaseModel):
    """Stored artifact record."""

    id: str
    owner_id: str
    document_id: str
    concept: str
    status: ArtifactStatus
    code_type: CodeType = CodeType.HTML
    generated_code: str = ""
    execution_results: Optional[ExecutionResults] = None
    output_blob_id: Optional[str] = None
    output_url: Optional[str] = None
    created_at: Optional[datetime] = None


# ─────────────────────────────────────────────────────────────────────────────
# API request/response models
# ─────────────────────────────────────────────────────────────────────────────

class CreateDocumentRequest(BaseModel):
    """Request to register an uploaded paper."""

    file_name: str = Field(..., min_length=1, description="Original file name")
    file_blob_id: str = Field(..., min_length=1, description="Blob id returned by the upload")
    title: Optional[str] = Field(default=None, description="Title, defaults to the file name")


class GenerateArtifactRequest(BaseModel):
    """Request to generate a demo for a concept."""

    concept: str = Field(..., min_length=1, max_length=2000, description="Concept to demonstrate")


class CreatedResponse(BaseModel):
    """Id of a record created by a request."""

    id: str


class BlobResponse(BaseModel):
    """Stored blob reference."""

    blob_id: str
    url: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str = "1.0.0"
    details: Dict[str, Any] = Field(default_factory=dict)
