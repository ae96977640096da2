"""Database models for owners, documents and artifacts."""

from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel, Text

from ..config import utc_now
from ..models.enums import ArtifactStatus, CodeType, DocumentStatus


def _new_id() -> str:
    return uuid4().hex


class OwnerRecord(SQLModel, table=True):
    """Owner database model."""

    __tablename__ = "owners"

    id: str = Field(default_factory=_new_id, primary_key=True)
    # Unique so concurrent first logins cannot create two owners
    external_id: str = Field(index=True, unique=True)
    email: str = Field(default="")
    name: str = Field(default="")
    organization_id: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, index=True)


class DocumentRecord(SQLModel, table=True):
    """Document database model."""

    __tablename__ = "documents"

    id: str = Field(default_factory=_new_id, primary_key=True)
    owner_id: str = Field(foreign_key="owners.id", index=True)
    title: str = Field()
    file_name: str = Field()
    file_blob_id: str = Field()
    file_url: Optional[str] = Field(default=None)
    status: str = Field(default=DocumentStatus.PROCESSING.value, index=True)
    extracted_content: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    # "metadata" is reserved on declarative models
    doc_metadata: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=utc_now, index=True)


class ArtifactRecord(SQLModel, table=True):
    """Artifact database model."""

    __tablename__ = "artifacts"

    id: str = Field(default_factory=_new_id, primary_key=True)
    owner_id: str = Field(foreign_key="owners.id", index=True)
    document_id: str = Field(foreign_key="documents.id", index=True)
    concept: str = Field(sa_column=Column(Text, nullable=False))
    status: str = Field(default=ArtifactStatus.GENERATING.value, index=True)
    code_type: str = Field(default=CodeType.HTML.value)
    generated_code: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    execution_results: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    output_blob_id: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, index=True)
