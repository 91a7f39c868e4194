"""
UniHelp Backend — Note Request/Response Schemas
=================================================

What:  Pydantic models defining the notes API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI doc generation.

Create and update share the same fields: update is a full replace of
title/content/fileUrl, so omitting `content` on PUT clears it.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from unihelp.schemas.common import ApiModel


class NoteWriteRequest(ApiModel):
    """Body of POST /notes and PUT /notes/{id}."""
    title: str = Field(min_length=1, max_length=200, examples=["Lecture 5 key topics"])
    content: Optional[str] = Field(default=None, examples=["Dependency injection was covered..."])
    file_url: Optional[str] = Field(
        default=None,
        max_length=500,
        examples=["/api/v1/files/2026/10/19/0b6c3c9e-lecture5.pdf"],
    )


class NoteCreateRequest(NoteWriteRequest):
    pass


class NoteUpdateRequest(NoteWriteRequest):
    pass


class NoteResponse(ApiModel):
    """A note joined with its author's username."""
    id: int
    title: str
    content: Optional[str] = None
    file_url: Optional[str] = None
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")
    author_username: str


class AttachmentResponse(ApiModel):
    """Result of an attachment upload; pass `fileUrl` on note create/update."""
    file_url: str
    size: int = Field(description="Stored size in bytes")
