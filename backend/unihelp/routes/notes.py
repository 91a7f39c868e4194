"""
UniHelp Backend — Notes Route Handlers
========================================

What:  CRUD for study notes plus attachment upload.
How:   Reads are public; writes need a bearer token and NoteService enforces
       ownership. Lists return a plain JSON array and report the total match
       count in the `X-Total-Count` header.

Routes:
    GET    /api/v1/notes                 list (pageNumber, pageSize, searchTerm, sortBy)
    GET    /api/v1/notes/{id}            one note
    POST   /api/v1/notes                 create → 201 + Location
    PUT    /api/v1/notes/{id}            replace → 204
    DELETE /api/v1/notes/{id}            delete → 204
    POST   /api/v1/notes/attachments     multipart upload → 201 {fileUrl}
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from unihelp.database import get_db_session
from unihelp.dependencies import get_current_user, get_file_service, get_query_parameters
from unihelp.schemas.common import ErrorResponse, QueryParameters
from unihelp.schemas.note import (
    AttachmentResponse,
    NoteCreateRequest,
    NoteResponse,
    NoteUpdateRequest,
)
from unihelp.security import TokenClaims
from unihelp.services.file_service import FileService
from unihelp.services.note_service import note_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/v1/notes", tags=["Notes"])

_WRITE_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Caller does not own the note", "model": ErrorResponse},
    404: {"description": "Note not found", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=List[NoteResponse],
    responses={400: {"description": "Invalid query parameters", "model": ErrorResponse}},
    summary="List notes, newest first",
)
async def list_notes(
    response: Response,
    params: QueryParameters = Depends(get_query_parameters),
    db: AsyncSession = Depends(get_db_session),
) -> List[NoteResponse]:
    items, total = await note_service.list_notes(db=db, params=params)
    response.headers["X-Total-Count"] = str(total)
    return items


# Declared before /{note_id} so "attachments" is never parsed as an id
@router.post(
    "/attachments",
    response_model=AttachmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Unsupported type, empty or oversized file", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
    },
    summary="Upload a file to attach to a note",
    description=(
        "Stores a study document or image and returns the `fileUrl` to send "
        "when creating or updating a note."
    ),
)
async def upload_attachment(
    request: Request,
    file: UploadFile = File(..., description="PDF, image, text, Markdown, DOCX or PPTX"),
    current_user: TokenClaims = Depends(get_current_user),
    files: FileService = Depends(get_file_service),
) -> AttachmentResponse:
    content = await file.read()
    content_length = request.headers.get("content-length")
    file_url = await files.validate_and_store(
        filename=file.filename or "",
        content=content,
        content_length=int(content_length) if content_length and content_length.isdigit() else None,
    )
    logger.info("User %s uploaded attachment %s", current_user.user_id, file_url)
    return AttachmentResponse(file_url=file_url, size=len(content))


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Get a single note by ID",
)
async def get_note(
    note_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.get_note(db=db, note_id=note_id)


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_WRITE_ERRORS,
    summary="Create a note owned by the caller",
)
async def create_note(
    payload: NoteCreateRequest,
    response: Response,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.create_note(db=db, user_id=current_user.user_id, data=payload)
    response.headers["Location"] = f"{router.prefix}/{note.id}"
    return note


@router.put(
    "/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_WRITE_ERRORS,
    summary="Replace a note's title, content and file URL",
)
async def update_note(
    note_id: int,
    payload: NoteUpdateRequest,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await note_service.update_note(
        db=db, user_id=current_user.user_id, note_id=note_id, data=payload
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_WRITE_ERRORS,
    summary="Delete a note",
)
async def delete_note(
    note_id: int,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await note_service.delete_note(db=db, user_id=current_user.user_id, note_id=note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
