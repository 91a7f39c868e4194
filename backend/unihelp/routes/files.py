"""
UniHelp Backend — Stored File Route
=====================================

What:  GET /api/v1/files/{path} serves attachments written by FileService.
Security:
    The path is resolved against STORAGE_ROOT and rejected (400) if it
    lands outside it, so `../../etc/passwd` style requests never read
    arbitrary files.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from unihelp.dependencies import get_file_service
from unihelp.schemas.common import ErrorResponse
from unihelp.services.file_service import FileService

router = APIRouter(prefix="/api/v1/files", tags=["Files"])


@router.get(
    "/{file_path:path}",
    summary="Download a stored attachment",
    responses={
        200: {"description": "File contents"},
        400: {"description": "Path outside storage", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(
    file_path: str,
    files: FileService = Depends(get_file_service),
) -> FileResponse:
    path = files.resolve(file_path)
    # Stored names are UUIDs; content type is inferred from the extension
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "private, max-age=86400"},
    )
