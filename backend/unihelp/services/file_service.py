"""
UniHelp Backend — Attachment Storage Service
==============================================

What:  Validates, stores and resolves study-note attachments on local disk.
Why:   Notes carry an optional `fileUrl`; this is where those files live.
How:   Validates extension, emptiness, size and sniffed content type, then
       writes the bytes with aiofiles into a date-organized directory under a
       UUID filename.
Who:   Used by POST /notes/attachments and GET /files/{path}.

Security Model:
    1. Extension allow-list: study documents and images only
    2. Size check: Content-Length first, then the actual byte count
    3. Content check: libmagic reads the header bytes; the detected MIME type
       must match the extension (a renamed .exe is not a .pdf)
    4. UUID filename: no user input ever reaches the stored path
    5. Path resolution on read: anything resolving outside the storage root
       is rejected, so `../` tricks in GET /files/{path} fail with 400
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import magic

from unihelp.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Extension → MIME types libmagic may report for a genuine file of that kind.
# Office formats are ZIP containers; older libmagic builds only say "zip".
ALLOWED_MIME_TYPES = {
    ".pdf": {"application/pdf"},
    ".png": {"image/png"},
    ".jpg": {"image/jpeg"},
    ".jpeg": {"image/jpeg"},
    ".txt": {"text/*"},
    ".md": {"text/*"},
    ".docx": {
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/zip",
    },
    ".pptx": {
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "application/zip",
    },
}

ALLOWED_EXTENSIONS = set(ALLOWED_MIME_TYPES)

FILES_URL_PREFIX = "/api/v1/files"


class FileService:
    """
    Manages the attachment storage lifecycle.

    Directory Structure:
        storage/
        └── 2026/
            └── 10/
                └── 19/
                    ├── a1b2c3d4-....pdf
                    └── e5f6a7b8-....png
    """

    def __init__(self, storage_root: str, max_file_size: int):
        """
        Args:
            storage_root:  Base directory for stored files (created if missing)
            max_file_size: Upper bound in bytes for one attachment
        """
        self.storage_root = Path(storage_root).resolve()
        self.max_file_size = max_file_size
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """Returns the normalized (lowercase, dotted) extension or raises ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Reject empty files and files over the limit.

        Content-Length is checked first so an honest oversized upload is
        refused before its size is trusted; the actual size catches clients
        that lie about it.
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="file")

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=(
                    f"File size ({actual_size / (1024 * 1024):.1f}MB) "
                    f"exceeds maximum of {max_mb:.0f}MB."
                ),
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, content: bytes, extension: str) -> str:
        """
        Sniff the real content type from the header bytes and check that it
        fits the claimed extension.

        Returns:
            The detected MIME type

        Raises:
            ValidationError:  content does not match the extension (→ 400)
            FileStorageError: libmagic could not inspect the bytes (→ 500)
        """
        try:
            mime_type = magic.from_buffer(content, mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        accepted = ALLOWED_MIME_TYPES.get(extension, set())
        major = mime_type.split("/", 1)[0]
        if mime_type not in accepted and f"{major}/*" not in accepted:
            logger.warning("Rejected upload: '%s' content claimed as %s", mime_type, extension)
            raise ValidationError(
                message=f"File content ({mime_type}) does not match its '{extension}' extension.",
                field="file",
                context={"detected_type": mime_type, "extension": extension},
            )
        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for YYYY/MM/DD/<uuid><ext>."""
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{date_dir}/{unique_name}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write validated bytes to disk and return the path relative to the root.

        Raises:
            FileStorageError: directory creation or write failed
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save the uploaded file. Please try again.",
                context={"os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Full pipeline, cheapest checks first. Returns the public file URL.
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content, ext)
        relative_path = await self.store_file(content, ext)
        return self.public_url(relative_path)

    @staticmethod
    def public_url(relative_path: str) -> str:
        return f"{FILES_URL_PREFIX}/{relative_path}"

    def resolve(self, relative_path: str) -> Path:
        """
        Map a requested relative path to a stored file.

        Raises:
            ValidationError: the path escapes the storage root (→ 400)
            NotFoundError:   nothing stored there (→ 404)
        """
        candidate = (self.storage_root / relative_path).resolve()
        if candidate != self.storage_root and self.storage_root not in candidate.parents:
            logger.warning("Rejected file path outside storage root: %s", relative_path)
            raise ValidationError(message="Invalid file path.", field="path")

        if not candidate.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return candidate

