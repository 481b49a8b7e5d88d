"""
muntanyers Backend: Avatar Storage Service
==========================================

What:  Validates, stores, serves and cleans up profile pictures.
Who:   Called by AccountService.set_avatar and the uploads route.

Validation pipeline (cheapest check first):
    1. Extension check:    .png .jpg .jpeg .gif .webp
    2. Content type check: the upload must declare an image/* type
    3. Size check:         non-empty and at most settings.max_avatar_size
    4. Generated name:     avatar-<user id>-<uuid><ext>, no client input

Directory Structure:
    storage/
    └── avatars/
        ├── avatar-1-3f2a....png
        └── avatar-7-91cc....jpg

Stored avatars are published under /uploads/avatars/<name>; that string is
what lands in users.avatar_url.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from muntanyers.config import settings
from muntanyers.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

AVATAR_SUBDIR = "avatars"
AVATAR_URL_PREFIX = "/uploads/avatars/"


class FileService:
    """
    Manages the avatar file lifecycle.

    Lifecycle of an uploaded avatar:
        1. Route reads the multipart upload → FileService.store_avatar()
        2. Extension, content type and size checks
        3. File is written under storage_root/avatars with a generated name
        4. Public URL is returned and saved on the account
        5. The previous avatar, if it was one of ours, is removed
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.avatar_dir = self.storage_root / AVATAR_SUBDIR
        self.avatar_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """Returns the normalized extension (lowercase with dot)."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="avatar",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_content_type(self, content_type: Optional[str]) -> None:
        if not content_type or not content_type.lower().startswith("image/"):
            raise ValidationError(
                message="Only image files are allowed",
                field="avatar",
                context={"content_type": content_type},
            )

    def validate_size(self, actual_size: int) -> None:
        if actual_size == 0:
            raise ValidationError(message="No file uploaded", field="avatar")

        max_mb = settings.max_avatar_size / (1024 * 1024)
        if actual_size > settings.max_avatar_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="avatar",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    async def store_avatar(
        self,
        user_id: int,
        filename: str,
        content_type: Optional[str],
        content: bytes,
    ) -> str:
        """
        Validate and write an avatar.

        Returns:
            Public URL path, e.g. "/uploads/avatars/avatar-3-<uuid>.png"

        Raises:
            ValidationError:  wrong type, empty or oversized upload
            FileStorageError: the file could not be written
        """
        ext = self.validate_extension(filename)
        self.validate_content_type(content_type)
        self.validate_size(len(content))

        name = f"avatar-{user_id}-{uuid.uuid4().hex}{ext}"
        absolute_path = self.avatar_dir / name

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store avatar at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Avatar stored: %s (%d bytes)", name, len(content))
        return AVATAR_URL_PREFIX + name

    def resolve_avatar(self, filename: str) -> Path:
        """
        Map a published avatar name back to a file on disk.

        Raises:
            NotFoundError: the name escapes the avatar directory or no such file
        """
        candidate = (self.avatar_dir / filename).resolve()
        if candidate.parent != self.avatar_dir.resolve() or not candidate.is_file():
            raise NotFoundError(resource="avatar", resource_id=filename)
        return candidate

    def local_path_for(self, avatar_url: Optional[str]) -> Optional[Path]:
        """Disk path of an avatar URL we issued, or None for anything else."""
        if not avatar_url or not avatar_url.startswith(AVATAR_URL_PREFIX):
            return None
        name = avatar_url[len(AVATAR_URL_PREFIX):]
        if not name or "/" in name or name in (".", ".."):
            return None
        return self.avatar_dir / name

    async def cleanup_file(self, file_path) -> None:
        """
        Remove a file from storage if it exists.

        Failures are logged and never raised: an orphaned avatar on disk is not
        a user-facing error.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def remove_avatar(self, avatar_url: Optional[str]) -> None:
        path = self.local_path_for(avatar_url)
        if path is not None:
            await self.cleanup_file(path)


file_service = FileService()
