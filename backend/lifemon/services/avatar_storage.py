"""
LifeMon Backend — Avatar Storage Service
==========================================

What:  Validates and stores avatar uploads on the local uploads volume.
How:   Checks the declared content type and the payload size, generates a
       collision-free filename, writes with aiofiles.
Who:   The `receive_avatar` dependency of POST /api/users/profile/avatar;
       the route calls cleanup() when the database write fails.
When:  Before the avatar handler body runs; rejected uploads never reach it.

Upload rules:
    1. Content type must start with "image/"       → else 400, nothing written
    2. Size ≤ avatar_max_size (5 MiB)              → else 400, nothing written
       (declared size checked first, then the bytes actually read)
    3. Directory <uploads_root>/avatars/ is created on first use
    4. Filename: avatar-<userId>-<epochMs>-<random>.<ext>; <ext> is the
       original extension when it is an image one, else it follows the
       content type (x.html sent as image/png is stored as .png)
    5. Public URL: <uploads_url_prefix>/avatars/<filename>

Directory Structure:
    uploads/
    └── avatars/
        ├── avatar-7-1718000000000-123456789.png
        └── avatar-7-1718000000000-987654321.jpg
"""

import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import UploadFile

from lifemon.config import settings
from lifemon.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

AVATAR_SUBDIR = "avatars"

# Suffixes the static mount serves with an image media type
IMAGE_EXTENSIONS = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".avif", ".heic", ".heif",
})
CONTENT_TYPE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
    "image/avif": ".avif",
    "image/heic": ".heic",
    "image/heif": ".heif",
}


@dataclass(frozen=True)
class StoredAvatar:
    """An avatar written to disk (the equivalent of a parsed multipart file)."""

    filename: str
    path: str
    url: str
    size: int
    content_type: str


class AvatarStorage:
    """
    Manages avatar upload validation and storage.

    Lifecycle of an uploaded avatar:
        1. receive_avatar() hands the UploadFile to store()
        2. Content type check (declared MIME type)
        3. Declared size check, then bounded read + actual size check
        4. Directory created if missing, unique filename generated
        5. Bytes written; StoredAvatar returned (url goes into the database)
        6. On a later failure the route calls cleanup()
    """

    def __init__(
        self,
        uploads_root: Optional[str] = None,
        max_size: Optional[int] = None,
        url_prefix: Optional[str] = None,
    ):
        """
        Args:
            uploads_root: Override settings.uploads_root (used in tests).
            max_size:     Override settings.avatar_max_size.
            url_prefix:   Override settings.uploads_url_prefix.
        """
        root = Path(uploads_root or settings.uploads_root).resolve()
        self.directory = root / AVATAR_SUBDIR
        self.max_size = max_size or settings.avatar_max_size
        self.url_prefix = (url_prefix or settings.uploads_url_prefix).rstrip("/")

    # ── Validation ────────────────────────────────────────────────────────

    def validate_content_type(self, content_type: Optional[str]) -> str:
        """
        Accepts any declared image/* type.

        Raises:
            ValidationError if the type is missing or not an image.
        """
        if not content_type or not content_type.lower().startswith("image/"):
            raise ValidationError(
                message="Only image files are allowed",
                field="avatar",
                context={"content_type": content_type},
            )
        return content_type

    def validate_size(self, declared_size: Optional[int], actual_size: int) -> None:
        """
        Enforces the avatar size cap.

        Args:
            declared_size: Size reported by the multipart parser (may be None)
            actual_size:   Number of bytes actually read

        Raises:
            ValidationError with a human-readable limit message.
        """
        max_mb = self.max_size / (1024 * 1024)

        if declared_size and declared_size > self.max_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:g}MB",
                field="avatar",
                context={"max_size": self.max_size, "reported_size": declared_size},
            )

        if actual_size > self.max_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:g}MB",
                field="avatar",
                context={"max_size": self.max_size, "actual_size": actual_size},
            )

    # ── Naming ────────────────────────────────────────────────────────────

    def generate_filename(
        self,
        user_id: int,
        original_filename: Optional[str],
        content_type: Optional[str] = None,
    ) -> str:
        """
        Builds avatar-<userId>-<epochMs>-<random>.<ext>.

        The random part is drawn from [0, 1e9). The extension is the original
        one, lowercased, if it names an image format; otherwise the one of
        the declared content type; otherwise empty.
        """
        extension = Path(original_filename or "").suffix.lower()
        if extension not in IMAGE_EXTENSIONS:
            extension = CONTENT_TYPE_EXTENSIONS.get((content_type or "").lower(), "")
        timestamp_ms = int(time.time() * 1000)
        suffix = secrets.randbelow(1_000_000_000)
        return f"avatar-{user_id}-{timestamp_ms}-{suffix}{extension}"

    def url_for(self, filename: str) -> str:
        """Public path stored in the database and served by the static mount."""
        return f"{self.url_prefix}/{AVATAR_SUBDIR}/{filename}"

    def ensure_directory(self) -> Path:
        if not self.directory.exists():
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error("Could not create upload directory %s: %s", self.directory, str(e))
                raise FileStorageError(
                    message="Failed to prepare upload directory",
                    context={"path": str(self.directory), "os_error": str(e)},
                )
            logger.info("Created upload directory: %s", self.directory)
        return self.directory

    # ── Storage ───────────────────────────────────────────────────────────

    async def store(self, user_id: int, upload: UploadFile) -> StoredAvatar:
        """
        Validate and write an uploaded avatar.

        Validation order:
            1. Content type (no reading needed)
            2. Declared size (no reading needed)
            3. Bounded read (at most max_size + 1 bytes), actual size, non-empty
            4. Write to disk

        Raises:
            ValidationError:  wrong type, oversize, empty file
            FileStorageError: directory or write failure
        """
        content_type = self.validate_content_type(upload.content_type)
        self.validate_size(upload.size, 0)

        content = await upload.read(self.max_size + 1)
        self.validate_size(None, len(content))
        if not content:
            raise ValidationError(message="Uploaded file is empty", field="avatar")

        self.ensure_directory()

        while True:
            path = self.directory / self.generate_filename(user_id, upload.filename, content_type)
            try:
                # "x" fails instead of overwriting; another request may own the name
                async with aiofiles.open(path, "xb") as f:
                    await f.write(content)
                break
            except FileExistsError:
                logger.debug("Avatar name %s already taken, drawing again", path.name)
            except OSError as e:
                logger.error("Failed to store avatar at %s: %s", path, str(e))
                raise FileStorageError(
                    message="Failed to save uploaded avatar. Please try again.",
                    context={"path": str(path), "os_error": str(e)},
                )

        logger.info("Avatar stored: %s (%d bytes, %s)", path.name, len(content), content_type)
        return StoredAvatar(
            filename=path.name,
            path=str(path),
            url=self.url_for(path.name),
            size=len(content),
            content_type=content_type,
        )

    async def cleanup(self, file_path: str) -> None:
        """
        Remove a stored avatar after a failed database write.

        Best-effort: a missing file is fine and other failures are logged,
        never raised, so the original error reaches the client.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up avatar: %s", path.name)
            else:
                logger.debug("Cleanup: avatar already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up avatar %s: %s", file_path, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
avatar_storage = AvatarStorage()


def get_avatar_storage() -> AvatarStorage:
    """FastAPI dependency returning the process-wide storage (overridden in tests)."""
    return avatar_storage
