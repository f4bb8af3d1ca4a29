"""
File upload utilities for handling image validation and storage.
Provides the validator for uploaded images and the on-disk image store.
"""

import io
import time
import uuid
from pathlib import Path
from typing import Optional, Tuple
from PIL import Image, UnidentifiedImageError
import aiofiles
from fastapi import UploadFile

from rental_market.config import get_settings
from rental_market.utils.exceptions import ValidationError, FileUploadError

settings = get_settings()


class FileValidator:
    """Utility class for file validation operations."""

    # Supported image formats and their MIME types
    SUPPORTED_FORMATS = {
        'image/jpeg': ['.jpg', '.jpeg'],
        'image/png': ['.png'],
        'image/webp': ['.webp'],
        'image/gif': ['.gif'],
    }

    # Pillow format names per MIME type
    PIL_FORMATS = {
        'image/jpeg': 'jpeg',
        'image/png': 'png',
        'image/webp': 'webp',
        'image/gif': 'gif',
    }

    MAX_FILE_SIZE = settings.max_file_size

    @classmethod
    def supported_extensions(cls) -> list:
        extensions = []
        for mime_type, exts in cls.SUPPORTED_FORMATS.items():
            if mime_type in settings.allowed_file_types:
                extensions.extend(exts)
        return extensions

    @classmethod
    def validate_file_extension(cls, filename: str) -> str:
        """
        Validate file extension.

        Args:
            filename: Name of the file

        Returns:
            Lowercase file extension

        Raises:
            ValidationError: If extension is not supported
        """
        if not filename:
            raise ValidationError("Filename is required")

        extension = Path(filename).suffix.lower()

        if not extension:
            raise ValidationError(f"File '{filename}' must have an extension")

        supported = cls.supported_extensions()
        if extension not in supported:
            raise ValidationError(
                f"File extension '{extension}' not supported. "
                f"Supported extensions: {', '.join(supported)}"
            )

        return extension

    @classmethod
    def validate_mime_type(cls, mime_type: str) -> str:
        """
        Validate MIME type.

        Raises:
            ValidationError: If MIME type is not supported
        """
        if not mime_type:
            raise ValidationError("MIME type is required")

        if mime_type not in cls.SUPPORTED_FORMATS or mime_type not in settings.allowed_file_types:
            raise ValidationError(
                f"MIME type '{mime_type}' not supported. "
                f"Supported types: {', '.join(settings.allowed_file_types)}"
            )

        return mime_type

    @classmethod
    def validate_file_size(cls, file_size: int, max_size: Optional[int] = None) -> int:
        """
        Validate file size.

        Raises:
            ValidationError: If file is empty or exceeds the limit
        """
        if file_size <= 0:
            raise ValidationError("File size must be greater than 0")

        max_allowed = max_size or cls.MAX_FILE_SIZE
        if file_size > max_allowed:
            max_mb = max_allowed / (1024 * 1024)
            actual_mb = file_size / (1024 * 1024)
            raise ValidationError(
                f"File size ({actual_mb:.1f}MB) exceeds maximum allowed size ({max_mb:.1f}MB)"
            )

        return file_size

    @classmethod
    def validate_image_content(cls, content: bytes, mime_type: str) -> Tuple[int, int]:
        """
        Check that the bytes decode as an image of the declared type.

        Returns:
            Tuple of (width, height)
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                width, height = img.size
                pil_format = img.format.lower() if img.format else ""
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(f"Invalid image file: {e}")

        expected = cls.PIL_FORMATS.get(mime_type)
        if expected and pil_format != expected:
            raise ValidationError(
                f"Image format '{pil_format}' doesn't match MIME type '{mime_type}'"
            )

        return width, height

    @classmethod
    async def validate_upload_file(cls, file: UploadFile) -> bytes:
        """
        Comprehensive validation of an uploaded file.

        Returns:
            The file content, ready to be written

        Raises:
            ValidationError: If any validation fails
        """
        extension = cls.validate_file_extension(file.filename or "")
        mime_type = cls.validate_mime_type(file.content_type or "")

        if extension not in cls.SUPPORTED_FORMATS.get(mime_type, []):
            raise ValidationError(
                f"File extension '{extension}' doesn't match MIME type '{mime_type}'"
            )

        await file.seek(0)
        content = await file.read()
        await file.seek(0)

        cls.validate_file_size(len(content))
        cls.validate_image_content(content, mime_type)
        return content


class ImageStorage:
    """
    Flat on-disk store for listing images.

    Files live directly under ``base_dir`` and are published as
    ``<url_prefix>/<storage name>``.
    """

    def __init__(self, base_dir: Optional[Path] = None, url_prefix: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.url_prefix = "/" + (url_prefix or settings.upload_url_prefix).strip("/")

    def generate_storage_name(self, original_filename: str) -> str:
        """
        Storage name from the upload time in milliseconds plus the original extension.

        A short random token keeps names unique for uploads landing in the same millisecond.
        """
        extension = Path(original_filename).suffix.lower()
        timestamp = int(time.time() * 1000)
        return f"{timestamp}-{uuid.uuid4().hex[:8]}{extension}"

    def public_path(self, storage_name: str) -> str:
        return f"{self.url_prefix}/{storage_name}"

    def resolve(self, public_path: str) -> Optional[Path]:
        """
        Map a public path back to its file, or None when it is not one of ours.
        """
        prefix = self.url_prefix + "/"
        if not public_path or not public_path.startswith(prefix):
            return None

        name = public_path[len(prefix):]
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        return self.base_dir / name

    async def save(self, content: bytes, original_filename: str) -> str:
        """
        Write image bytes under a fresh storage name.

        Returns:
            Public path of the stored file

        Raises:
            FileUploadError: If the file cannot be written
        """
        file_path = self.base_dir / self.generate_storage_name(original_filename)
        try:
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(content)
        except OSError as e:
            # Remove a partially written file
            if file_path.exists():
                file_path.unlink()
            raise FileUploadError(f"Failed to save '{original_filename}': {e}")

        return self.public_path(file_path.name)

    def delete(self, public_path: str) -> bool:
        """
        Delete a stored image by its public path.

        Returns:
            True if a file was removed, False otherwise
        """
        file_path = self.resolve(public_path)
        if file_path is None or not file_path.is_file():
            return False
        file_path.unlink()
        return True

    def exists(self, public_path: str) -> bool:
        file_path = self.resolve(public_path)
        return file_path is not None and file_path.is_file()
