"""
Image intake service for listing uploads.
Validates incoming files, writes them to the image store and removes files that are no longer referenced.
"""

from typing import Iterable, List, Optional, Sequence
from fastapi import UploadFile
import logging

from rental_market.config import get_settings
from rental_market.utils.file_utils import FileValidator, ImageStorage
from rental_market.utils.exceptions import ImageLimitExceededError

settings = get_settings()
logger = logging.getLogger(__name__)


class ImageService:
    """Service for accepting listing images and cleaning up superseded ones."""

    def __init__(self, storage: Optional[ImageStorage] = None, max_images: Optional[int] = None):
        self.storage = storage or ImageStorage()
        self.max_images = max_images or settings.max_images_per_property

    def check_limit(self, count: int) -> None:
        """
        Reject an image list longer than the per-listing cap.

        Raises:
            ImageLimitExceededError: If count exceeds the cap
        """
        if count > self.max_images:
            raise ImageLimitExceededError(count, self.max_images)

    async def store_uploads(self, files: Sequence[UploadFile]) -> List[str]:
        """
        Validate and write uploaded files in upload order.

        Every file is validated before the first one is written. If a write fails,
        files already written for this call are removed before the error propagates.

        Args:
            files: Uploaded files, at most ``max_images``

        Returns:
            Public paths of the stored files, in upload order

        Raises:
            ImageLimitExceededError: If too many files were uploaded
            ValidationError: If a file is not an acceptable image
            FileUploadError: If a file cannot be written
        """
        self.check_limit(len(files))

        contents = []
        for upload in files:
            contents.append((await FileValidator.validate_upload_file(upload), upload.filename))

        stored: List[str] = []
        try:
            for content, filename in contents:
                stored.append(await self.storage.save(content, filename))
        except Exception:
            logger.error(f"Image write failed after {len(stored)} of {len(contents)} files, rolling back")
            self.discard(stored)
            raise

        logger.info(f"Stored {len(stored)} uploaded image(s)")
        return stored

    def discard(self, paths: Iterable[str]) -> int:
        """
        Delete stored images by public path.

        Paths that are not in the image store are skipped.

        Returns:
            Number of files removed
        """
        removed = 0
        for path in paths:
            try:
                if self.storage.delete(path):
                    removed += 1
            except OSError as e:
                logger.warning(f"Could not delete image {path}: {e}")
        if removed:
            logger.info(f"Removed {removed} image file(s)")
        return removed
