"""
Property service for managing listings.
Handles create/read/update/delete, merging of retained and newly uploaded images,
and cleanup of image files that are no longer referenced.
"""

from typing import Optional, List, Sequence
from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from rental_market.repositories.property import PropertyRepository
from rental_market.models.property import Property
from rental_market.schemas.property import PropertyCreate, PropertyUpdate
from rental_market.services.image import ImageService
from rental_market.utils.exceptions import (
    PropertyNotFoundError,
    ValidationError,
)
import uuid
import logging

logger = logging.getLogger(__name__)


def merge_images(
    current: Sequence[str],
    uploaded: Sequence[str],
    keep_images: Optional[Sequence[str]] = None
) -> List[str]:
    """
    Compute the image list of a listing after an update.

    * nothing uploaded: the current list is left as is
    * uploads with ``keep_images``: retained images first, then the uploads
    * uploads without ``keep_images``: the uploads replace everything

    Args:
        current: Images attached to the listing now
        uploaded: Paths of the files stored by this update
        keep_images: Caller-selected subset of ``current`` to retain

    Returns:
        The new ordered image list
    """
    if not uploaded:
        return list(current)
    if keep_images is not None:
        return list(keep_images) + list(uploaded)
    return list(uploaded)


class PropertyService:
    """
    Property service for managing listings and their images.
    """

    def __init__(self, db_session: AsyncSession, image_service: Optional[ImageService] = None):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.image_service = image_service or ImageService()

    async def create_property(
        self,
        property_data: PropertyCreate,
        owner_id: Optional[str],
        files: Sequence[UploadFile] = ()
    ) -> Property:
        """
        Create a new listing with its uploaded images.

        Args:
            property_data: Validated listing fields
            owner_id: Identifier of the owning user
            files: Uploaded images, in display order

        Returns:
            Created property instance

        Raises:
            ValidationError: If the owner is missing or an image is rejected
            StoreError: If the listing cannot be persisted
        """
        if not owner_id or not owner_id.strip():
            raise ValidationError(
                "userId is required",
                field_errors=[{"field": "userId", "message": "Field required"}]
            )

        images = await self.image_service.store_uploads(files)

        create_data = property_data.model_dump()
        create_data["user_id"] = owner_id.strip()
        create_data["images"] = images

        try:
            property_obj = await self.property_repo.create_property(create_data)
        except Exception:
            self.image_service.discard(images)
            raise

        logger.info(f"Property created for user {property_obj.user_id}: {property_obj.title} (ID: {property_obj.id})")
        return property_obj

    async def list_properties(self, user_id: Optional[str] = None) -> List[Property]:
        """
        All listings, or only those owned by ``user_id``.
        """
        properties = await self.property_repo.list_properties(user_id=user_id)
        logger.debug(f"Listed {len(properties)} properties (owner filter: {user_id})")
        return properties

    async def get_property(self, property_id: str) -> Property:
        """
        Get a listing by identifier.

        Raises:
            PropertyNotFoundError: If the identifier does not resolve
        """
        property_obj = await self.property_repo.get_by_id(self._parse_id(property_id))
        if not property_obj:
            raise PropertyNotFoundError(property_id)
        return property_obj

    async def update_property(
        self,
        property_id: str,
        property_data: PropertyUpdate,
        files: Sequence[UploadFile] = (),
        keep_images: Optional[List[str]] = None
    ) -> Property:
        """
        Partially update a listing and merge its images.

        ``keep_images`` only matters when new files are uploaded; see ``merge_images``.
        The image cap applies to the merged list and is checked before any file is written.

        Raises:
            PropertyNotFoundError: If the identifier does not resolve
            ValidationError: If keep_images is not a subset of the current images,
                the merged list is too long, or an image is rejected
            StoreError: If the listing cannot be persisted
        """
        existing = await self.get_property(property_id)
        current_images = list(existing.images or [])
        update_data = property_data.changes()

        new_images: List[str] = []
        if files:
            if keep_images is not None:
                unknown = [path for path in keep_images if path not in current_images]
                if unknown:
                    raise ValidationError(
                        "keepImages may only contain images of this property",
                        field_errors=[{"field": "keepImages", "message": f"unknown image: {path}"} for path in unknown]
                    )
                if len(set(keep_images)) != len(keep_images):
                    raise ValidationError(
                        "keepImages must not repeat an image",
                        field_errors=[{"field": "keepImages", "message": "duplicate image paths"}]
                    )
            self.image_service.check_limit(len(keep_images or []) + len(files))

            new_images = await self.image_service.store_uploads(files)
            update_data["images"] = merge_images(current_images, new_images, keep_images)

        try:
            updated = await self.property_repo.update_property(existing.id, update_data)
        except Exception:
            self.image_service.discard(new_images)
            raise

        if not updated:
            self.image_service.discard(new_images)
            raise PropertyNotFoundError(property_id)

        if new_images:
            superseded = [path for path in current_images if path not in updated.images]
            self.image_service.discard(superseded)

        logger.info(f"Property updated: {property_id} (fields: {sorted(update_data)})")
        return updated

    async def delete_property(self, property_id: str) -> None:
        """
        Delete a listing and its image files.

        Raises:
            PropertyNotFoundError: If the identifier does not resolve
        """
        existing = await self.get_property(property_id)
        images = list(existing.images or [])

        if not await self.property_repo.delete(existing.id):
            raise PropertyNotFoundError(property_id)

        self.image_service.discard(images)
        logger.info(f"Property deleted: {property_id}")

    @staticmethod
    def _parse_id(property_id: str) -> uuid.UUID:
        """Malformed identifiers cannot resolve to a listing."""
        try:
            return uuid.UUID(str(property_id))
        except ValueError:
            raise PropertyNotFoundError(property_id)
