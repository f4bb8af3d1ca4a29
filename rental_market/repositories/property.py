"""
Property repository with listing queries.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from rental_market.models.property import Property
from rental_market.repositories.base import BaseRepository, PROTECTED_FIELDS
from typing import Optional, List, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyRepository(BaseRepository[Property]):
    """Repository for Property records."""

    # The owner of a listing is fixed at creation
    protected_fields = PROTECTED_FIELDS | {"user_id"}

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    async def create_property(self, property_data: Dict[str, Any]) -> Property:
        """
        Insert a new listing.

        Args:
            property_data: Column values, including ``user_id`` and ``images``
        """
        data = dict(property_data)
        data.setdefault("images", [])
        return await self.create(data)

    async def list_properties(self, user_id: Optional[str] = None) -> List[Property]:
        """
        All listings in insertion order, optionally only those of one owner.
        """
        filters = {"user_id": user_id} if user_id else None
        return await self.get_multi(filters=filters)

    async def update_property(self, property_id: uuid.UUID, update_data: Dict[str, Any]) -> Optional[Property]:
        """Partially update a listing; ``user_id`` is never written."""
        if "user_id" in update_data:
            logger.warning(f"Ignoring attempt to change owner of property {property_id}")
        return await self.update(property_id, update_data)
