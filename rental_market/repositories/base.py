"""
Base repository class with common CRUD operations using async SQLAlchemy.
Provides generic database operations that can be extended by specific repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, update, delete
from rental_market.database import Base
from rental_market.utils.exceptions import StoreError
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type
import uuid
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)

# Columns that callers can never overwrite through update()
PROTECTED_FIELDS = frozenset({"id", "created_at"})


class BaseRepository(Generic[ModelType]):
    """
    Base repository class providing common CRUD operations.
    Database failures are rolled back and surfaced as StoreError.
    """

    protected_fields = PROTECTED_FIELDS

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository with model class and database session.

        Args:
            model: SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def create(self, obj_in: Dict[str, Any]) -> ModelType:
        """
        Create a new record in the database.

        Args:
            obj_in: Dictionary of field values for the new record

        Returns:
            Created model instance

        Raises:
            StoreError: If database operation fails
        """
        try:
            db_obj = self.model(**obj_in)
            self.db.add(db_obj)
            await self.db.commit()
            await self.db.refresh(db_obj)
            logger.debug(f"Created {self.model.__name__} with id: {db_obj.id}")
            return db_obj
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create {self.model.__name__}: {e}")
            raise StoreError(f"Failed to create {self.model.__name__.lower()}") from e

    async def get_by_id(self, id: uuid.UUID) -> Optional[ModelType]:
        """
        Get a record by its ID.

        Returns:
            Model instance if found, None otherwise
        """
        try:
            result = await self.db.execute(select(self.model).where(self.model.id == id))
            obj = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get {self.model.__name__} by id {id}: {e}")
            raise StoreError(f"Failed to load {self.model.__name__.lower()}") from e

        if obj:
            logger.debug(f"Retrieved {self.model.__name__} with id: {id}")
        else:
            logger.debug(f"{self.model.__name__} with id {id} not found")
        return obj

    async def get_multi(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None
    ) -> List[ModelType]:
        """
        Get all records matching equality filters.

        Args:
            filters: Dictionary of field filters
            order_by: Field name to order by (prefix with '-' for descending),
                defaults to insertion order

        Returns:
            List of model instances
        """
        query = select(self.model)

        if filters:
            for field, value in filters.items():
                if hasattr(self.model, field):
                    query = query.where(getattr(self.model, field) == value)

        if order_by and order_by.startswith('-'):
            query = query.order_by(getattr(self.model, order_by[1:]).desc())
        elif order_by:
            query = query.order_by(getattr(self.model, order_by))
        else:
            query = query.order_by(self.model.created_at.asc())

        try:
            result = await self.db.execute(query)
            objects = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get multiple {self.model.__name__} records: {e}")
            raise StoreError(f"Failed to list {self.model.__tablename__}") from e

        logger.debug(f"Retrieved {len(objects)} {self.model.__name__} records")
        return list(objects)

    async def update(self, id: uuid.UUID, obj_in: Dict[str, Any]) -> Optional[ModelType]:
        """
        Partially update a record by its ID.

        None values and protected fields are ignored.

        Returns:
            Updated model instance if found, None otherwise

        Raises:
            StoreError: If database operation fails
        """
        update_data = {
            k: v for k, v in obj_in.items()
            if v is not None and k not in self.protected_fields
        }

        if not update_data:
            logger.debug(f"No changes provided for {self.model.__name__} {id}")
            return await self.get_by_id(id)

        try:
            stmt = update(self.model).where(self.model.id == id).values(**update_data)
            result = await self.db.execute(stmt)

            if result.rowcount == 0:
                await self.db.rollback()
                logger.debug(f"{self.model.__name__} with id {id} not found for update")
                return None

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to update {self.model.__name__} {id}: {e}")
            raise StoreError(f"Failed to update {self.model.__name__.lower()}") from e

        # The identity map may still hold the pre-update state
        obj = await self.get_by_id(id)
        if obj is not None:
            await self.db.refresh(obj)
        logger.debug(f"Updated {self.model.__name__} with id: {id}")
        return obj

    async def delete(self, id: uuid.UUID) -> bool:
        """
        Delete a record by its ID.

        Returns:
            True if record was deleted, False if not found

        Raises:
            StoreError: If database operation fails
        """
        try:
            result = await self.db.execute(delete(self.model).where(self.model.id == id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to delete {self.model.__name__} {id}: {e}")
            raise StoreError(f"Failed to delete {self.model.__name__.lower()}") from e

        deleted = result.rowcount > 0
        if deleted:
            logger.debug(f"Deleted {self.model.__name__} with id: {id}")
        else:
            logger.debug(f"{self.model.__name__} with id {id} not found for deletion")
        return deleted
