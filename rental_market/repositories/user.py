"""
User repository for account lookup and creation.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select
from rental_market.models.user import User
from rental_market.repositories.base import BaseRepository
from rental_market.utils.exceptions import StoreError
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for User accounts."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email address (case-insensitive).

        Returns:
            User instance if found, None otherwise
        """
        try:
            result = await self.db.execute(
                select(User).where(User.email == email.lower().strip())
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise StoreError("Failed to load user") from e

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        """
        Create a new user; the email is stored lower-cased.

        Args:
            user_data: name, email and hashed_password
        """
        data = dict(user_data)
        data["email"] = data["email"].lower().strip()
        return await self.create(data)

    async def email_exists(self, email: str) -> bool:
        return await self.get_by_email(email) is not None
