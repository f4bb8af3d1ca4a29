"""
FastAPI dependency injection utilities for services and caller identity.
The owner of a new listing is resolved here, so the listing service never
has to trust a request field on its own.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from rental_market.config import settings
from rental_market.database import get_db
from rental_market.models.user import User
from rental_market.services.auth import AuthService
from rental_market.services.image import ImageService
from rental_market.services.property import PropertyService
from rental_market.utils.file_utils import ImageStorage
from rental_market.utils.exceptions import UnauthorizedError, ForbiddenError


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_image_storage() -> ImageStorage:
    """Image store rooted at the configured upload directory."""
    return ImageStorage(settings.upload_dir, settings.upload_url_prefix)


def get_image_service(storage: ImageStorage = Depends(get_image_storage)) -> ImageService:
    return ImageService(storage)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """
    Get authentication service instance.
    """
    return AuthService(db)


async def get_property_service(
    db: AsyncSession = Depends(get_db),
    image_service: ImageService = Depends(get_image_service)
) -> PropertyService:
    """
    Get property service instance.
    """
    return PropertyService(db, image_service)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        InactiveUserError: If user account is inactive
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    return await auth_service.get_current_user(credentials.credentials)


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    """
    Get current user if a token is provided, otherwise return None.

    A token that is present but invalid is still rejected.
    """
    if not credentials:
        return None

    return await auth_service.get_current_user(credentials.credentials)


def resolve_owner_id(claimed_user_id: Optional[str], current_user: Optional[User]) -> Optional[str]:
    """
    Decide which owner identifier a new listing gets.

    * with a verified user, the token subject wins and a different claimed id is refused
    * without one, the claimed id is used unless authentication is required

    Raises:
        ForbiddenError: If the claimed id differs from the verified user
        UnauthorizedError: If authentication is required and no user is verified
    """
    claimed = claimed_user_id.strip() if claimed_user_id else None

    if current_user is not None:
        verified = str(current_user.id)
        if claimed and claimed != verified:
            raise ForbiddenError("userId does not match the authenticated user")
        return verified

    if settings.require_authentication:
        raise UnauthorizedError("Authentication token required to create listings")

    return claimed
