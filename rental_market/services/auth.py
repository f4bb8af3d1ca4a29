"""
Authentication service for registration, login and token verification.
Issues the verified identity that owns newly created listings.
"""

from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from rental_market.repositories.user import UserRepository
from rental_market.models.user import User
from rental_market.schemas.auth import RegisterRequest
from rental_market.utils.auth import (
    create_access_token,
    verify_token,
    hash_password,
    verify_password,
)
from rental_market.utils.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    InactiveUserError,
    DuplicateResourceError,
)
from jose import JWTError
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service for managing accounts and access tokens.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)

    async def register(self, data: RegisterRequest) -> Tuple[User, str]:
        """
        Create an account and issue a token for it.

        Raises:
            DuplicateResourceError: If the email is already registered
        """
        if await self.user_repo.email_exists(data.email):
            raise DuplicateResourceError("User", data.email)

        user = await self.user_repo.create_user({
            "name": data.name,
            "email": data.email,
            "hashed_password": hash_password(data.password),
        })
        logger.info(f"User registered: {user.email} (ID: {user.id})")
        return user, self.create_token(user)

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If credentials are invalid or the account is inactive
        """
        user = await self.user_repo.get_by_email(email)

        if not user or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed authentication attempt for email: {email}")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning(f"Login attempt for inactive account: {email}")
            raise InvalidCredentialsError()

        logger.info(f"User authenticated successfully: {user.email}")
        return user

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        """Authenticate user and create an access token."""
        user = await self.authenticate_user(email, password)
        return user, self.create_token(user)

    def create_token(self, user: User) -> str:
        return create_access_token(user_id=user.id, email=user.email)

    async def get_current_user(self, token: str) -> User:
        """
        Resolve the user a bearer token was issued for.

        Raises:
            InvalidTokenError: If the token is invalid or its user no longer exists
            InactiveUserError: If the account is inactive
        """
        try:
            payload = verify_token(token)
            user_id = uuid.UUID(payload.user_id)
        except (JWTError, ValueError) as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise InvalidTokenError("Token user no longer exists")

        if not user.is_active:
            raise InactiveUserError()

        return user
