"""
Authentication utilities for JWT token management and password hashing.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from rental_market.config import settings
import uuid


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenPayload:
    """JWT token payload structure."""

    def __init__(self, user_id: str, email: str, exp: datetime):
        self.user_id = user_id
        self.email = email
        self.exp = exp

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from dictionary."""
        return cls(
            user_id=data["sub"],
            email=data["email"],
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        )


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create JWT access token with user claims.

    Args:
        user_id: User's UUID
        email: User's email address
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode = {
        "sub": str(user_id),
        "email": email,
        "exp": expire,
        "iat": now,
        "type": "access"
    }

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def verify_token(token: str) -> TokenPayload:
    """
    Verify and decode a JWT access token.

    Raises:
        JWTError: If token is invalid, expired or of the wrong type
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm]
    )

    if payload.get("type") != "access":
        raise JWTError("Invalid token type")

    if not payload.get("sub") or not payload.get("email"):
        raise JWTError("Invalid token payload")

    return TokenPayload.from_dict(payload)


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Raises:
        ValueError: If password is too short
    """
    if not password or len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")

    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)
