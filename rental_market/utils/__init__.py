"""
Utility modules for the Rental Market API.
"""

from .auth import (
    create_access_token,
    verify_token,
    hash_password,
    verify_password,
    TokenPayload
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    StoreError,
    UnauthorizedError,
    ForbiddenError,
    ConflictError,
    BadRequestError,
    InvalidCredentialsError,
    InvalidTokenError,
    InactiveUserError,
    DuplicateResourceError,
    PropertyNotFoundError,
    ImageLimitExceededError,
    FileUploadError
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "create_access_token",
    "verify_token",
    "hash_password",
    "verify_password",
    "TokenPayload",

    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "StoreError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "BadRequestError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "InactiveUserError",
    "DuplicateResourceError",
    "PropertyNotFoundError",
    "ImageLimitExceededError",
    "FileUploadError",
]
