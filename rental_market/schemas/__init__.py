"""
Pydantic schemas for request/response validation.
"""

# Authentication schemas
from .auth import (
    RegisterRequest,
    LoginRequest,
    UserResponse,
    AuthResponse
)

# Property schemas
from .property import (
    PROPERTY_TYPES,
    PropertyBase,
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    DeleteResponse,
    parse_keep_images
)

__all__ = [
    # Authentication
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "AuthResponse",

    # Property
    "PROPERTY_TYPES",
    "PropertyBase",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "DeleteResponse",
    "parse_keep_images",
]
