"""
Service layer for business logic implementation.
Contains services for authentication, property management, image intake and error handling.
"""

from .auth import AuthService
from .image import ImageService
from .property import PropertyService, merge_images
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "ImageService",
    "PropertyService",
    "merge_images",
    "ErrorHandlerService"
]
