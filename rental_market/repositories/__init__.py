"""
Repository layer for data access operations.
"""

from .base import BaseRepository
from .user import UserRepository
from .property import PropertyRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PropertyRepository",
]
