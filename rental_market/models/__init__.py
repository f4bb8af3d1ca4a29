"""
Database models for the Rental Market API.
"""

from rental_market.models.user import User
from rental_market.models.property import Property

__all__ = [
    "User",
    "Property",
]
