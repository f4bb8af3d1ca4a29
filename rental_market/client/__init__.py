"""
Client for the Rental Market API.
"""

from .api import ListingClient, ListingClientError
from .session import ClientSession

__all__ = ["ListingClient", "ListingClientError", "ClientSession"]
