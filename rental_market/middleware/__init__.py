"""
Middleware package for request tracking and validation.
"""

from .validation import ValidationMiddleware

__all__ = ["ValidationMiddleware"]
