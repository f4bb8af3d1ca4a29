"""
Rental Market: property listing API with image uploads, plus its command-line client.
"""

__version__ = "1.0.0"
