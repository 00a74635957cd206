"""
ReadRank Clients Package.

This package provides the collaborators the rating service talks to:
- RatingStore: FastLite persistence for ratings and the book catalog
- BookAPIClient: Google Books volume lookups
"""

# Persistence
from .store import RatingStore

# Book metadata clients
from .books import BookAPIClient

__all__ = [
    'RatingStore',
    'BookAPIClient',
]
