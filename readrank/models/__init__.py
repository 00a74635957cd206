"""Models package for ReadRank.

This package provides the table dataclasses, the boundary value types the
rating engine works with, and database setup.
"""

# Entity classes
from .entities import (
    Book,
    UserBook,
    BookRef,
    RatedBook,
    encode_tied_ids,
    decode_tied_ids,
)

# Database setup
from .database import setup_database

__all__ = [
    # Entities
    'Book',
    'UserBook',
    'BookRef',
    'RatedBook',
    'encode_tied_ids',
    'decode_tied_ids',
    # Database
    'setup_database',
]
