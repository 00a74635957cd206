"""Services package for ReadRank.

This package contains the rating flow orchestration, separated from
the comparison engine and from data access.
"""

from .rating import RatingService

__all__ = [
    'RatingService',
]
