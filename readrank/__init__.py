"""ReadRank - rate books by comparing them with the ones you've read.

This is the main package for ReadRank, the rating core of a social reading
app. Instead of asking for a score, it buckets a book into a sentiment band
and then places it through pairwise comparisons against the user's other
books in that band.

Package Structure:
- readrank.rating: Sentiment bands, comparison sessions, rating resolution
- readrank.models: Data model classes and database setup
- readrank.clients: Rating store and external book catalog client
- readrank.services: Rating flow orchestration
"""

__version__ = "0.1.0"

# Re-export commonly used items for convenience
from .errors import (
    RatingError,
    ValidationError,
    SessionBusyError,
    NotFoundError,
    ConflictError,
    RatingIOError,
    PersistenceError,
    CatalogError,
)

from .models import (
    Book,
    UserBook,
    BookRef,
    RatedBook,
    setup_database,
)

from .rating import (
    SentimentBand,
    Choice,
    Terminal,
    ComparisonSession,
    range_for,
    band_for_rating,
    resolve,
)

from .clients import RatingStore, BookAPIClient

from .services import RatingService

__all__ = [
    # Version
    '__version__',
    # Errors
    'RatingError',
    'ValidationError',
    'SessionBusyError',
    'NotFoundError',
    'ConflictError',
    'RatingIOError',
    'PersistenceError',
    'CatalogError',
    # Models
    'Book',
    'UserBook',
    'BookRef',
    'RatedBook',
    'setup_database',
    # Rating engine
    'SentimentBand',
    'Choice',
    'Terminal',
    'ComparisonSession',
    'range_for',
    'band_for_rating',
    'resolve',
    # Collaborators
    'RatingStore',
    'BookAPIClient',
    'RatingService',
]
