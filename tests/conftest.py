"""
Shared pytest fixtures for ReadRank tests.

This module provides test fixtures for:
- In-memory SQLite database with all tables
- A RatingStore and RatingService wired to that database
- Deterministic comparison pickers
- Test data factories
"""

import pytest
import os
import sys
from typing import Dict, Iterable, List, Optional, Tuple

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def db_tables():
    """
    Create an in-memory SQLite database with all tables.

    This fixture provides a fresh database for each test, ensuring
    test isolation.
    """
    from readrank.models import setup_database

    tables = setup_database(memory=True)

    yield tables

    # Cleanup is automatic with in-memory DB


@pytest.fixture
def store(db_tables):
    """RatingStore over the in-memory database."""
    from readrank.clients import RatingStore

    return RatingStore(db_tables)


@pytest.fixture
def service(store):
    """RatingService that always presents the top remaining candidate."""
    from readrank.services import RatingService
    from readrank.rating import FirstPicker

    return RatingService(store, picker_factory=FirstPicker)


# ============================================================================
# Pickers
# ============================================================================

class ScriptedPicker:
    """Picker that presents books by id in a fixed order, for scripted flows."""

    def __init__(self, *book_ids: int):
        self.queue = list(book_ids)
        self.calls: List[List[int]] = []

    def __call__(self, candidates):
        self.calls.append([book.book_id for book in candidates])
        wanted = self.queue.pop(0) if self.queue else None
        for book in candidates:
            if book.book_id == wanted:
                return book
        return candidates[0]


@pytest.fixture
def scripted_picker():
    """Factory for pickers that present the given book ids in order."""
    return ScriptedPicker


# ============================================================================
# Test Data Factories
# ============================================================================

class TestDataFactory:
    """Factory for creating test data objects."""

    @staticmethod
    def book_ref(google_book_id: str = None, title: str = None, **kwargs):
        """Create a catalog reference."""
        from readrank.models import BookRef
        import secrets

        google_book_id = google_book_id or f"vol{secrets.token_hex(4)}"
        return BookRef(
            google_book_id=google_book_id,
            title=title or f"Test Book {google_book_id}",
            author=kwargs.get('author', 'Test Author'),
            cover_url=kwargs.get('cover_url', ''),
            category=kwargs.get('category', 'Fiction'),
        )

    @staticmethod
    def rated_book(book_id: int, rating: float, band: str = 'loved',
                   tied_book_ids: Iterable[int] = (), **kwargs):
        """Create an in-memory RatedBook for engine tests."""
        from readrank.models import RatedBook

        return RatedBook(
            book_id=book_id,
            rating=rating,
            band=band,
            tied_book_ids=tuple(tied_book_ids),
            title=kwargs.get('title', f"Book {book_id}"),
            author=kwargs.get('author', 'Test Author'),
            position=kwargs.get('position'),
        )

    @classmethod
    def rated_books(cls, ratings: Iterable[float], band: str = 'loved', start_id: int = 1):
        """A descending band list with ids ``start_id, start_id + 1, ...`` in positions 0, 1, ..."""
        return [
            cls.rated_book(start_id + offset, rating, band, position=offset)
            for offset, rating in enumerate(ratings)
        ]


@pytest.fixture
def factory():
    """Provide access to the test data factory."""
    return TestDataFactory()


@pytest.fixture
def seed_ratings(db_tables):
    """Insert catalog books and a user's ratings directly into the database.

    Usage::

        ids = seed_ratings('user-1', 'loved', [("Dune", 9.0), ("Emma", 7.5)])
        ids = seed_ratings('user-1', 'loved', [("A", 8.5, ["B"]), ("B", 8.5, ["A"])])
        ids = seed_ratings('user-1', 'liked', [("C", 6.0, [], 1), ("D", 6.0, [], 0)])

    Entries are ``(title, rating[, tied_titles[, position]])``. Returns a dict
    mapping titles to book ids.
    """
    from readrank.models import Book, UserBook, encode_tied_ids

    def _seed(user_id: str, band: str, entries: List[Tuple]) -> Dict[str, int]:
        ids: Dict[str, int] = {}
        for entry in entries:
            title = entry[0]
            existing = db_tables['books'](where="title = ?", where_args=[title])
            if existing:
                ids[title] = existing[0].id
            else:
                book = db_tables['books'].insert(Book(google_book_id=f"g-{title}", title=title, author="Seeded"))
                ids[title] = book.id

        for entry in entries:
            title, rating = entry[0], entry[1]
            tied_titles: Optional[List[str]] = entry[2] if len(entry) > 2 else None
            position: Optional[int] = entry[3] if len(entry) > 3 else None
            db_tables['user_books'].insert(UserBook(
                user_id=user_id,
                book_id=ids[title],
                rating=rating,
                user_sentiment=band,
                tied_book_ids=encode_tied_ids([ids[t] for t in tied_titles or []]),
                position=position,
                created_at="2026-01-01T00:00:00+00:00",
                updated_at="2026-01-01T00:00:00+00:00",
            ))
        return ids

    return _seed


@pytest.fixture
def new_book(db_tables):
    """Insert a catalog book that nobody has rated yet and return its id."""
    from readrank.models import Book

    def _new_book(title: str = "New Book") -> int:
        return db_tables['books'].insert(Book(google_book_id=f"g-{title}", title=title, author="New")).id

    return _new_book


# ============================================================================
# Environment Variable Fixtures
# ============================================================================

@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    monkeypatch.setenv('READRANK_DB_PATH', 'data/test.db')
    monkeypatch.setenv('READRANK_PICKER', 'middle')
    monkeypatch.setenv('READRANK_RANDOM_SEED', '42')
    monkeypatch.setenv('GOOGLE_BOOKS_API_KEY', 'test-key')
    yield
