"""FastLite-backed persistence for ratings and the book catalog.

``RatingStore`` is the collaborator the rating service reads existing
ratings from and commits resolutions to. Its methods are coroutines so the
service can await them like any other backend call; the SQLite work itself
runs synchronously on the caller's loop.

Every backend failure surfaces as ``PersistenceError``. Nothing is retried
here: the caller decides whether to retry the operation.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

from readrank.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    RatingError,
    ValidationError,
)
from readrank.models.entities import (
    Book,
    BookRef,
    RatedBook,
    UserBook,
    encode_tied_ids,
    utc_now_iso,
)
from readrank.rating.bands import SentimentBand

logger = logging.getLogger(__name__)


RATED_BOOKS_QUERY = """
    SELECT ub.*, b.title AS title, b.author AS author
    FROM user_book ub
    LEFT JOIN book b ON b.id = ub.book_id
    WHERE ub.user_id = ? AND ub.user_sentiment = ? AND ub.rating IS NOT NULL
    ORDER BY ub.rating DESC, ub.position IS NULL, ub.position ASC, ub.id ASC
"""

RATED_BOOK_QUERY = """
    SELECT ub.*, b.title AS title, b.author AS author
    FROM user_book ub
    LEFT JOIN book b ON b.id = ub.book_id
    WHERE ub.user_id = ? AND ub.book_id = ?
"""


@contextmanager
def _backend_errors(operation: str):
    """Re-raise anything that is not already a rating error as PersistenceError."""
    try:
        yield
    except RatingError:
        raise
    except Exception as e:
        logger.error(f"Rating store {operation} failed: {e}", exc_info=True)
        raise PersistenceError(f"{operation} failed: {e}") from e


class RatingStore:
    """Persistence collaborator over the tables returned by ``setup_database``."""

    def __init__(self, db_tables: Dict[str, Any]):
        self.db_tables = db_tables
        self.db = db_tables['db']
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def ensure_book_exists(self, book_ref: BookRef) -> int:
        """Look up a catalog book by its external id, creating it if missing."""
        with _backend_errors("ensure_book_exists"):
            async with self._write_lock:
                existing = self.db_tables['books'](where="google_book_id = ?", where_args=[book_ref.google_book_id])
                if existing:
                    return existing[0].id
                created = self.db_tables['books'].insert(book_ref.to_row())
            logger.info(f"Added book {created.id} ('{book_ref.title}') to the catalog")
            return created.id

    async def get_book(self, book_id: int) -> Optional[Book]:
        with _backend_errors("get_book"):
            rows = self.db_tables['books'](where="id = ?", where_args=[book_id])
            return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_rated_books(self, user_id: str, band: SentimentBand) -> List[RatedBook]:
        """The user's ratings in ``band``, highest first."""
        band = SentimentBand.parse(band)
        with _backend_errors("fetch_rated_books"):
            rows = self.db.q(RATED_BOOKS_QUERY, [user_id, band.value])
            return [RatedBook.from_row(row) for row in rows]

    async def get_rated_book(self, user_id: str, book_id: int) -> Optional[RatedBook]:
        with _backend_errors("get_rated_book"):
            rows = self.db.q(RATED_BOOK_QUERY, [user_id, book_id])
            return RatedBook.from_row(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_rating(self, user_id: str, book_id: int, rating: float, band: SentimentBand,
                            tied_book_ids: Iterable[int] = (), review: Optional[str] = None,
                            position: Optional[int] = None) -> RatedBook:
        """Create the user's rating row for ``book_id``."""
        with _backend_errors("insert_rating"):
            async with self._write_lock:
                with self.db.conn:
                    row = self._insert_rating_sync(user_id, book_id, rating, SentimentBand.parse(band),
                                                   list(tied_book_ids), review, position)
            return self._rated_book(row)

    async def update_ties(self, book_id: int, user_id: str, new_tied_book_ids: Iterable[int]):
        """Replace an existing rating's tie list after verifying ownership."""
        with _backend_errors("update_ties"):
            async with self._write_lock:
                with self.db.conn:
                    self._update_sync(user_id, book_id, tied_book_ids=list(new_tied_book_ids))

    async def update_rating(self, book_id: int, user_id: str, rating: float):
        with _backend_errors("update_rating"):
            async with self._write_lock:
                with self.db.conn:
                    self._update_sync(user_id, book_id, rating=rating)

    async def commit_resolution(self, user_id: str, resolution, review: Optional[str] = None) -> RatedBook:
        """Write a resolved rating and every update it implies in one transaction.

        Either the new rating and all affected ratings and tie lists are
        written, or nothing is.
        """
        with _backend_errors("commit_resolution"):
            async with self._write_lock:
                with self.db.conn:
                    row = self._insert_rating_sync(
                        user_id,
                        resolution.book_id,
                        resolution.rating,
                        resolution.band,
                        list(resolution.tied_book_ids),
                        review,
                        resolution.position,
                    )
                    for update in resolution.updates:
                        changes = {}
                        if update.rating_changed:
                            changes['rating'] = update.rating
                        if update.ties_changed:
                            changes['tied_book_ids'] = list(update.tied_book_ids)
                        if update.position_changed:
                            changes['position'] = update.position
                        self._update_sync(user_id, update.book_id, **changes)
            logger.info(
                f"Committed rating {resolution.rating} ({resolution.band.value}, {resolution.terminal.value}) "
                f"for user {user_id} book {resolution.book_id}; {len(resolution.updates)} related ratings updated",
                extra={'extra_data': {
                    'user_id': user_id,
                    'book_id': resolution.book_id,
                    'band': resolution.band.value,
                    'terminal': resolution.terminal.value,
                    'rating': resolution.rating,
                    'position': resolution.position,
                    'tied_book_ids': list(resolution.tied_book_ids),
                    'updated_book_ids': [update.book_id for update in resolution.updates],
                }},
            )
            return self._rated_book(row)

    # ------------------------------------------------------------------
    # Synchronous helpers (run inside the caller's transaction)
    # ------------------------------------------------------------------

    def _insert_rating_sync(self, user_id: str, book_id: int, rating: float, band: SentimentBand,
                            tied_book_ids: List[int], review: Optional[str],
                            position: Optional[int] = None) -> UserBook:
        if not self.db_tables['books'](where="id = ?", where_args=[book_id]):
            raise NotFoundError(f"Book {book_id} is not in the catalog")
        if self.db_tables['user_books'](where="user_id = ? AND book_id = ?", where_args=[user_id, book_id]):
            raise ValidationError(f"User {user_id} has already rated book {book_id}")
        self._verify_ownership(user_id, book_id, tied_book_ids)

        now = utc_now_iso()
        review = review.strip() if review else None
        return self.db_tables['user_books'].insert(UserBook(
            user_id=user_id,
            book_id=book_id,
            status='READ',
            rating=rating,
            review=review or None,
            user_sentiment=band.value,
            tied_book_ids=encode_tied_ids(tied_book_ids),
            position=position,
            created_at=now,
            updated_at=now,
        ))

    def _update_sync(self, user_id: str, book_id: int, **changes):
        rows = self.db_tables['user_books'](where="user_id = ? AND book_id = ?", where_args=[user_id, book_id])
        if not rows:
            raise NotFoundError(f"User {user_id} has no rating for book {book_id}")
        if not changes:
            return

        values: Dict[str, Any] = {'updated_at': utc_now_iso()}
        if 'rating' in changes:
            values['rating'] = changes['rating']
        if 'position' in changes:
            values['position'] = changes['position']
        if 'tied_book_ids' in changes:
            tied_book_ids = changes['tied_book_ids']
            self._verify_ownership(user_id, book_id, tied_book_ids)
            values['tied_book_ids'] = encode_tied_ids(tied_book_ids)
        self.db_tables['user_books'].update(values, rows[0].id)

    def _verify_ownership(self, user_id: str, book_id: int, tied_book_ids: List[int]):
        """Reject self-ties and partners the user has not rated."""
        if book_id in tied_book_ids:
            raise ConflictError(f"Book {book_id} cannot be tied with itself")
        partners = list(tied_book_ids)
        if not partners:
            return
        placeholders = ', '.join('?' for _ in partners)
        rows = self.db.q(
            f"SELECT book_id FROM user_book WHERE user_id = ? AND book_id IN ({placeholders})",
            [user_id, *partners],
        )
        owned = {row['book_id'] for row in rows}
        foreign = [partner for partner in partners if partner not in owned]
        if foreign:
            raise ConflictError(f"Tie partners {foreign} of book {book_id} are not rated by user {user_id}")

    def _rated_book(self, row: UserBook) -> RatedBook:
        book = self.db_tables['books'](where="id = ?", where_args=[row.book_id])
        return RatedBook.from_row({
            **row.__dict__,
            'title': book[0].title if book else '',
            'author': book[0].author if book else '',
        })
