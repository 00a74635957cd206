"""Rating flow orchestration for ReadRank.

``RatingService`` connects the comparison engine to its persistence
collaborator. A flow goes: pick a sentiment -> ``start_session`` loads the
band's existing ratings -> the user answers comparisons on the returned
session -> ``submit`` resolves and commits everything atomically.

Comparison state lives entirely in the session until submission, so a failed
submit can be retried without repeating the comparisons, and cancelling a
flow leaves nothing behind.
"""

import logging
from typing import Callable, Optional

from readrank.errors import NotFoundError, RatingError, ValidationError
from readrank.models.entities import BookRef, RatedBook
from readrank.rating.bands import SentimentBand
from readrank.rating.resolver import resolve
from readrank.rating.sampler import ComparisonSession, Picker, RandomPicker

logger = logging.getLogger(__name__)


class RatingService:
    """Runs rating sessions against an injected store.

    Args:
        store: Persistence collaborator (see ``readrank.clients.RatingStore``).
        picker_factory: Returns the candidate picker for each new session.
            Defaults to an unseeded ``RandomPicker``.
        catalog: Optional external catalog client (see
            ``readrank.clients.BookAPIClient``) for ``add_book_from_catalog``.
    """

    def __init__(self, store, picker_factory: Optional[Callable[[], Picker]] = None, catalog=None):
        self.store = store
        self.picker_factory = picker_factory or RandomPicker
        self.catalog = catalog

    async def ensure_book(self, book_ref: BookRef) -> int:
        """Make sure ``book_ref`` is in the catalog and return its id."""
        return await self.store.ensure_book_exists(book_ref)

    async def add_book_from_catalog(self, volume_id: str) -> int:
        """Look a volume up in the external catalog and store it locally.

        Raises:
            ValidationError: No catalog client is configured.
            NotFoundError: The catalog has no such volume.
            CatalogError: The catalog could not be queried.
        """
        if self.catalog is None:
            raise ValidationError("No book catalog client is configured")
        book_ref = await self.catalog.get_volume(volume_id)
        if book_ref is None:
            raise NotFoundError(f"Volume {volume_id} is not in the catalog")
        return await self.ensure_book(book_ref)

    async def start_session(self, user_id: str, book_id: int, band) -> ComparisonSession:
        """Open a comparison session for rating ``book_id`` as ``band``.

        Raises:
            ValidationError: Unknown band, or the book is already rated.
            NotFoundError: The book is not in the catalog.
            PersistenceError: Existing ratings could not be loaded. No
                session is created in that case.
        """
        band = SentimentBand.parse(band)
        if not user_id:
            raise ValidationError("A user is required to rate books")

        if await self.store.get_book(book_id) is None:
            raise NotFoundError(f"Book {book_id} is not in the catalog")
        if await self.store.get_rated_book(user_id, book_id) is not None:
            raise ValidationError(f"User {user_id} has already rated book {book_id}")

        rated_books = await self.store.fetch_rated_books(user_id, band)
        session = ComparisonSession(book_id, band, rated_books, picker=self.picker_factory(), user_id=user_id)
        logger.info(
            f"Started {band.value} rating session for user {user_id} book {book_id} "
            f"against {len(rated_books)} existing ratings"
        )
        return session

    async def submit(self, session: ComparisonSession, review: Optional[str] = None) -> RatedBook:
        """Resolve a finished session and persist the result.

        The band is re-read first so the resolution applies to the ratings
        as they stand at commit time; if another session committed in
        between, this commit recomputes over its result.

        Raises:
            ValidationError: The session has not finished, is already being
                submitted, or was already submitted.
            NotFoundError: The tie partner or anchor book has disappeared.
            ConflictError: Stored tie links are cyclic or cross ownership.
            PersistenceError: Reading or writing failed; nothing was written
                and the session can be submitted again.
        """
        user_id = session.user_id
        if not user_id:
            raise ValidationError("Session has no user to rate for")
        session.ensure_idle()
        if not session.is_terminal:
            raise ValidationError("Finish the comparisons before submitting")

        session.busy = True
        try:
            rated_books = await self.store.fetch_rated_books(user_id, session.band)
            resolution = resolve(session, rated_books)
            rated = await self.store.commit_resolution(user_id, resolution, review=review)
        except RatingError as e:
            logger.error(f"Submitting rating for user {user_id} book {session.target_book_id} failed: {e}")
            raise
        finally:
            session.busy = False

        session.close()
        return rated

    def cancel(self, session: ComparisonSession):
        """Discard a session. Nothing was persisted, so nothing is undone."""
        logger.debug(f"Cancelled rating session for book {session.target_book_id}")
        session.close()
