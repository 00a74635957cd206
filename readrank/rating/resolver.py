"""Rating resolver.

Turns a finished ``ComparisonSession`` into concrete numbers. The new book is
slotted into the band's current order, then every slot in the band is spread
evenly across the band's range, so ratings stay monotonic with comparison
order after each insertion and every member of a tie group carries the same
value.

A band can hold more slots than its range has 0.1 steps, in which case
neighbouring slots round onto the same rating. Each slot's index is therefore
resolved as well, as the ``position`` that keeps the comparison order.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from readrank.errors import NotFoundError, ValidationError
from readrank.models.entities import RatedBook
from readrank.rating import bands
from readrank.rating.bands import SentimentBand
from readrank.rating.sampler import ComparisonSession, Terminal
from readrank.rating.ties import order_slots

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatingUpdate:
    """New values for an existing rating touched by a resolution."""
    book_id: int
    rating: float
    tied_book_ids: Tuple[int, ...]
    position: Optional[int] = None
    previous_rating: Optional[float] = None
    previous_tied_book_ids: Tuple[int, ...] = ()
    previous_position: Optional[int] = None

    @property
    def rating_changed(self) -> bool:
        return self.rating != self.previous_rating

    @property
    def ties_changed(self) -> bool:
        return self.tied_book_ids != self.previous_tied_book_ids

    @property
    def position_changed(self) -> bool:
        return self.position != self.previous_position


@dataclass(frozen=True)
class Resolution:
    """Everything that must be written, atomically, to commit a session."""
    book_id: int
    band: SentimentBand
    rating: float
    tied_book_ids: Tuple[int, ...]
    terminal: Terminal
    position: int = 0
    updates: Tuple[RatingUpdate, ...] = ()


def interpolate_ratings(band: SentimentBand, slot_count: int) -> List[float]:
    """Spread ``slot_count`` slots evenly over ``band``, highest first.

    A lone slot sits at the band midpoint.
    """
    if slot_count < 0:
        raise ValidationError(f"Cannot interpolate {slot_count} slots")
    if slot_count == 0:
        return []
    if slot_count == 1:
        return [bands.midpoint(band)]
    low, high = bands.range_for(band)
    interval = (high - low) / (slot_count - 1)
    return [bands.quantize_rating(high - interval * index) for index in range(slot_count)]


def _find_slot(slots: Sequence[Sequence[RatedBook]], book_id: int) -> Optional[int]:
    for index, slot in enumerate(slots):
        if any(book.book_id == book_id for book in slot):
            return index
    return None


def resolve(session: ComparisonSession, rated_books: Optional[Sequence[RatedBook]] = None) -> Resolution:
    """Compute the committed rating for a terminal ``session``.

    Args:
        session: A terminal comparison session.
        rated_books: The band's ratings as they stand now, highest first.
            Defaults to the list the session was started with. The session's
            outcome is re-anchored onto this list by book id.

    Raises:
        ValidationError: If the session has not terminated.
        NotFoundError: If the anchor or tie partner is no longer rated.
        ConflictError: If stored tie links are cyclic or cross ownership.
    """
    if not session.is_terminal:
        raise ValidationError("Cannot resolve a comparison session that has not finished")

    if rated_books is None:
        rated_books = session.books
    rated_books = [book for book in rated_books if book.book_id != session.target_book_id]
    slots: List[List[Optional[RatedBook]]] = [list(slot) for slot in order_slots(rated_books)]
    new_slot: int

    terminal = session.terminal
    if terminal == Terminal.TIED:
        partner = session.tied_with
        found = _find_slot(slots, partner.book_id)
        if found is None:
            raise NotFoundError(f"Tie partner book {partner.book_id} is no longer rated")
        slots[found].append(None)
        new_slot = found
    elif terminal == Terminal.TOP:
        new_slot = 0
        slots.insert(new_slot, [None])
    elif terminal == Terminal.BOTTOM:
        new_slot = len(slots)
        slots.append([None])
    else:
        anchor = session.anchor
        if anchor is None:
            # No comparisons were made; ratings added since the session
            # started are split evenly around the new book.
            new_slot = len(slots) // 2
        else:
            found = _find_slot(slots, anchor.book_id)
            if found is None:
                raise NotFoundError(f"Anchor book {anchor.book_id} is no longer rated")
            new_slot = found
        slots.insert(new_slot, [None])

    ratings = interpolate_ratings(session.band, len(slots))
    updates: List[RatingUpdate] = []
    new_rating = ratings[new_slot]
    new_ties: Tuple[int, ...] = ()

    for index, slot in enumerate(slots):
        member_ids = [session.target_book_id if book is None else book.book_id for book in slot]
        for book in slot:
            own_id = session.target_book_id if book is None else book.book_id
            ties = tuple(member for member in member_ids if member != own_id)
            if book is None:
                new_ties = ties
                continue
            update = RatingUpdate(
                book_id=book.book_id,
                rating=ratings[index],
                tied_book_ids=ties,
                position=index,
                previous_rating=book.rating,
                previous_tied_book_ids=tuple(book.tied_book_ids),
                previous_position=book.position,
            )
            if update.rating_changed or update.ties_changed or update.position_changed:
                updates.append(update)

    logger.debug(
        f"Resolved book {session.target_book_id} ({session.band.value}, {terminal.value}) to "
        f"{new_rating} at slot {new_slot} of {len(slots)}; {len(updates)} existing ratings change",
        extra={'extra_data': {
            'book_id': session.target_book_id,
            'band': session.band.value,
            'terminal': terminal.value,
            'rating': new_rating,
            'position': new_slot,
            'slots': len(slots),
            'updated_book_ids': [update.book_id for update in updates],
        }},
    )

    return Resolution(
        book_id=session.target_book_id,
        band=session.band,
        rating=new_rating,
        tied_book_ids=new_ties,
        terminal=terminal,
        position=new_slot,
        updates=tuple(updates),
    )
