"""Pairwise comparison sampler.

A ``ComparisonSession`` places a new book among the user's existing ratings
in one sentiment band by asking "which did you prefer?" against one existing
book at a time. It tracks the window of insertion indices that are still
possible given the answers so far and terminates once that window is a single
index, or as soon as the user declares a tie.

Insertion indices count from the top of the descending list: index 0 means
the new book beats every existing book, index N means it loses to all of
them.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from readrank.errors import SessionBusyError, ValidationError
from readrank.models.entities import RatedBook
from readrank.rating import bands
from readrank.rating.bands import SentimentBand
from readrank.rating.ties import flatten_slots, order_slots

logger = logging.getLogger(__name__)


Picker = Callable[[Sequence[RatedBook]], RatedBook]


class Choice(str, Enum):
    """Actions a user can take against the displayed comparison book."""
    PREFER_NEW = "prefer_new"
    PREFER_EXISTING = "prefer_existing"
    TIE = "tie"
    SKIP = "skip"


class Terminal(str, Enum):
    """Where a finished session placed the new book."""
    TOP = "top"
    BOTTOM = "bottom"
    MIDDLE = "middle"
    TIED = "tied"


class RandomPicker:
    """Uniform random candidate selection; pass ``seed`` for repeatable runs."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def __call__(self, candidates: Sequence[RatedBook]) -> RatedBook:
        return self._random.choice(list(candidates))


class FirstPicker:
    """Always present the highest-rated remaining candidate."""

    def __call__(self, candidates: Sequence[RatedBook]) -> RatedBook:
        return candidates[0]


class MiddlePicker:
    """Always present the median remaining candidate (binary-search style)."""

    def __call__(self, candidates: Sequence[RatedBook]) -> RatedBook:
        return candidates[(len(candidates) - 1) // 2]


PICKERS = {
    'random': RandomPicker,
    'first': FirstPicker,
    'middle': MiddlePicker,
}


def make_picker(name: str, seed: Optional[int] = None) -> Picker:
    """Build a picker by its configuration name."""
    try:
        picker_cls = PICKERS[name.strip().lower()]
    except (KeyError, AttributeError):
        raise ValidationError(f"Unknown comparison picker: {name!r}") from None
    if picker_cls is RandomPicker:
        return RandomPicker(seed)
    return picker_cls()


@dataclass(frozen=True)
class HistoryEntry:
    """Snapshot taken before a preference choice, restored by ``undo``."""
    book: RatedBook
    cursor: int
    lo: int
    hi: int


class ComparisonSession:
    """One in-progress rating flow for ``target_book_id`` within ``band``.

    The session is transient. Nothing it does touches persistence; the rating
    service resolves and commits it once it is terminal.
    """

    def __init__(self, target_book_id: int, band: SentimentBand, rated_books: Sequence[RatedBook],
                 picker: Optional[Picker] = None, user_id: Optional[str] = None):
        self.target_book_id = target_book_id
        self.user_id = user_id
        self.band = SentimentBand.parse(band)
        self._picker = picker or RandomPicker()

        self._validate(rated_books)
        self._slots = order_slots(rated_books)
        self._books: List[RatedBook] = flatten_slots(self._slots)
        self._spans: List[Tuple[int, int]] = []
        start = 0
        for slot in self._slots:
            span = (start, start + len(slot) - 1)
            self._spans.extend([span] * len(slot))
            start += len(slot)

        self._lo = 0
        self._hi = len(self._books)
        self._history: List[HistoryEntry] = []
        self._terminal: Optional[Terminal] = None
        self._tied_with: Optional[RatedBook] = None
        self._current: Optional[RatedBook] = None
        self._cursor: Optional[int] = None
        self.busy = False
        self.closed = False

        if not self._books:
            logger.debug(f"No existing {self.band.value} ratings, book {target_book_id} goes straight to the middle")
            self._terminal = Terminal.MIDDLE
            return

        self._current = self._picker(self._books)
        self._cursor = self._index_of(self._current)
        logger.debug(
            f"Comparison session for book {target_book_id} ({self.band.value}) starting against "
            f"book {self._current.book_id} at index {self._cursor} of {len(self._books)}"
        )

    def _validate(self, rated_books: Sequence[RatedBook]):
        previous = None
        for book in rated_books:
            if book.book_id == self.target_book_id:
                raise ValidationError(f"Book {self.target_book_id} is already rated in this band")
            if not bands.in_band(self.band, book.rating):
                raise ValidationError(
                    f"Book {book.book_id} rating {book.rating!r} is outside the {self.band.value} range"
                )
            if previous is not None and book.rating > previous:
                raise ValidationError("Existing ratings must be ordered by rating, highest first")
            previous = book.rating

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def books(self) -> Tuple[RatedBook, ...]:
        """Existing ratings in comparison order (tie groups kept together)."""
        return tuple(self._books)

    @property
    def current(self) -> Optional[RatedBook]:
        """The comparison book currently displayed, if still comparing."""
        return None if self._terminal and self._terminal != Terminal.TIED else self._current

    @property
    def cursor(self) -> Optional[int]:
        """Index of the comparison the last preference (or the start) moved to.

        ``skip`` changes only ``current``, so after a skip the cursor still
        points at the previously displayed book. Preferences are applied to
        ``current``, never to the book at the cursor.
        """
        return self._cursor

    @property
    def window(self) -> Tuple[int, int]:
        """Half-open range of insertion indices still possible."""
        return self._lo, self._hi

    @property
    def remaining(self) -> Tuple[RatedBook, ...]:
        """Books that can still be drawn as comparisons."""
        if self._terminal:
            return ()
        return tuple(self._books[self._lo:self._hi])

    @property
    def history(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._history)

    @property
    def terminal(self) -> Optional[Terminal]:
        return self._terminal

    @property
    def is_terminal(self) -> bool:
        return self._terminal is not None

    @property
    def tied_with(self) -> Optional[RatedBook]:
        return self._tied_with

    @property
    def insertion_index(self) -> Optional[int]:
        """Final insertion index for top/bottom/middle, ``None`` otherwise."""
        if self._terminal in (Terminal.TOP, Terminal.BOTTOM, Terminal.MIDDLE):
            return self._lo
        return None

    @property
    def anchor(self) -> Optional[RatedBook]:
        """The existing book the new one is placed directly above, if any."""
        index = self.insertion_index
        if index is None or index >= len(self._books):
            return None
        return self._books[index]

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def choose(self, choice: Choice):
        """Apply a user ``choice`` to the displayed comparison."""
        handlers = {
            Choice.PREFER_NEW: self.prefer_new,
            Choice.PREFER_EXISTING: self.prefer_existing,
            Choice.TIE: self.declare_tie,
            Choice.SKIP: self.skip,
        }
        return handlers[Choice(choice)]()

    def prefer_new(self):
        """The new book is better than the displayed one: move toward the top."""
        self._ensure_comparing()
        self._push_history()
        start, _ = self._spans[self._index_of(self._current)]
        self._hi = start
        logger.debug(f"Book {self.target_book_id} preferred over book {self._current.book_id}, window now {self.window}")
        self._advance(start - 1)

    def prefer_existing(self):
        """The displayed book is better than the new one: move toward the bottom."""
        self._ensure_comparing()
        self._push_history()
        _, end = self._spans[self._index_of(self._current)]
        self._lo = end + 1
        logger.debug(f"Book {self._current.book_id} preferred over book {self.target_book_id}, window now {self.window}")
        self._advance(end + 1)

    def declare_tie(self):
        """Equally good, or too tough to decide: tie with the displayed book."""
        self._ensure_comparing()
        self._terminal = Terminal.TIED
        self._tied_with = self._current
        logger.debug(f"Book {self.target_book_id} tied with book {self._current.book_id}")

    def skip(self):
        """Show a different remaining book without recording any preference."""
        self._ensure_comparing()
        candidates = [book for book in self.remaining if book.book_id != self._current.book_id]
        if not candidates:
            return
        self._current = self._picker(candidates)
        logger.debug(f"Skipped to book {self._current.book_id}")

    def undo(self):
        """Revert the most recent preference, or reopen a declared tie.

        Does nothing when there is nothing to revert.
        """
        self.ensure_idle()
        if self._terminal == Terminal.TIED:
            self._terminal = None
            self._tied_with = None
            return
        if not self._history:
            return
        entry = self._history.pop()
        self._current = entry.book
        self._cursor = entry.cursor
        self._lo = entry.lo
        self._hi = entry.hi
        self._terminal = None
        logger.debug(f"Undo: back to book {entry.book.book_id}, window {self.window}")

    def provisional_rating(self) -> Optional[float]:
        """Quick rating for display before submission.

        The value committed on submission is recomputed across the whole band
        and may differ.
        """
        if self._terminal is None:
            return None
        low, high = bands.range_for(self.band)
        if self._terminal == Terminal.TOP:
            return high
        if self._terminal == Terminal.BOTTOM:
            return low
        if self._terminal == Terminal.TIED or not self._books:
            return bands.midpoint(self.band)
        total = len(self._books)
        return bands.quantize_rating(low + (high - low) * (total - self._lo) / total)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _advance(self, next_cursor: int):
        if self._lo >= self._hi:
            if self._lo == 0:
                self._terminal = Terminal.TOP
            elif self._lo == len(self._books):
                self._terminal = Terminal.BOTTOM
            else:
                self._terminal = Terminal.MIDDLE
            logger.debug(f"Book {self.target_book_id} placed at index {self._lo} ({self._terminal.value})")
            return
        if not self._lo <= next_cursor < self._hi:
            raise ValidationError(f"Cursor {next_cursor} left the comparison window {self.window}")
        self._cursor = next_cursor
        self._current = self._books[next_cursor]

    def _push_history(self):
        self._history.append(HistoryEntry(book=self._current, cursor=self._cursor, lo=self._lo, hi=self._hi))

    def _index_of(self, book: RatedBook) -> int:
        for index, candidate in enumerate(self._books):
            if candidate.book_id == book.book_id:
                return index
        raise ValidationError(f"Book {book.book_id} is not part of this comparison session")

    def close(self):
        """Mark the session as finished with (submitted or cancelled)."""
        self.closed = True

    def ensure_idle(self):
        """Raise unless the session can accept another action right now."""
        if self.closed:
            raise ValidationError("Comparison session is closed")
        if self.busy:
            raise SessionBusyError("A write for this rating session is still in flight")

    def _ensure_comparing(self):
        self.ensure_idle()
        if self._terminal is not None:
            raise ValidationError(f"Comparison session already finished ({self._terminal.value})")
