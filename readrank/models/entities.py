"""Data model classes for ReadRank.

``Book`` and ``UserBook`` are the table rows handed to FastLite's
``db.create()`` transformation, so required fields come first and optional
fields after. ``BookRef`` and ``RatedBook`` are the immutable values the
rating engine works with; they never carry database handles.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:
    from readrank.rating.bands import SentimentBand


def utc_now_iso() -> str:
    """Timestamp format shared by every row."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Book:
    """Catalog entry, keyed externally by its Google Books volume id."""
    google_book_id: str
    title: str
    id: Optional[int] = None  # Auto-incrementing primary key
    author: str = ""
    publisher: str = ""
    published_date: str = ""
    description: str = ""
    cover_url: str = ""
    category: str = ""
    created_at: str = ""


@dataclass
class UserBook:
    """One user's rating of one book."""
    user_id: str
    book_id: int
    id: Optional[int] = None  # Auto-incrementing primary key
    status: str = "READ"  # 'READ', 'WANT_TO_READ', 'READING'
    rating: Optional[float] = None
    review: Optional[str] = None
    user_sentiment: str = ""  # 'loved', 'liked', 'hated'
    tied_book_ids: str = ""  # JSON list of book ids
    position: Optional[int] = None  # comparison order within the band, 0 is the top
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class BookRef:
    """Book metadata from the external catalog, validated once at the boundary."""
    google_book_id: str
    title: str
    author: str = "Unknown"
    cover_url: str = ""
    category: str = "Uncategorized"
    publisher: str = ""
    published_date: str = ""
    description: str = ""

    def __post_init__(self):
        if not self.google_book_id:
            raise ValueError("BookRef requires a google_book_id")
        if not self.title:
            raise ValueError("BookRef requires a title")

    @classmethod
    def from_google_volume(cls, volume: Dict[str, Any]) -> "BookRef":
        """Build a reference from a Google Books ``volume`` resource."""
        info = volume.get('volumeInfo') or {}
        authors = info.get('authors') or []
        categories = info.get('categories') or []
        images = info.get('imageLinks') or {}
        cover_url = images.get('thumbnail') or images.get('smallThumbnail') or ''

        return cls(
            google_book_id=volume.get('id', ''),
            title=info.get('title', ''),
            author=authors[0] if authors else 'Unknown',
            cover_url=cover_url.replace('http://', 'https://'),
            category=categories[0] if categories else 'Uncategorized',
            publisher=info.get('publisher', '') or '',
            published_date=info.get('publishedDate', '') or '',
            description=info.get('description', '') or '',
        )

    def to_row(self) -> Book:
        return Book(
            google_book_id=self.google_book_id,
            title=self.title,
            author=self.author,
            publisher=self.publisher,
            published_date=self.published_date,
            description=self.description,
            cover_url=self.cover_url,
            category=self.category,
            created_at=utc_now_iso(),
        )


@dataclass(frozen=True)
class RatedBook:
    """An existing rating inside one sentiment band.

    ``band`` accepts a band name and is stored as a ``SentimentBand``.
    ``position`` is the book's slot in the band's comparison order; it is
    ``None`` for rows written before any comparison placed them.
    """
    book_id: int
    rating: float
    band: "SentimentBand"
    tied_book_ids: Tuple[int, ...] = ()
    title: str = ""
    author: str = ""
    review: Optional[str] = None
    id: Optional[int] = None
    updated_at: str = ""
    position: Optional[int] = None
    user_id: str = field(default="", compare=False)

    def __post_init__(self):
        # Imported here: readrank.rating imports this module.
        from readrank.rating.bands import SentimentBand

        object.__setattr__(self, 'band', SentimentBand.parse(self.band))

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RatedBook":
        """Build from a ``user_books`` row, optionally joined to ``books``."""
        position = row.get('position')
        return cls(
            book_id=int(row['book_id']),
            rating=row['rating'],
            band=row['user_sentiment'],
            tied_book_ids=decode_tied_ids(row.get('tied_book_ids')),
            title=row.get('title') or '',
            author=row.get('author') or '',
            review=row.get('review'),
            id=row.get('id'),
            updated_at=row.get('updated_at') or '',
            position=int(position) if position is not None else None,
            user_id=row.get('user_id') or '',
        )


def encode_tied_ids(book_ids) -> str:
    return json.dumps([int(book_id) for book_id in book_ids]) if book_ids else ""


def decode_tied_ids(raw) -> Tuple[int, ...]:
    if not raw:
        return ()
    if isinstance(raw, (list, tuple)):
        return tuple(int(book_id) for book_id in raw)
    return tuple(int(book_id) for book_id in json.loads(raw))
