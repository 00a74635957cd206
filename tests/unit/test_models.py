"""
Unit tests for model classes in readrank.models.entities.

These tests verify the catalog boundary type, row conversion and the
tied-id encoding stored on rating rows.
"""

import pytest

from readrank.errors import ValidationError
from readrank.rating.bands import SentimentBand
from readrank.models.entities import (
    Book,
    BookRef,
    RatedBook,
    UserBook,
    decode_tied_ids,
    encode_tied_ids,
)


VOLUME = {
    'id': 'zyTCAlFPjgYC',
    'volumeInfo': {
        'title': 'The Google Story',
        'authors': ['David A. Vise', 'Mark Malseed'],
        'publisher': 'Random House Digital, Inc.',
        'publishedDate': '2005-11-15',
        'description': 'Here is the story behind one of the most remarkable Internet successes.',
        'categories': ['Business & Economics', 'Computers'],
        'imageLinks': {
            'smallThumbnail': 'http://books.google.com/books?id=zyTCAlFPjgYC&zoom=5',
            'thumbnail': 'http://books.google.com/books?id=zyTCAlFPjgYC&zoom=1',
        },
    },
}


# ============================================================================
# Test Book / UserBook
# ============================================================================

class TestRowModels:
    """Tests for the table dataclasses."""

    @pytest.mark.unit
    def test_book_defaults(self):
        book = Book(google_book_id="abc", title="Dune")

        assert book.id is None
        assert book.author == ""

    @pytest.mark.unit
    def test_user_book_defaults(self):
        user_book = UserBook(user_id="did:plc:reader", book_id=1)

        assert user_book.status == "READ"
        assert user_book.rating is None
        assert user_book.tied_book_ids == ""


# ============================================================================
# Test BookRef
# ============================================================================

class TestBookRef:
    """Tests for BookRef."""

    @pytest.mark.unit
    def test_from_google_volume(self):
        ref = BookRef.from_google_volume(VOLUME)

        assert ref.google_book_id == 'zyTCAlFPjgYC'
        assert ref.title == 'The Google Story'
        assert ref.author == 'David A. Vise'
        assert ref.category == 'Business & Economics'
        assert ref.published_date == '2005-11-15'
        assert ref.cover_url == 'https://books.google.com/books?id=zyTCAlFPjgYC&zoom=1'

    @pytest.mark.unit
    def test_from_google_volume_fills_defaults(self):
        ref = BookRef.from_google_volume({
            'id': 'bare',
            'volumeInfo': {'title': 'Bare', 'imageLinks': {'smallThumbnail': 'http://x/small'}},
        })

        assert ref.author == 'Unknown'
        assert ref.category == 'Uncategorized'
        assert ref.cover_url == 'https://x/small'

    @pytest.mark.unit
    def test_title_is_required(self):
        with pytest.raises(ValueError, match="title"):
            BookRef.from_google_volume({'id': 'untitled', 'volumeInfo': {}})

    @pytest.mark.unit
    def test_id_is_required(self):
        with pytest.raises(ValueError, match="google_book_id"):
            BookRef(google_book_id="", title="Dune")

    @pytest.mark.unit
    def test_is_immutable(self):
        ref = BookRef(google_book_id="abc", title="Dune")

        with pytest.raises(AttributeError):
            ref.title = "Emma"

    @pytest.mark.unit
    def test_to_row(self):
        row = BookRef.from_google_volume(VOLUME).to_row()

        assert isinstance(row, Book)
        assert row.id is None
        assert row.google_book_id == 'zyTCAlFPjgYC'
        assert row.publisher == 'Random House Digital, Inc.'
        assert row.created_at


# ============================================================================
# Test RatedBook / tied id encoding
# ============================================================================

class TestRatedBook:
    """Tests for RatedBook."""

    @pytest.mark.unit
    def test_from_joined_row(self):
        rated = RatedBook.from_row({
            'id': 5,
            'user_id': 'did:plc:reader',
            'book_id': 3,
            'rating': 8.5,
            'user_sentiment': 'loved',
            'tied_book_ids': '[4, 7]',
            'review': None,
            'updated_at': '2026-01-01T00:00:00+00:00',
            'title': 'Dune',
            'author': 'Frank Herbert',
        })

        assert rated.book_id == 3
        assert rated.band is SentimentBand.LOVED
        assert rated.tied_book_ids == (4, 7)
        assert rated.title == 'Dune'
        assert rated.user_id == 'did:plc:reader'

    @pytest.mark.unit
    def test_from_row_without_ties(self):
        rated = RatedBook.from_row({'book_id': '3', 'rating': 6.0, 'user_sentiment': 'liked', 'tied_book_ids': ''})

        assert rated.book_id == 3
        assert rated.tied_book_ids == ()
        assert rated.title == ''
        assert rated.position is None

    @pytest.mark.unit
    def test_band_is_parsed_into_sentiment_band(self):
        rated = RatedBook.from_row({'book_id': 3, 'rating': 2.0, 'user_sentiment': 'Hated', 'position': 4})

        assert rated.band is SentimentBand.HATED
        assert rated.position == 4

    @pytest.mark.unit
    def test_unknown_band_rejected(self):
        with pytest.raises(ValidationError, match="Unknown sentiment band"):
            RatedBook(1, 8.0, 'adored')

    @pytest.mark.unit
    def test_user_id_is_ignored_in_equality(self):
        assert RatedBook(1, 8.0, 'loved', user_id='a') == RatedBook(1, 8.0, 'loved', user_id='b')


class TestTiedIdEncoding:
    """Tests for encode_tied_ids / decode_tied_ids."""

    @pytest.mark.unit
    def test_encode(self):
        assert encode_tied_ids((3, 1)) == '[3, 1]'
        assert encode_tied_ids(()) == ''

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,expected", [
        ('[3, 1]', (3, 1)),
        ('', ()),
        (None, ()),
        ([2, '5'], (2, 5)),
    ])
    def test_decode(self, raw, expected):
        assert decode_tied_ids(raw) == expected
