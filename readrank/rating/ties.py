"""Tie groups and slot ordering.

Tie links are stored per book as ``tied_book_ids``. A tie group is the
transitive closure of those links: if A is tied with B and B with C, all
three form one group and must share a single rating.
"""

import logging
from typing import Dict, List, Sequence

from readrank.errors import ConflictError
from readrank.models.entities import RatedBook

logger = logging.getLogger(__name__)


def build_tie_groups(rated_books: Sequence[RatedBook]) -> Dict[int, List[int]]:
    """Map every book id to the ordered member list of its tie group.

    Members are listed in the order they appear in ``rated_books``. Books
    without ties map to a single-member group. Links are followed in both
    directions, so a link stored on only one side still joins the group.

    Raises:
        ConflictError: If a book is tied with itself, or with a book that is
            not among ``rated_books`` (not owned by the same user in this band).
    """
    known = {book.book_id for book in rated_books}
    adjacency: Dict[int, set] = {book.book_id: set() for book in rated_books}

    for book in rated_books:
        for partner_id in book.tied_book_ids:
            if partner_id == book.book_id:
                raise ConflictError(f"Book {book.book_id} is tied with itself")
            if partner_id not in known:
                raise ConflictError(
                    f"Book {book.book_id} is tied with book {partner_id}, "
                    f"which is not among the user's ratings in this band"
                )
            adjacency[book.book_id].add(partner_id)
            adjacency[partner_id].add(book.book_id)

    position = {book.book_id: index for index, book in enumerate(rated_books)}
    groups: Dict[int, List[int]] = {}
    for book in rated_books:
        if book.book_id in groups:
            continue
        members = set()
        pending = [book.book_id]
        while pending:
            current = pending.pop()
            if current in members:
                continue
            members.add(current)
            pending.extend(adjacency[current] - members)
        ordered = sorted(members, key=position.__getitem__)
        for member in ordered:
            groups[member] = ordered

    return groups


def order_slots(rated_books: Sequence[RatedBook]) -> List[List[RatedBook]]:
    """Group a descending rating list into slots.

    Each slot is one tie group placed where its highest-ranked member sits.
    Tied members that drifted apart are pulled together again.
    """
    groups = build_tie_groups(rated_books)
    by_id = {book.book_id: book for book in rated_books}
    slots: List[List[RatedBook]] = []
    placed = set()

    for book in rated_books:
        if book.book_id in placed:
            continue
        members = groups[book.book_id]
        if len({by_id[member].rating for member in members}) > 1:
            logger.warning(f"Tie group {members} has diverging ratings, regrouping at rank {len(slots)}")
        slots.append([by_id[member] for member in members])
        placed.update(members)

    return slots


def flatten_slots(slots: Sequence[Sequence[RatedBook]]) -> List[RatedBook]:
    return [book for slot in slots for book in slot]
