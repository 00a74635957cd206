"""Error taxonomy for the ReadRank rating engine.

Nothing in the engine converts an error into a default rating: every failure
below propagates to the caller, which owns the user-facing message.
"""


class RatingError(Exception):
    """Base class for all rating engine errors."""


class ValidationError(RatingError):
    """The sentiment or comparison state is inconsistent."""


class SessionBusyError(ValidationError):
    """A session was mutated while one of its writes was still in flight."""


class NotFoundError(RatingError):
    """A referenced book or tie partner could not be resolved."""


class ConflictError(RatingError):
    """A tie link is cyclic or points at a book the user does not own."""


class RatingIOError(RatingError):
    """A collaborator I/O operation failed. The caller may retry it."""


class PersistenceError(RatingIOError):
    """The rating store failed to read or write."""


class CatalogError(RatingIOError):
    """The external book catalog could not be queried."""
