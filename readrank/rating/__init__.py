"""Rating engine for ReadRank.

This package contains the pairwise-comparison rating core:
- bands: sentiment bands and their numeric ranges
- ties: tie-group closure and slot ordering
- sampler: the comparison session state machine
- resolver: final rating interpolation and tie reconciliation
"""

from .bands import (
    SentimentBand,
    BAND_RANGES,
    range_for,
    midpoint,
    band_for_rating,
    quantize_rating,
    validate_band_ranges,
)

from .ties import build_tie_groups, order_slots

from .sampler import (
    Choice,
    Terminal,
    ComparisonSession,
    HistoryEntry,
    RandomPicker,
    FirstPicker,
    MiddlePicker,
    make_picker,
)

from .resolver import (
    Resolution,
    RatingUpdate,
    interpolate_ratings,
    resolve,
)

__all__ = [
    # Bands
    'SentimentBand',
    'BAND_RANGES',
    'range_for',
    'midpoint',
    'band_for_rating',
    'quantize_rating',
    'validate_band_ranges',
    # Ties
    'build_tie_groups',
    'order_slots',
    # Sampler
    'Choice',
    'Terminal',
    'ComparisonSession',
    'HistoryEntry',
    'RandomPicker',
    'FirstPicker',
    'MiddlePicker',
    'make_picker',
    # Resolver
    'Resolution',
    'RatingUpdate',
    'interpolate_ratings',
    'resolve',
]
