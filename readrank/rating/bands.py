"""Sentiment bands and their fixed numeric sub-ranges.

A rating lives on a 1.0 - 10.0 scale quantised to one decimal place. Each
sentiment band owns a closed slice of that scale; together the slices cover
every grid point exactly once, so any two rated books can always be ordered.
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Tuple

from readrank.errors import ValidationError


RATING_SCALE_MIN = 1.0
RATING_SCALE_MAX = 10.0
RATING_STEP = Decimal("0.1")


class SentimentBand(str, Enum):
    """Coarse sentiment a user picks before comparing books."""
    LOVED = "loved"
    LIKED = "liked"
    HATED = "hated"

    @classmethod
    def parse(cls, value) -> "SentimentBand":
        """Return the band for ``value`` (a band or its name, any casing)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown sentiment band: {value!r}") from None

    @property
    def label(self) -> str:
        return BAND_LABELS[self]


# Ordered from the top of the scale down.
BAND_RANGES: Dict[SentimentBand, Tuple[float, float]] = {
    SentimentBand.LOVED: (7.0, 10.0),
    SentimentBand.LIKED: (5.0, 6.9),
    SentimentBand.HATED: (1.0, 4.9),
}

BAND_LABELS: Dict[SentimentBand, str] = {
    SentimentBand.LOVED: "I loved it!",
    SentimentBand.LIKED: "I liked it",
    SentimentBand.HATED: "I didn't like it",
}


def quantize_rating(value: float) -> float:
    """Round a rating onto the 0.1 grid, halves rounding up."""
    return float(Decimal(str(value)).quantize(RATING_STEP, rounding=ROUND_HALF_UP))


def validate_band_ranges(ranges: Dict[SentimentBand, Tuple[float, float]]) -> None:
    """Check that ``ranges`` partitions the rating scale.

    Bands must be listed top-down, each with ``min <= max``, without overlap
    and without any gap wider than one grid step between neighbours.

    Raises:
        ValidationError: If any of those conditions does not hold.
    """
    if set(ranges) != set(SentimentBand):
        raise ValidationError("Band ranges must define every sentiment band")

    bounds = list(ranges.items())
    for band, (low, high) in bounds:
        if low > high:
            raise ValidationError(f"Band {band.value} range is inverted: [{low}, {high}]")
        if low < RATING_SCALE_MIN or high > RATING_SCALE_MAX:
            raise ValidationError(f"Band {band.value} range [{low}, {high}] leaves the rating scale")

    if bounds[0][1][1] != RATING_SCALE_MAX or bounds[-1][1][0] != RATING_SCALE_MIN:
        raise ValidationError("Band ranges must cover the full rating scale")

    step = float(RATING_STEP)
    for (upper_band, (upper_low, _)), (lower_band, (_, lower_high)) in zip(bounds, bounds[1:]):
        if lower_high >= upper_low:
            raise ValidationError(f"Bands {upper_band.value} and {lower_band.value} overlap")
        if quantize_rating(upper_low - lower_high) > step:
            raise ValidationError(f"Gap between bands {upper_band.value} and {lower_band.value}")


def range_for(band: SentimentBand) -> Tuple[float, float]:
    """Return the closed ``(min, max)`` range for ``band``."""
    return BAND_RANGES[SentimentBand.parse(band)]


def midpoint(band: SentimentBand) -> float:
    low, high = range_for(band)
    return quantize_rating((low + high) / 2)


def band_for_rating(rating: float) -> SentimentBand:
    """Classify a rating into the band whose range contains it."""
    if rating is None or not RATING_SCALE_MIN <= rating <= RATING_SCALE_MAX:
        raise ValidationError(f"Rating {rating!r} is outside the rating scale")
    value = quantize_rating(rating)
    for band, (low, high) in BAND_RANGES.items():
        if low <= value <= high:
            return band
    raise ValidationError(f"Rating {rating!r} does not fall in any band")


def in_band(band: SentimentBand, rating: float) -> bool:
    low, high = range_for(band)
    return rating is not None and low <= rating <= high


validate_band_ranges(BAND_RANGES)
