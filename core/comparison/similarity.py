"""
Similarity Scorer for the Property Comparison Engine

Scores one comparable against the subject across five categories:
- Location (distance, or postal/city/state match)
- Size (living area and lot size)
- Features (bedrooms, bathrooms, garage, property type)
- Age (year built)
- Condition (condition and quality ratings)

Every score is in [0, 1]. Missing or malformed inputs fall back to fixed
default scores; nothing here raises.
"""

import math
from typing import Any, Mapping, Optional, Sequence

from .models import CategoryScore, PropertySnapshot, SimilarityScore


# =============================================================================
# Configuration Constants
# =============================================================================

CATEGORY_LOCATION = "Location"
CATEGORY_SIZE = "Size"
CATEGORY_FEATURES = "Features"
CATEGORY_AGE = "Age"
CATEGORY_CONDITION = "Condition"

CATEGORIES = (
    CATEGORY_LOCATION,
    CATEGORY_SIZE,
    CATEGORY_FEATURES,
    CATEGORY_AGE,
    CATEGORY_CONDITION,
)

# Weight applied to a category missing from the weight map
DEFAULT_CATEGORY_WEIGHT = 0.2

# (upper bound inclusive, score); first match wins
DISTANCE_BUCKETS = (
    (0.1, 1.0),
    (0.25, 0.95),
    (0.5, 0.9),
    (1.0, 0.8),
    (2.0, 0.7),
    (3.0, 0.6),
    (5.0, 0.4),
)
DISTANCE_FALLBACK_SCORE = 0.2

SAME_ZIP_SCORE = 0.8
SAME_CITY_SCORE = 0.6
SAME_STATE_SCORE = 0.3

# Ratio of |comp - subject| / subject
AREA_BUCKETS = (
    (0.05, 1.0),
    (0.10, 0.9),
    (0.15, 0.8),
    (0.20, 0.7),
    (0.25, 0.6),
    (0.30, 0.5),
    (0.40, 0.3),
)
AREA_FALLBACK_SCORE = 0.1

LOT_BUCKETS = (
    (0.1, 1.0),
    (0.2, 0.9),
    (0.3, 0.8),
    (0.4, 0.7),
    (0.5, 0.5),
)
LOT_FALLBACK_SCORE = 0.3

AREA_WEIGHT = 0.7
LOT_WEIGHT = 0.3

# Bedrooms, garage spaces and rating ranks: exact difference -> score
COUNT_SCORES = {
    0: 1.0,
    1: 0.8,
    2: 0.5,
}
COUNT_FALLBACK_SCORE = 0.2

BATHROOM_BUCKETS = (
    (0, 1.0),
    (0.5, 0.9),
    (1, 0.8),
    (1.5, 0.6),
    (2, 0.4),
)
BATHROOM_FALLBACK_SCORE = 0.2

BEDROOM_WEIGHT = 0.3
BATHROOM_WEIGHT = 0.3
GARAGE_WEIGHT = 0.2
PROPERTY_TYPE_WEIGHT = 0.2

PROPERTY_TYPE_MATCH_SCORE = 1.0
PROPERTY_TYPE_MISMATCH_SCORE = 0.3

YEAR_BUCKETS = (
    (1, 1.0),
    (5, 0.9),
    (10, 0.8),
    (15, 0.7),
    (20, 0.6),
    (30, 0.4),
    (50, 0.2),
)
YEAR_FALLBACK_SCORE = 0.1
MISSING_YEAR_SCORE = 0.5

# Five-level ordinal scales, worst to best
CONDITION_RANKS = {
    "poor": 1,
    "fair": 2,
    "average": 3,
    "good": 4,
    "excellent": 5,
}
QUALITY_RANKS = {
    "low": 1,
    "fair": 2,
    "average": 3,
    "good": 4,
    "excellent": 5,
}
UNKNOWN_RANK = 3
MISSING_RATING_SCORE = 0.5


# =============================================================================
# Helpers
# =============================================================================


def _as_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None if it is not numeric."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def _bucket(value: float, buckets: Sequence[tuple], fallback: float) -> float:
    """Map value onto the first bucket whose upper bound it does not exceed."""
    for upper, score in buckets:
        if value <= upper:
            return score
    return fallback


def _relative_difference_score(
    subject_value: Any,
    comparable_value: Any,
    buckets: Sequence[tuple],
    fallback: float,
) -> float:
    subject_num = _as_number(subject_value)
    comparable_num = _as_number(comparable_value)
    if subject_num is None or comparable_num is None or subject_num == 0:
        return 0.0
    ratio = abs(comparable_num - subject_num) / abs(subject_num)
    return _bucket(ratio, buckets, fallback)


def _absolute_difference_score(
    subject_value: Any,
    comparable_value: Any,
    buckets: Sequence[tuple],
    fallback: float,
) -> float:
    subject_num = _as_number(subject_value)
    comparable_num = _as_number(comparable_value)
    if subject_num is None or comparable_num is None:
        return 0.0
    return _bucket(abs(comparable_num - subject_num), buckets, fallback)


def _count_difference_score(subject_value: Any, comparable_value: Any) -> float:
    """Exact-difference score; fractional differences get the fallback."""
    subject_num = _as_number(subject_value)
    comparable_num = _as_number(comparable_value)
    if subject_num is None or comparable_num is None:
        return 0.0
    return COUNT_SCORES.get(abs(comparable_num - subject_num), COUNT_FALLBACK_SCORE)


def _rating_score(subject_label: Any, comparable_label: Any, ranks: Mapping[str, int]) -> float:
    if not subject_label or not comparable_label:
        return MISSING_RATING_SCORE
    subject_rank = ranks.get(str(subject_label).strip().lower(), UNKNOWN_RANK)
    comparable_rank = ranks.get(str(comparable_label).strip().lower(), UNKNOWN_RANK)
    return COUNT_SCORES.get(abs(comparable_rank - subject_rank), COUNT_FALLBACK_SCORE)


# =============================================================================
# Scorer
# =============================================================================


class SimilarityScorer:
    """
    Weighted multi-category similarity between a subject and a comparable.

    The overall score is the weighted sum of the five category scores. The
    weight map is keyed by lowercase category name; unconfigured categories
    get DEFAULT_CATEGORY_WEIGHT. The sum is reported as computed and is not
    renormalised, so a weight map that does not sum to 1.0 shifts every
    overall score by the same factor.
    """

    def __init__(self, weights: Optional[Mapping[str, float]] = None):
        """
        Initialize scorer.

        Args:
            weights: Category weights keyed by lowercase category name
        """
        self._weights = dict(weights or {})

    @property
    def weights(self) -> dict[str, float]:
        return dict(self._weights)

    def weight_for(self, category: str) -> float:
        return self._weights.get(category.lower(), DEFAULT_CATEGORY_WEIGHT)

    def score(
        self,
        subject: PropertySnapshot,
        comparable: PropertySnapshot,
    ) -> SimilarityScore:
        """
        Score one comparable against the subject.

        Args:
            subject: The subject property
            comparable: The comparable property

        Returns:
            SimilarityScore with category scores in CATEGORIES order
        """
        category_scores = [
            CategoryScore(CATEGORY_LOCATION, self.location_score(subject, comparable)),
            CategoryScore(CATEGORY_SIZE, self.size_score(subject, comparable)),
            CategoryScore(CATEGORY_FEATURES, self.feature_score(subject, comparable)),
            CategoryScore(CATEGORY_AGE, self.age_score(subject, comparable)),
            CategoryScore(CATEGORY_CONDITION, self.condition_score(subject, comparable)),
        ]

        overall = sum(cs.score * self.weight_for(cs.category) for cs in category_scores)

        return SimilarityScore(
            property_id=comparable.id,
            score=overall,
            category_scores=category_scores,
        )

    def score_all(
        self,
        subject: PropertySnapshot,
        comparables: Sequence[PropertySnapshot],
    ) -> list[SimilarityScore]:
        """Score every comparable, preserving input order."""
        return [self.score(subject, comparable) for comparable in comparables]

    @staticmethod
    def location_score(subject: PropertySnapshot, comparable: PropertySnapshot) -> float:
        """
        Distance-based score, falling back to administrative matches.

        Distance is the comparable's precomputed distance from the subject
        in miles.
        """
        distance = _as_number(comparable.distance)
        if distance is not None:
            return _bucket(distance, DISTANCE_BUCKETS, DISTANCE_FALLBACK_SCORE)

        if subject.zip_code and subject.zip_code == comparable.zip_code:
            return SAME_ZIP_SCORE
        if (
            subject.city and subject.state
            and subject.city == comparable.city
            and subject.state == comparable.state
        ):
            return SAME_CITY_SCORE
        if subject.state and subject.state == comparable.state:
            return SAME_STATE_SCORE
        return 0.0

    @staticmethod
    def size_score(subject: PropertySnapshot, comparable: PropertySnapshot) -> float:
        area = _relative_difference_score(
            subject.square_footage, comparable.square_footage,
            AREA_BUCKETS, AREA_FALLBACK_SCORE,
        )
        lot = _relative_difference_score(
            subject.lot_size, comparable.lot_size,
            LOT_BUCKETS, LOT_FALLBACK_SCORE,
        )
        return area * AREA_WEIGHT + lot * LOT_WEIGHT

    @staticmethod
    def feature_score(subject: PropertySnapshot, comparable: PropertySnapshot) -> float:
        bedrooms = _count_difference_score(subject.bedrooms, comparable.bedrooms)
        bathrooms = _absolute_difference_score(
            subject.bathrooms, comparable.bathrooms,
            BATHROOM_BUCKETS, BATHROOM_FALLBACK_SCORE,
        )
        garage = _count_difference_score(subject.garage_spaces, comparable.garage_spaces)
        if subject.property_type == comparable.property_type:
            property_type = PROPERTY_TYPE_MATCH_SCORE
        else:
            property_type = PROPERTY_TYPE_MISMATCH_SCORE

        return (
            bedrooms * BEDROOM_WEIGHT
            + bathrooms * BATHROOM_WEIGHT
            + garage * GARAGE_WEIGHT
            + property_type * PROPERTY_TYPE_WEIGHT
        )

    @staticmethod
    def age_score(subject: PropertySnapshot, comparable: PropertySnapshot) -> float:
        subject_year = _as_number(subject.year_built)
        comparable_year = _as_number(comparable.year_built)
        if subject_year is None or comparable_year is None:
            return MISSING_YEAR_SCORE
        return _bucket(abs(comparable_year - subject_year), YEAR_BUCKETS, YEAR_FALLBACK_SCORE)

    @staticmethod
    def condition_score(subject: PropertySnapshot, comparable: PropertySnapshot) -> float:
        condition = _rating_score(subject.condition, comparable.condition, CONDITION_RANKS)
        quality = _rating_score(subject.quality, comparable.quality, QUALITY_RANKS)
        return condition * 0.5 + quality * 0.5
