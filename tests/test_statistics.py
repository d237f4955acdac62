"""
Tests for metric statistics.

Tests cover:
- Min / max / mean over comparable values
- Median for odd and even counts
- Population standard deviation
- Empty input
- Non-finite readings kept out of the numbers
"""

import math
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.comparison.models import (
    ComparableValue,
    MetricKind,
    MetricResult,
    MetricValue,
    ValueKind,
)
from core.comparison.statistics import calculate_statistics


class TestCalculateStatistics:
    """Aggregate statistics over numeric comparable values."""

    def test_basic_statistics(self):
        stats = calculate_statistics([100, 200, 300])

        assert stats.min == 100
        assert stats.max == 300
        assert stats.mean == 200
        assert stats.median == 200
        assert stats.standard_deviation == pytest.approx(81.6497, abs=1e-3)

    def test_empty_input_is_all_zero(self):
        stats = calculate_statistics([])

        assert stats.min == 0
        assert stats.max == 0
        assert stats.mean == 0
        assert stats.median == 0
        assert stats.standard_deviation == 0

    def test_single_value(self):
        stats = calculate_statistics([425000])

        assert stats.min == stats.max == stats.mean == stats.median == 425000
        assert stats.standard_deviation == 0

    def test_median_even_count_averages_middle_values(self):
        stats = calculate_statistics([4, 1, 3, 2])

        assert stats.median == 2.5

    def test_input_order_does_not_matter(self):
        assert calculate_statistics([300, 100, 200]) == calculate_statistics([100, 200, 300])

    def test_median_differs_from_mean_with_skew(self):
        """One expensive comparable pulls the mean, not the median."""
        stats = calculate_statistics([500000, 520000, 700000])

        assert stats.median == 520000
        assert stats.mean == pytest.approx(573333.33, abs=0.01)

    def test_population_standard_deviation(self):
        # Sample form would give ~2.138; population form divides by N
        stats = calculate_statistics([2, 4, 4, 4, 5, 5, 7, 9])

        assert stats.standard_deviation == pytest.approx(2.0)


class TestNumericReadings:
    """Only finite numbers reach the statistics."""

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_reading_is_empty(self, raw):
        value = MetricValue.from_raw(raw)

        assert value.kind is ValueKind.EMPTY
        assert value.to_raw() is None

    def test_finite_readings_stay_numeric(self):
        assert MetricValue.from_raw(0).number == 0
        assert MetricValue.from_raw(-12.5).number == -12.5
        assert MetricValue.from_raw(10 ** 400).is_numeric

    def test_non_finite_comparables_excluded_from_statistics(self):
        result = MetricResult(
            metric=MetricKind.PRICE,
            subject_value=MetricValue.from_raw(500000),
            comparable_values=[
                ComparableValue("a", MetricValue.from_raw(480000)),
                ComparableValue("b", MetricValue.from_raw(float("nan"))),
                ComparableValue("c", MetricValue.from_raw(float("inf"))),
                ComparableValue("d", MetricValue.from_raw(520000)),
            ],
        )

        stats = calculate_statistics(result.numeric_comparable_values)

        assert result.numeric_comparable_values == [480000, 520000]
        assert stats.mean == 500000
        assert not math.isnan(stats.standard_deviation)
