"""
Aggregate statistics over comparable metric values.
"""

import math
from typing import Iterable

from .models import MetricStatistics


def calculate_statistics(values: Iterable[float]) -> MetricStatistics:
    """
    Calculate min, max, mean, median and standard deviation.

    Median uses the average of the two middle elements for even-length
    input. Standard deviation is the population form (divide by N).

    Args:
        values: Numeric values (may be empty)

    Returns:
        MetricStatistics, all zero for empty input
    """
    sorted_values = sorted(values)
    n = len(sorted_values)

    if n == 0:
        return MetricStatistics()

    mean = sum(sorted_values) / n

    if n % 2 == 1:
        median = sorted_values[n // 2]
    else:
        mid = n // 2
        median = (sorted_values[mid - 1] + sorted_values[mid]) / 2

    variance = sum((v - mean) ** 2 for v in sorted_values) / n

    return MetricStatistics(
        min=sorted_values[0],
        max=sorted_values[-1],
        mean=mean,
        median=median,
        standard_deviation=math.sqrt(variance),
    )
