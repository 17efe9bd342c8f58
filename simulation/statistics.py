"""
Weighted Statistics
===================

Pure functions over (value, weight) pairs:
- Weighted mean (expected value of one draw)
- Population variance / standard deviation
- Standard error of the mean over N trades
- One-tailed lower confidence bound from a z-score table

The z-score lookup interpolates linearly between the table entries and
clamps outside them. It is not an inverse normal CDF; thresholds computed
by earlier releases depend on this exact behaviour.

Author: Vendor Recipe Lab
Created: October 2026
"""

import math
from typing import Dict, Iterable, Tuple

import numpy as np

from simulation.errors import InvalidInputError

# One-tailed z-scores for the supported confidence percentiles
Z_SCORE_TABLE: Dict[float, float] = {
    0.80: 0.84162,
    0.85: 1.03643,
    0.90: 1.28155,  # Default
    0.95: 1.64485,
    0.99: 2.32635,
}


def _as_arrays(pairs: Iterable[Tuple[float, float]]) -> Tuple[np.ndarray, np.ndarray]:
    pairs = list(pairs)
    if not pairs:
        raise InvalidInputError("Weighted statistics need at least one (value, weight) pair")

    values = np.array([p[0] for p in pairs], dtype=float)
    weights = np.array([p[1] for p in pairs], dtype=float)
    total = weights.sum()
    if not total > 0:
        raise InvalidInputError(f"Total weight must be greater than 0 (got {total})")
    return values, weights


def weighted_mean(pairs: Iterable[Tuple[float, float]]) -> float:
    """Sum of (weight_i / total_weight) * value_i"""
    values, weights = _as_arrays(pairs)
    probabilities = weights / weights.sum()
    return float(np.sum(probabilities * values))


def population_variance(pairs: Iterable[Tuple[float, float]], mean: float) -> float:
    """Sum of probability_i * (value_i - mean)^2"""
    values, weights = _as_arrays(pairs)
    if np.ptp(values) == 0 and math.isclose(values[0], mean, rel_tol=1e-12, abs_tol=1e-12):
        return 0.0

    probabilities = weights / weights.sum()
    variance = float(np.sum(probabilities * (values - mean) ** 2))
    return max(0.0, variance)


def standard_deviation(variance: float) -> float:
    return math.sqrt(max(0.0, variance))


def standard_error(std_dev: float, number_of_trades: int) -> float:
    """Uncertainty of the mean outcome over number_of_trades trades"""
    if number_of_trades <= 0:
        raise InvalidInputError(f"number_of_trades must be positive (got {number_of_trades})")
    return std_dev / math.sqrt(number_of_trades)


def z_score(percentile: float) -> float:
    """
    Z-score for a one-tailed lower bound at the given confidence percentile.

    Exact table hit for 0.80/0.85/0.90/0.95/0.99, linear interpolation
    between neighbours otherwise, clamped to the table's ends.
    """
    for known, z in Z_SCORE_TABLE.items():
        if math.isclose(percentile, known, rel_tol=0.0, abs_tol=1e-12):
            return z

    percentiles = sorted(Z_SCORE_TABLE)
    if percentile < percentiles[0]:
        return Z_SCORE_TABLE[percentiles[0]]
    if percentile > percentiles[-1]:
        return Z_SCORE_TABLE[percentiles[-1]]

    for lower, upper in zip(percentiles, percentiles[1:]):
        if lower <= percentile <= upper:
            ratio = (percentile - lower) / (upper - lower)
            return Z_SCORE_TABLE[lower] + (Z_SCORE_TABLE[upper] - Z_SCORE_TABLE[lower]) * ratio

    # NaN falls through every comparison
    raise InvalidInputError(f"Cannot derive a z-score for percentile {percentile!r}")


def lower_confidence_bound(mean: float, std_error: float, percentile: float) -> float:
    return mean - z_score(percentile) * std_error
