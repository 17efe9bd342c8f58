"""
Unit Tests for the Threshold Calculator
=======================================
Threshold formula, trade modes, classification and strategy estimates.
"""

import math
import logging
import os
import sys

import pytest

# Add project root to path
sys.path.insert(
    0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
)

from mocks.mock_data import make_item
from simulation.errors import EmptyReturnPoolError, NoValidItemsError, ValidationError
from simulation.models import InputMode, ProfitabilityStatus, Threshold
from simulation.threshold import (
    StrategyType,
    calculate_threshold,
    classify,
    estimate_strategy,
    find_lowest_value_item,
    find_optimal_input_item,
)


class TestCalculateThreshold:
    """EV - z * SE, divided by three, never below zero"""

    def test_three_item_example(self, three_item_catalog):
        """Test the threshold for the three-item catalog"""
        threshold = calculate_threshold(three_item_catalog, 0.9, 10000)

        variance = 6 - 49 / 9
        se = math.sqrt(variance) / 100
        expected = (7 / 3 - 1.28155 * se) / 3

        assert threshold.expected_value == pytest.approx(7 / 3)
        assert threshold.variance == pytest.approx(variance)
        assert threshold.standard_error == pytest.approx(se)
        assert threshold.z_score == 1.28155
        assert threshold.value == pytest.approx(expected)
        assert threshold.total_weight == 600
        assert threshold.item_count == 3
        assert threshold.input_mode == InputMode.RETURNABLE
        assert threshold.is_valid()

    def test_zero_variance_threshold_is_price_over_three(self, uniform_catalog):
        """Test zero variance gives price over three"""
        threshold = calculate_threshold(uniform_catalog, 0.99, 10)
        assert threshold.variance == 0.0
        assert threshold.value == pytest.approx(5.0 / 3)

    def test_higher_confidence_never_raises_threshold(self, mixed_catalog):
        """Test higher confidence never raises the threshold"""
        values = [
            calculate_threshold(mixed_catalog, p, 1000).value
            for p in (0.80, 0.85, 0.90, 0.95, 0.99)
        ]
        assert values == sorted(values, reverse=True)

    def test_more_trades_never_lowers_threshold(self, mixed_catalog):
        """Test more trades never lower the threshold"""
        values = [calculate_threshold(mixed_catalog, 0.9, n).value for n in (1, 10, 100, 10000)]
        assert values == sorted(values)

    def test_negative_lower_bound_clamped_to_zero(self, caplog):
        """Test a negative lower bound clamps to zero"""
        items = [make_item("cheap", 0.01, 1000), make_item("jackpot", 10000.0, 1)]
        with caplog.at_level(logging.WARNING, logger="ThresholdCalculator"):
            threshold = calculate_threshold(items, 0.99, 1)

        assert threshold.lower_bound < 0
        assert threshold.value == 0.0
        assert "clamped to 0" in caplog.text

    def test_ignores_items_without_price_or_weight(self, three_item_catalog):
        """Test items without price or weight are ignored"""
        noisy = three_item_catalog + [make_item("x", None, 50), make_item("y", 9.0, None)]
        assert calculate_threshold(noisy).value == pytest.approx(calculate_threshold(three_item_catalog).value)

    def test_no_valid_items(self):
        """Test a catalog with no valid items"""
        with pytest.raises(NoValidItemsError):
            calculate_threshold([make_item("x", None, 50), make_item("y", 9.0, 0)])

    def test_all_items_non_returnable(self):
        """Test a catalog of only non-returnable items"""
        with pytest.raises(EmptyReturnPoolError):
            calculate_threshold([make_item("x", 1.0, 50, returnable=False)])

    def test_non_returnable_items_leave_the_pool(self, mixed_catalog):
        """Test non-returnable items leave the pool"""
        threshold = calculate_threshold(mixed_catalog)
        # 8 valid returnable items; "legacy" is excluded
        assert threshold.item_count == 8

    def test_non_positive_trade_count_rejected(self, three_item_catalog):
        """Test non-positive trade counts are rejected"""
        with pytest.raises(ValidationError):
            calculate_threshold(three_item_catalog, number_of_trades=0)


class TestTradeModes:

    def test_lowest_value_excludes_cheapest(self, three_item_catalog):
        """Test lowest-value mode excludes the cheapest item"""
        threshold = calculate_threshold(three_item_catalog, input_mode=InputMode.LOWEST_VALUE)
        # Pool is B and C: EV = (400 + 900) / 500
        assert threshold.item_count == 2
        assert threshold.expected_value == pytest.approx(2.6)

    def test_optimal_combination_excludes_best_ratio(self):
        """Test optimal mode excludes the best price-weight ratio"""
        items = [
            make_item("common", 1.0, 1000),  # ratio 0.001
            make_item("cheap", 0.5, 10),     # ratio 0.05
            make_item("other", 3.0, 100),
        ]
        assert find_optimal_input_item(items).id == "common"

        threshold = calculate_threshold(items, input_mode="optimal_combination")
        assert threshold.item_count == 2
        assert threshold.input_mode == InputMode.OPTIMAL_COMBINATION

    def test_single_item_lowest_value_has_empty_pool(self):
        """Test a single item in lowest-value mode leaves no pool"""
        with pytest.raises(EmptyReturnPoolError):
            calculate_threshold([make_item("only", 1.0, 10)], input_mode=InputMode.LOWEST_VALUE)

    def test_lowest_value_tie_keeps_first(self):
        """Test ties for lowest value keep the first item"""
        items = [make_item("first", 1.0, 10), make_item("second", 1.0, 20)]
        assert find_lowest_value_item(items).id == "first"


class TestClassify:
    """Strictly below the threshold is profitable"""

    def test_boundary_is_not_profitable(self, three_item_catalog):
        """Test a price equal to the threshold is not profitable"""
        threshold = calculate_threshold(three_item_catalog)
        at = make_item("at", threshold.value, 1)
        below = make_item("below", threshold.value - 1e-9, 1)
        unpriced = make_item("unpriced", None, 1)

        classify([at, below, unpriced], threshold)

        assert at.profitability_status == ProfitabilityStatus.NOT_PROFITABLE
        assert below.profitability_status == ProfitabilityStatus.PROFITABLE
        assert unpriced.profitability_status == ProfitabilityStatus.UNKNOWN

    def test_missing_threshold_marks_everything_unknown(self, three_item_catalog):
        """Test no threshold marks every item unknown"""
        classify(three_item_catalog, None)
        assert all(i.profitability_status == ProfitabilityStatus.UNKNOWN for i in three_item_catalog)

    def test_invalid_threshold_marks_everything_unknown(self, three_item_catalog):
        """Test an invalid threshold marks every item unknown"""
        broken = Threshold(
            value=1.0, total_weight=0, item_count=0, expected_value=0, variance=0,
            standard_deviation=0, standard_error=0, confidence_percentile=0.9, number_of_trades=1,
        )
        classify(three_item_catalog, broken)
        assert all(i.profitability_status == ProfitabilityStatus.UNKNOWN for i in three_item_catalog)

    def test_zero_threshold_nothing_profitable(self):
        """Test a zero threshold makes nothing profitable"""
        items = [make_item("free", 0.0, 10), make_item("paid", 1.0, 10)]
        zero = Threshold(
            value=0.0, total_weight=20, item_count=2, expected_value=0.5, variance=0.25,
            standard_deviation=0.5, standard_error=0.5, confidence_percentile=0.9, number_of_trades=1,
        )
        classify(items, zero)
        assert all(i.profitability_status == ProfitabilityStatus.NOT_PROFITABLE for i in items)


class TestEstimateStrategy:

    def test_random_strategy(self, three_item_catalog):
        """Test the random strategy estimate"""
        threshold = calculate_threshold(three_item_catalog)
        estimate = estimate_strategy(StrategyType.RANDOM, three_item_catalog, threshold, 100)

        assert estimate.average_input_value == pytest.approx(2.0)
        assert estimate.total_input_value == pytest.approx(600.0)
        assert estimate.total_output_value == pytest.approx(threshold.value * 3 * 100)
        assert estimate.profit_loss_per_transaction == pytest.approx(estimate.net_profit_loss / 100)

    def test_optimized_uses_profitable_items_only(self, mixed_catalog):
        """Test the optimized estimate uses profitable items only"""
        threshold = calculate_threshold(mixed_catalog)
        classify(mixed_catalog, threshold)
        profitable = [i for i in mixed_catalog if i.profitability_status == ProfitabilityStatus.PROFITABLE]

        estimate = estimate_strategy("optimized", mixed_catalog, threshold, 10)
        expected_avg = sum(i.value for i in profitable) / len(profitable)
        assert estimate.average_input_value == pytest.approx(expected_avg)

    def test_optimized_without_profitable_items(self, three_item_catalog):
        """Test the optimized estimate with no profitable items"""
        threshold = calculate_threshold(three_item_catalog)
        classify(three_item_catalog, None)
        with pytest.raises(NoValidItemsError):
            estimate_strategy(StrategyType.OPTIMIZED, three_item_catalog, threshold, 10)

    def test_user_chosen_requires_selection(self, three_item_catalog):
        """Test the user-chosen estimate needs a selection"""
        threshold = calculate_threshold(three_item_catalog)
        with pytest.raises(NoValidItemsError):
            estimate_strategy(StrategyType.USER_CHOSEN, three_item_catalog, threshold, 10, selected_items=[])

        estimate = estimate_strategy(
            StrategyType.USER_CHOSEN, three_item_catalog, threshold, 10,
            selected_items=three_item_catalog[:1],
        )
        assert estimate.average_input_value == pytest.approx(1.0)
