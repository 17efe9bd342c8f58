"""
Threshold Calculator
====================

Derives the per-item breakeven price for a 3-for-1 vendor recipe:

    EV          = sum(weight_i / total_weight * price_i)   over the return pool
    SE          = sigma / sqrt(number_of_trades)
    lower_bound = EV - z(confidence) * SE
    threshold   = max(0, lower_bound / 3)

Items priced strictly below the threshold are profitable inputs with the
requested confidence over number_of_trades trades.

Also hosts the classifier and the analytic strategy estimates.

Author: Vendor Recipe Lab
Created: October 2026
"""

import math
import logging
from typing import List, Optional, Sequence
from dataclasses import dataclass
from enum import Enum

from simulation.errors import (
    EmptyReturnPoolError,
    NoValidItemsError,
    NonPositiveTotalWeightError,
    ValidationError,
)
from simulation.models import (
    InputMode,
    ProfitabilityStatus,
    Threshold,
    TradeableItem,
    ITEMS_PER_TRADE,
)
from simulation import statistics

logger = logging.getLogger('ThresholdCalculator')

DEFAULT_CONFIDENCE_PERCENTILE = 0.9
DEFAULT_NUMBER_OF_TRADES = 10000


# =============================================================================
# INPUT SELECTION
# =============================================================================

def find_lowest_value_item(items: Sequence[TradeableItem]) -> Optional[TradeableItem]:
    """Cheapest item; the first one wins ties"""
    lowest = None
    for item in items:
        if lowest is None or item.value < lowest.value:
            lowest = item
    return lowest


def price_weight_ratio(item: TradeableItem) -> float:
    return item.value / item.drop_weight


def find_optimal_input_item(items: Sequence[TradeableItem]) -> Optional[TradeableItem]:
    """Item minimising price / drop weight (cheap and common)"""
    optimal = None
    for item in items:
        if optimal is None or price_weight_ratio(item) < price_weight_ratio(optimal):
            optimal = item
    return optimal


# =============================================================================
# THRESHOLD
# =============================================================================

def calculate_threshold(
    items: Sequence[TradeableItem],
    confidence_percentile: float = DEFAULT_CONFIDENCE_PERCENTILE,
    number_of_trades: int = DEFAULT_NUMBER_OF_TRADES,
    input_mode: InputMode = InputMode.RETURNABLE
) -> Threshold:
    """
    Calculate the profitability threshold for a set of tradeable items.

    Args:
        items: Catalog items (items without price or weight are ignored)
        confidence_percentile: One-tailed confidence, e.g. 0.9
        number_of_trades: Trades the mean outcome is taken over
        input_mode: Which items are consumed as inputs and so cannot return

    Returns:
        Threshold carrying every intermediate statistic

    Raises:
        NoValidItemsError: no item has both price and drop weight
        EmptyReturnPoolError: nothing is left to return after exclusions
    """
    input_mode = InputMode(input_mode)
    if number_of_trades <= 0:
        raise ValidationError(f"number_of_trades must be positive (got {number_of_trades})")

    valid_items = [item for item in items if item.is_tradeable]
    if not valid_items:
        raise NoValidItemsError("No valid items with both drop_weight and price data")

    returnable = [item for item in valid_items if item.returnable]
    if not returnable:
        raise EmptyReturnPoolError("No returnable items available (all are excluded from returns)")

    input_items: List[TradeableItem] = []
    if input_mode == InputMode.LOWEST_VALUE:
        lowest = find_lowest_value_item(returnable)
        input_items = [lowest]
    elif input_mode == InputMode.OPTIMAL_COMBINATION:
        optimal = find_optimal_input_item(returnable)
        input_items = [optimal]

    input_ids = {item.id for item in input_items}
    return_pool = [item for item in returnable if item.id not in input_ids]
    if not return_pool:
        raise EmptyReturnPoolError("No items available in return pool after excluding input items")

    total_weight = sum(item.drop_weight for item in return_pool)
    if total_weight <= 0:
        raise NonPositiveTotalWeightError("Total weight must be greater than 0")

    pairs = [(item.value, item.drop_weight) for item in return_pool]
    expected_value = statistics.weighted_mean(pairs)
    variance = statistics.population_variance(pairs, expected_value)
    std_dev = statistics.standard_deviation(variance)
    std_error = statistics.standard_error(std_dev, number_of_trades)
    z = statistics.z_score(confidence_percentile)
    lower_bound = expected_value - z * std_error

    if lower_bound < 0:
        logger.warning(
            f"Lower bound is negative ({lower_bound:.4f}). number_of_trades ({number_of_trades}) "
            f"may be too small for the variance level."
        )

    logger.debug(
        "Threshold calculation: mode=%s inputs=%s pool=%d EV=%.4f var=%.4f sd=%.4f "
        "n=%d SE=%.4f z=%.4f confidence=%s lower=%.4f raw=%.4f",
        input_mode.value,
        ', '.join(item.name for item in input_items) or 'none (returnable)',
        len(return_pool), expected_value, variance, std_dev,
        number_of_trades, std_error, z, confidence_percentile,
        lower_bound, lower_bound / ITEMS_PER_TRADE,
    )

    raw_threshold = lower_bound / ITEMS_PER_TRADE
    if math.isnan(raw_threshold):
        logger.warning("Threshold calculation produced NaN, clamped to 0")
        value = 0.0
    elif raw_threshold < 0:
        logger.warning(f"Threshold calculation resulted in negative value ({raw_threshold:.4f}), clamped to 0")
        value = 0.0
    else:
        value = raw_threshold

    return Threshold(
        value=value,
        total_weight=total_weight,
        item_count=len(return_pool),
        expected_value=expected_value,
        variance=variance,
        standard_deviation=std_dev,
        standard_error=std_error,
        confidence_percentile=confidence_percentile,
        number_of_trades=number_of_trades,
        input_mode=input_mode,
        z_score=z,
        lower_bound=lower_bound,
    )


# =============================================================================
# CLASSIFIER
# =============================================================================

def classify(items: Sequence[TradeableItem], threshold: Optional[Threshold]) -> None:
    """
    Set profitability_status on every item. Strictly below the threshold is
    profitable; an item priced exactly at the threshold is not.
    """
    threshold_ok = threshold is not None and threshold.is_valid()

    for item in items:
        if not item.has_price_data() or not threshold_ok:
            item.profitability_status = ProfitabilityStatus.UNKNOWN
        elif item.value < threshold.value:
            item.profitability_status = ProfitabilityStatus.PROFITABLE
        else:
            item.profitability_status = ProfitabilityStatus.NOT_PROFITABLE


# =============================================================================
# STRATEGY ESTIMATES
# =============================================================================

class StrategyType(Enum):
    OPTIMIZED = "optimized"      # Only items classified profitable
    USER_CHOSEN = "user_chosen"  # The caller's selection
    RANDOM = "random"            # Every priced item, equal odds


@dataclass
class StrategyEstimate:
    """Closed-form expectation for a strategy, no sampling involved"""
    strategy: StrategyType
    transaction_count: int
    average_input_value: float
    total_input_value: float
    expected_output_value: float
    total_output_value: float
    net_profit_loss: float
    profit_loss_per_transaction: float


def estimate_strategy(
    strategy: StrategyType,
    items: Sequence[TradeableItem],
    threshold: Threshold,
    transaction_count: int,
    selected_items: Optional[Sequence[TradeableItem]] = None
) -> StrategyEstimate:
    """
    Expected totals for transaction_count trades. The expected output of one
    trade is taken as threshold.value * 3.
    """
    strategy = StrategyType(strategy)
    if transaction_count <= 0:
        raise ValidationError("Transaction count must be positive")

    if strategy == StrategyType.OPTIMIZED:
        pool = [
            item for item in items
            if item.profitability_status == ProfitabilityStatus.PROFITABLE and item.has_price_data()
        ]
        if not pool:
            raise NoValidItemsError("No profitable items available for optimized strategy")
        average_input = sum(item.value for item in pool) / len(pool)
    elif strategy == StrategyType.USER_CHOSEN:
        pool = list(selected_items or [])
        if not pool:
            raise NoValidItemsError("User-chosen strategy requires at least 1 selected item")
        # Unpriced selections count as worthless inputs
        average_input = sum(item.value or 0.0 for item in pool) / len(pool)
    else:
        pool = [item for item in items if item.has_price_data()]
        if not pool:
            raise NoValidItemsError("No valid items with price data for random strategy")
        average_input = sum(item.value for item in pool) / len(pool)

    expected_output = threshold.value * ITEMS_PER_TRADE
    total_input = average_input * ITEMS_PER_TRADE * transaction_count
    total_output = expected_output * transaction_count
    net = total_output - total_input

    return StrategyEstimate(
        strategy=strategy,
        transaction_count=transaction_count,
        average_input_value=average_input,
        total_input_value=total_input,
        expected_output_value=expected_output,
        total_output_value=total_output,
        net_profit_loss=net,
        profit_loss_per_transaction=net / transaction_count,
    )
