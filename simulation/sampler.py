"""
Weighted Sampler
================

Random selection primitives for the simulation engine:
- Rare item identification (bottom percentile by drop weight)
- Weighted random pick (cumulative weight walk)
- Three distinct picks without replacement

Each sampler owns its own random.Random, so concurrent runs never share
RNG state. Pass a seed for reproducible runs.

Author: Vendor Recipe Lab
Created: October 2026
"""

import math
import random
from typing import List, Optional, Sequence

from simulation.errors import (
    EmptyPoolError,
    InsufficientItemsError,
    NonPositiveTotalWeightError,
)
from simulation.models import TradeableItem, ITEMS_PER_TRADE


def identify_rare_items(items: Sequence[TradeableItem], percentile: float = 0.1) -> List[TradeableItem]:
    """
    Rarest items: weighted items sorted by ascending drop weight, first
    floor(n * percentile) of them.
    """
    weighted = [item for item in items if item.has_drop_weight()]
    if not weighted:
        return []

    ordered = sorted(weighted, key=lambda item: item.drop_weight)
    cutoff = int(math.floor(len(ordered) * percentile))
    return ordered[:cutoff]


class WeightedSampler:
    """
    Weighted-random selection over tradeable items.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.seed = seed
        self._rng = rng or random.Random(seed)

    identify_rare_items = staticmethod(identify_rare_items)

    def weighted_random_pick(
        self,
        items: Sequence[TradeableItem],
        total_weight: Optional[float] = None
    ) -> TradeableItem:
        """
        Draw r ~ U(0, total_weight) and walk the cumulative weights in order;
        the first item whose cumulative weight reaches r wins.
        """
        if not items:
            raise EmptyPoolError("No items available for selection")

        if total_weight is None:
            total_weight = sum(item.drop_weight or 0.0 for item in items)
        if not total_weight > 0:
            raise NonPositiveTotalWeightError(f"Total weight must be greater than 0 (got {total_weight})")

        r = self._rng.random() * total_weight

        cumulative = 0.0
        for item in items:
            cumulative += item.drop_weight or 0.0
            if r <= cumulative:
                return item

        # Floating-point drift can leave r just past the final sum
        return items[-1]

    def pick_three_distinct(self, items: Sequence[TradeableItem]) -> List[TradeableItem]:
        """
        Three entries from distinct positions. Exactly three returns all of
        them; more samples without replacement by uniform index.
        """
        if len(items) < ITEMS_PER_TRADE:
            raise InsufficientItemsError(
                f"Need at least {ITEMS_PER_TRADE} items to select from (got {len(items)})"
            )

        if len(items) == ITEMS_PER_TRADE:
            return list(items)

        available = list(items)
        selected = []
        for _ in range(ITEMS_PER_TRADE):
            index = int(self._rng.random() * len(available))
            selected.append(available.pop(index))
        return selected
