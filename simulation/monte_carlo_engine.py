"""
VENDOR RECIPE SIMULATION ENGINE - Monte Carlo Core
==================================================

Simulates repeated 3-for-1 trades against a weighted item catalog:
- Phase 1: exactly transaction_count trades, processed in batches
- Phase 2 (continue mode): re-trade returned items still below the
  profitability threshold until fewer than three remain
- Cumulative profit/loss, yield counts and significant events
  (rare returns, first breakeven crossing)

Progress is reported at batch boundaries only. Those are also the points
where control is yielded and cancellation is observed, so every
transaction's read-modify-write of the cumulative state is atomic.

Usage:
    from simulation import SimulationEngine, SimulationConfig

    engine = SimulationEngine(seed=42)
    result = engine.run(SimulationConfig(selected_item_ids=['a', 'b', 'c'],
                                         transaction_count=1000), catalog)
    print_simulation_report(result)

Author: Vendor Recipe Lab
Created: October 2026
"""

import json
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from simulation.errors import (
    EmptyReturnPoolError,
    NoValidItemsError,
    NonPositiveTotalWeightError,
    SimulationCancelled,
    SimulationError,
    UnexpectedSimulationError,
    ValidationError,
)
from simulation.models import (
    BreakevenAchieved,
    InputStrategy,
    ITEMS_PER_TRADE,
    RareItemReturn,
    SignificantEvent,
    SimulationConfig,
    SimulationPhase,
    SimulationResult,
    SimulationState,
    Threshold,
    TradeableItem,
    Transaction,
)
from simulation.sampler import WeightedSampler, identify_rare_items
from simulation.threshold import price_weight_ratio

logger = logging.getLogger('SimulationEngine')

# (percent, current, total, yield_counts copy, phase, remaining pool size or None)
ProgressCallback = Callable[[float, int, int, Dict[str, int], str, Optional[int]], None]

MAX_TRANSACTIONS = 1_000_000
DEFAULT_BATCH_SIZE = 10_000
DEFAULT_CONTINUE_PROGRESS_INTERVAL = 100
RETURN_POOL_CACHE_LIMIT = 4096


def breakeven_crossed(previous_cumulative: float, current_cumulative: float, breakeven_point: float = 0.0) -> bool:
    """True when the cumulative P/L moves from below the point to at/above it"""
    return previous_cumulative < breakeven_point <= current_cumulative


# =============================================================================
# CANCELLATION
# =============================================================================

class CancellationToken:
    """
    Cooperative cancellation flag for one run. Safe to set from another
    thread; the engine checks it before every transaction and at every
    suspension point.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, processed: int = 0):
        if self._event.is_set():
            raise SimulationCancelled(processed=processed)


# =============================================================================
# ENGINE
# =============================================================================

class SimulationEngine:
    """
    Runs one simulation at a time. Each engine owns its sampler (and RNG),
    so give concurrent runs their own engine.
    """

    def __init__(
        self,
        sampler: Optional[WeightedSampler] = None,
        seed: Optional[int] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        continue_progress_interval: int = DEFAULT_CONTINUE_PROGRESS_INTERVAL,
        yield_control: Optional[Callable[[], None]] = None,
        max_transactions: int = MAX_TRANSACTIONS
    ):
        self.sampler = sampler or WeightedSampler(seed=seed)
        self.max_transactions = int(max_transactions)
        self.batch_size = max(1, int(batch_size))
        self.continue_progress_interval = max(1, int(continue_progress_interval))
        # sleep(0) releases the GIL so a calling UI thread stays responsive
        self._yield_control = yield_control or (lambda: time.sleep(0))
        self.state = SimulationState.IDLE
        self._token: Optional[CancellationToken] = None
        self._return_pool_cache: Dict[Tuple[str, ...], Tuple[List[TradeableItem], float]] = {}

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def cancel(self):
        """Cancel the run in progress, if any"""
        if self._token is not None:
            self._token.cancel()

    @staticmethod
    def validate_configuration(
        config: SimulationConfig,
        items: Sequence[TradeableItem],
        max_transactions: int = MAX_TRANSACTIONS
    ):
        """Raise ValidationError on the first failed check"""
        if not config.selected_item_ids:
            raise ValidationError("At least 1 item must be selected")

        count = config.transaction_count
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= max_transactions:
            raise ValidationError(f"Transaction count must be between 1 and {max_transactions:,}")

        percentile = config.rare_item_percentile
        if isinstance(percentile, bool) or not isinstance(percentile, (int, float)) or not 0 <= percentile <= 1:
            raise ValidationError("Rare item percentile must be between 0 and 1")

        available = {item.id for item in items}
        invalid = [item_id for item_id in config.selected_item_ids if item_id not in available]
        if invalid:
            raise ValidationError(f"Invalid item IDs: {', '.join(invalid)}")

    @staticmethod
    def calculate_breakeven_point(
        config: SimulationConfig,
        valid_selected: Sequence[TradeableItem]
    ) -> float:
        """Expected input value per trade times the number of trades"""
        strategy = InputStrategy(config.input_strategy)

        if strategy == InputStrategy.USER_SELECTED and len(valid_selected) >= ITEMS_PER_TRADE:
            average = sum(item.value for item in valid_selected) / len(valid_selected)
            per_trade = average * ITEMS_PER_TRADE
        else:
            per_trade = sum(item.value for item in _fixed_inputs(strategy, valid_selected))

        return per_trade * config.transaction_count

    def run(
        self,
        config: SimulationConfig,
        items: Sequence[TradeableItem],
        on_progress: Optional[ProgressCallback] = None,
        threshold: Optional[Threshold] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> SimulationResult:
        """
        Run a full simulation.

        Args:
            config: Selection, transaction count, rare percentile, continue mode
            items: Full catalog (the return pool is drawn from all of it)
            on_progress: Called at batch boundaries with copies of yield counts
            threshold: Required for the continuation phase
            cancel_token: Shared flag; a fresh one is created when omitted

        Returns:
            Completed SimulationResult

        Raises:
            ValidationError, NoValidItemsError, EmptyReturnPoolError,
            NonPositiveTotalWeightError, SimulationCancelled,
            UnexpectedSimulationError
        """
        token = cancel_token or CancellationToken()
        self._token = token
        self._return_pool_cache = {}
        started = time.monotonic()

        self.state = SimulationState.VALIDATING
        try:
            self.validate_configuration(config, items, self.max_transactions)
        except ValidationError:
            self.state = SimulationState.FAILED
            raise

        try:
            result = self._execute(config, items, on_progress, threshold, token)
        except SimulationCancelled as exc:
            self.state = SimulationState.CANCELLED
            logger.info(f"Simulation cancelled after {exc.processed:,} transactions")
            raise
        except SimulationError:
            self.state = SimulationState.FAILED
            raise
        except Exception as exc:
            self.state = SimulationState.FAILED
            logger.exception("Unexpected error during simulation")
            raise UnexpectedSimulationError(str(exc)) from exc
        finally:
            self._token = None
            self._return_pool_cache = {}

        result.completed_at = datetime.now().isoformat()
        result.execution_duration_ms = int((time.monotonic() - started) * 1000)
        self.state = SimulationState.COMPLETED

        logger.info(
            f"Simulation complete: {result.total_transactions:,} transactions, "
            f"net P/L {result.net_profit_loss:+.2f} in {result.execution_duration_ms}ms"
        )
        return result

    def run_async(
        self,
        config: SimulationConfig,
        items: Sequence[TradeableItem],
        on_progress: Optional[ProgressCallback] = None,
        threshold: Optional[Threshold] = None,
        cancel_token: Optional[CancellationToken] = None,
        executor: Optional[ThreadPoolExecutor] = None
    ) -> Tuple[Future, CancellationToken]:
        """
        Run on a worker thread. Returns the future and the token that
        cancels it; future.result() raises SimulationCancelled after cancel.
        """
        token = cancel_token or CancellationToken()
        owned = executor is None
        pool = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='simulation')

        future = pool.submit(self.run, config, items, on_progress, threshold, token)
        if owned:
            pool.shutdown(wait=False)
        return future, token

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _execute(
        self,
        config: SimulationConfig,
        items: Sequence[TradeableItem],
        on_progress: Optional[ProgressCallback],
        threshold: Optional[Threshold],
        token: CancellationToken
    ) -> SimulationResult:
        selected_ids = set(config.selected_item_ids)
        valid_selected = [item for item in items if item.id in selected_ids and item.is_tradeable]
        if not valid_selected:
            raise NoValidItemsError("No valid selected items with both drop weight and price data")

        return_candidates = [item for item in items if item.is_tradeable and item.returnable]
        if not return_candidates:
            raise EmptyReturnPoolError("No items available in return pool (need items with drop weights)")

        breakeven_point = self.calculate_breakeven_point(config, valid_selected)
        run_config = replace(config, breakeven_point=breakeven_point)

        result = SimulationResult(
            configuration=run_config,
            total_transactions=config.transaction_count,
            started_at=datetime.now().isoformat(),
        )
        rare_ids = {item.id for item in identify_rare_items(items, config.rare_item_percentile)}

        logger.info(
            f"Starting simulation {result.simulation_id}: {config.transaction_count:,} transactions, "
            f"{len(valid_selected)} input items, {len(return_candidates)} returnable, "
            f"breakeven {breakeven_point:.2f}"
        )

        tracker = _RunTracker(result, rare_ids, breakeven_point)
        self.state = SimulationState.PHASE1_RUNNING
        returned_items = self._run_initial_phase(
            run_config, valid_selected, return_candidates, tracker, on_progress, token
        )

        if config.continue_mode and threshold is not None:
            self.state = SimulationState.PHASE2_RUNNING
            self._run_continuation_phase(
                run_config, returned_items, return_candidates, threshold, tracker, on_progress, token
            )

        transactions = result.transactions
        result.total_input_value = sum(t.input_value for t in transactions)
        result.total_output_value = sum(t.returned_value for t in transactions)
        result.net_profit_loss = result.total_output_value - result.total_input_value
        result.average_profit_loss_per_transaction = (
            result.net_profit_loss / result.total_transactions if result.total_transactions > 0 else 0.0
        )
        result.final_cumulative_profit_loss = tracker.cumulative
        return result

    def _run_initial_phase(
        self,
        config: SimulationConfig,
        valid_selected: List[TradeableItem],
        return_candidates: List[TradeableItem],
        tracker: '_RunTracker',
        on_progress: Optional[ProgressCallback],
        token: CancellationToken
    ) -> List[TradeableItem]:
        total = config.transaction_count
        strategy = InputStrategy(config.input_strategy)
        fixed_inputs = None
        if strategy != InputStrategy.USER_SELECTED or len(valid_selected) <= ITEMS_PER_TRADE:
            fixed_inputs = _fixed_inputs(strategy, valid_selected)

        returned_items: List[TradeableItem] = []

        for batch_start in range(0, total, self.batch_size):
            batch_end = min(batch_start + self.batch_size, total)

            for number in range(batch_start + 1, batch_end + 1):
                token.raise_if_cancelled(processed=number - 1)

                inputs = fixed_inputs or self.sampler.pick_three_distinct(valid_selected)
                pool, total_weight = self._return_pool(return_candidates, inputs)
                if not pool:
                    raise EmptyReturnPoolError(
                        "No items available in return pool after excluding input items. "
                        "Select more items or use a different strategy."
                    )
                if total_weight <= 0:
                    raise NonPositiveTotalWeightError("Total weight must be greater than 0")

                returned = self.sampler.weighted_random_pick(pool, total_weight)
                tracker.record(number, inputs, returned)

                if config.continue_mode:
                    returned_items.append(returned)

            if on_progress:
                progress = batch_end / total * 100
                on_progress(progress, batch_end, total, dict(tracker.result.yield_counts),
                            SimulationPhase.INITIAL.value, None)

            if batch_end < total:
                self._yield_control()
                token.raise_if_cancelled(processed=batch_end)
                logger.info(f"Completed {batch_end:,}/{total:,} transactions")

        return returned_items

    def _run_continuation_phase(
        self,
        config: SimulationConfig,
        returned_items: List[TradeableItem],
        return_candidates: List[TradeableItem],
        threshold: Threshold,
        tracker: '_RunTracker',
        on_progress: Optional[ProgressCallback],
        token: CancellationToken
    ):
        result = tracker.result
        result.initial_phase_transactions = len(result.transactions)
        result.initial_phase_total_input_value = sum(t.input_value for t in result.transactions)
        result.initial_phase_total_output_value = sum(t.returned_value for t in result.transactions)
        result.initial_phase_net_profit_loss = (
            result.initial_phase_total_output_value - result.initial_phase_total_input_value
        )
        result.initial_phase_cumulative_profit_loss = tracker.cumulative
        result.initial_phase_yield_counts = dict(result.yield_counts)

        below_threshold = [
            item for item in returned_items
            if item.has_price_data() and item.value < threshold.value
        ]
        logger.info(f"Continuation phase: {len(below_threshold)} returned items below threshold {threshold.value:.4f}")

        number = config.transaction_count
        continued = 0

        while len(below_threshold) >= ITEMS_PER_TRADE:
            token.raise_if_cancelled(processed=number)

            inputs = self.sampler.pick_three_distinct(below_threshold)
            pool, total_weight = self._return_pool(return_candidates, inputs)
            if not pool or total_weight <= 0:
                logger.warning("Continuation stopped: return pool is empty after excluding inputs")
                break

            for item in inputs:
                _remove_by_identity(below_threshold, item)
                current = result.yield_counts.get(item.id, 0)
                if current > 0:
                    result.yield_counts[item.id] = current - 1

            number += 1
            continued += 1
            returned = self.sampler.weighted_random_pick(pool, total_weight)
            tracker.record(number, inputs, returned)

            if returned.has_price_data() and returned.value < threshold.value:
                below_threshold.append(returned)

            if continued % self.continue_progress_interval == 0 or len(below_threshold) < ITEMS_PER_TRADE:
                if on_progress:
                    on_progress(100.0, number, config.transaction_count, dict(result.yield_counts),
                                SimulationPhase.CONTINUE.value, len(below_threshold))
                self._yield_control()
                token.raise_if_cancelled(processed=number)

        result.total_transactions = number
        logger.info(f"Continuation phase ran {continued:,} extra transactions")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _return_pool(
        self,
        return_candidates: List[TradeableItem],
        inputs: Sequence[TradeableItem]
    ) -> Tuple[List[TradeableItem], float]:
        """Catalog items that can come back from this trade, and their total weight"""
        key = tuple(sorted({item.id for item in inputs}))
        cached = self._return_pool_cache.get(key)
        if cached is not None:
            return cached

        excluded = set(key)
        pool = [item for item in return_candidates if item.id not in excluded]
        entry = (pool, sum(item.drop_weight for item in pool))

        if len(self._return_pool_cache) < RETURN_POOL_CACHE_LIMIT:
            self._return_pool_cache[key] = entry
        return entry


class _RunTracker:
    """Mutable per-run state: transaction log, yields, events, cumulative P/L"""

    def __init__(self, result: SimulationResult, rare_ids: Set[str], breakeven_point: float):
        self.result = result
        self.rare_ids = rare_ids
        self.breakeven_point = breakeven_point
        self.breakeven_achieved = False
        self.cumulative = 0.0

    def record(self, number: int, inputs: Sequence[TradeableItem], returned: TradeableItem):
        input_value = sum(item.value for item in inputs)
        profit_loss = returned.value - input_value
        previous = self.cumulative
        self.cumulative += profit_loss

        self.result.transactions.append(Transaction(
            number=number,
            input_item_ids=tuple(item.id for item in inputs),
            returned_item_id=returned.id,
            input_value=input_value,
            returned_value=returned.value,
            profit_loss=profit_loss,
            cumulative_profit_loss=self.cumulative,
        ))
        counts = self.result.yield_counts
        counts[returned.id] = counts.get(returned.id, 0) + 1

        if returned.id in self.rare_ids:
            self.result.significant_events.append(RareItemReturn(
                transaction_number=number,
                item_id=returned.id,
                details={
                    'item_name': returned.name,
                    'drop_weight': returned.drop_weight,
                    'value': returned.value,
                },
            ))

        if not self.breakeven_achieved and breakeven_crossed(previous, self.cumulative, self.breakeven_point):
            self.breakeven_achieved = True
            self.result.significant_events.append(BreakevenAchieved(
                transaction_number=number,
                cumulative_profit_loss=self.cumulative,
                details={
                    'previous_cumulative': previous,
                    'current_cumulative': self.cumulative,
                },
            ))


def _fixed_inputs(strategy: InputStrategy, valid_selected: Sequence[TradeableItem]) -> List[TradeableItem]:
    """
    Inputs that do not change between trades. Pads short selections by
    repeating the first entry so a trade always consumes three items.
    """
    if strategy == InputStrategy.LOWEST_VALUE:
        lowest = min(valid_selected, key=lambda item: item.value)
        return [lowest] * ITEMS_PER_TRADE

    if strategy == InputStrategy.OPTIMAL_COMBINATION:
        chosen = sorted(valid_selected, key=price_weight_ratio)[:ITEMS_PER_TRADE]
    else:
        chosen = list(valid_selected[:ITEMS_PER_TRADE])

    while len(chosen) < ITEMS_PER_TRADE:
        chosen.append(chosen[0])
    return chosen


def _remove_by_identity(pool: List[TradeableItem], item: TradeableItem):
    for index, candidate in enumerate(pool):
        if candidate is item:
            del pool[index]
            return


# =============================================================================
# MODULE-LEVEL API
# =============================================================================

def run_simulation(
    config: SimulationConfig,
    items: Sequence[TradeableItem],
    on_progress: Optional[ProgressCallback] = None,
    threshold: Optional[Threshold] = None,
    cancel_token: Optional[CancellationToken] = None,
    seed: Optional[int] = None
) -> SimulationResult:
    """One-shot run on a fresh engine"""
    return SimulationEngine(seed=seed).run(config, items, on_progress, threshold, cancel_token)


def get_significant_events(result: SimulationResult) -> List[SignificantEvent]:
    return list(result.significant_events or [])


def get_yield_counts(result: SimulationResult) -> Dict[str, int]:
    return dict(result.yield_counts or {})


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def print_simulation_report(result: SimulationResult, items: Optional[Sequence[TradeableItem]] = None, top_n: int = 10):
    """Pretty print a simulation result"""
    names = {item.id: item.name for item in items or []}
    config = result.configuration

    print("\n" + "="*60)
    print("VENDOR RECIPE SIMULATION REPORT")
    print("="*60)

    print(f"\n📊 CONFIGURATION")
    print(f"   Simulation: {result.simulation_id}")
    print(f"   Selected Items: {len(config.selected_item_ids)}")
    print(f"   Transactions Requested: {config.transaction_count:,}")
    print(f"   Input Strategy: {config.input_strategy.value}")
    print(f"   Continue Mode: {'ON' if config.continue_mode else 'OFF'}")
    print(f"   Breakeven Point: {config.breakeven_point:,.2f}")

    print(f"\n📈 TOTALS")
    print(f"   Transactions: {result.total_transactions:,}")
    if result.initial_phase_transactions is not None:
        print(f"   (initial {result.initial_phase_transactions:,} + continued {result.continuation_transactions:,})")
    print(f"   Input Value: {result.total_input_value:,.2f}")
    print(f"   Output Value: {result.total_output_value:,.2f}")
    print(f"   Net P/L: {result.net_profit_loss:+,.2f}")
    print(f"   Avg P/L per Transaction: {result.average_profit_loss_per_transaction:+.4f}")

    print(f"\n🎯 TOP YIELDS")
    ranked = sorted(result.yield_counts.items(), key=lambda kv: kv[1], reverse=True)
    for item_id, count in ranked[:top_n]:
        print(f"   {names.get(item_id, item_id)}: {count:,}")

    rare = [e for e in result.significant_events if isinstance(e, RareItemReturn)]
    breakeven = [e for e in result.significant_events if isinstance(e, BreakevenAchieved)]
    print(f"\n⚠️ SIGNIFICANT EVENTS")
    print(f"   Rare Returns: {len(rare):,}")
    if breakeven:
        print(f"   Breakeven Reached: transaction #{breakeven[0].transaction_number:,}")
    else:
        print(f"   Breakeven Reached: never")

    print(f"\n   Completed in {result.execution_duration_ms:,}ms")
    print("\n" + "="*60)


def save_report_to_json(result: SimulationResult, filepath: str, include_transactions: bool = False):
    """Save a simulation result summary to a JSON file"""
    data = result.to_dict(include_transactions=include_transactions)
    data['timestamp'] = datetime.now().isoformat()

    with open(filepath, 'w') as f:
        json.dump(data, f, indent=2)

    logger.info(f"Report saved to {filepath}")


def load_result_summary(filepath: str) -> SimulationResult:
    """Read back a result written by save_report_to_json"""
    with open(filepath) as f:
        data = json.load(f)
    data.pop('timestamp', None)
    return SimulationResult.from_dict(data)
