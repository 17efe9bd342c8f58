"""
Vendor Recipe Simulation
========================

Profitability analysis for a 3-for-1 vendor recipe over a weighted item catalog.

Features:
- Weighted statistics and a confidence-bounded profitability threshold
- Item classification (profitable / not profitable / unknown)
- Monte Carlo simulation of repeated trades, batched and cancellable
- Optional continuation phase that re-trades below-threshold returns
- Transaction history pagination and filtering, CSV / JSON export

Usage:
    from simulation import SimulationEngine, SimulationConfig, calculate_threshold, classify

    threshold = calculate_threshold(items, confidence_percentile=0.9)
    classify(items, threshold)

    engine = SimulationEngine(seed=42)
    result = engine.run(SimulationConfig(selected_item_ids=['a', 'b', 'c'],
                                         transaction_count=10000,
                                         continue_mode=True), items, threshold=threshold)
    print_simulation_report(result, items)

Author: Vendor Recipe Lab
Created: October 2026
"""

from simulation.errors import (
    SimulationError,
    ValidationError,
    InvalidInputError,
    NoValidItemsError,
    EmptyReturnPoolError,
    NonPositiveTotalWeightError,
    InsufficientItemsError,
    EmptyPoolError,
    SimulationCancelled,
    UnexpectedSimulationError
)

from simulation.models import (
    TradeableItem,
    Threshold,
    SimulationConfig,
    SimulationResult,
    Transaction,
    SignificantEvent,
    RareItemReturn,
    BreakevenAchieved,
    InputMode,
    InputStrategy,
    ProfitabilityStatus,
    SimulationPhase,
    SimulationState,
    sanitize_item_data
)

from simulation.threshold import (
    calculate_threshold,
    classify,
    estimate_strategy,
    StrategyType,
    StrategyEstimate
)

from simulation.sampler import WeightedSampler, identify_rare_items

from simulation.monte_carlo_engine import (
    SimulationEngine,
    CancellationToken,
    run_simulation,
    get_significant_events,
    get_yield_counts,
    print_simulation_report,
    save_report_to_json,
    load_result_summary
)

from simulation.history import (
    TransactionFilter,
    PagedTransactions,
    query_transaction_history,
    transactions_to_frame,
    export_transactions_csv
)

__all__ = [
    # Errors
    'SimulationError',
    'ValidationError',
    'InvalidInputError',
    'NoValidItemsError',
    'EmptyReturnPoolError',
    'NonPositiveTotalWeightError',
    'InsufficientItemsError',
    'EmptyPoolError',
    'SimulationCancelled',
    'UnexpectedSimulationError',

    # Models
    'TradeableItem',
    'Threshold',
    'SimulationConfig',
    'SimulationResult',
    'Transaction',
    'SignificantEvent',
    'RareItemReturn',
    'BreakevenAchieved',
    'InputMode',
    'InputStrategy',
    'ProfitabilityStatus',
    'SimulationPhase',
    'SimulationState',
    'sanitize_item_data',

    # Threshold
    'calculate_threshold',
    'classify',
    'estimate_strategy',
    'StrategyType',
    'StrategyEstimate',

    # Sampling
    'WeightedSampler',
    'identify_rare_items',

    # Engine
    'SimulationEngine',
    'CancellationToken',
    'run_simulation',
    'get_significant_events',
    'get_yield_counts',
    'print_simulation_report',
    'save_report_to_json',
    'load_result_summary',

    # History
    'TransactionFilter',
    'PagedTransactions',
    'query_transaction_history',
    'transactions_to_frame',
    'export_transactions_csv'
]

__version__ = '1.0.0'
