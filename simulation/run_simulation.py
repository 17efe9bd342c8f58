"""
SIMULATION RUNNER - Command Line Orchestrator
=============================================

Runs a vendor recipe simulation end to end:
1. Load and sanitise the item catalog
2. Calculate the profitability threshold and classify every item
3. Run the Monte Carlo simulation (optionally continuing on below-threshold returns)
4. Print the report and save JSON / CSV

Usage:
    python -m simulation.run_simulation --catalog items.json --select a b c --transactions 10000
    python -m simulation.run_simulation --catalog items.json --select a b c --continue --save --csv

Ctrl+C cancels the run cleanly.

Author: Vendor Recipe Lab
Created: October 2026
"""

import os
import sys
import argparse
import logging
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Dict, List, Optional

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.simulation_config import AppConfig, load_config
from simulation.errors import SimulationCancelled, SimulationError
from simulation.history import export_transactions_csv
from simulation.models import (
    InputMode,
    InputStrategy,
    ProfitabilityStatus,
    SimulationConfig,
    SimulationResult,
    Threshold,
    TradeableItem,
)
from simulation.monte_carlo_engine import (
    CancellationToken,
    SimulationEngine,
    print_simulation_report,
    save_report_to_json,
)
from simulation.threshold import calculate_threshold, classify
from utils.catalog_loader import load_catalog
from utils.data_paths import get_results_path

logger = logging.getLogger('SimulationRunner')


class SimulationRunner:
    """
    Wires configuration, threshold calculation and the engine together.
    """

    def __init__(self, config: Optional[AppConfig] = None, seed: Optional[int] = None):
        self.config = config or load_config()
        engine_defaults = self.config.engine
        self.engine = SimulationEngine(
            seed=seed if seed is not None else engine_defaults.random_seed,
            batch_size=engine_defaults.batch_size,
            continue_progress_interval=engine_defaults.continue_progress_interval,
            max_transactions=engine_defaults.max_transactions,
        )
        self.threshold: Optional[Threshold] = None

    def prepare_threshold(
        self,
        items: List[TradeableItem],
        confidence: Optional[float] = None,
        input_mode: Optional[InputMode] = None
    ) -> Threshold:
        """Calculate the threshold and classify the catalog in place"""
        defaults = self.config.threshold
        self.threshold = calculate_threshold(
            items,
            confidence_percentile=confidence if confidence is not None else defaults.confidence_percentile,
            number_of_trades=defaults.number_of_trades,
            input_mode=input_mode or defaults.input_mode,
        )
        classify(items, self.threshold)

        profitable = sum(1 for item in items if item.profitability_status == ProfitabilityStatus.PROFITABLE)
        logger.info(
            f"Threshold {self.threshold.value:.4f} (EV {self.threshold.expected_value:.4f}, "
            f"z {self.threshold.z_score:.5f}, pool {self.threshold.item_count}); "
            f"{profitable}/{len(items)} items profitable"
        )
        return self.threshold

    def log_progress(
        self,
        percent: float,
        current: int,
        total: int,
        yield_counts: Dict[str, int],
        phase: str,
        remaining: Optional[int]
    ):
        if phase == 'continue':
            logger.info(f"[continue] transaction #{current:,}, {remaining} below-threshold items left")
        else:
            logger.info(f"[initial] {percent:5.1f}% ({current:,}/{total:,})")

    def run(
        self,
        items: List[TradeableItem],
        sim_config: SimulationConfig,
        cancel_token: Optional[CancellationToken] = None
    ) -> SimulationResult:
        if self.threshold is None and sim_config.continue_mode:
            self.prepare_threshold(items)
        return self.engine.run(
            sim_config,
            items,
            on_progress=self.log_progress,
            threshold=self.threshold,
            cancel_token=cancel_token,
        )

    def save_outputs(self, result: SimulationResult, save_json: bool = True, save_csv: bool = False) -> Dict[str, str]:
        """Write the report (and optionally the transaction CSV) under the results dir"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        results_dir = self.config.output.results_dir
        paths = {}

        if save_json:
            paths['json'] = get_results_path(f"{result.simulation_id}_{timestamp}.json", results_dir)
            save_report_to_json(result, paths['json'], self.config.output.include_transactions)

        if save_csv:
            paths['csv'] = get_results_path(f"{result.simulation_id}_{timestamp}_transactions.csv", results_dir)
            export_transactions_csv(result, paths['csv'])
            logger.info(f"Transactions exported to {paths['csv']}")

        return paths


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run a vendor recipe Monte Carlo simulation')

    parser.add_argument('--catalog', type=str, required=True,
                        help='Path to catalog JSON (list of items or {"items": [...]})')
    parser.add_argument('--select', nargs='+', required=True, metavar='ID',
                        help='Item ids offered as trade inputs')
    parser.add_argument('--transactions', type=int, default=100,
                        help='Number of trades in the initial phase')
    parser.add_argument('--confidence', type=float, default=None,
                        help='Threshold confidence percentile (default from config, 0.9)')
    parser.add_argument('--trade-mode', choices=[m.value for m in InputMode], default=None,
                        help='Threshold input mode')
    parser.add_argument('--strategy', choices=[s.value for s in InputStrategy], default=None,
                        help='How the engine picks trade inputs (default from config, user_selected)')
    parser.add_argument('--continue', dest='continue_mode', action='store_true',
                        help='Keep trading returned items below the threshold')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for a reproducible run')
    parser.add_argument('--rare-percentile', type=float, default=None,
                        help='Bottom drop-weight fraction counted as rare (default 0.1)')
    parser.add_argument('--save', action='store_true',
                        help='Save the JSON report to the results directory')
    parser.add_argument('--csv', action='store_true',
                        help='Export the transaction log as CSV')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args(argv)

    runner = SimulationRunner(seed=args.seed)
    items = load_catalog(args.catalog)

    sim_config = SimulationConfig(
        selected_item_ids=args.select,
        transaction_count=args.transactions,
        rare_item_percentile=(
            args.rare_percentile if args.rare_percentile is not None
            else runner.config.engine.rare_item_percentile
        ),
        continue_mode=args.continue_mode,
        input_strategy=InputStrategy(args.strategy or runner.config.engine.input_strategy),
    )

    token = CancellationToken()
    try:
        runner.prepare_threshold(
            items,
            confidence=args.confidence,
            input_mode=InputMode(args.trade_mode) if args.trade_mode else None,
        )
        future, token = runner.engine.run_async(
            sim_config, items, runner.log_progress, runner.threshold, token
        )
        # Poll so the main thread stays interruptible
        while True:
            try:
                result = future.result(timeout=0.5)
                break
            except FutureTimeoutError:
                continue
    except KeyboardInterrupt:
        token.cancel()
        logger.warning("Interrupted, cancelling simulation")
        return 130
    except SimulationCancelled as e:
        logger.warning(f"Simulation cancelled after {e.processed:,} transactions")
        return 130
    except SimulationError as e:
        logger.error(f"Simulation failed: {e}")
        return 1

    print_simulation_report(result, items)

    if args.save or args.csv:
        paths = runner.save_outputs(result, save_json=args.save, save_csv=args.csv)
        for kind, path in paths.items():
            print(f"💾 {kind.upper()}: {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
