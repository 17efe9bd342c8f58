"""
Vendor Recipe Simulation Configuration

Centralized defaults for the threshold calculator, the simulation engine
and report output. Environment variables (or a .env file) override them.

Author: Vendor Recipe Lab
Created: October 2026
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from simulation.models import InputMode, InputStrategy

logger = logging.getLogger('SimulationConfig')


# =============================================================================
# THRESHOLD DEFAULTS
# =============================================================================

@dataclass
class ThresholdDefaults:
    """Threshold calculator parameters"""
    confidence_percentile: float = 0.9   # One-tailed, z = 1.28155
    number_of_trades: int = 10000        # Trades the mean outcome is taken over
    input_mode: InputMode = InputMode.RETURNABLE


# =============================================================================
# ENGINE DEFAULTS
# =============================================================================

@dataclass
class EngineDefaults:
    """Simulation engine parameters"""
    batch_size: int = 10000                  # Phase 1 progress / cancellation granularity
    continue_progress_interval: int = 100    # Phase 2 progress granularity
    max_transactions: int = 1000000
    rare_item_percentile: float = 0.1        # Bottom 10% by drop weight
    input_strategy: InputStrategy = InputStrategy.USER_SELECTED
    random_seed: Optional[int] = None


# =============================================================================
# OUTPUT
# =============================================================================

@dataclass
class OutputConfig:
    """Where and how results are written"""
    results_dir: str = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data', 'results')
    include_transactions: bool = False   # Full logs can run to a million rows


# =============================================================================
# MASTER CONFIGURATION
# =============================================================================

@dataclass
class AppConfig:
    """Master configuration combining all settings"""
    threshold: ThresholdDefaults = field(default_factory=ThresholdDefaults)
    engine: EngineDefaults = field(default_factory=EngineDefaults)
    output: OutputConfig = field(default_factory=OutputConfig)


# =============================================================================
# LOAD CONFIGURATION
# =============================================================================

def load_config(env_file: Optional[str] = None) -> AppConfig:
    """
    Load configuration with environment variable overrides.

    Args:
        env_file: Optional .env path (defaults to python-dotenv's search)

    Returns:
        AppConfig with all settings
    """
    load_dotenv(env_file)
    config = AppConfig()

    if os.getenv('VENDOR_SIM_CONFIDENCE'):
        config.threshold.confidence_percentile = float(os.getenv('VENDOR_SIM_CONFIDENCE'))

    if os.getenv('VENDOR_SIM_TRADES'):
        config.threshold.number_of_trades = int(os.getenv('VENDOR_SIM_TRADES'))

    if os.getenv('VENDOR_SIM_TRADE_MODE'):
        config.threshold.input_mode = InputMode(os.getenv('VENDOR_SIM_TRADE_MODE').lower())

    if os.getenv('VENDOR_SIM_BATCH_SIZE'):
        config.engine.batch_size = int(os.getenv('VENDOR_SIM_BATCH_SIZE'))

    if os.getenv('VENDOR_SIM_MAX_TRANSACTIONS'):
        config.engine.max_transactions = int(os.getenv('VENDOR_SIM_MAX_TRANSACTIONS'))

    if os.getenv('VENDOR_SIM_INPUT_STRATEGY'):
        config.engine.input_strategy = InputStrategy(os.getenv('VENDOR_SIM_INPUT_STRATEGY').lower())

    if os.getenv('VENDOR_SIM_SEED'):
        config.engine.random_seed = int(os.getenv('VENDOR_SIM_SEED'))

    if os.getenv('VENDOR_SIM_RESULTS_DIR'):
        config.output.results_dir = os.getenv('VENDOR_SIM_RESULTS_DIR')

    if os.getenv('VENDOR_SIM_INCLUDE_TRANSACTIONS'):
        config.output.include_transactions = os.getenv('VENDOR_SIM_INCLUDE_TRANSACTIONS', 'false').lower() == 'true'

    return config


# =============================================================================
# MAIN / DISPLAY CONFIG
# =============================================================================

if __name__ == "__main__":
    print("=" * 60)
    print("VENDOR RECIPE SIMULATION CONFIGURATION")
    print("=" * 60)

    config = load_config()

    print(f"\n📊 Threshold:")
    print(f"   Confidence: {config.threshold.confidence_percentile:.0%}")
    print(f"   Trades: {config.threshold.number_of_trades:,}")
    print(f"   Input Mode: {config.threshold.input_mode.value}")

    print(f"\n⚙️ Engine:")
    print(f"   Batch Size: {config.engine.batch_size:,}")
    print(f"   Max Transactions: {config.engine.max_transactions:,}")
    print(f"   Input Strategy: {config.engine.input_strategy.value}")
    print(f"   Rare Percentile: {config.engine.rare_item_percentile:.0%}")
    print(f"   Seed: {config.engine.random_seed}")

    print(f"\n💾 Output:")
    print(f"   Results Dir: {config.output.results_dir}")
