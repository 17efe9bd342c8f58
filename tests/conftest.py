"""
Test Configuration and Fixtures
===============================
Central pytest configuration for the vendor recipe simulation test suite.
"""

import os
import sys
import pytest
from unittest.mock import patch
from typing import List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mocks.mock_data import make_item
from simulation.models import TradeableItem, SimulationConfig
from simulation.monte_carlo_engine import SimulationEngine

# Test configuration
TEST_SEED = 42


@pytest.fixture
def mock_env_vars():
    """Clean simulation environment (no stray overrides from the shell)"""
    env_vars = {
        "VENDOR_SIM_CONFIDENCE": "",
        "VENDOR_SIM_TRADES": "",
        "VENDOR_SIM_TRADE_MODE": "",
        "VENDOR_SIM_BATCH_SIZE": "",
        "VENDOR_SIM_SEED": "",
        "VENDOR_SIM_MAX_TRANSACTIONS": "",
        "VENDOR_SIM_INPUT_STRATEGY": "",
        "VENDOR_SIM_RESULTS_DIR": "",
        "VENDOR_SIM_INCLUDE_TRANSACTIONS": "",
    }

    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def three_item_catalog() -> List[TradeableItem]:
    """A(w100, 1.0), B(w200, 2.0), C(w300, 3.0): EV = 7/3"""
    return [
        make_item("a", value=1.0, drop_weight=100),
        make_item("b", value=2.0, drop_weight=200),
        make_item("c", value=3.0, drop_weight=300),
    ]


@pytest.fixture
def uniform_catalog() -> List[TradeableItem]:
    """Five items with identical price, zero variance"""
    return [make_item(f"u{i}", value=5.0, drop_weight=10 * (i + 1)) for i in range(5)]


@pytest.fixture
def mixed_catalog() -> List[TradeableItem]:
    """
    Cheap common inputs, a couple of valuable rare items and a few records
    the statistics must ignore.
    """
    return [
        make_item("scrap", value=0.2, drop_weight=500),
        make_item("shard", value=0.3, drop_weight=400),
        make_item("flask", value=1.0, drop_weight=300),
        make_item("ring", value=2.0, drop_weight=200),
        make_item("amulet", value=4.0, drop_weight=100),
        make_item("belt", value=6.0, drop_weight=50),
        make_item("crown", value=40.0, drop_weight=5),
        make_item("relic", value=120.0, drop_weight=1),
        make_item("unpriced", value=None, drop_weight=80),
        make_item("unweighted", value=3.0, drop_weight=None),
        make_item("legacy", value=9.0, drop_weight=20, returnable=False),
    ]


@pytest.fixture
def engine() -> SimulationEngine:
    """Seeded engine that does not sleep between batches"""
    return SimulationEngine(seed=TEST_SEED, yield_control=lambda: None)


@pytest.fixture
def basic_config() -> SimulationConfig:
    return SimulationConfig(
        selected_item_ids=["scrap", "shard", "flask"],
        transaction_count=1000,
    )
