"""
Integration Tests for the Simulation Runner
===========================================
Catalog file -> threshold -> classification -> simulation -> saved report.
"""

import os
import sys
import glob
from unittest.mock import patch

import pandas as pd
import pytest

# Add project root to path
sys.path.insert(
    0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
)

from mocks.mock_data import MockCatalogGenerator
from config.simulation_config import AppConfig
from simulation.errors import ValidationError
from simulation.models import ProfitabilityStatus, SimulationConfig
from simulation.monte_carlo_engine import load_result_summary
from simulation.run_simulation import SimulationRunner, main


@pytest.fixture
def catalog_file(tmp_path):
    return MockCatalogGenerator(seed=21).write_catalog(str(tmp_path / "catalog.json"), num_items=40)


@pytest.fixture
def app_config(tmp_path):
    config = AppConfig()
    config.engine.batch_size = 500
    config.output.results_dir = str(tmp_path / "results")
    return config


class TestSimulationRunner:
    """End-to-end through the runner class"""

    def test_threshold_classifies_catalog(self, app_config, mixed_catalog):
        """Test the runner classifies the catalog against its threshold"""
        runner = SimulationRunner(config=app_config, seed=3)
        threshold = runner.prepare_threshold(mixed_catalog)

        assert threshold.is_valid()
        statuses = {item.id: item.profitability_status for item in mixed_catalog}
        assert statuses["scrap"] == ProfitabilityStatus.PROFITABLE
        assert statuses["relic"] == ProfitabilityStatus.NOT_PROFITABLE
        assert statuses["unpriced"] == ProfitabilityStatus.UNKNOWN

    def test_continue_run_prepares_threshold(self, app_config, mixed_catalog):
        """Test continue mode computes the threshold first"""
        runner = SimulationRunner(config=app_config, seed=3)
        config = SimulationConfig(
            selected_item_ids=["scrap", "shard", "flask", "ring"],
            transaction_count=800,
            continue_mode=True,
        )
        result = runner.run(mixed_catalog, config)

        assert runner.threshold is not None
        assert result.initial_phase_transactions == 800
        assert result.total_transactions >= 800

    def test_saved_report_reloads(self, app_config, mixed_catalog):
        """Test saved JSON and CSV outputs read back"""
        runner = SimulationRunner(config=app_config, seed=3)
        config = SimulationConfig(selected_item_ids=["scrap", "shard", "flask"], transaction_count=300)
        result = runner.run(mixed_catalog, config)

        paths = runner.save_outputs(result, save_json=True, save_csv=True)
        restored = load_result_summary(paths["json"])

        assert restored.simulation_id == result.simulation_id
        assert restored.yield_counts == result.yield_counts
        assert restored.net_profit_loss == pytest.approx(result.net_profit_loss)
        assert restored.configuration.breakeven_point == pytest.approx(result.configuration.breakeven_point)
        assert len(pd.read_csv(paths["csv"])) == 300

    def test_runner_engine_uses_configured_limit(self, app_config, mixed_catalog):
        """Test the runner builds its engine with the configured transaction limit"""
        app_config.engine.max_transactions = 200
        runner = SimulationRunner(config=app_config, seed=3)
        assert runner.engine.max_transactions == 200

        config = SimulationConfig(selected_item_ids=["scrap", "shard", "flask"], transaction_count=201)
        with pytest.raises(ValidationError, match="between 1 and 200"):
            runner.run(mixed_catalog, config)


class TestCommandLine:

    def test_main_saves_outputs(self, catalog_file, tmp_path, mock_env_vars, capsys):
        """Test the CLI prints the report and saves outputs"""
        results_dir = tmp_path / "cli_results"
        with patch.dict(os.environ, {"VENDOR_SIM_RESULTS_DIR": str(results_dir)}):
            exit_code = main([
                "--catalog", catalog_file,
                "--select", "item_000", "item_001", "item_002", "item_003",
                "--transactions", "250",
                "--seed", "5",
                "--save", "--csv",
            ])

        assert exit_code == 0
        assert "VENDOR RECIPE SIMULATION REPORT" in capsys.readouterr().out
        assert len(glob.glob(str(results_dir / "*.json"))) == 1
        assert len(glob.glob(str(results_dir / "*_transactions.csv"))) == 1

    def test_main_reports_invalid_selection(self, catalog_file, mock_env_vars):
        """Test the CLI exits 1 on an invalid selection"""
        exit_code = main(["--catalog", catalog_file, "--select", "nope", "--transactions", "10"])
        assert exit_code == 1

    def test_main_continue_mode(self, catalog_file, mock_env_vars):
        """Test the CLI in continue mode with options"""
        exit_code = main([
            "--catalog", catalog_file,
            "--select", "item_000", "item_001", "item_002", "item_003",
            "--transactions", "200",
            "--strategy", "lowest_value",
            "--trade-mode", "lowest_value",
            "--confidence", "0.95",
            "--continue",
            "--seed", "8",
        ])
        assert exit_code == 0
    def test_main_strategy_defaults_from_config(self, catalog_file, mock_env_vars, capsys):
        """Test the CLI takes its input strategy from config unless --strategy is given"""
        args = [
            "--catalog", catalog_file,
            "--select", "item_000", "item_001", "item_002", "item_003",
            "--transactions", "50",
            "--seed", "2",
        ]
        with patch.dict(os.environ, {"VENDOR_SIM_INPUT_STRATEGY": "lowest_value"}):
            assert main(args) == 0
            assert "Input Strategy: lowest_value" in capsys.readouterr().out

            assert main(args + ["--strategy", "user_selected"]) == 0
            assert "Input Strategy: user_selected" in capsys.readouterr().out

    def test_main_respects_configured_transaction_limit(self, catalog_file, mock_env_vars):
        """Test the CLI rejects counts above the configured transaction limit"""
        args = ["--catalog", catalog_file, "--select", "item_000", "item_001", "item_002", "--seed", "2"]
        with patch.dict(os.environ, {"VENDOR_SIM_MAX_TRANSACTIONS": "100"}):
            assert main(args + ["--transactions", "101"]) == 1
            assert main(args + ["--transactions", "100"]) == 0
