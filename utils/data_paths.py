"""
Data Path Utility - Results and Catalog Locations

All saved reports, CSV exports and catalog files resolve through these
helpers so the CLI and tests agree on where data lives.

Usage:
    from utils.data_paths import get_data_path, get_results_path

    report = get_results_path('sim_123.json')  # 'data/results/sim_123.json'
    catalogs = get_data_path('catalogs')       # 'data/catalogs'

VENDOR_SIM_DATA_DIR overrides the base directory.

Author: Vendor Recipe Lab
Created: October 2026
"""

import os
from dotenv import load_dotenv

load_dotenv()


def get_base_path() -> str:
    """Base data directory (env override or <project>/data)."""
    override = os.getenv('VENDOR_SIM_DATA_DIR')
    if override:
        return override
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data')


def get_data_path(subdir: str = None) -> str:
    """
    Get a data directory path, creating it if needed.

    Args:
        subdir: Optional subdirectory within the data directory

    Returns:
        Full path to the directory
    """
    path = get_base_path()
    if subdir:
        path = os.path.join(path, subdir)

    os.makedirs(path, exist_ok=True)
    return path


def get_results_path(filename: str, results_dir: str = None) -> str:
    """
    Path for a saved report or export.

    Args:
        filename: e.g. 'sim_123.json'
        results_dir: Explicit directory (from OutputConfig); defaults to data/results
    """
    directory = results_dir or get_data_path('results')
    os.makedirs(directory, exist_ok=True)
    return os.path.join(directory, filename)


if __name__ == "__main__":
    print(f"Data Path: {get_data_path()}")
    print(f"Example Report: {get_results_path('sim_example.json')}")
