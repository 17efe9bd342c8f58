"""
Vendor Recipe Utilities

Shared helpers for data locations and catalog loading.
"""

from .catalog_loader import load_catalog, items_from_records
from .data_paths import get_data_path, get_results_path

__all__ = [
    'load_catalog',
    'items_from_records',
    'get_data_path',
    'get_results_path',
]
