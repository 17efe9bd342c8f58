"""
Transaction History
===================

Read-only pagination and filtering over a completed simulation's
transaction log, plus a pandas view for export.

Author: Vendor Recipe Lab
Created: October 2026
"""

import math
from typing import List, Optional
from dataclasses import dataclass, field

import pandas as pd

from simulation.errors import ValidationError
from simulation.models import SimulationResult, Transaction

DEFAULT_PAGE_SIZE = 100

TRANSACTION_COLUMNS = [
    'number',
    'input_item_1',
    'input_item_2',
    'input_item_3',
    'returned_item_id',
    'input_value',
    'returned_value',
    'profit_loss',
    'cumulative_profit_loss',
]


@dataclass
class TransactionFilter:
    """All set criteria must match"""
    item_id: Optional[str] = None             # Exact match on the returned item
    search_term: Optional[str] = None         # Case-insensitive substring of the returned item id
    min_transaction_number: Optional[int] = None
    max_transaction_number: Optional[int] = None

    def matches(self, transaction: Transaction) -> bool:
        if self.item_id and transaction.returned_item_id != self.item_id:
            return False
        if self.search_term and self.search_term.lower() not in transaction.returned_item_id.lower():
            return False
        if self.min_transaction_number is not None and transaction.number < self.min_transaction_number:
            return False
        if self.max_transaction_number is not None and transaction.number > self.max_transaction_number:
            return False
        return True


@dataclass
class PagedTransactions:
    transactions: List[Transaction] = field(default_factory=list)
    total_transactions: int = 0  # Matching the filter, across all pages
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total_pages: int = 0
    has_next_page: bool = False
    has_previous_page: bool = False


def query_transaction_history(
    result: SimulationResult,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    filter: Optional[TransactionFilter] = None
) -> PagedTransactions:
    """
    One page of the (optionally filtered) transaction log. Pages are
    1-indexed; asking past the last page returns an empty page.
    """
    if page < 1:
        raise ValidationError(f"Page must be >= 1 (got {page})")
    if page_size < 1:
        raise ValidationError(f"Page size must be >= 1 (got {page_size})")

    transactions = result.transactions
    if filter is not None:
        transactions = [t for t in transactions if filter.matches(t)]

    start = (page - 1) * page_size
    total_pages = math.ceil(len(transactions) / page_size)

    return PagedTransactions(
        transactions=list(transactions[start:start + page_size]),
        total_transactions=len(transactions),
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )


def transactions_to_frame(transactions: List[Transaction]) -> pd.DataFrame:
    """Flatten a transaction log into a DataFrame (one row per trade)"""
    rows = []
    for t in transactions:
        first, second, third = t.input_item_ids
        rows.append({
            'number': t.number,
            'input_item_1': first,
            'input_item_2': second,
            'input_item_3': third,
            'returned_item_id': t.returned_item_id,
            'input_value': t.input_value,
            'returned_value': t.returned_value,
            'profit_loss': t.profit_loss,
            'cumulative_profit_loss': t.cumulative_profit_loss,
        })
    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)


def export_transactions_csv(result: SimulationResult, filepath: str) -> str:
    transactions_to_frame(result.transactions).to_csv(filepath, index=False)
    return filepath
