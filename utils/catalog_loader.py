"""
Catalog Loader - Item catalog ingestion

Reads an already-classified item catalog from JSON and turns every record
into a sanitised TradeableItem. Accepts either a bare list of records or
an object with an "items" list. Field aliases from common price exports
(chaosValue, dropWeight, price) are mapped onto the model's names.

Author: Vendor Recipe Lab
Created: October 2026
"""

import json
import logging
from typing import Any, Dict, List

from simulation.models import TradeableItem

logger = logging.getLogger('CatalogLoader')

FIELD_ALIASES = {
    'value': ('value', 'chaos_value', 'chaosValue', 'price'),
    'drop_weight': ('drop_weight', 'dropWeight', 'weight'),
    'profitability_status': ('profitability_status', 'profitabilityStatus'),
}


def normalize_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Map aliased field names onto TradeableItem field names"""
    normalized = {
        'id': record.get('id'),
        'name': record.get('name'),
        'returnable': record.get('returnable', True),
    }
    for target, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            if record.get(alias) is not None:
                normalized[target] = record[alias]
                break
        else:
            normalized[target] = None
    return normalized


def items_from_records(records: List[Dict[str, Any]]) -> List[TradeableItem]:
    items = []
    skipped = 0

    for record in records:
        if not record.get('id'):
            skipped += 1
            continue
        item = TradeableItem.from_dict(normalize_record(record))
        if not item.has_drop_weight():
            logger.debug(f"Missing or zero drop_weight for item: {item.id} ({item.name})")
        items.append(item)

    if skipped:
        logger.warning(f"Skipped {skipped} catalog records without an id")
    return items


def load_catalog(path: str) -> List[TradeableItem]:
    """
    Load a catalog file.

    Args:
        path: JSON file, list of records or {"items": [...]}

    Returns:
        List of TradeableItem in file order
    """
    with open(path, encoding='utf-8') as f:
        data = json.load(f)

    records = data.get('items', []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise ValueError(f"Catalog {path} must contain a list of items")

    items = items_from_records(records)
    priced = sum(1 for item in items if item.is_tradeable)
    logger.info(f"Loaded {len(items)} items from {path} ({priced} with price and weight)")
    return items
