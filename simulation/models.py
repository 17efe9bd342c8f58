"""
Simulation Data Model
=====================

Plain dataclasses shared by the threshold calculator, the sampler and the
simulation engine. Everything here serialises to JSON-compatible dicts so a
caller can persist configurations and summarised results.

Author: Vendor Recipe Lab
Created: October 2026
"""

import math
import logging
import random
import time
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Any, ClassVar
from dataclasses import dataclass, field, asdict
from enum import Enum

logger = logging.getLogger('SimulationModels')

ITEMS_PER_TRADE = 3


# =============================================================================
# ENUMS
# =============================================================================

class InputMode(Enum):
    """How the threshold calculator models the three input items"""
    RETURNABLE = "returnable"                    # Inputs stay in the return pool
    LOWEST_VALUE = "lowest_value"                # 3x cheapest item, excluded from pool
    OPTIMAL_COMBINATION = "optimal_combination"  # Lowest price/weight item, excluded


class InputStrategy(Enum):
    """How the engine picks the three inputs of each simulated trade"""
    USER_SELECTED = "user_selected"
    LOWEST_VALUE = "lowest_value"
    OPTIMAL_COMBINATION = "optimal_combination"


class ProfitabilityStatus(Enum):
    PROFITABLE = "profitable"
    NOT_PROFITABLE = "not_profitable"
    UNKNOWN = "unknown"


class SimulationPhase(Enum):
    INITIAL = "initial"
    CONTINUE = "continue"


class SimulationState(Enum):
    """Engine lifecycle"""
    IDLE = "idle"
    VALIDATING = "validating"
    PHASE1_RUNNING = "phase1_running"
    PHASE2_RUNNING = "phase2_running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# =============================================================================
# ITEMS
# =============================================================================

def _optional_float(raw: Any) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def sanitize_item_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Clean a raw catalog record before it becomes a TradeableItem.

    - Negative prices are clamped to 0
    - NaN or negative drop weights become "no weight" (None)
    """
    sanitized = dict(data)
    item_id = sanitized.get('id')

    value = _optional_float(sanitized.get('value'))
    if value is not None and math.isnan(value):
        value = None
    if value is not None and value < 0:
        logger.warning(f"Negative value for {item_id}, clamping to 0")
        value = 0.0
    sanitized['value'] = value

    weight = _optional_float(sanitized.get('drop_weight'))
    if weight is not None and (math.isnan(weight) or weight < 0):
        logger.warning(f"Invalid drop_weight for {item_id}, setting to None")
        weight = None
    sanitized['drop_weight'] = weight

    return sanitized


@dataclass(eq=False)
class TradeableItem:
    """
    One tradeable kind. Compared by identity so the same catalog entry can
    sit in a pool several times and be removed one slot at a time.
    """
    id: str
    name: str
    value: Optional[float] = None          # Price in the reference currency
    drop_weight: Optional[float] = None    # Relative rarity weight
    returnable: bool = True                # Can the recipe produce this item
    profitability_status: ProfitabilityStatus = ProfitabilityStatus.UNKNOWN

    def has_price_data(self) -> bool:
        return self.value is not None and self.value >= 0

    def has_drop_weight(self) -> bool:
        return self.drop_weight is not None and self.drop_weight > 0

    @property
    def is_tradeable(self) -> bool:
        """Both a price and a weight, i.e. usable by the statistics"""
        return self.has_price_data() and self.has_drop_weight()

    def validate(self) -> bool:
        if not self.id or not self.name:
            return False
        if self.drop_weight is not None and self.drop_weight < 0:
            return False
        if self.value is not None and self.value < 0:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'value': self.value,
            'drop_weight': self.drop_weight,
            'returnable': self.returnable,
            'profitability_status': self.profitability_status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TradeableItem':
        clean = sanitize_item_data(data)
        status = clean.get('profitability_status') or ProfitabilityStatus.UNKNOWN.value
        return cls(
            id=str(clean['id']),
            name=str(clean.get('name') or clean['id']),
            value=clean['value'],
            drop_weight=clean['drop_weight'],
            returnable=bool(clean.get('returnable', True)),
            profitability_status=ProfitabilityStatus(status),
        )


# =============================================================================
# THRESHOLD
# =============================================================================

@dataclass(frozen=True)
class Threshold:
    """Per-item breakeven price plus every statistic used to derive it"""
    value: float
    total_weight: float
    item_count: int
    expected_value: float
    variance: float
    standard_deviation: float
    standard_error: float
    confidence_percentile: float
    number_of_trades: int
    input_mode: InputMode = InputMode.RETURNABLE
    z_score: float = 0.0
    lower_bound: float = 0.0
    calculation_method: str = 'weighted_average_with_confidence_interval'
    calculated_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def is_valid(self) -> bool:
        return self.value >= 0 and self.total_weight > 0 and self.item_count > 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['input_mode'] = self.input_mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Threshold':
        fields = dict(data)
        fields['input_mode'] = InputMode(fields.get('input_mode', InputMode.RETURNABLE.value))
        return cls(**fields)


# =============================================================================
# SIMULATION CONFIGURATION / RECORDS
# =============================================================================

@dataclass
class SimulationConfig:
    """User-defined simulation parameters"""
    selected_item_ids: List[str] = field(default_factory=list)
    transaction_count: int = 100
    rare_item_percentile: float = 0.1
    continue_mode: bool = False
    breakeven_point: float = 0.0  # Overwritten by the engine at run start
    input_strategy: InputStrategy = InputStrategy.USER_SELECTED
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def __post_init__(self):
        self.input_strategy = InputStrategy(self.input_strategy)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['input_strategy'] = self.input_strategy.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationConfig':
        fields = dict(data)
        fields['selected_item_ids'] = list(fields.get('selected_item_ids') or [])
        fields['input_strategy'] = InputStrategy(
            fields.get('input_strategy') or InputStrategy.USER_SELECTED.value
        )
        return cls(**fields)


@dataclass(frozen=True)
class Transaction:
    """One simulated 3-for-1 trade"""
    number: int
    input_item_ids: Tuple[str, str, str]
    returned_item_id: str
    input_value: float
    returned_value: float
    profit_loss: float
    cumulative_profit_loss: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['input_item_ids'] = list(self.input_item_ids)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        fields = dict(data)
        fields['input_item_ids'] = tuple(fields['input_item_ids'])
        return cls(**fields)


@dataclass(frozen=True)
class SignificantEvent:
    """Notable occurrence during a run"""
    event_type: ClassVar[str] = 'significant_event'

    transaction_number: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['type'] = self.event_type
        return data


@dataclass(frozen=True)
class RareItemReturn(SignificantEvent):
    event_type: ClassVar[str] = 'rare_item_return'

    item_id: str = ''
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BreakevenAchieved(SignificantEvent):
    event_type: ClassVar[str] = 'breakeven_achieved'

    cumulative_profit_loss: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)


EVENT_TYPES = {
    RareItemReturn.event_type: RareItemReturn,
    BreakevenAchieved.event_type: BreakevenAchieved,
}


def event_from_dict(data: Dict[str, Any]) -> SignificantEvent:
    fields = dict(data)
    event_cls = EVENT_TYPES.get(fields.pop('type', None))
    if event_cls is None:
        raise ValueError(f"Unknown significant event type in {data!r}")
    return event_cls(**fields)


def new_simulation_id() -> str:
    alphabet = 'abcdefghijklmnopqrstuvwxyz0123456789'
    suffix = ''.join(random.choice(alphabet) for _ in range(9))
    return f"sim_{int(time.time() * 1000)}_{suffix}"


@dataclass
class SimulationResult:
    """Aggregate of a completed run"""
    configuration: SimulationConfig
    simulation_id: str = field(default_factory=new_simulation_id)
    transactions: List[Transaction] = field(default_factory=list)
    yield_counts: Dict[str, int] = field(default_factory=dict)
    significant_events: List[SignificantEvent] = field(default_factory=list)

    total_transactions: int = 0
    total_input_value: float = 0.0
    total_output_value: float = 0.0
    net_profit_loss: float = 0.0
    average_profit_loss_per_transaction: float = 0.0
    final_cumulative_profit_loss: float = 0.0

    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    execution_duration_ms: int = 0

    # Snapshot taken before the continuation phase (continue mode only)
    initial_phase_transactions: Optional[int] = None
    initial_phase_total_input_value: Optional[float] = None
    initial_phase_total_output_value: Optional[float] = None
    initial_phase_net_profit_loss: Optional[float] = None
    initial_phase_cumulative_profit_loss: Optional[float] = None
    initial_phase_yield_counts: Optional[Dict[str, int]] = None

    @property
    def continuation_transactions(self) -> int:
        if self.initial_phase_transactions is None:
            return 0
        return self.total_transactions - self.initial_phase_transactions

    def to_dict(self, include_transactions: bool = False) -> Dict[str, Any]:
        data = {
            'simulation_id': self.simulation_id,
            'configuration': self.configuration.to_dict(),
            'yield_counts': dict(self.yield_counts),
            'significant_events': [e.to_dict() for e in self.significant_events],
            'total_transactions': self.total_transactions,
            'total_input_value': self.total_input_value,
            'total_output_value': self.total_output_value,
            'net_profit_loss': self.net_profit_loss,
            'average_profit_loss_per_transaction': self.average_profit_loss_per_transaction,
            'final_cumulative_profit_loss': self.final_cumulative_profit_loss,
            'started_at': self.started_at,
            'completed_at': self.completed_at,
            'execution_duration_ms': self.execution_duration_ms,
            'initial_phase_transactions': self.initial_phase_transactions,
            'initial_phase_total_input_value': self.initial_phase_total_input_value,
            'initial_phase_total_output_value': self.initial_phase_total_output_value,
            'initial_phase_net_profit_loss': self.initial_phase_net_profit_loss,
            'initial_phase_cumulative_profit_loss': self.initial_phase_cumulative_profit_loss,
            'initial_phase_yield_counts': (
                dict(self.initial_phase_yield_counts)
                if self.initial_phase_yield_counts is not None else None
            ),
        }
        if include_transactions:
            data['transactions'] = [t.to_dict() for t in self.transactions]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationResult':
        fields = dict(data)
        fields['configuration'] = SimulationConfig.from_dict(fields['configuration'])
        fields['transactions'] = [Transaction.from_dict(t) for t in fields.get('transactions') or []]
        fields['significant_events'] = [
            event_from_dict(e) for e in fields.get('significant_events') or []
        ]
        fields['yield_counts'] = {k: int(v) for k, v in (fields.get('yield_counts') or {}).items()}
        return cls(**fields)
