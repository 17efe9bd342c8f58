"""
Simulation Errors
=================

Typed failures raised by the threshold calculator, the sampler and the
simulation engine. Callers catch ``SimulationError`` to handle all of them.

- ValidationError: bad configuration, fixable by the caller
- NoValidItemsError / EmptyReturnPoolError / NonPositiveTotalWeightError /
  InsufficientItemsError / EmptyPoolError: the item selection cannot
  support a trade cycle
- SimulationCancelled: user-initiated stop
- UnexpectedSimulationError: anything else raised mid-run

Author: Vendor Recipe Lab
Created: October 2026
"""


class SimulationError(Exception):
    """Base class for all simulation errors"""


class ValidationError(SimulationError):
    """Configuration failed validation before the run started"""


class InvalidInputError(SimulationError):
    """Statistics received an empty or zero-weight input"""


class NoValidItemsError(SimulationError):
    """No item carries both price data and a drop weight"""


class EmptyReturnPoolError(SimulationError):
    """Excluding the inputs left nothing that can be returned"""


class NonPositiveTotalWeightError(SimulationError):
    """Return pool weights sum to zero or less"""


class InsufficientItemsError(SimulationError):
    """Fewer items than a draw requires"""


class EmptyPoolError(SimulationError):
    """Weighted pick over an empty pool"""


class SimulationCancelled(SimulationError):
    """Run aborted through its cancellation token"""

    def __init__(self, message: str = "Simulation cancelled by user", processed: int = 0):
        super().__init__(message)
        self.processed = processed


class UnexpectedSimulationError(SimulationError):
    """Non-simulation exception raised while a run was in progress"""
