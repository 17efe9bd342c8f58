"""
Vendor Recipe Simulation Configuration

Dataclass defaults with environment overrides.
"""

from .simulation_config import (
    AppConfig,
    EngineDefaults,
    OutputConfig,
    ThresholdDefaults,
    load_config,
)

__all__ = ['AppConfig', 'EngineDefaults', 'OutputConfig', 'ThresholdDefaults', 'load_config']
