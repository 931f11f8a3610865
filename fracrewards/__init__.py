"""
frac-rewards: staking yield, vesting grants and milestone gating over a shared
finite rewards reserve.
"""

from .config import ConfigError, LedgerConfig, initial_state, load_config
from .core.errors import RewardsError
from .core.math import TOKEN_UNIT
from .integration.service import RewardsLedger

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "LedgerConfig",
    "initial_state",
    "load_config",
    "RewardsError",
    "TOKEN_UNIT",
    "RewardsLedger",
]
