"""
Ledger state records
"""

from .balances import BalanceTable
from .ledger import LedgerState
from .pool import PoolState
from .records import (
    ActivityKind,
    GrantStatus,
    MilestoneProgress,
    ReferralCode,
    RewardCategory,
    RewardGrant,
    StakeKind,
    StakePosition,
    VestingPolicy,
)

__all__ = [
    "BalanceTable",
    "LedgerState",
    "PoolState",
    "ActivityKind",
    "GrantStatus",
    "MilestoneProgress",
    "ReferralCode",
    "RewardCategory",
    "RewardGrant",
    "StakeKind",
    "StakePosition",
    "VestingPolicy",
]
