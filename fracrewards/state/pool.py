"""Singleton pool record: administrative tables plus the shared reserve totals.

The three reserve totals are only ever changed together, inside one
transition, so that

    distributed_total + remaining_total + vested_pending_total == original_allocation

holds between any two operations (see ``fracrewards.core.invariants``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from .records import ALLOWED_LOCK_DAYS


@dataclass(frozen=True)
class PoolState:
    authority: str
    original_allocation: int
    remaining_total: int
    distributed_total: int = 0
    vested_pending_total: int = 0
    total_staked: int = 0
    active_grants: int = 0

    # lock_days -> apy bps, one entry per allowed duration
    apy_rates: Mapping[int, int] = field(default_factory=dict)
    priority_thresholds: tuple[int, ...] = ()
    small_reward_threshold: int = 0
    medium_reward_threshold: int = 0
    min_stake: int = 0
    early_unstake_penalty_bps: int = 0

    # Named balances moved by the transfer primitive.
    staking_vault: str = "staking_vault"
    rewards_reserve: str = "rewards_reserve"
    treasury: str = "treasury"

    reporters: frozenset[str] = frozenset()
    last_updated: int = 0

    def __post_init__(self) -> None:
        for name in (
            "original_allocation", "remaining_total", "distributed_total",
            "vested_pending_total", "total_staked", "active_grants",
            "small_reward_threshold", "medium_reward_threshold", "min_stake",
            "early_unstake_penalty_bps", "last_updated",
        ):
            val = getattr(self, name)
            if not isinstance(val, int) or isinstance(val, bool):
                raise TypeError(f"{name} must be an int")
            if val < 0:
                raise ValueError(f"{name} must be non-negative: {val}")
        if set(self.apy_rates) != set(ALLOWED_LOCK_DAYS):
            raise ValueError(f"apy_rates must cover exactly {ALLOWED_LOCK_DAYS}")
        if not isinstance(self.priority_thresholds, tuple):
            raise TypeError("priority_thresholds must be a tuple")

    @property
    def reward_thresholds(self) -> tuple[int, int, int]:
        """Policy table consumed by ``resolve_tier``: Immediate / Linear / Milestone."""
        return (0, self.small_reward_threshold, self.medium_reward_threshold)

    def is_reporter(self, identity: str) -> bool:
        return identity == self.authority or identity in self.reporters
