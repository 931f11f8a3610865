"""Ascending-threshold tier resolution.

One table shape serves every tiered lookup in the ledger:

- staking priority tiers (0-3, by staked amount),
- grant vesting policy (Immediate / Linear / Milestone, by grant amount),
- external callers with their own tables (access gating, collateral tiers).

A table is a tuple ``(t0, t1, ..., tN-1)`` with ``t0 == 0`` and strictly
ascending entries. The tier of a value is the largest index whose threshold
the value meets.
"""

from __future__ import annotations

from typing import Sequence

from .errors import InvalidThresholds
from .math import TOKEN_UNIT

# Staking priority: 1k / 10k / 100k tokens -> tiers 1 / 2 / 3.
PRIORITY_TIER_THRESHOLDS: tuple[int, ...] = (
    0,
    1_000 * TOKEN_UNIT,
    10_000 * TOKEN_UNIT,
    100_000 * TOKEN_UNIT,
)


def resolve_tier(thresholds: Sequence[int], value: int) -> int:
    """Largest ``i`` such that ``value >= thresholds[i]``, else 0.

    Scans from the highest threshold down; first match wins.
    """
    for i in range(len(thresholds) - 1, -1, -1):
        if value >= thresholds[i]:
            return i
    return 0


def validate_thresholds(thresholds: Sequence[int]) -> tuple[int, ...]:
    """Return *thresholds* as a tuple, or raise ``InvalidThresholds``.

    Rules: non-empty, integer entries, first entry 0, strictly ascending.
    """
    table = tuple(thresholds)
    if not table:
        raise InvalidThresholds("threshold table must be non-empty")
    for t in table:
        if not isinstance(t, int) or isinstance(t, bool):
            raise InvalidThresholds(f"threshold must be an int: {t!r}")
    if table[0] != 0:
        raise InvalidThresholds(f"first threshold must be 0, got {table[0]}")
    for lo, hi in zip(table, table[1:]):
        if not lo < hi:
            raise InvalidThresholds(f"thresholds must be strictly ascending: {lo} >= {hi}")
    return table


def get_priority_tier(total_staked: int, thresholds: Sequence[int] = PRIORITY_TIER_THRESHOLDS) -> int:
    """Priority tier for a staked amount (read-only query for other subsystems)."""
    return resolve_tier(thresholds, total_staked)


def next_tier_gap(thresholds: Sequence[int], value: int) -> int:
    """Amount still needed to reach the next tier (0 at the top tier)."""
    tier = resolve_tier(thresholds, value)
    if tier + 1 >= len(thresholds):
        return 0
    return max(0, thresholds[tier + 1] - value)
