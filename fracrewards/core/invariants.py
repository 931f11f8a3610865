"""Ledger-wide invariant checkers.

Each function returns True when the invariant holds, and ``check_all()`` returns
the list of violated invariant IDs (empty = all pass). The engine runs
``check_all()`` on every post-state and the snapshot loader runs it on every
restored state.
"""

from __future__ import annotations

from typing import Callable

from ..state.ledger import LedgerState
from .math import BPS_SCALE
from ..state.records import GrantStatus, VestingPolicy


def inv_pool_conservation(s: LedgerState) -> bool:
    p = s.pool
    return p.distributed_total + p.remaining_total + p.vested_pending_total == p.original_allocation


def inv_claimed_le_total(s: LedgerState) -> bool:
    return all(g.claimed_amount <= g.total_amount for g in s.grants.values())


def inv_completed_iff_fully_claimed(s: LedgerState) -> bool:
    for g in s.grants.values():
        if g.status is GrantStatus.CANCELLED:
            continue
        if (g.status is GrantStatus.COMPLETED) != (g.claimed_amount == g.total_amount):
            return False
    return True


def inv_pending_matches_grants(s: LedgerState) -> bool:
    pending = sum(g.unclaimed_amount for g in s.grants.values() if g.status is GrantStatus.ACTIVE)
    return pending == s.pool.vested_pending_total


def inv_active_grant_count(s: LedgerState) -> bool:
    active = sum(1 for g in s.grants.values() if g.status is GrantStatus.ACTIVE)
    return active == s.pool.active_grants


def inv_total_staked_matches_positions(s: LedgerState) -> bool:
    return sum(p.amount for p in s.positions.values() if p.active) == s.pool.total_staked


def inv_inactive_positions_empty(s: LedgerState) -> bool:
    return all(p.active or p.amount == 0 for p in s.positions.values())


def inv_stage_flags_milestone_only(s: LedgerState) -> bool:
    for g in s.grants.values():
        if g.policy is VestingPolicy.MILESTONE:
            continue
        if g.stage_1_unlocked or g.stage_2_unlocked or g.stage_3_unlocked:
            return False
    return True


def inv_stage_flags_ordered(s: LedgerState) -> bool:
    for g in s.grants.values():
        if g.stage_3_unlocked and not g.stage_2_unlocked:
            return False
        if g.stage_2_unlocked and not g.stage_1_unlocked:
            return False
    return True


def inv_thresholds_ascending(s: LedgerState) -> bool:
    for table in (s.pool.priority_thresholds, s.pool.reward_thresholds):
        if not table or table[0] != 0:
            return False
        if any(not lo < hi for lo, hi in zip(table, table[1:])):
            return False
    return True


def inv_rates_within_bps_scale(s: LedgerState) -> bool:
    p = s.pool
    if p.early_unstake_penalty_bps > BPS_SCALE:
        return False
    if any(r > BPS_SCALE for r in p.apy_rates.values()):
        return False
    return all(pos.apy_bps <= BPS_SCALE for pos in s.positions.values())


def inv_referral_index_consistent(s: LedgerState) -> bool:
    if len(s.referral_index) != len(s.referrals):
        return False
    return all(s.referral_index.get(r.code) == user for user, r in s.referrals.items())


def inv_ids_below_next(s: LedgerState) -> bool:
    return all(pid < s.next_position_id for pid in s.positions) and all(
        gid < s.next_grant_id for gid in s.grants
    )


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[LedgerState], bool]] = {
    "inv_pool_conservation": inv_pool_conservation,
    "inv_claimed_le_total": inv_claimed_le_total,
    "inv_completed_iff_fully_claimed": inv_completed_iff_fully_claimed,
    "inv_pending_matches_grants": inv_pending_matches_grants,
    "inv_active_grant_count": inv_active_grant_count,
    "inv_total_staked_matches_positions": inv_total_staked_matches_positions,
    "inv_inactive_positions_empty": inv_inactive_positions_empty,
    "inv_stage_flags_milestone_only": inv_stage_flags_milestone_only,
    "inv_stage_flags_ordered": inv_stage_flags_ordered,
    "inv_thresholds_ascending": inv_thresholds_ascending,
    "inv_rates_within_bps_scale": inv_rates_within_bps_scale,
    "inv_referral_index_consistent": inv_referral_index_consistent,
    "inv_ids_below_next": inv_ids_below_next,
}


def check_all(state: LedgerState) -> list[str]:
    """Return IDs of all violated invariants (empty list = all pass)."""
    return [name for name, fn in INVARIANT_REGISTRY.items() if not fn(state)]
