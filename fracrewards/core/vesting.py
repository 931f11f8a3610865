"""Reward grant transitions and vesting math.

Claimable amounts are always computed as "entitled so far minus already
claimed". Entitlement is recomputed from the grant's fixed parameters on every
call, so there is no running accrual balance to drift.

Pool bookkeeping:
- grant:  remaining -> pending (reservation, no transfer)
- claim:  pending   -> distributed (transfer reserve -> recipient)
- cancel: pending   -> remaining (unclaimed remainder released)
"""

from __future__ import annotations

from dataclasses import replace

from ..state.ledger import LedgerState
from ..state.records import GrantStatus, RewardCategory, RewardGrant, VestingPolicy
from .errors import (
    GrantNotActive,
    InsufficientRewardsPool,
    InvalidCategory,
    InvalidVestingDuration,
    NoClaimableRewards,
)
from .guards import (
    get_grant,
    get_recipient_grant,
    require_amount,
    require_authority,
    require_identity,
    require_timestamp,
)
from .math import I64_MAX, SECONDS_PER_DAY, checked_add, checked_sub, elapsed_seconds, mul_div, percent_of
from .tiers import resolve_tier, validate_thresholds
from .types import ActionParams, Effect, Event, Transfer, Transition

MILESTONE_VESTING_DURATION: int = 1095 * SECONDS_PER_DAY

# Tier over (0, small, medium) -> policy.
_POLICY_BY_TIER: dict[int, VestingPolicy] = {
    0: VestingPolicy.IMMEDIATE,
    1: VestingPolicy.LINEAR,
    2: VestingPolicy.MILESTONE,
}


def select_policy(amount: int, reward_thresholds: tuple[int, int, int]) -> VestingPolicy:
    """Vesting policy for a grant of *amount* (fixed for the grant's lifetime)."""
    return _POLICY_BY_TIER[resolve_tier(reward_thresholds, amount)]


def vested_amount(grant: RewardGrant, now: int) -> int:
    """Total entitlement of *grant* at *now*, before subtracting claims."""
    if grant.policy is VestingPolicy.IMMEDIATE:
        return grant.total_amount
    if grant.policy is VestingPolicy.LINEAR:
        elapsed = elapsed_seconds(now, grant.grant_time)
        if elapsed >= grant.vesting_duration:
            return grant.total_amount
        return mul_div(grant.total_amount, elapsed, grant.vesting_duration)
    return percent_of(grant.total_amount, grant.unlocked_percent)


def claimable_amount(grant: RewardGrant, now: int) -> int:
    """Read-only preview of what ``claim_grant`` would pay; 0 unless active."""
    if grant.status is not GrantStatus.ACTIVE:
        return 0
    return checked_sub(vested_amount(grant, now), grant.claimed_amount)


def grant_reward(state: LedgerState, params: ActionParams) -> Transition:
    require_authority(state, params.caller)
    now = require_timestamp(params.now)
    recipient = require_identity(params.recipient, name="recipient")
    if not isinstance(params.category, RewardCategory):
        raise InvalidCategory("reward category is required")
    amount = require_amount(params.amount)

    pool = state.pool
    if amount > pool.remaining_total:
        raise InsufficientRewardsPool(f"{amount} requested, {pool.remaining_total} remaining")

    policy = select_policy(amount, pool.reward_thresholds)
    if policy is VestingPolicy.LINEAR:
        duration = params.vesting_duration
        if not isinstance(duration, int) or isinstance(duration, bool) or not (0 <= duration <= I64_MAX):
            raise InvalidVestingDuration(f"linear duration out of range: {duration!r}")
    elif policy is VestingPolicy.MILESTONE:
        duration = MILESTONE_VESTING_DURATION
    else:
        duration = 0

    grant = RewardGrant(
        grant_id=state.next_grant_id,
        recipient=recipient,
        category=params.category,
        total_amount=amount,
        policy=policy,
        grant_time=now,
        vesting_duration=duration,
    )
    new_pool = replace(
        pool,
        remaining_total=checked_sub(pool.remaining_total, amount),
        vested_pending_total=checked_add(pool.vested_pending_total, amount),
        active_grants=checked_add(pool.active_grants, 1),
    )
    new_state = replace(
        state.with_grant(grant).with_pool(new_pool),
        next_grant_id=state.next_grant_id + 1,
    )
    effect = Effect(
        event=Event.REWARD_GRANTED,
        grant_id=grant.grant_id,
        user=recipient,
        amount=amount,
        policy=policy,
    )
    return new_state, effect


def claim_grant(state: LedgerState, params: ActionParams) -> Transition:
    caller = require_identity(params.caller, name="caller")
    now = require_timestamp(params.now)
    grant = get_recipient_grant(state, params.grant_id, caller)
    if grant.status is not GrantStatus.ACTIVE:
        raise GrantNotActive(f"grant {grant.grant_id} is {grant.status.value}")

    claimable = claimable_amount(grant, now)
    if claimable == 0:
        raise NoClaimableRewards(f"nothing vested on grant {grant.grant_id}")

    pool = state.pool
    if claimable > pool.vested_pending_total:
        raise InsufficientRewardsPool(f"{claimable} requested, {pool.vested_pending_total} reserved")

    claimed = checked_add(grant.claimed_amount, claimable)
    completed = claimed == grant.total_amount
    new_grant = replace(
        grant,
        claimed_amount=claimed,
        status=GrantStatus.COMPLETED if completed else GrantStatus.ACTIVE,
    )
    new_pool = replace(
        pool,
        vested_pending_total=checked_sub(pool.vested_pending_total, claimable),
        distributed_total=checked_add(pool.distributed_total, claimable),
        active_grants=checked_sub(pool.active_grants, 1) if completed else pool.active_grants,
    )
    effect = Effect(
        event=Event.REWARD_CLAIMED,
        grant_id=grant.grant_id,
        user=caller,
        amount=claimable,
        policy=grant.policy,
        transfers=(Transfer(pool.rewards_reserve, caller, claimable),),
    )
    return state.with_grant(new_grant).with_pool(new_pool), effect


def cancel_grant(state: LedgerState, params: ActionParams) -> Transition:
    """Administratively end an active grant, releasing its unclaimed reservation."""
    require_authority(state, params.caller)
    require_timestamp(params.now)
    grant = get_grant(state, params.grant_id)
    if grant.status is not GrantStatus.ACTIVE:
        raise GrantNotActive(f"grant {grant.grant_id} is {grant.status.value}")

    released = grant.unclaimed_amount
    pool = state.pool
    new_pool = replace(
        pool,
        vested_pending_total=checked_sub(pool.vested_pending_total, released),
        remaining_total=checked_add(pool.remaining_total, released),
        active_grants=checked_sub(pool.active_grants, 1),
    )
    new_grant = replace(grant, status=GrantStatus.CANCELLED)
    effect = Effect(
        event=Event.GRANT_CANCELLED,
        grant_id=grant.grant_id,
        user=grant.recipient,
        amount=released,
        policy=grant.policy,
    )
    return state.with_grant(new_grant).with_pool(new_pool), effect


def update_reward_params(state: LedgerState, params: ActionParams) -> Transition:
    """Replace either policy threshold; the resulting table must stay ascending."""
    require_authority(state, params.caller)
    now = require_timestamp(params.now)
    pool = state.pool
    small = pool.small_reward_threshold if params.small_threshold is None else params.small_threshold
    medium = pool.medium_reward_threshold if params.medium_threshold is None else params.medium_threshold
    _, small, medium = validate_thresholds((0, small, medium))

    new_pool = replace(
        pool,
        small_reward_threshold=small,
        medium_reward_threshold=medium,
        last_updated=now,
    )
    return state.with_pool(new_pool), Effect(event=Event.REWARD_PARAMS_UPDATED)
