"""Stake ledger transitions.

Positions accrue yield lazily: nothing is stored between claims except the
timestamp of the last claim, and ``claim_stake_rewards`` derives the payable
amount from it. The APY of a position is frozen when it is created; later rate
table changes only affect new positions.

Funds never move inside this module. Each transition returns the transfers
it needs in ``Effect.transfers`` and the shell executes them atomically.
"""

from __future__ import annotations

from dataclasses import replace

from ..state.ledger import LedgerState
from ..state.records import ALLOWED_LOCK_DAYS, StakeKind, StakePosition
from .errors import (
    InsufficientRewardsPool,
    InsufficientStakedAmount,
    InvalidApyRate,
    InvalidLockDuration,
    NoRewardsToClaim,
    StakeAmountTooLow,
    StakeNotActive,
)
from .guards import (
    get_owned_position,
    require_amount,
    require_authority,
    require_identity,
    require_timestamp,
)
from .math import (
    BPS_SCALE,
    SECONDS_PER_DAY,
    accrued_rewards,
    add_seconds,
    bps_of,
    checked_add,
    checked_mul,
    checked_sub,
    elapsed_seconds,
)
from .tiers import resolve_tier, validate_thresholds
from .types import ActionParams, Effect, Event, Transfer, Transition


def _lock_end(now: int, kind: StakeKind, lock_days: int) -> int:
    if kind is StakeKind.FLEXIBLE:
        return 0
    return add_seconds(now, checked_mul(lock_days, SECONDS_PER_DAY))


def create_stake(state: LedgerState, params: ActionParams) -> Transition:
    caller = require_identity(params.caller, name="caller")
    now = require_timestamp(params.now)
    pool = state.pool

    amount = require_amount(params.amount, allow_zero=True)
    if amount < pool.min_stake or amount == 0:
        raise StakeAmountTooLow(f"stake of {amount} below minimum {pool.min_stake}")

    kind = params.stake_kind
    if not isinstance(kind, StakeKind):
        raise InvalidLockDuration("stake kind is required")
    lock_days = params.lock_days
    if isinstance(lock_days, bool) or lock_days not in ALLOWED_LOCK_DAYS:
        raise InvalidLockDuration(f"lock duration {lock_days!r} not in {ALLOWED_LOCK_DAYS}")
    if (kind is StakeKind.FLEXIBLE) != (lock_days == 0):
        raise InvalidLockDuration(f"{kind.value} stake cannot lock for {lock_days} days")

    apy_bps = pool.apy_rates[lock_days]
    total_staked = checked_add(pool.total_staked, amount)

    position = StakePosition(
        position_id=state.next_position_id,
        owner=caller,
        amount=amount,
        kind=kind,
        lock_days=lock_days,
        apy_bps=apy_bps,
        start_time=now,
        lock_end=_lock_end(now, kind, lock_days),
        last_claim_time=now,
        active=True,
        priority_tier=resolve_tier(pool.priority_thresholds, amount),
    )
    new_state = replace(
        state.with_position(position).with_pool(replace(pool, total_staked=total_staked)),
        next_position_id=state.next_position_id + 1,
    )
    effect = Effect(
        event=Event.TOKENS_STAKED,
        position_id=position.position_id,
        user=caller,
        amount=amount,
        priority_tier=position.priority_tier,
        transfers=(Transfer(caller, pool.staking_vault, amount),),
    )
    return new_state, effect


def preview_stake_rewards(position: StakePosition, now: int) -> int:
    """Rewards a claim at *now* would pay (0 for inactive positions)."""
    if not position.active:
        return 0
    return accrued_rewards(
        position.amount, position.apy_bps, elapsed_seconds(now, position.last_claim_time),
    )


def claim_stake_rewards(state: LedgerState, params: ActionParams) -> Transition:
    caller = require_identity(params.caller, name="caller")
    now = require_timestamp(params.now)
    position = get_owned_position(state, params.position_id, caller)
    if not position.active:
        raise StakeNotActive(f"position {position.position_id} is inactive")

    pool = state.pool
    payable = preview_stake_rewards(position, now)
    if payable == 0:
        raise NoRewardsToClaim(f"nothing accrued on position {position.position_id}")
    if payable > pool.remaining_total:
        raise InsufficientRewardsPool(f"{payable} requested, {pool.remaining_total} remaining")

    new_pool = replace(
        pool,
        remaining_total=checked_sub(pool.remaining_total, payable),
        distributed_total=checked_add(pool.distributed_total, payable),
    )
    new_state = state.with_position(replace(position, last_claim_time=now)).with_pool(new_pool)
    effect = Effect(
        event=Event.STAKE_REWARDS_CLAIMED,
        position_id=position.position_id,
        user=caller,
        amount=payable,
        transfers=(Transfer(pool.rewards_reserve, caller, payable),),
    )
    return new_state, effect


def unstake(state: LedgerState, params: ActionParams) -> Transition:
    """Withdraw principal; ``amount == 0`` withdraws everything left."""
    caller = require_identity(params.caller, name="caller")
    now = require_timestamp(params.now)
    position = get_owned_position(state, params.position_id, caller)
    if not position.active:
        raise StakeNotActive(f"position {position.position_id} is inactive")

    requested = require_amount(params.amount, allow_zero=True)
    if requested > position.amount:
        raise InsufficientStakedAmount(f"{requested} requested, {position.amount} staked")
    unstake_amount = position.amount if requested == 0 else requested

    pool = state.pool
    early = position.is_fixed_term and now < position.lock_end
    penalty = bps_of(unstake_amount, pool.early_unstake_penalty_bps) if early else 0
    returned = checked_sub(unstake_amount, penalty)

    remaining = checked_sub(position.amount, unstake_amount)
    new_position = replace(
        position,
        amount=remaining,
        active=remaining > 0,
        priority_tier=resolve_tier(pool.priority_thresholds, remaining),
    )
    new_pool = replace(pool, total_staked=checked_sub(pool.total_staked, unstake_amount))

    transfers = [Transfer(pool.staking_vault, caller, returned)]
    if penalty > 0:
        transfers.append(Transfer(pool.staking_vault, pool.treasury, penalty))

    effect = Effect(
        event=Event.TOKENS_UNSTAKED,
        position_id=position.position_id,
        user=caller,
        amount=unstake_amount,
        penalty=penalty,
        priority_tier=new_position.priority_tier,
        transfers=tuple(transfers),
    )
    return state.with_position(new_position).with_pool(new_pool), effect


def update_apy_rates(state: LedgerState, params: ActionParams) -> Transition:
    """Replace the rate table; ``params.apy_rates`` follows ``ALLOWED_LOCK_DAYS`` order."""
    require_authority(state, params.caller)
    now = require_timestamp(params.now)
    rates = tuple(params.apy_rates)
    if len(rates) != len(ALLOWED_LOCK_DAYS):
        raise InvalidApyRate(f"expected {len(ALLOWED_LOCK_DAYS)} rates, got {len(rates)}")
    for rate in rates:
        if not isinstance(rate, int) or isinstance(rate, bool) or not (0 <= rate <= BPS_SCALE):
            raise InvalidApyRate(f"rate must be in [0, {BPS_SCALE}] bps: {rate!r}")

    new_pool = replace(
        state.pool,
        apy_rates=dict(zip(ALLOWED_LOCK_DAYS, rates)),
        last_updated=now,
    )
    return state.with_pool(new_pool), Effect(event=Event.APY_RATES_UPDATED)


def update_priority_thresholds(state: LedgerState, params: ActionParams) -> Transition:
    require_authority(state, params.caller)
    now = require_timestamp(params.now)
    table = validate_thresholds(params.thresholds)
    new_pool = replace(state.pool, priority_thresholds=table, last_updated=now)
    return state.with_pool(new_pool), Effect(event=Event.PRIORITY_THRESHOLDS_UPDATED)
