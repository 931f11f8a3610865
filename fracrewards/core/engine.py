"""Dispatch-table engine for the rewards ledger.

``step(state, params)`` is the single entry point. It:

1. Dispatches to the transition function registered for ``params.action``.
2. Converts any ``RewardsError`` raised by the transition into a rejection.
3. Checks all invariants on the post-state.
4. Returns a ``StepResult`` (accepted or rejected with reason).

Transitions are pure: a rejected step never produces a state, so the caller's
current state is untouched by construction.
"""

from __future__ import annotations

from typing import Callable

from ..state.ledger import LedgerState
from .errors import ERROR_BY_CODE, LedgerInvariantError, RewardsError
from .invariants import check_all
from .milestones import record_activity, unlock_milestone_stage
from .referrals import complete_referral, create_referral_code
from .staking import (
    claim_stake_rewards,
    create_stake,
    unstake,
    update_apy_rates,
    update_priority_thresholds,
)
from .types import Action, ActionParams, StepResult, Transition
from .vesting import cancel_grant, claim_grant, grant_reward, update_reward_params

TransitionFn = Callable[[LedgerState, ActionParams], Transition]

_DISPATCH: dict[Action, TransitionFn] = {
    Action.CREATE_STAKE: create_stake,
    Action.CLAIM_STAKE_REWARDS: claim_stake_rewards,
    Action.UNSTAKE: unstake,
    Action.UPDATE_APY_RATES: update_apy_rates,
    Action.UPDATE_PRIORITY_THRESHOLDS: update_priority_thresholds,
    Action.GRANT_REWARD: grant_reward,
    Action.CLAIM_GRANT: claim_grant,
    Action.CANCEL_GRANT: cancel_grant,
    Action.UPDATE_REWARD_PARAMS: update_reward_params,
    Action.RECORD_ACTIVITY: record_activity,
    Action.UNLOCK_MILESTONE_STAGE: unlock_milestone_stage,
    Action.CREATE_REFERRAL_CODE: create_referral_code,
    Action.COMPLETE_REFERRAL: complete_referral,
}

INVARIANT_PREFIX = "invariant:"


def step(state: LedgerState, params: ActionParams) -> StepResult:
    """Execute one action against the given state.

    Returns ``StepResult`` with ``accepted=True`` on success, or
    ``accepted=False`` with ``rejection`` set to the error code.
    """
    transition = _DISPATCH.get(params.action)
    if transition is None:
        return StepResult(accepted=False, rejection=f"unknown_action:{params.action}")

    try:
        new_state, effect = transition(state, params)
    except RewardsError as exc:
        return StepResult(accepted=False, rejection=exc.code, detail=exc.message)

    violations = check_all(new_state)
    if violations:
        return StepResult(
            accepted=False,
            rejection=f"{INVARIANT_PREFIX}{','.join(violations)}",
        )

    return StepResult(accepted=True, state=new_state, effect=effect)


def step_or_raise(state: LedgerState, params: ActionParams) -> StepResult:
    """Like ``step()`` but raises on rejection instead of returning a result.

    Raises:
        RewardsError: the subclass named by the rejection code.
        LedgerInvariantError: Post-state violates one or more invariants.
    """
    result = step(state, params)
    if result.accepted:
        return result

    reason = result.rejection or ""
    if reason.startswith(INVARIANT_PREFIX):
        raise LedgerInvariantError(reason.removeprefix(INVARIANT_PREFIX).split(","))
    error_cls = ERROR_BY_CODE.get(reason, RewardsError)
    raise error_cls(result.detail or reason)
