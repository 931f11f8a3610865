"""
Rewards ledger service.

This is the imperative shell around the functional core:
- reads the clock and stamps each action with ``now``,
- runs the action through ``step_or_raise`` (pure, invariant-checked),
- executes the transfers the step requested, all-or-nothing,
- only then swaps in the new state.

Any failure leaves both the ledger state and the balances exactly as they
were before the call.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional, Sequence

from ..config import LedgerConfig, initial_state
from ..core.engine import step_or_raise
from ..core.errors import RewardsError
from ..core.guards import get_grant, get_position
from ..core.milestones import StageReport, evaluate_stage
from ..core.staking import preview_stake_rewards
from ..core.tiers import next_tier_gap, resolve_tier
from ..core.types import Action, ActionParams, Effect
from ..core.vesting import claimable_amount
from ..state.balances import BalanceTable
from ..state.ledger import LedgerState
from ..state.records import (
    ActivityKind,
    MilestoneProgress,
    RewardCategory,
    RewardGrant,
    StakeKind,
    StakePosition,
)
from .snapshot import LedgerSnapshot, snapshot_from_state, state_from_snapshot
from .transfers import TransferPrimitive, execute_transfers

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time())


class RewardsLedger:
    """Stateful front door to the reward distribution subsystem."""

    def __init__(
        self,
        state: Optional[LedgerState] = None,
        *,
        transfers: Optional[TransferPrimitive] = None,
        clock: Optional[Clock] = None,
        config: Optional[LedgerConfig] = None,
    ) -> None:
        self._state = state if state is not None else initial_state(config)
        self._transfers: TransferPrimitive = transfers if transfers is not None else BalanceTable()
        self._clock: Clock = clock or system_clock

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def transfers(self) -> TransferPrimitive:
        return self._transfers

    # -- Execution -----------------------------------------------------------

    def _execute(self, action: Action, caller: str, **fields: Any) -> Effect:
        params = ActionParams(action=action, caller=caller, now=self._clock(), **fields)
        try:
            result = step_or_raise(self._state, params)
            execute_transfers(self._transfers, result.effect.transfers)
        except RewardsError as exc:
            logger.warning("%s by %r rejected: %s %s", action.value, caller, exc.code, exc.message)
            raise

        self._state = result.state
        effect = result.effect
        logger.info(
            "%s by %r committed: event=%s amount=%d position=%d grant=%d",
            action.value, caller, effect.event.value, effect.amount, effect.position_id, effect.grant_id,
        )
        return effect

    # -- Staking -------------------------------------------------------------

    def create_stake(self, caller: str, amount: int, stake_kind: StakeKind, lock_days: int = 0) -> Effect:
        return self._execute(
            Action.CREATE_STAKE, caller, amount=amount, stake_kind=stake_kind, lock_days=lock_days,
        )

    def claim_rewards(self, caller: str, position_id: int) -> Effect:
        return self._execute(Action.CLAIM_STAKE_REWARDS, caller, position_id=position_id)

    def unstake(self, caller: str, position_id: int, amount: int = 0) -> Effect:
        """Withdraw *amount* of principal (0 = everything)."""
        return self._execute(Action.UNSTAKE, caller, position_id=position_id, amount=amount)

    def update_apy_rates(self, caller: str, rates: Sequence[int]) -> Effect:
        return self._execute(Action.UPDATE_APY_RATES, caller, apy_rates=tuple(rates))

    def update_priority_thresholds(self, caller: str, thresholds: Sequence[int]) -> Effect:
        return self._execute(Action.UPDATE_PRIORITY_THRESHOLDS, caller, thresholds=tuple(thresholds))

    # -- Grants --------------------------------------------------------------

    def grant_reward(
        self,
        caller: str,
        recipient: str,
        category: RewardCategory,
        amount: int,
        vesting_duration: int = 0,
    ) -> Effect:
        return self._execute(
            Action.GRANT_REWARD,
            caller,
            recipient=recipient,
            category=category,
            amount=amount,
            vesting_duration=vesting_duration,
        )

    def claim(self, caller: str, grant_id: int) -> Effect:
        return self._execute(Action.CLAIM_GRANT, caller, grant_id=grant_id)

    def cancel_grant(self, caller: str, grant_id: int) -> Effect:
        return self._execute(Action.CANCEL_GRANT, caller, grant_id=grant_id)

    def update_reward_params(
        self, caller: str, small: Optional[int] = None, medium: Optional[int] = None,
    ) -> Effect:
        return self._execute(
            Action.UPDATE_REWARD_PARAMS, caller, small_threshold=small, medium_threshold=medium,
        )

    # -- Milestones / referrals ---------------------------------------------

    def record_activity(self, caller: str, user: str, kind: ActivityKind, amount: int = 0) -> Effect:
        return self._execute(Action.RECORD_ACTIVITY, caller, user=user, activity_kind=kind, amount=amount)

    def unlock_milestone_stage(self, caller: str, grant_id: int, stage: int) -> Effect:
        return self._execute(Action.UNLOCK_MILESTONE_STAGE, caller, grant_id=grant_id, stage=stage)

    def create_referral_code(self, caller: str) -> str:
        return self._execute(Action.CREATE_REFERRAL_CODE, caller).code

    def complete_referral(self, caller: str, code: str, referee: str) -> Effect:
        return self._execute(Action.COMPLETE_REFERRAL, caller, code=code, referee=referee)

    # -- Queries (read-only) -------------------------------------------------

    def get_claimable(self, grant_id: int) -> int:
        return claimable_amount(get_grant(self._state, grant_id), self._clock())

    def preview_stake_rewards(self, position_id: int) -> int:
        return preview_stake_rewards(get_position(self._state, position_id), self._clock())

    def get_priority_tier(self, total_staked: int) -> int:
        return resolve_tier(self._state.pool.priority_thresholds, total_staked)

    def tokens_to_next_tier(self, total_staked: int) -> int:
        return next_tier_gap(self._state.pool.priority_thresholds, total_staked)

    @staticmethod
    def resolve_tier(thresholds: Sequence[int], value: int) -> int:
        return resolve_tier(thresholds, value)

    def positions_of(self, owner: str) -> list[StakePosition]:
        return self._state.positions_of(owner)

    def grants_of(self, recipient: str) -> list[RewardGrant]:
        return self._state.grants_of(recipient)

    def progress(self, user: str) -> MilestoneProgress:
        return self._state.progress_for(user)

    def stage_report(self, user: str, stage: int) -> StageReport:
        return evaluate_stage(self._state.progress_for(user), stage)

    # -- Persistence ---------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        return snapshot_from_state(self._state)

    @classmethod
    def from_snapshot(
        cls,
        data: Mapping[str, Any],
        *,
        expected_commitment: Optional[str] = None,
        transfers: Optional[TransferPrimitive] = None,
        clock: Optional[Clock] = None,
    ) -> "RewardsLedger":
        state = state_from_snapshot(data, expected_commitment=expected_commitment)
        logger.info(
            "restored ledger: %d positions, %d grants, %d progress records",
            len(state.positions), len(state.grants), len(state.progress),
        )
        return cls(state, transfers=transfers, clock=clock)
