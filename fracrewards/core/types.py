"""Action, effect and result types for the ledger engine.

All types are frozen dataclasses (immutable). ``ActionParams`` is one wide
record shared by every action; fields an action does not use keep their
defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Optional

from ..state.ledger import LedgerState
from ..state.records import ActivityKind, RewardCategory, StakeKind, VestingPolicy


@unique
class Action(Enum):
    # staking
    CREATE_STAKE = "create_stake"
    CLAIM_STAKE_REWARDS = "claim_stake_rewards"
    UNSTAKE = "unstake"
    UPDATE_APY_RATES = "update_apy_rates"
    UPDATE_PRIORITY_THRESHOLDS = "update_priority_thresholds"
    # vesting
    GRANT_REWARD = "grant_reward"
    CLAIM_GRANT = "claim_grant"
    CANCEL_GRANT = "cancel_grant"
    UPDATE_REWARD_PARAMS = "update_reward_params"
    # milestones / referrals
    RECORD_ACTIVITY = "record_activity"
    UNLOCK_MILESTONE_STAGE = "unlock_milestone_stage"
    CREATE_REFERRAL_CODE = "create_referral_code"
    COMPLETE_REFERRAL = "complete_referral"


@unique
class Event(Enum):
    TOKENS_STAKED = "TokensStaked"
    STAKE_REWARDS_CLAIMED = "StakeRewardsClaimed"
    TOKENS_UNSTAKED = "TokensUnstaked"
    APY_RATES_UPDATED = "ApyRatesUpdated"
    PRIORITY_THRESHOLDS_UPDATED = "PriorityThresholdsUpdated"
    REWARD_GRANTED = "RewardGranted"
    REWARD_CLAIMED = "RewardClaimed"
    GRANT_CANCELLED = "GrantCancelled"
    REWARD_PARAMS_UPDATED = "RewardParamsUpdated"
    ACTIVITY_RECORDED = "ActivityRecorded"
    MILESTONE_STAGE_UNLOCKED = "MilestoneStageUnlocked"
    REFERRAL_CODE_CREATED = "ReferralCodeCreated"
    REFERRAL_COMPLETED = "ReferralCompleted"


@dataclass(frozen=True)
class ActionParams:
    """Parameters for an action. Unused fields default to 0/empty/None."""

    action: Action
    caller: str = ""
    now: int = 0

    amount: int = 0                              # create_stake / unstake / grant_reward / record_activity
    stake_kind: Optional[StakeKind] = None       # create_stake
    lock_days: int = 0                           # create_stake
    position_id: int = 0                         # claim_stake_rewards / unstake
    grant_id: int = 0                            # claim_grant / cancel_grant / unlock_milestone_stage
    recipient: str = ""                          # grant_reward
    category: Optional[RewardCategory] = None    # grant_reward
    vesting_duration: int = 0                    # grant_reward (Linear only)
    user: str = ""                               # record_activity
    activity_kind: Optional[ActivityKind] = None  # record_activity
    stage: int = 0                               # unlock_milestone_stage
    code: str = ""                               # complete_referral
    referee: str = ""                            # complete_referral
    apy_rates: tuple[int, ...] = ()              # update_apy_rates, ordered as ALLOWED_LOCK_DAYS
    thresholds: tuple[int, ...] = ()             # update_priority_thresholds
    small_threshold: Optional[int] = None        # update_reward_params
    medium_threshold: Optional[int] = None       # update_reward_params


@dataclass(frozen=True)
class Transfer:
    """One value movement the shell must perform through the transfer primitive."""

    source: str
    destination: str
    amount: int


@dataclass(frozen=True)
class Effect:
    """Observables emitted by a successful step."""

    event: Event
    position_id: int = 0
    grant_id: int = 0
    user: str = ""
    amount: int = 0
    penalty: int = 0
    priority_tier: int = 0
    policy: Optional[VestingPolicy] = None
    stage: int = 0
    code: str = ""
    transfers: tuple[Transfer, ...] = ()


@dataclass(frozen=True)
class StepResult:
    """Result of a single engine step."""

    accepted: bool
    state: LedgerState | None = None
    effect: Effect | None = None
    rejection: str | None = None
    detail: str | None = None


Transition = tuple[LedgerState, Effect]
