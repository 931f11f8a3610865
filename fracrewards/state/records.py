"""Per-entity ledger records.

All records are frozen dataclasses: a transition builds a new record with
``dataclasses.replace`` and never mutates one in place.

Units/conventions:
- amounts are integer base units of the token (see ``fracrewards.config``),
- ``*_bps`` rates are basis points (1/10_000),
- ``*_time`` / ``*_at`` values are unix seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

ALLOWED_LOCK_DAYS: tuple[int, ...] = (0, 30, 90, 180, 365)

# Milestone stage N releases STAGE_PERCENT[N] percent of the grant.
STAGE_PERCENT: dict[int, int] = {1: 10, 2: 30, 3: 60}


@unique
class StakeKind(Enum):
    FLEXIBLE = "flexible"
    FIXED_TERM = "fixed_term"


@unique
class VestingPolicy(Enum):
    IMMEDIATE = "immediate"
    LINEAR = "linear"
    MILESTONE = "milestone"


@unique
class GrantStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@unique
class RewardCategory(Enum):
    TRADING_REBATE = "trading_rebate"
    LIQUIDITY_PROVISION = "liquidity_provision"
    REFERRAL = "referral"
    GOVERNANCE_VOTING = "governance_voting"
    VAULT_CREATION = "vault_creation"
    TESTER_AIRDROP = "tester_airdrop"
    COMMUNITY_GRANT = "community_grant"


@unique
class ActivityKind(Enum):
    TRADING = "trading"
    STAKING = "staking"
    VOTING = "voting"
    VAULT_CREATION = "vault_creation"
    REFERRAL = "referral"
    TIER_HOLDING = "tier_holding"


def _require_ints(obj: object, names: tuple[str, ...]) -> None:
    for name in names:
        val = getattr(obj, name)
        if not isinstance(val, int) or isinstance(val, bool):
            raise TypeError(f"{name} must be an int")
        if val < 0:
            raise ValueError(f"{name} must be non-negative: {val}")


@dataclass(frozen=True)
class StakePosition:
    position_id: int
    owner: str
    amount: int
    kind: StakeKind
    lock_days: int
    apy_bps: int
    start_time: int
    lock_end: int
    last_claim_time: int
    active: bool = True
    priority_tier: int = 0

    def __post_init__(self) -> None:
        _require_ints(self, (
            "position_id", "amount", "lock_days", "apy_bps", "start_time",
            "lock_end", "last_claim_time", "priority_tier",
        ))
        if not isinstance(self.kind, StakeKind):
            raise TypeError("kind must be a StakeKind")
        if self.lock_days not in ALLOWED_LOCK_DAYS:
            raise ValueError(f"lock_days not allowed: {self.lock_days}")
        if self.active and self.amount == 0:
            raise ValueError("active position must have a non-zero amount")
        if not self.active and self.amount != 0:
            raise ValueError("inactive position must have a zero amount")

    @property
    def is_fixed_term(self) -> bool:
        return self.kind is StakeKind.FIXED_TERM


@dataclass(frozen=True)
class RewardGrant:
    grant_id: int
    recipient: str
    category: RewardCategory
    total_amount: int
    policy: VestingPolicy
    grant_time: int
    vesting_duration: int
    claimed_amount: int = 0
    stage_1_unlocked: bool = False
    stage_2_unlocked: bool = False
    stage_3_unlocked: bool = False
    milestone_stage: int = 0
    status: GrantStatus = GrantStatus.ACTIVE

    def __post_init__(self) -> None:
        _require_ints(self, (
            "grant_id", "total_amount", "grant_time", "vesting_duration",
            "claimed_amount", "milestone_stage",
        ))
        if not isinstance(self.category, RewardCategory):
            raise TypeError("category must be a RewardCategory")
        if not isinstance(self.policy, VestingPolicy):
            raise TypeError("policy must be a VestingPolicy")
        if not isinstance(self.status, GrantStatus):
            raise TypeError("status must be a GrantStatus")
        if self.claimed_amount > self.total_amount:
            raise ValueError(
                f"claimed_amount exceeds total_amount: {self.claimed_amount} > {self.total_amount}"
            )

    def stage_unlocked(self, stage: int) -> bool:
        return {
            1: self.stage_1_unlocked,
            2: self.stage_2_unlocked,
            3: self.stage_3_unlocked,
        }[stage]

    @property
    def unlocked_percent(self) -> int:
        return sum(pct for stage, pct in STAGE_PERCENT.items() if self.stage_unlocked(stage))

    @property
    def unclaimed_amount(self) -> int:
        return self.total_amount - self.claimed_amount


@dataclass(frozen=True)
class MilestoneProgress:
    """Lifetime activity counters for one user. Counters never decrease."""

    user: str
    trading_volume: int = 0
    staking_days: int = 0
    votes_cast: int = 0
    vaults_created: int = 0
    vault_tvl: int = 0
    referrals_completed: int = 0
    tier_2_days: int = 0
    last_updated: int = 0

    def __post_init__(self) -> None:
        _require_ints(self, (
            "trading_volume", "staking_days", "votes_cast", "vaults_created",
            "vault_tvl", "referrals_completed", "tier_2_days", "last_updated",
        ))


@dataclass(frozen=True)
class ReferralCode:
    referrer: str
    code: str
    total_referrals: int = 0
    created_at: int = 0

    def __post_init__(self) -> None:
        _require_ints(self, ("total_referrals", "created_at"))
        if not isinstance(self.code, str) or not self.code:
            raise ValueError("code must be a non-empty string")
