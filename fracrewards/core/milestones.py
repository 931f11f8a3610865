"""Lifetime activity counters and milestone stage gating.

A Milestone grant releases 10% / 30% / 60% of its total as stages 1 / 2 / 3
unlock. A stage unlocks only when all of the following hold:

- enough time has passed since the grant (1 / 2 / 3 years),
- the previous stage is already unlocked,
- the recipient's lifetime activity meets at least N of the stage criteria.

Unlocking never moves funds; the recipient claims the released share with a
separate ``claim_grant``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable

from ..state.ledger import LedgerState
from ..state.records import ActivityKind, GrantStatus, MilestoneProgress, RewardGrant, VestingPolicy
from .errors import (
    AlreadyUnlocked,
    GrantNotActive,
    InvalidActivityKind,
    InvalidStage,
    MilestonesNotMet,
    NotMilestoneVesting,
    PreviousStageLocked,
    TimeRequirementNotMet,
    Unauthorized,
)
from .guards import get_grant, require_amount, require_identity, require_reporter, require_timestamp
from .math import SECONDS_PER_DAY, TOKEN_UNIT, U32_MAX, U64_MAX, checked_add, elapsed_seconds
from .types import ActionParams, Effect, Event, Transition

STAGES: tuple[int, ...] = (1, 2, 3)

# Minimum days since grant time before stage N can unlock.
STAGE_MIN_DAYS: dict[int, int] = {1: 365, 2: 730, 3: 1095}

Criterion = Callable[[MilestoneProgress], bool]


@dataclass(frozen=True)
class StageCriteria:
    required: int
    criteria: tuple[tuple[str, Criterion], ...]


STAGE_CRITERIA: dict[int, StageCriteria] = {
    1: StageCriteria(
        required=2,
        criteria=(
            ("trading_volume", lambda p: p.trading_volume >= 10_000 * TOKEN_UNIT),
            ("staking_days", lambda p: p.staking_days >= 90),
            ("votes_cast", lambda p: p.votes_cast >= 5),
            ("referrals_completed", lambda p: p.referrals_completed >= 3),
        ),
    ),
    2: StageCriteria(
        required=3,
        criteria=(
            ("trading_volume", lambda p: p.trading_volume >= 50_000 * TOKEN_UNIT),
            ("staking_days", lambda p: p.staking_days >= 180),
            ("votes_cast", lambda p: p.votes_cast >= 15),
            ("vault", lambda p: p.vaults_created >= 1 and p.vault_tvl >= 10_000 * TOKEN_UNIT),
            ("referrals_completed", lambda p: p.referrals_completed >= 10),
        ),
    ),
    3: StageCriteria(
        required=3,
        criteria=(
            ("trading_volume", lambda p: p.trading_volume >= 200_000 * TOKEN_UNIT),
            ("staking_days", lambda p: p.staking_days >= 365),
            ("votes_cast", lambda p: p.votes_cast >= 30),
            ("vault", lambda p: p.vaults_created >= 3 and p.vault_tvl >= 50_000 * TOKEN_UNIT),
            ("referrals_completed", lambda p: p.referrals_completed >= 25),
            ("tier_2_days", lambda p: p.tier_2_days >= 180),
        ),
    ),
}


@dataclass(frozen=True)
class StageReport:
    """Which criteria of a stage a progress record meets."""

    stage: int
    met: tuple[str, ...]
    missing: tuple[str, ...]
    required: int

    @property
    def passed(self) -> bool:
        return len(self.met) >= self.required


def _require_stage(stage: object) -> int:
    if not isinstance(stage, int) or isinstance(stage, bool) or stage not in STAGES:
        raise InvalidStage(f"stage must be one of {STAGES}: {stage!r}")
    return stage


def evaluate_stage(progress: MilestoneProgress, stage: int) -> StageReport:
    table = STAGE_CRITERIA[_require_stage(stage)]
    met: list[str] = []
    missing: list[str] = []
    for name, check in table.criteria:
        (met if check(progress) else missing).append(name)
    return StageReport(stage=stage, met=tuple(met), missing=tuple(missing), required=table.required)


# -- Activity ---------------------------------------------------------------------

def apply_activity(progress: MilestoneProgress, kind: ActivityKind, amount: int, now: int) -> MilestoneProgress:
    """Return *progress* with one activity report folded in."""
    if kind is ActivityKind.TRADING:
        updates = {"trading_volume": checked_add(progress.trading_volume, amount, bound=U64_MAX)}
    elif kind is ActivityKind.STAKING:
        updates = {"staking_days": checked_add(progress.staking_days, amount, bound=U64_MAX)}
    elif kind is ActivityKind.VOTING:
        updates = {"votes_cast": checked_add(progress.votes_cast, 1, bound=U32_MAX)}
    elif kind is ActivityKind.VAULT_CREATION:
        updates = {
            "vaults_created": checked_add(progress.vaults_created, 1, bound=U32_MAX),
            "vault_tvl": checked_add(progress.vault_tvl, amount, bound=U64_MAX),
        }
    elif kind is ActivityKind.REFERRAL:
        updates = {"referrals_completed": checked_add(progress.referrals_completed, 1, bound=U32_MAX)}
    elif kind is ActivityKind.TIER_HOLDING:
        updates = {"tier_2_days": checked_add(progress.tier_2_days, amount, bound=U32_MAX)}
    else:
        raise InvalidActivityKind(f"unknown activity kind: {kind!r}")
    return replace(progress, last_updated=now, **updates)


def fold_activity(state: LedgerState, user: str, kind: ActivityKind, amount: int, now: int) -> LedgerState:
    """Apply one activity report to *state*; a referral also bumps the user's code counter."""
    new_state = state.with_progress(apply_activity(state.progress_for(user), kind, amount, now))
    if kind is ActivityKind.REFERRAL:
        referral = state.referrals.get(user)
        if referral is not None:
            bumped = replace(
                referral,
                total_referrals=checked_add(referral.total_referrals, 1, bound=U32_MAX),
            )
            new_state = new_state.with_referral(bumped)
    return new_state


def record_activity(state: LedgerState, params: ActionParams) -> Transition:
    require_reporter(state, params.caller)
    now = require_timestamp(params.now)
    user = require_identity(params.user, name="user")
    if not isinstance(params.activity_kind, ActivityKind):
        raise InvalidActivityKind(f"unknown activity kind: {params.activity_kind!r}")
    amount = require_amount(params.amount, allow_zero=True)

    new_state = fold_activity(state, user, params.activity_kind, amount, now)
    effect = Effect(event=Event.ACTIVITY_RECORDED, user=user, amount=amount)
    return new_state, effect


# -- Stage unlock -----------------------------------------------------------------

def check_stage_unlock(
    state: LedgerState,
    grant: RewardGrant,
    stage: int,
    now: int,
    caller: str | None = None,
) -> StageReport:
    """Raise the first failing gate for unlocking *stage* of *grant*, else return the report.

    Pass *caller* to also require that the recipient is the one unlocking.
    """
    if grant.policy is not VestingPolicy.MILESTONE:
        raise NotMilestoneVesting(f"grant {grant.grant_id} uses {grant.policy.value} vesting")
    if grant.status is not GrantStatus.ACTIVE:
        raise GrantNotActive(f"grant {grant.grant_id} is {grant.status.value}")
    if caller is not None and grant.recipient != caller:
        raise Unauthorized(f"grant {grant.grant_id} is not addressed to {caller!r}")
    if grant.stage_unlocked(stage):
        raise AlreadyUnlocked(f"stage {stage} of grant {grant.grant_id} already unlocked")

    required_seconds = STAGE_MIN_DAYS[stage] * SECONDS_PER_DAY
    if elapsed_seconds(now, grant.grant_time) < required_seconds:
        raise TimeRequirementNotMet(f"stage {stage} needs {STAGE_MIN_DAYS[stage]} days since grant")
    if stage > 1 and not grant.stage_unlocked(stage - 1):
        raise PreviousStageLocked(f"stage {stage - 1} must be unlocked before stage {stage}")

    report = evaluate_stage(state.progress_for(grant.recipient), stage)
    if not report.passed:
        raise MilestonesNotMet(
            f"stage {stage} needs {report.required} criteria, met {len(report.met)}: {list(report.met)}"
        )
    return report


def unlock_milestone_stage(state: LedgerState, params: ActionParams) -> Transition:
    caller = require_identity(params.caller, name="caller")
    now = require_timestamp(params.now)
    stage = _require_stage(params.stage)
    grant = get_grant(state, params.grant_id)
    check_stage_unlock(state, grant, stage, now, caller=caller)

    new_grant = replace(
        grant,
        milestone_stage=max(grant.milestone_stage, stage),
        **{f"stage_{stage}_unlocked": True},
    )
    effect = Effect(
        event=Event.MILESTONE_STAGE_UNLOCKED,
        grant_id=grant.grant_id,
        user=grant.recipient,
        stage=stage,
        policy=grant.policy,
    )
    return state.with_grant(new_grant), effect
