"""
Core reward-distribution kernels: pure, integer-only transitions over ``LedgerState``.

Public API:
- `step(state, params) -> StepResult`
- `step_or_raise(state, params) -> StepResult` (raises on rejection)
- `resolve_tier` / `get_priority_tier` / `claimable_amount` read-only queries
"""

from .engine import step, step_or_raise
from .errors import ERROR_BY_CODE, LedgerInvariantError, RewardsError
from .invariants import INVARIANT_REGISTRY, check_all
from .milestones import StageReport, evaluate_stage
from .staking import preview_stake_rewards
from .tiers import PRIORITY_TIER_THRESHOLDS, get_priority_tier, next_tier_gap, resolve_tier, validate_thresholds
from .types import Action, ActionParams, Effect, Event, StepResult, Transfer
from .vesting import claimable_amount, select_policy, vested_amount

__all__ = [
    "step",
    "step_or_raise",
    "ERROR_BY_CODE",
    "LedgerInvariantError",
    "RewardsError",
    "INVARIANT_REGISTRY",
    "check_all",
    "StageReport",
    "evaluate_stage",
    "preview_stake_rewards",
    "PRIORITY_TIER_THRESHOLDS",
    "get_priority_tier",
    "next_tier_gap",
    "resolve_tier",
    "validate_thresholds",
    "Action",
    "ActionParams",
    "Effect",
    "Event",
    "StepResult",
    "Transfer",
    "claimable_amount",
    "select_policy",
    "vested_amount",
]
