"""Tests for fracrewards/core/engine.py: dispatch table + step function."""

from dataclasses import replace

import pytest

from fracrewards.config import LedgerConfig, initial_state
from fracrewards.core.engine import _DISPATCH, step, step_or_raise
from fracrewards.core.errors import (
    LedgerInvariantError,
    StakeAmountTooLow,
    Unauthorized,
)
from fracrewards.core.math import TOKEN_UNIT
from fracrewards.core.types import Action, ActionParams, Event, StepResult
from fracrewards.state.records import ActivityKind, RewardCategory, StakeKind

T = TOKEN_UNIT
T0 = 1_700_000_000
ADMIN = "authority"


def _make_state():
    return initial_state(LedgerConfig(authority=ADMIN, reporters=("oracle",)))


def test_every_action_dispatched():
    assert set(_DISPATCH) == set(Action)


class TestStep:
    def test_accepted(self):
        params = ActionParams(
            action=Action.CREATE_STAKE,
            caller="alice",
            now=T0,
            amount=500 * T,
            stake_kind=StakeKind.FLEXIBLE,
        )
        r = step(_make_state(), params)
        assert isinstance(r, StepResult)
        assert r.accepted
        assert r.state is not None
        assert r.state.pool.total_staked == 500 * T
        assert r.effect.event == Event.TOKENS_STAKED

    def test_rejected_with_error_code(self):
        params = ActionParams(
            action=Action.CREATE_STAKE,
            caller="alice",
            now=T0,
            amount=1,
            stake_kind=StakeKind.FLEXIBLE,
        )
        r = step(_make_state(), params)
        assert not r.accepted
        assert r.state is None
        assert r.rejection == "StakeAmountTooLow"
        assert r.detail

    def test_invariant_violation_rejected(self):
        # A pool whose totals no longer add up fails every post-state check.
        s = _make_state()
        broken = s.with_pool(replace(s.pool, distributed_total=1))
        params = ActionParams(action=Action.RECORD_ACTIVITY, caller=ADMIN, now=T0, user="alice",
                              activity_kind=ActivityKind.VOTING)
        r = step(broken, params)
        assert not r.accepted
        assert r.rejection == "invariant:inv_pool_conservation"

    def test_sequence_keeps_pool_balanced(self):
        s = _make_state()
        actions = [
            ActionParams(action=Action.CREATE_STAKE, caller="alice", now=T0, amount=2_000 * T,
                         stake_kind=StakeKind.FIXED_TERM, lock_days=30),
            ActionParams(action=Action.GRANT_REWARD, caller=ADMIN, now=T0, recipient="bob",
                         category=RewardCategory.REFERRAL, amount=3_000 * T, vesting_duration=1_000),
            ActionParams(action=Action.CLAIM_STAKE_REWARDS, caller="alice", now=T0 + 500, position_id=1),
            ActionParams(action=Action.CLAIM_GRANT, caller="bob", now=T0 + 500, grant_id=1),
            ActionParams(action=Action.CANCEL_GRANT, caller=ADMIN, now=T0 + 600, grant_id=1),
            ActionParams(action=Action.UNSTAKE, caller="alice", now=T0 + 700, position_id=1),
        ]
        for params in actions:
            r = step(s, params)
            assert r.accepted, r.rejection
            s = r.state
            p = s.pool
            assert p.distributed_total + p.remaining_total + p.vested_pending_total == p.original_allocation
        assert s.pool.total_staked == 0
        assert s.pool.active_grants == 0


class TestStepOrRaise:
    def test_returns_result(self):
        params = ActionParams(action=Action.RECORD_ACTIVITY, caller=ADMIN, now=T0, user="alice",
                              activity_kind=ActivityKind.TRADING, amount=10)
        r = step_or_raise(_make_state(), params)
        assert r.accepted
        assert r.state.progress["alice"].trading_volume == 10

    def test_raises_named_error(self):
        params = ActionParams(action=Action.CREATE_STAKE, caller="alice", now=T0, amount=1,
                              stake_kind=StakeKind.FLEXIBLE)
        with pytest.raises(StakeAmountTooLow):
            step_or_raise(_make_state(), params)

    def test_raises_unauthorized(self):
        params = ActionParams(action=Action.UPDATE_APY_RATES, caller="alice", now=T0,
                              apy_rates=(1, 2, 3, 4, 5))
        with pytest.raises(Unauthorized):
            step_or_raise(_make_state(), params)

    def test_raises_invariant_error(self):
        s = _make_state()
        broken = s.with_pool(replace(s.pool, active_grants=3))
        params = ActionParams(action=Action.RECORD_ACTIVITY, caller=ADMIN, now=T0, user="alice",
                              activity_kind=ActivityKind.VOTING)
        with pytest.raises(LedgerInvariantError) as excinfo:
            step_or_raise(broken, params)
        assert excinfo.value.violations == ["inv_active_grant_count"]
