"""Tests for fracrewards/core/referrals.py."""

import re

import pytest

from fracrewards.config import LedgerConfig, initial_state
from fracrewards.core.errors import ReferralCodeExists, SelfReferral, Unauthorized, UnknownReferralCode
from fracrewards.core.referrals import (
    MAX_REFERRAL_CODE_LEN,
    complete_referral,
    create_referral_code,
    derive_referral_code,
)
from fracrewards.core.types import Action, ActionParams, Event

T0 = 1_700_000_000
REPORTER = "oracle"


def _make_state():
    return initial_state(LedgerConfig(reporters=(REPORTER,)))


def _create(state, caller="alice", now=T0):
    return create_referral_code(
        state, ActionParams(action=Action.CREATE_REFERRAL_CODE, caller=caller, now=now),
    )


def _complete(state, code, referee="bob", caller=REPORTER, now=T0 + 10):
    return complete_referral(
        state,
        ActionParams(action=Action.COMPLETE_REFERRAL, caller=caller, now=now, code=code, referee=referee),
    )


class TestDeriveCode:
    def test_format(self):
        code = derive_referral_code("alice", T0)
        assert re.fullmatch(r"REF[0-9A-F]{12}", code)
        assert len(code) <= MAX_REFERRAL_CODE_LEN

    def test_deterministic(self):
        assert derive_referral_code("alice", T0) == derive_referral_code("alice", T0)

    def test_depends_on_user_and_time(self):
        assert derive_referral_code("alice", T0) != derive_referral_code("alice", T0 + 1)
        assert derive_referral_code("alice", T0) != derive_referral_code("bob", T0)


class TestCreateReferralCode:
    def test_creates_record(self):
        state, effect = _create(_make_state())
        record = state.referrals["alice"]
        assert record.code == effect.code == derive_referral_code("alice", T0)
        assert record.total_referrals == 0
        assert record.created_at == T0
        assert state.referral_index[record.code] == "alice"
        assert effect.event == Event.REFERRAL_CODE_CREATED

    def test_one_code_per_user(self):
        state, _ = _create(_make_state())
        with pytest.raises(ReferralCodeExists):
            _create(state, now=T0 + 100)


class TestCompleteReferral:
    def test_increments_both_counters(self):
        state, created = _create(_make_state())
        state, effect = _complete(state, created.code)
        state, _ = _complete(state, created.code, referee="carol")

        assert state.referrals["alice"].total_referrals == 2
        assert state.progress["alice"].referrals_completed == 2
        assert state.progress["alice"].last_updated == T0 + 10
        assert effect.event == Event.REFERRAL_COMPLETED
        assert effect.user == "alice"

    def test_unknown_code(self):
        with pytest.raises(UnknownReferralCode):
            _complete(_make_state(), "REF000000000000")

    def test_self_referral(self):
        state, created = _create(_make_state())
        with pytest.raises(SelfReferral):
            _complete(state, created.code, referee="alice")

    def test_reporter_only(self):
        state, created = _create(_make_state())
        with pytest.raises(Unauthorized):
            _complete(state, created.code, caller="bob")
