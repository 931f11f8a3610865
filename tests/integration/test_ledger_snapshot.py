from __future__ import annotations

import copy
import json

import pytest

from fracrewards.config import LedgerConfig, initial_state
from fracrewards.core.engine import step_or_raise
from fracrewards.core.errors import LedgerInvariantError
from fracrewards.core.math import TOKEN_UNIT
from fracrewards.core.types import Action, ActionParams
from fracrewards.integration.snapshot import snapshot_from_state, state_from_snapshot
from fracrewards.state.records import ActivityKind, RewardCategory, StakeKind

T = TOKEN_UNIT
T0 = 1_700_000_000
ADMIN = "authority"


def _populated_state():
    state = initial_state(LedgerConfig(authority=ADMIN, reporters=("oracle",)))
    for params in (
        ActionParams(action=Action.CREATE_STAKE, caller="alice", now=T0, amount=2_000 * T,
                     stake_kind=StakeKind.FIXED_TERM, lock_days=180),
        ActionParams(action=Action.GRANT_REWARD, caller=ADMIN, now=T0, recipient="bob",
                     category=RewardCategory.TESTER_AIRDROP, amount=20_000 * T),
        ActionParams(action=Action.RECORD_ACTIVITY, caller="oracle", now=T0, user="bob",
                     activity_kind=ActivityKind.VAULT_CREATION, amount=11_000 * T),
        ActionParams(action=Action.CREATE_REFERRAL_CODE, caller="bob", now=T0),
    ):
        state = step_or_raise(state, params).state
    return state


def test_snapshot_roundtrip() -> None:
    state = _populated_state()
    snap = snapshot_from_state(state)
    # The data must survive a trip through real JSON text.
    data = json.loads(snap.canonical_bytes().decode("utf-8"))
    assert state_from_snapshot(data, expected_commitment=snap.commitment_hex()) == state


def test_snapshot_commitment_is_deterministic() -> None:
    a = snapshot_from_state(_populated_state())
    b = snapshot_from_state(_populated_state())
    assert a.canonical_bytes() == b.canonical_bytes()
    assert a.commitment_hex() == b.commitment_hex()
    assert a.commitment_hex().startswith("0x")
    assert len(a.commitment_bytes()) == 32


def test_commitment_mismatch_rejected() -> None:
    snap = snapshot_from_state(_populated_state())
    data = copy.deepcopy(snap.data)
    data["positions"][0]["apy_bps"] = 9_999
    with pytest.raises(ValueError):
        state_from_snapshot(data, expected_commitment=snap.commitment_hex())


def test_inconsistent_totals_rejected() -> None:
    data = copy.deepcopy(snapshot_from_state(_populated_state()).data)
    data["pool"]["distributed_total"] = 5
    with pytest.raises(LedgerInvariantError) as excinfo:
        state_from_snapshot(data)
    assert "inv_pool_conservation" in excinfo.value.violations


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d["pool"].update(early_unstake_penalty_bps=10_001),
        lambda d: d["pool"]["apy_rates"].__setitem__(4, 20_000),
        lambda d: d["positions"][0].update(apy_bps=10_001),
    ],
)
def test_rates_above_bps_scale_rejected(mutate) -> None:
    data = copy.deepcopy(snapshot_from_state(_populated_state()).data)
    mutate(data)
    with pytest.raises(LedgerInvariantError) as excinfo:
        state_from_snapshot(data)
    assert excinfo.value.violations == ["inv_rates_within_bps_scale"]


@pytest.mark.parametrize(
    "mutate, exc",
    [
        (lambda d: d.update(version=2), ValueError),
        (lambda d: d.update(positions={}), TypeError),
        (lambda d: d["grants"][0].update(policy="weekly"), ValueError),
        (lambda d: d["positions"][0].update(amount=-1), ValueError),
        (lambda d: d["positions"][0].update(active="yes"), TypeError),
        (lambda d: d["pool"].update(apy_rates=[1, 2]), ValueError),
        (lambda d: d.update(grants=d["grants"] * 2), ValueError),
    ],
)
def test_malformed_snapshot_rejected(mutate, exc) -> None:
    data = copy.deepcopy(snapshot_from_state(_populated_state()).data)
    mutate(data)
    with pytest.raises(exc):
        state_from_snapshot(data)
