"""
Ledger state snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / persistence.
- Round-trippable into ``LedgerState``.
- Explicit versioning so the persisted layout can evolve.

One entry per stake position, reward grant, progress record (by user) and
referral code (by referrer), plus the singleton pool record. Loading
validates every field and re-runs the ledger invariants.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from ..core.errors import LedgerInvariantError
from ..core.invariants import check_all
from ..core.referrals import MAX_REFERRAL_CODE_LEN
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.ledger import LedgerState
from ..state.pool import PoolState
from ..state.records import (
    ALLOWED_LOCK_DAYS,
    GrantStatus,
    MilestoneProgress,
    ReferralCode,
    RewardCategory,
    RewardGrant,
    StakeKind,
    StakePosition,
    VestingPolicy,
)

LEDGER_SNAPSHOT_VERSION = 1


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 512) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if non_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool")
    return value


def _require_list(snapshot: Mapping[str, Any], key: str, *, max_items: int) -> List[Any]:
    entries = snapshot.get(key)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise TypeError(f"snapshot.{key} must be a list")
    if len(entries) > max_items:
        raise ValueError(f"too many {key} entries: {len(entries)} > {max_items}")
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise TypeError(f"snapshot.{key} entries must be objects")
    return entries


def _require_enum(enum_cls: Any, value: Any, *, name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValueError(f"invalid {name}: {value!r}") from exc


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Deterministic, versioned snapshot of ``LedgerState``.

    The commitment is *not* included inside ``data`` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def _commitment_payload(self) -> bytes:
        return domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()

    def commitment_bytes(self) -> bytes:
        return hashlib.sha256(self._commitment_payload()).digest()

    def commitment_hex(self) -> str:
        return sha256_hex(self._commitment_payload())


def _pool_to_dict(pool: PoolState) -> Dict[str, Any]:
    return {
        "authority": pool.authority,
        "original_allocation": pool.original_allocation,
        "remaining_total": pool.remaining_total,
        "distributed_total": pool.distributed_total,
        "vested_pending_total": pool.vested_pending_total,
        "total_staked": pool.total_staked,
        "active_grants": pool.active_grants,
        # JSON object keys must be strings; keep the rate table positional.
        "apy_rates": [pool.apy_rates[d] for d in ALLOWED_LOCK_DAYS],
        "priority_thresholds": list(pool.priority_thresholds),
        "small_reward_threshold": pool.small_reward_threshold,
        "medium_reward_threshold": pool.medium_reward_threshold,
        "min_stake": pool.min_stake,
        "early_unstake_penalty_bps": pool.early_unstake_penalty_bps,
        "staking_vault": pool.staking_vault,
        "rewards_reserve": pool.rewards_reserve,
        "treasury": pool.treasury,
        "reporters": sorted(pool.reporters),
        "last_updated": pool.last_updated,
    }


def snapshot_from_state(state: LedgerState, *, version: int = LEDGER_SNAPSHOT_VERSION) -> LedgerSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    positions = [
        {
            "position_id": p.position_id,
            "owner": p.owner,
            "amount": p.amount,
            "kind": p.kind.value,
            "lock_days": p.lock_days,
            "apy_bps": p.apy_bps,
            "start_time": p.start_time,
            "lock_end": p.lock_end,
            "last_claim_time": p.last_claim_time,
            "active": p.active,
            "priority_tier": p.priority_tier,
        }
        for p in state.positions.values()
    ]
    positions.sort(key=lambda e: e["position_id"])

    grants = [
        {
            "grant_id": g.grant_id,
            "recipient": g.recipient,
            "category": g.category.value,
            "total_amount": g.total_amount,
            "policy": g.policy.value,
            "grant_time": g.grant_time,
            "vesting_duration": g.vesting_duration,
            "claimed_amount": g.claimed_amount,
            "stage_1_unlocked": g.stage_1_unlocked,
            "stage_2_unlocked": g.stage_2_unlocked,
            "stage_3_unlocked": g.stage_3_unlocked,
            "milestone_stage": g.milestone_stage,
            "status": g.status.value,
        }
        for g in state.grants.values()
    ]
    grants.sort(key=lambda e: e["grant_id"])

    progress = [
        {
            "user": m.user,
            "trading_volume": m.trading_volume,
            "staking_days": m.staking_days,
            "votes_cast": m.votes_cast,
            "vaults_created": m.vaults_created,
            "vault_tvl": m.vault_tvl,
            "referrals_completed": m.referrals_completed,
            "tier_2_days": m.tier_2_days,
            "last_updated": m.last_updated,
        }
        for m in state.progress.values()
    ]
    progress.sort(key=lambda e: e["user"])

    referrals = [
        {
            "referrer": r.referrer,
            "code": r.code,
            "total_referrals": r.total_referrals,
            "created_at": r.created_at,
        }
        for r in state.referrals.values()
    ]
    referrals.sort(key=lambda e: e["referrer"])

    data: Dict[str, Any] = {
        "version": int(version),
        "pool": _pool_to_dict(state.pool),
        "positions": positions,
        "grants": grants,
        "progress": progress,
        "referrals": referrals,
        "next_position_id": state.next_position_id,
        "next_grant_id": state.next_grant_id,
    }
    return LedgerSnapshot(version=version, data=data)


def _pool_from_dict(obj: Mapping[str, Any]) -> PoolState:
    rates = obj.get("apy_rates")
    if not isinstance(rates, list) or len(rates) != len(ALLOWED_LOCK_DAYS):
        raise ValueError(f"pool.apy_rates must list {len(ALLOWED_LOCK_DAYS)} rates")
    thresholds = obj.get("priority_thresholds")
    if not isinstance(thresholds, list):
        raise TypeError("pool.priority_thresholds must be a list")
    reporters = obj.get("reporters", [])
    if not isinstance(reporters, list):
        raise TypeError("pool.reporters must be a list")

    return PoolState(
        authority=_require_str(obj.get("authority"), name="pool.authority"),
        original_allocation=_require_int(obj.get("original_allocation"), name="pool.original_allocation"),
        remaining_total=_require_int(obj.get("remaining_total"), name="pool.remaining_total"),
        distributed_total=_require_int(obj.get("distributed_total", 0), name="pool.distributed_total"),
        vested_pending_total=_require_int(obj.get("vested_pending_total", 0), name="pool.vested_pending_total"),
        total_staked=_require_int(obj.get("total_staked", 0), name="pool.total_staked"),
        active_grants=_require_int(obj.get("active_grants", 0), name="pool.active_grants"),
        apy_rates={
            d: _require_int(r, name=f"pool.apy_rates[{d}]") for d, r in zip(ALLOWED_LOCK_DAYS, rates)
        },
        priority_thresholds=tuple(_require_int(t, name="pool.priority_thresholds[]") for t in thresholds),
        small_reward_threshold=_require_int(obj.get("small_reward_threshold"), name="pool.small_reward_threshold"),
        medium_reward_threshold=_require_int(obj.get("medium_reward_threshold"), name="pool.medium_reward_threshold"),
        min_stake=_require_int(obj.get("min_stake"), name="pool.min_stake"),
        early_unstake_penalty_bps=_require_int(
            obj.get("early_unstake_penalty_bps"), name="pool.early_unstake_penalty_bps",
        ),
        staking_vault=_require_str(obj.get("staking_vault"), name="pool.staking_vault"),
        rewards_reserve=_require_str(obj.get("rewards_reserve"), name="pool.rewards_reserve"),
        treasury=_require_str(obj.get("treasury"), name="pool.treasury"),
        reporters=frozenset(_require_str(r, name="pool.reporters[]") for r in reporters),
        last_updated=_require_int(obj.get("last_updated", 0), name="pool.last_updated"),
    )


def state_from_snapshot(
    snapshot: Mapping[str, Any],
    *,
    expected_commitment: str | None = None,
    max_entries: int = 200_000,
) -> LedgerState:
    """Rebuild a ``LedgerState`` from ``LedgerSnapshot.data``.

    Raises TypeError / ValueError for malformed fields and
    ``LedgerInvariantError`` when the restored state is inconsistent.
    """
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")
    if not isinstance(max_entries, int) or isinstance(max_entries, bool) or max_entries <= 0:
        raise ValueError("max_entries must be a positive int")

    version = snapshot.get("version", LEDGER_SNAPSHOT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("snapshot.version must be a positive int")
    if version != LEDGER_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    if expected_commitment is not None:
        actual = LedgerSnapshot(version=version, data=dict(snapshot)).commitment_hex()
        if actual != expected_commitment:
            raise ValueError(f"snapshot commitment mismatch: {actual} != {expected_commitment}")

    pool_obj = snapshot.get("pool")
    if not isinstance(pool_obj, Mapping):
        raise ValueError("snapshot.pool is required")
    pool = _pool_from_dict(pool_obj)

    positions: Dict[int, StakePosition] = {}
    for entry in _require_list(snapshot, "positions", max_items=max_entries):
        position_id = _require_int(entry.get("position_id"), name="position.position_id")
        if position_id in positions:
            raise ValueError(f"duplicate position entry: {position_id}")
        positions[position_id] = StakePosition(
            position_id=position_id,
            owner=_require_str(entry.get("owner"), name="position.owner"),
            amount=_require_int(entry.get("amount"), name="position.amount"),
            kind=_require_enum(StakeKind, entry.get("kind"), name="position.kind"),
            lock_days=_require_int(entry.get("lock_days"), name="position.lock_days"),
            apy_bps=_require_int(entry.get("apy_bps"), name="position.apy_bps"),
            start_time=_require_int(entry.get("start_time"), name="position.start_time"),
            lock_end=_require_int(entry.get("lock_end"), name="position.lock_end"),
            last_claim_time=_require_int(entry.get("last_claim_time"), name="position.last_claim_time"),
            active=_require_bool(entry.get("active"), name="position.active"),
            priority_tier=_require_int(entry.get("priority_tier", 0), name="position.priority_tier"),
        )

    grants: Dict[int, RewardGrant] = {}
    for entry in _require_list(snapshot, "grants", max_items=max_entries):
        grant_id = _require_int(entry.get("grant_id"), name="grant.grant_id")
        if grant_id in grants:
            raise ValueError(f"duplicate grant entry: {grant_id}")
        grants[grant_id] = RewardGrant(
            grant_id=grant_id,
            recipient=_require_str(entry.get("recipient"), name="grant.recipient"),
            category=_require_enum(RewardCategory, entry.get("category"), name="grant.category"),
            total_amount=_require_int(entry.get("total_amount"), name="grant.total_amount"),
            policy=_require_enum(VestingPolicy, entry.get("policy"), name="grant.policy"),
            grant_time=_require_int(entry.get("grant_time"), name="grant.grant_time"),
            vesting_duration=_require_int(entry.get("vesting_duration"), name="grant.vesting_duration"),
            claimed_amount=_require_int(entry.get("claimed_amount", 0), name="grant.claimed_amount"),
            stage_1_unlocked=_require_bool(entry.get("stage_1_unlocked", False), name="grant.stage_1_unlocked"),
            stage_2_unlocked=_require_bool(entry.get("stage_2_unlocked", False), name="grant.stage_2_unlocked"),
            stage_3_unlocked=_require_bool(entry.get("stage_3_unlocked", False), name="grant.stage_3_unlocked"),
            milestone_stage=_require_int(entry.get("milestone_stage", 0), name="grant.milestone_stage"),
            status=_require_enum(GrantStatus, entry.get("status"), name="grant.status"),
        )

    progress: Dict[str, MilestoneProgress] = {}
    for entry in _require_list(snapshot, "progress", max_items=max_entries):
        user = _require_str(entry.get("user"), name="progress.user")
        if user in progress:
            raise ValueError(f"duplicate progress entry: {user}")
        progress[user] = MilestoneProgress(
            user=user,
            **{
                field: _require_int(entry.get(field, 0), name=f"progress.{field}")
                for field in (
                    "trading_volume", "staking_days", "votes_cast", "vaults_created",
                    "vault_tvl", "referrals_completed", "tier_2_days", "last_updated",
                )
            },
        )

    state = LedgerState(
        pool=pool,
        positions=positions,
        grants=grants,
        progress=progress,
        next_position_id=_require_int(snapshot.get("next_position_id", 1), name="next_position_id"),
        next_grant_id=_require_int(snapshot.get("next_grant_id", 1), name="next_grant_id"),
    )
    for entry in _require_list(snapshot, "referrals", max_items=max_entries):
        referrer = _require_str(entry.get("referrer"), name="referral.referrer")
        code = _require_str(entry.get("code"), name="referral.code", max_len=MAX_REFERRAL_CODE_LEN)
        if referrer in state.referrals or code in state.referral_index:
            raise ValueError(f"duplicate referral entry: {referrer} / {code}")
        state = state.with_referral(
            ReferralCode(
                referrer=referrer,
                code=code,
                total_referrals=_require_int(entry.get("total_referrals", 0), name="referral.total_referrals"),
                created_at=_require_int(entry.get("created_at", 0), name="referral.created_at"),
            )
        )

    violations = check_all(state)
    if violations:
        raise LedgerInvariantError(violations)
    return state
