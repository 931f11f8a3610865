"""Aggregate ledger state.

``LedgerState`` is the single value threaded through every transition. The
mappings are treated as immutable: transitions copy the mapping they change
(``with_position`` etc.) and leave the previous state intact, which is what
lets the shell discard a rejected step with no partial effect.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping

from .pool import PoolState
from .records import MilestoneProgress, ReferralCode, RewardGrant, StakePosition


@dataclass(frozen=True)
class LedgerState:
    pool: PoolState
    positions: Mapping[int, StakePosition] = field(default_factory=dict)
    grants: Mapping[int, RewardGrant] = field(default_factory=dict)
    progress: Mapping[str, MilestoneProgress] = field(default_factory=dict)
    referrals: Mapping[str, ReferralCode] = field(default_factory=dict)
    # referral code -> referrer
    referral_index: Mapping[str, str] = field(default_factory=dict)
    next_position_id: int = 1
    next_grant_id: int = 1

    def with_pool(self, pool: PoolState) -> "LedgerState":
        return replace(self, pool=pool)

    def with_position(self, position: StakePosition) -> "LedgerState":
        positions = dict(self.positions)
        positions[position.position_id] = position
        return replace(self, positions=positions)

    def with_grant(self, grant: RewardGrant) -> "LedgerState":
        grants = dict(self.grants)
        grants[grant.grant_id] = grant
        return replace(self, grants=grants)

    def with_progress(self, progress: MilestoneProgress) -> "LedgerState":
        records = dict(self.progress)
        records[progress.user] = progress
        return replace(self, progress=records)

    def with_referral(self, referral: ReferralCode) -> "LedgerState":
        referrals = dict(self.referrals)
        referrals[referral.referrer] = referral
        index = dict(self.referral_index)
        index[referral.code] = referral.referrer
        return replace(self, referrals=referrals, referral_index=index)

    def progress_for(self, user: str) -> MilestoneProgress:
        """Progress record for *user*, or an all-zero record if none exists yet."""
        return self.progress.get(user) or MilestoneProgress(user=user)

    def positions_of(self, owner: str) -> list[StakePosition]:
        return sorted(
            (p for p in self.positions.values() if p.owner == owner),
            key=lambda p: p.position_id,
        )

    def grants_of(self, recipient: str) -> list[RewardGrant]:
        return sorted(
            (g for g in self.grants.values() if g.recipient == recipient),
            key=lambda g: g.grant_id,
        )
