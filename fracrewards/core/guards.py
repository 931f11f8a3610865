"""Shared guard helpers.

Each helper raises the named ``RewardsError`` when its condition fails and
returns the validated value otherwise. Guards run before any new record is
built, so a failed guard never leaves a partially-updated state behind.
"""

from __future__ import annotations

from ..state.ledger import LedgerState
from ..state.records import RewardGrant, StakePosition
from .errors import InvalidAmount, InvalidIdentity, Unauthorized, UnknownGrant, UnknownPosition
from .math import I64_MAX, U64_MAX

MAX_IDENTITY_LEN: int = 128


def require_identity(value: object, *, name: str = "identity") -> str:
    if not isinstance(value, str) or not value:
        raise InvalidIdentity(f"{name} must be a non-empty string")
    if len(value) > MAX_IDENTITY_LEN:
        raise InvalidIdentity(f"{name} longer than {MAX_IDENTITY_LEN} characters")
    return value


def require_amount(value: object, *, name: str = "amount", allow_zero: bool = False) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidAmount(f"{name} must be an int")
    if value < 0 or value > U64_MAX:
        raise InvalidAmount(f"{name} out of range: {value}")
    if value == 0 and not allow_zero:
        raise InvalidAmount(f"{name} must be positive")
    return value


def require_timestamp(value: object) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not (0 <= value <= I64_MAX):
        raise InvalidAmount(f"timestamp out of range: {value!r}")
    return value


def require_authority(state: LedgerState, caller: str) -> None:
    if caller != state.pool.authority:
        raise Unauthorized(f"{caller!r} is not the ledger authority")


def require_reporter(state: LedgerState, caller: str) -> None:
    if not state.pool.is_reporter(caller):
        raise Unauthorized(f"{caller!r} may not report activity")


def get_position(state: LedgerState, position_id: int) -> StakePosition:
    position = state.positions.get(position_id)
    if position is None:
        raise UnknownPosition(f"no stake position {position_id}")
    return position


def get_owned_position(state: LedgerState, position_id: int, caller: str) -> StakePosition:
    position = get_position(state, position_id)
    if position.owner != caller:
        raise Unauthorized(f"position {position_id} is not owned by {caller!r}")
    return position


def get_grant(state: LedgerState, grant_id: int) -> RewardGrant:
    grant = state.grants.get(grant_id)
    if grant is None:
        raise UnknownGrant(f"no reward grant {grant_id}")
    return grant


def get_recipient_grant(state: LedgerState, grant_id: int, caller: str) -> RewardGrant:
    grant = get_grant(state, grant_id)
    if grant.recipient != caller:
        raise Unauthorized(f"grant {grant_id} is not addressed to {caller!r}")
    return grant
