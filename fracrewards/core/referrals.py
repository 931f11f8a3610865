"""Referral codes.

A code is derived, not chosen: ``REF`` + the first 12 hex digits (upper-case)
of ``sha256(domain || user || created_at)``. Each user holds at most one code.
Completing a referral is reported by a trusted reporter and counts as a
Referral activity for the referrer.
"""

from __future__ import annotations

import hashlib

from ..state.canonical import domain_sep_bytes
from ..state.ledger import LedgerState
from ..state.records import ActivityKind, ReferralCode
from .errors import ReferralCodeExists, SelfReferral, UnknownReferralCode
from .guards import require_identity, require_reporter, require_timestamp
from .milestones import fold_activity
from .types import ActionParams, Effect, Event, Transition

REFERRAL_CODE_PREFIX = "REF"
REFERRAL_CODE_HEX_DIGITS = 12
MAX_REFERRAL_CODE_LEN = 32

_CODE_DOMAIN = domain_sep_bytes("referral_code")


def derive_referral_code(user: str, created_at: int) -> str:
    digest = hashlib.sha256(
        _CODE_DOMAIN + user.encode("utf-8") + b"\x00" + created_at.to_bytes(8, "big")
    ).hexdigest()
    return REFERRAL_CODE_PREFIX + digest[:REFERRAL_CODE_HEX_DIGITS].upper()


def create_referral_code(state: LedgerState, params: ActionParams) -> Transition:
    caller = require_identity(params.caller, name="caller")
    now = require_timestamp(params.now)
    if caller in state.referrals:
        raise ReferralCodeExists(f"{caller!r} already has code {state.referrals[caller].code}")

    code = derive_referral_code(caller, now)
    if code in state.referral_index:
        raise ReferralCodeExists(f"code {code} already issued")

    referral = ReferralCode(referrer=caller, code=code, total_referrals=0, created_at=now)
    effect = Effect(event=Event.REFERRAL_CODE_CREATED, user=caller, code=code)
    return state.with_referral(referral), effect


def complete_referral(state: LedgerState, params: ActionParams) -> Transition:
    require_reporter(state, params.caller)
    now = require_timestamp(params.now)
    referee = require_identity(params.referee, name="referee")
    referrer = state.referral_index.get(params.code)
    if referrer is None:
        raise UnknownReferralCode(f"no referral code {params.code!r}")
    if referrer == referee:
        raise SelfReferral(f"{referee!r} cannot use their own referral code")

    new_state = fold_activity(state, referrer, ActivityKind.REFERRAL, 0, now)
    effect = Effect(event=Event.REFERRAL_COMPLETED, user=referrer, code=params.code)
    return new_state, effect
