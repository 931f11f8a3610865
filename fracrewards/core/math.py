"""Checked integer arithmetic for the rewards ledger.

Every function is stateless and operates on plain Python ints. Python ints do
not wrap, so each helper checks its result against the fixed-width domain the
ledger stores (unsigned 64-bit for amounts, 32-bit for small counters, signed
64-bit for timestamps) and raises ``MathOverflow`` instead of producing a
value that the persisted record could not hold.

Rounding is always floor (Python ``//`` on non-negative operands).
"""

from __future__ import annotations

from .errors import MathOverflow

U32_MAX: int = 0xFFFF_FFFF
U64_MAX: int = 0xFFFF_FFFF_FFFF_FFFF
U128_MAX: int = (1 << 128) - 1
I64_MAX: int = 0x7FFF_FFFF_FFFF_FFFF

TOKEN_DECIMALS: int = 9
TOKEN_UNIT: int = 10**TOKEN_DECIMALS

BPS_SCALE: int = 10_000
PERCENT_SCALE: int = 100

SECONDS_PER_DAY: int = 86_400
SECONDS_PER_YEAR: int = 31_557_600  # 365.25 days


def _require_uint(value: int, bound: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"expected int, got {type(value).__name__}")
    if value < 0 or value > bound:
        raise MathOverflow(f"value out of range [0, {bound}]: {value}")
    return value


def checked_add(a: int, b: int, *, bound: int = U64_MAX) -> int:
    """``a + b``, rejecting results above *bound*."""
    _require_uint(a, bound)
    _require_uint(b, bound)
    out = a + b
    if out > bound:
        raise MathOverflow(f"addition overflow: {a} + {b} > {bound}")
    return out


def checked_sub(a: int, b: int, *, bound: int = U64_MAX) -> int:
    """``a - b``, rejecting negative results."""
    _require_uint(a, bound)
    _require_uint(b, bound)
    if b > a:
        raise MathOverflow(f"subtraction underflow: {a} - {b} < 0")
    return a - b


def checked_mul(a: int, b: int, *, bound: int = U64_MAX) -> int:
    """``a * b``, rejecting results above *bound*."""
    _require_uint(a, bound)
    _require_uint(b, bound)
    out = a * b
    if out > bound:
        raise MathOverflow(f"multiplication overflow: {a} * {b} > {bound}")
    return out


def checked_div(a: int, b: int, *, bound: int = U64_MAX) -> int:
    """``floor(a / b)``; division by zero is an arithmetic failure."""
    _require_uint(a, bound)
    _require_uint(b, bound)
    if b == 0:
        raise MathOverflow(f"division by zero: {a} / 0")
    return a // b


def mul_div(a: int, b: int, denom: int, *, bound: int = U64_MAX) -> int:
    """``floor(a * b / denom)``.

    The product is held at 128 bits; only the operands and the quotient must
    fit *bound*.
    """
    _require_uint(a, bound)
    _require_uint(b, bound)
    out = checked_div(checked_mul(a, b, bound=U128_MAX), denom, bound=U128_MAX)
    if out > bound:
        raise MathOverflow(f"mul_div overflow: {a} * {b} / {denom} > {bound}")
    return out


def elapsed_seconds(now: int, since: int) -> int:
    """Seconds from *since* to *now*; a clock running backwards is an underflow."""
    return checked_sub(now, since, bound=I64_MAX)


def add_seconds(ts: int, seconds: int) -> int:
    return checked_add(ts, seconds, bound=I64_MAX)


# -- Reward formulas -----------------------------------------------------------

def reward_rate_per_second(amount: int, apy_bps: int) -> int:
    """Per-second yield: ``floor(floor(amount * apy_bps / 10000) / SECONDS_PER_YEAR)``."""
    annual = mul_div(amount, apy_bps, BPS_SCALE)
    return checked_div(annual, SECONDS_PER_YEAR)


def accrued_rewards(amount: int, apy_bps: int, elapsed: int) -> int:
    """Yield accrued over *elapsed* seconds at the truncated per-second rate."""
    return checked_mul(reward_rate_per_second(amount, apy_bps), elapsed)


def bps_of(amount: int, bps: int) -> int:
    """``floor(amount * bps / 10000)``."""
    return mul_div(amount, bps, BPS_SCALE)


def percent_of(amount: int, pct: int) -> int:
    """``floor(amount * pct / 100)``."""
    return mul_div(amount, pct, PERCENT_SCALE)
