"""Tests for fracrewards/core/math.py: checked arithmetic and reward formulas."""

import pytest

from fracrewards.core.errors import MathOverflow
from fracrewards.core.math import (
    I64_MAX,
    SECONDS_PER_YEAR,
    TOKEN_UNIT,
    U32_MAX,
    U64_MAX,
    accrued_rewards,
    add_seconds,
    bps_of,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    elapsed_seconds,
    mul_div,
    percent_of,
    reward_rate_per_second,
)

T = TOKEN_UNIT


class TestCheckedOps:
    def test_add_at_bound(self):
        assert checked_add(U64_MAX - 1, 1) == U64_MAX
        with pytest.raises(MathOverflow):
            checked_add(U64_MAX, 1)

    def test_add_u32_bound(self):
        assert checked_add(U32_MAX - 5, 5, bound=U32_MAX) == U32_MAX
        with pytest.raises(MathOverflow):
            checked_add(U32_MAX, 1, bound=U32_MAX)

    def test_sub_underflow(self):
        assert checked_sub(5, 5) == 0
        with pytest.raises(MathOverflow):
            checked_sub(4, 5)

    def test_mul_overflow(self):
        assert checked_mul(2**32, 2**31) == 2**63
        with pytest.raises(MathOverflow):
            checked_mul(2**32, 2**32)

    def test_div_floor(self):
        assert checked_div(7, 2) == 3

    def test_div_by_zero(self):
        with pytest.raises(MathOverflow):
            checked_div(1, 0)

    def test_operand_out_of_range(self):
        with pytest.raises(MathOverflow):
            checked_add(U64_MAX + 1, 0)
        with pytest.raises(MathOverflow):
            checked_sub(0, -1)

    def test_bool_operand_rejected(self):
        with pytest.raises(TypeError):
            checked_add(True, 1)


class TestMulDiv:
    def test_floor(self):
        assert mul_div(10, 3, 4) == 7
        assert mul_div(1, 1, 3) == 0

    def test_wide_intermediate_product(self):
        # 9999 tokens * 30 days of seconds exceeds u64 before the division
        amount = 9_999 * T
        elapsed = 30 * 86_400
        assert amount * elapsed > U64_MAX
        assert mul_div(amount, elapsed, 365 * 86_400) == amount * elapsed // (365 * 86_400)

    def test_operands_at_u64_max(self):
        assert mul_div(U64_MAX, U64_MAX, U64_MAX) == U64_MAX

    def test_quotient_overflow(self):
        with pytest.raises(MathOverflow):
            mul_div(U64_MAX, 2, 1)

    def test_zero_denominator(self):
        with pytest.raises(MathOverflow):
            mul_div(1, 1, 0)

    def test_bps_and_percent(self):
        assert bps_of(1_000 * T, 1_000) == 100 * T
        assert bps_of(9_999, 1) == 0
        assert percent_of(20_000 * T, 25) == 5_000 * T


class TestTime:
    def test_elapsed(self):
        assert elapsed_seconds(150, 100) == 50

    def test_clock_backwards(self):
        with pytest.raises(MathOverflow):
            elapsed_seconds(99, 100)

    def test_add_seconds_bound(self):
        assert add_seconds(I64_MAX - 1, 1) == I64_MAX
        with pytest.raises(MathOverflow):
            add_seconds(I64_MAX, 1)


class TestRewardFormulas:
    def test_rate_truncated_twice(self):
        assert reward_rate_per_second(1_000 * T, 500) == 1_000 * T * 500 // 10_000 // SECONDS_PER_YEAR

    def test_large_stake_rate(self):
        amount = 20_000_000 * T
        assert amount * 1_600 > U64_MAX
        assert reward_rate_per_second(amount, 1_600) == amount * 1_600 // 10_000 // SECONDS_PER_YEAR

    def test_accrual_is_rate_times_elapsed(self):
        rate = reward_rate_per_second(1_000 * T, 500)
        assert accrued_rewards(1_000 * T, 500, 86_400) == rate * 86_400

    def test_accrual_overflow(self):
        with pytest.raises(MathOverflow):
            accrued_rewards(U64_MAX, 10_000, I64_MAX)
