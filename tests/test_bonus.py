# tests/test_bonus.py

import math

import pytest

from conftest import BONUS_MAX, BONUS_MIN, BONUS_PERIOD
from supernova_pool.staking_runtime.bonus import (
    TimeBonusCurve,
    polar_bonus,
    polar_ratio,
    time_bonus,
)
from supernova_pool.staking_runtime.errors import ValidationError
from supernova_pool.staking_runtime.fixed_point import SCALE


@pytest.fixture
def curve():
    return TimeBonusCurve(BONUS_MIN, BONUS_MAX, BONUS_PERIOD)


def test_time_bonus_bounds(curve):
    assert curve(0) == SCALE + BONUS_MIN
    assert curve(BONUS_PERIOD) == SCALE + BONUS_MAX
    assert curve(BONUS_PERIOD * 10) == SCALE + BONUS_MAX


def test_time_bonus_linear_midpoint(curve):
    # 1 + 0.33 + 0.67 / 2
    assert curve(BONUS_PERIOD // 2) == 1_665 * 10**15


def test_time_bonus_monotonic(curve):
    ages = range(0, BONUS_PERIOD + 5000, 997)
    values = [curve(a) for a in ages]
    assert values == sorted(values)


def test_time_bonus_zero_period_is_always_max():
    assert time_bonus(0, BONUS_MIN, BONUS_MAX, 0) == SCALE + BONUS_MAX


def test_time_bonus_rejects_min_above_max():
    with pytest.raises(ValidationError):
        TimeBonusCurve(BONUS_MAX + 1, BONUS_MAX, BONUS_PERIOD)


def test_polar_bonus_no_spend_is_neutral():
    assert polar_bonus(0, 0, 0) == SCALE
    assert polar_bonus(0, 50, 100) == SCALE


def test_polar_bonus_rejects_fractions():
    with pytest.raises(ValidationError):
        polar_bonus(SCALE - 1, 0, 0)


def test_polar_bonus_with_no_history():
    """ratio = 0 -> 1 + log10(1.01 / 0.01) = 1 + log10(101)."""
    got = polar_bonus(SCALE, 0, 0) / SCALE
    assert math.isclose(got, 1 + math.log10(101), rel_tol=1e-12)


def test_polar_bonus_diminishes_with_usage():
    low = polar_bonus(SCALE, 10, 100)
    high = polar_bonus(SCALE, 90, 100)
    assert low > high > SCALE


def test_polar_bonus_saturated_usage_is_neutral():
    # ratio = 1.0, x = 1.01, r = 1.01 -> log10(1) = 0
    assert polar_bonus(SCALE, 5, 5) == SCALE


def test_polar_bonus_grows_with_amount():
    assert polar_bonus(10 * SCALE, 0, 0) > polar_bonus(2 * SCALE, 0, 0) > polar_bonus(SCALE, 0, 0)


def test_polar_ratio():
    assert polar_ratio(0, 0) == 0
    assert polar_ratio(1, 4) == SCALE // 4
