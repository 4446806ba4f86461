"""
supernova_pool/staking_runtime/bonus.py
---------------------------------------

Dimensionless reward multipliers, all in 18-decimal fixed point where
SCALE (10**18) means 1.0.

Time bonus
~~~~~~~~~~
Rewards holding tokens staked. Starts at 1 + bonus_min for a brand new
stake and grows linearly to 1 + bonus_max once the stake is
`bonus_period` seconds old.

Polar bonus
~~~~~~~~~~~
Rewards spending the auxiliary (polar) token at unstake time:

    1 + log10((amount + 0.01) / (ratio + 0.01))

where `ratio` is the share of all distributed rewards that went out with
a polar boost. The boost is worth more while few people use it and
flattens as usage saturates. The logarithm is computed in 64.64 fixed
point so results are reproducible bit for bit.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ValidationError
from .fixed_point import (
    DECIMALS,
    SCALE,
    checked_add,
    checked_sub,
    from_64x64,
    log10_64x64,
    mul_div,
    to_64x64,
)

# 0.01 in bonus fixed point
POLAR_BUFFER: int = 10 ** (DECIMALS - 2)


@dataclass(frozen=True)
class TimeBonusCurve:
    bonus_min: int
    bonus_max: int
    bonus_period: int

    def __post_init__(self) -> None:
        if self.bonus_min < 0 or self.bonus_max < 0 or self.bonus_period < 0:
            raise ValidationError("bonus parameters must be non-negative")
        if self.bonus_min > self.bonus_max:
            raise ValidationError("initial time bonus greater than max")

    def __call__(self, age: int) -> int:
        return time_bonus(age, self.bonus_min, self.bonus_max, self.bonus_period)


def time_bonus(age: int, bonus_min: int, bonus_max: int, bonus_period: int) -> int:
    if age >= bonus_period:
        return checked_add(SCALE, bonus_max)
    bonus = checked_add(
        bonus_min, mul_div(checked_sub(bonus_max, bonus_min), age, bonus_period)
    )
    return checked_add(SCALE, bonus)


def polar_ratio(total_polar_rewards: int, total_rewards: int) -> int:
    """Fraction of distributed rewards that were polar-boosted (fixed point)."""
    if total_rewards == 0:
        return 0
    return mul_div(total_polar_rewards, SCALE, total_rewards)


def polar_bonus(amount: int, total_polar_rewards: int, total_rewards: int) -> int:
    if amount == 0:
        return SCALE
    if amount < SCALE:
        raise ValidationError("polar amount is between 0 and 1")

    r = checked_add(polar_ratio(total_polar_rewards, total_rewards), POLAR_BUFFER)
    x = checked_add(amount, POLAR_BUFFER)
    # ratio <= 1.0 and amount >= 1.0, so x / r >= 1 and the log is never negative
    return checked_add(SCALE, from_64x64(log10_64x64(to_64x64(x, r))))
