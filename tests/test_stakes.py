# tests/test_stakes.py

import pytest

from supernova_pool.staking_runtime.errors import InsufficientShares
from supernova_pool.staking_runtime.fixed_point import SCALE
from supernova_pool.staking_runtime.stakes import Stake, StakeLedger


def flat(age):
    return SCALE


def double(age):
    return 2 * SCALE


@pytest.fixture
def ledger():
    """alice: 100 shares at t=0, 50 shares at t=10, accrued to t=20."""
    led = StakeLedger()
    led.accrue("alice", 0)
    led.push("alice", 100, 0)
    led.accrue("alice", 10)
    led.push("alice", 50, 10)
    led.accrue("alice", 20)
    return led


def test_push_and_accrue(ledger):
    totals = ledger.totals("alice")
    assert totals.shares == 150
    assert totals.share_seconds == 100 * 10 + 150 * 10
    assert totals.last_updated == 20
    assert ledger.count("alice") == 2
    assert ledger.total_shares() == 150


def test_plan_burn_is_filo_and_read_only(ledger):
    result = ledger.plan_burn("alice", 120, 20, flat)
    # newest 50 shares aged 10, then 70 of the oldest aged 20
    assert result.raw_share_seconds == 50 * 10 + 70 * 20
    assert result.bonus_share_seconds == result.raw_share_seconds
    assert result.consumed == [(1, 50), (0, 70)]
    assert ledger.stakes_of("alice") == [Stake(100, 0), Stake(50, 10)]


def test_burn_pops_newest_and_trims_next(ledger):
    result = ledger.burn("alice", 120, 20, double)
    assert result.bonus_share_seconds == 2 * result.raw_share_seconds
    assert ledger.stakes_of("alice") == [Stake(30, 0)]

    totals = ledger.totals("alice")
    assert totals.shares == 30
    # remaining share-seconds belong to the surviving stake exactly
    assert totals.share_seconds == 30 * 20


def test_burn_exact_stake_boundary(ledger):
    ledger.burn("alice", 50, 20, flat)
    assert ledger.stakes_of("alice") == [Stake(100, 0)]


def test_burn_more_than_held_is_rejected(ledger):
    with pytest.raises(InsufficientShares):
        ledger.burn("alice", 151, 20, flat)
    assert ledger.totals("alice").shares == 150


def test_plan_burn_underflow_is_typed():
    with pytest.raises(InsufficientShares):
        StakeLedger().plan_burn("nobody", 1, 0, flat)


def test_unknown_user_reads_as_empty():
    led = StakeLedger()
    assert led.shares_of("ghost") == 0
    assert led.count("ghost") == 0
    assert "ghost" not in led.users


def test_round_trip(ledger):
    copy = StakeLedger()
    copy.load(ledger.to_dict())
    assert copy.to_dict() == ledger.to_dict()
