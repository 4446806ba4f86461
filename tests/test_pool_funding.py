# tests/test_pool_funding.py

import pytest

from conftest import ALICE, BOB, OWNER, POOL_ADDRESS, START
from supernova_pool.staking_runtime.errors import (
    AuthorizationError,
    FundingLimitExceeded,
    InsufficientBalance,
    ValidationError,
)
from supernova_pool.staking_runtime.fixed_point import SCALE
from supernova_pool.staking_runtime.funding import MAX_ACTIVE_FUNDINGS
from supernova_pool.staking_runtime.token import DEAD_ADDRESS, ZERO_ADDRESS
from supernova_pool.staking_runtime.token_pool import INITIAL_SHARES_PER_TOKEN


def _locked_share_conservation(pool):
    live = sum(f.shares - f.unlocked for f in pool.fundings)
    assert live == pool.total_locked_shares


def test_fund_locks_rewards(pool, reward):
    minted = pool.fund(OWNER, 1000, 1000)

    assert minted == 1000 * INITIAL_SHARES_PER_TOKEN
    assert pool.total_locked() == 1000
    assert pool.total_unlocked() == 0
    assert pool.funding_count() == 1
    f = pool.funding(0)
    assert (f.amount, f.start, f.end, f.duration, f.unlocked) == (1000, START, START + 1000, 1000, 0)
    assert reward.balance_of(OWNER) == 10_000_000 - 1000
    _locked_share_conservation(pool)

    funded = pool.events.named("RewardsFunded")
    assert [(e.amount, e.duration, e.start, e.total) for e in funded] == [(1000, 1000, START, 1000)]


def test_fund_validation(pool):
    with pytest.raises(AuthorizationError):
        pool.fund(ALICE, 1000, 1000)
    with pytest.raises(ValidationError):
        pool.fund(OWNER, 0, 1000)
    with pytest.raises(ValidationError):
        pool.fund(OWNER, 1000, -1)
    with pytest.raises(ValidationError, match="past"):
        pool.fund(OWNER, 1000, 1000, start=START - 1)
    assert pool.funding_count() == 0
    assert pool.total_locked() == 0


def test_funding_limit_and_clean(pool, clock):
    for _ in range(MAX_ACTIVE_FUNDINGS):
        pool.fund(OWNER, 100, 100)
    with pytest.raises(FundingLimitExceeded):
        pool.fund(OWNER, 100, 100)

    clock.advance(101)
    assert pool.clean(OWNER) == MAX_ACTIVE_FUNDINGS
    assert pool.funding_count() == 0
    assert pool.total_locked_shares == 0
    assert pool.total_unlocked() == 100 * MAX_ACTIVE_FUNDINGS
    assert len(pool.events.named("RewardsExpired")) == MAX_ACTIVE_FUNDINGS

    pool.fund(OWNER, 100, 100)
    assert pool.funding_count() == 1


def test_clean_keeps_running_schedules(pool, clock):
    pool.fund(OWNER, 100, 100)
    pool.fund(OWNER, 100, 1000)
    clock.advance(101)

    assert pool.clean(OWNER) == 1
    assert pool.funding_count() == 1
    assert pool.funding(0).duration == 1000
    _locked_share_conservation(pool)


def test_clean_is_owner_only(pool):
    with pytest.raises(AuthorizationError):
        pool.clean(BOB)


def test_linear_unlock_and_single_staker_reward(pool, clock, reward):
    pool.stake(ALICE, 100)
    pool.fund(OWNER, 1000, 1000)

    clock.advance(500)
    pool.update(ALICE)
    assert pool.total_unlocked() == 500
    assert pool.total_locked() == 500
    _locked_share_conservation(pool)

    paid = pool.unstake(ALICE, 100)
    assert paid == 500
    assert reward.balance_of(ALICE) == 500
    assert pool.total_unlocked() == 0
    assert pool.total_rewards == 500
    assert pool.total_polar_rewards == 0

    distributed = pool.events.named("RewardsDistributed")
    assert [(e.user, e.amount) for e in distributed] == [(ALICE, 500)]


def test_future_funding_waits_for_start(pool, clock):
    pool.fund(OWNER, 1000, 1000, start=START + 100)
    clock.advance(100)
    pool.update(ALICE)
    assert pool.total_unlocked() == 0

    clock.advance(250)
    pool.update(ALICE)
    assert pool.total_unlocked() == 250


def test_schedule_flushes_at_end(pool, clock):
    pool.fund(OWNER, 1000, 3)
    clock.advance(1)
    pool.update(ALICE)
    clock.advance(1)
    pool.update(ALICE)
    clock.advance(5)
    pool.update(ALICE)

    assert pool.total_unlocked() == 1000
    assert pool.total_locked() == 0
    assert pool.funding(0).fully_unlocked


def test_zero_duration_unlocks_immediately(pool):
    pool.fund(OWNER, 1000, 0)
    pool.update(ALICE)
    assert pool.total_unlocked() == 1000


def test_unlock_amount_by_sec(pool, clock):
    assert pool.unlock_amount_by_sec(START) == 0
    pool.fund(OWNER, 1000, 1000)
    assert pool.unlock_amount_by_sec(START) == 1
    assert pool.unlock_amount_by_sec(START + 999) == 1
    assert pool.unlock_amount_by_sec(START + 1000) == 0
    assert pool.unlock_amount_by_sec(START - 1) == 0


def test_unlockable_view(pool, clock):
    pool.fund(OWNER, 1000, 1000)
    clock.advance(250)
    assert pool.unlockable(0) == 250 * INITIAL_SHARES_PER_TOKEN


def test_dust_is_swept_without_schedules(pool, reward):
    reward.mint(f"{POOL_ADDRESS}:locked", 7)
    pool.update(ALICE)
    assert pool.total_locked() == 0
    assert pool.total_unlocked() == 7
    assert [e.amount for e in pool.events.named("RewardsUnlocked")] == [7]


def test_polar_unstake_and_withdraw(pool, clock, polar):
    pool.stake(ALICE, 100)
    pool.fund(OWNER, 1000, 1000)
    clock.advance(500)

    paid = pool.unstake(ALICE, 100, polar=SCALE)

    assert paid == 500
    assert pool.polar_balance() == SCALE
    assert polar.balance_of(ALICE) == 9 * SCALE
    assert pool.total_polar_rewards == 500
    assert pool.ratio() == SCALE
    assert [(e.user, e.amount) for e in pool.events.named("PolarSpent")] == [(ALICE, SCALE)]

    with pytest.raises(AuthorizationError):
        pool.withdraw(ALICE, SCALE)
    with pytest.raises(InsufficientBalance):
        pool.withdraw(OWNER, SCALE + 1)
    with pytest.raises(ValidationError):
        pool.withdraw(OWNER, 0)

    pool.withdraw(OWNER, 3)
    assert polar.balance_of(DEAD_ADDRESS) == 1
    assert polar.balance_of(OWNER) == 2
    assert pool.polar_balance() == SCALE - 3
    assert [e.amount for e in pool.events.named("PolarWithdrawn")] == [3]


def test_polar_fraction_is_rejected(pool):
    pool.stake(ALICE, 100)
    with pytest.raises(ValidationError):
        pool.unstake(ALICE, 100, polar=SCALE // 2)
    assert pool.total_staked_for(ALICE) == 100


def test_transfer_ownership(pool):
    with pytest.raises(AuthorizationError):
        pool.transfer_ownership(ALICE, ALICE)
    with pytest.raises(ValidationError):
        pool.transfer_ownership(OWNER, ZERO_ADDRESS)

    pool.transfer_ownership(OWNER, BOB)
    assert pool.owner == BOB
    with pytest.raises(AuthorizationError):
        pool.fund(OWNER, 100, 100)

    event = pool.events.named("OwnershipTransferred")[-1]
    assert (event.previous_owner, event.new_owner) == (OWNER, BOB)


def test_renounce_ownership_locks_privileged_calls(pool):
    pool.renounce_ownership(OWNER)
    assert pool.owner == ZERO_ADDRESS
    with pytest.raises(AuthorizationError):
        pool.fund(OWNER, 100, 100)
    with pytest.raises(AuthorizationError):
        pool.clean(ZERO_ADDRESS)
