import pytest

from supernova_pool.staking_runtime.clock import ManualClock
from supernova_pool.staking_runtime.fixed_point import SCALE
from supernova_pool.staking_runtime.pool import SuperNovaPool
from supernova_pool.staking_runtime.token import InMemoryToken

OWNER = "0x00000000000000000000000000000000000000aa"
ALICE = "0x00000000000000000000000000000000000000a1"
BOB = "0x00000000000000000000000000000000000000b0"

START = 1_600_000_000
BONUS_MIN = 33 * 10**16
BONUS_MAX = 100 * 10**16
BONUS_PERIOD = 432_000

POOL_ADDRESS = "supernova"
UNLIMITED = 10**40


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def staking():
    token = InMemoryToken("STK")
    token.mint(ALICE, 1_000_000)
    token.mint(BOB, 1_000_000)
    return token


@pytest.fixture
def reward():
    token = InMemoryToken("RWD")
    token.mint(OWNER, 10_000_000)
    return token


@pytest.fixture
def polar():
    token = InMemoryToken("POLAR")
    token.mint(ALICE, 10 * SCALE)
    token.mint(BOB, 10 * SCALE)
    return token


@pytest.fixture
def pool(clock, staking, reward, polar):
    """Fresh pool with every account approving it for everything."""
    p = SuperNovaPool(
        staking,
        reward,
        polar,
        owner=OWNER,
        bonus_min=BONUS_MIN,
        bonus_max=BONUS_MAX,
        bonus_period=BONUS_PERIOD,
        address=POOL_ADDRESS,
        clock=clock,
    )
    for account in (ALICE, BOB, OWNER):
        staking.approve(account, POOL_ADDRESS, UNLIMITED)
        reward.approve(account, POOL_ADDRESS, UNLIMITED)
        polar.approve(account, POOL_ADDRESS, UNLIMITED)
    return p
