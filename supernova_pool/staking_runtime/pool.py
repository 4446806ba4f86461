from __future__ import annotations

"""
SuperNova staking pool engine.

Users stake a staking token and earn a pro-rata claim on a separately
funded reward token. Rewards are weighted by share-seconds (shares held
multiplied by time held), boosted by a time bonus and, optionally, by
spending polar tokens at unstake time.

Operation flow
--------------
- stake:   update tick -> mint staking shares -> push stake -> pull tokens
- fund:    update tick -> mint locked shares -> add schedule -> pull rewards
- unstake: update tick -> FILO burn -> distribution -> pay out
- update / clean / withdraw: update tick first, then their own work

The update tick (_update) is lazy accrual: unlock whatever the funding
schedules release up to now, then advance global and per-user
share-seconds. No background timer exists; every mutating call brings
the books up to date before doing its own work.

Every mutating entry point runs under the reentrancy guard inside an
atomic section. Bookkeeping and the balances of in-memory token
collaborators are checkpointed on entry and restored if anything raises,
so a failed call leaves no trace.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

from pydantic import BaseModel, Field

from .access import Ownable, ReentrancyGuard
from .bonus import TimeBonusCurve, polar_bonus, polar_ratio
from .clock import SystemClock
from .errors import FundingLimitExceeded, InsufficientBalance, StakingError, ValidationError
from .events import (
    EventLog,
    OwnershipTransferred,
    PolarSpent,
    PolarWithdrawn,
    RewardsDistributed,
    RewardsExpired,
    RewardsFunded,
    RewardsUnlocked,
    Staked,
    Unstaked,
)
from .fixed_point import SCALE, checked_add, checked_mul, checked_sub, mul_div
from .funding import MAX_ACTIVE_FUNDINGS, Funding, FundingSchedules
from .stakes import Stake, StakeLedger, UserTotals
from .token import DEAD_ADDRESS, TokenLedger, is_zero_address
from .token_pool import (
    TokenPool,
    safe_transfer,
    safe_transfer_from,
    shares_for_deposit,
    tokens_for_shares,
)

log = logging.getLogger(__name__)

STATE_VERSION = 1


def _require(cond: bool, msg: str, exc: Type[StakingError] = ValidationError) -> None:
    if not cond:
        raise exc(msg)


def _require_int(value: Any, what: str) -> None:
    _require(isinstance(value, int) and not isinstance(value, bool), f"{what} must be an integer")


class PreviewResult(BaseModel):
    reward: int = Field(..., description="Reward tokens an unstake right now would pay.")
    bonus: int = Field(
        ...,
        description="Effective multiplier (boosted / raw share-seconds), 18-decimal fixed point.",
    )
    share_seconds: int = Field(..., description="Raw share-seconds the unstake would burn.")
    unlocked: int = Field(..., description="Unlocked reward balance after pending unlocks.")


class SuperNovaPool:
    def __init__(
        self,
        staking_token: TokenLedger,
        reward_token: TokenLedger,
        polar_token: TokenLedger,
        *,
        owner: str,
        bonus_min: int,
        bonus_max: int,
        bonus_period: int,
        address: str = "supernova",
        clock: Optional[Callable[[], int]] = None,
        max_active_fundings: int = MAX_ACTIVE_FUNDINGS,
    ) -> None:
        self.address = address
        self.time_bonus_curve = TimeBonusCurve(int(bonus_min), int(bonus_max), int(bonus_period))
        self.staking_token = staking_token
        self.reward_token = reward_token
        self.polar_token = polar_token

        self._clock = clock or SystemClock()
        self._access = Ownable(owner)
        self._guard = ReentrancyGuard()

        self._staking_pool = TokenPool(staking_token, f"{address}:staking")
        self._unlocked_pool = TokenPool(reward_token, f"{address}:unlocked")
        self._locked_pool = TokenPool(reward_token, f"{address}:locked")

        self.fundings = FundingSchedules(max_active_fundings)
        self.ledger = StakeLedger()
        self.events = EventLog()

        self.total_locked_shares = 0
        self.total_staking_shares = 0
        self.total_staking_share_seconds = 0
        self.total_rewards = 0
        self.total_polar_rewards = 0
        self.last_updated = 0

    @classmethod
    def from_config(
        cls,
        cfg: Dict[str, Any],
        staking_token: TokenLedger,
        reward_token: TokenLedger,
        polar_token: TokenLedger,
        *,
        owner: str,
        **kwargs: Any,
    ) -> "SuperNovaPool":
        from ..config import get_bonus_params

        return cls(staking_token, reward_token, polar_token, owner=owner, **get_bonus_params(cfg), **kwargs)

    # ------------------------------------------------------------------
    # Atomic sections
    # ------------------------------------------------------------------

    def _tokens(self) -> List[Any]:
        seen: Dict[int, Any] = {}
        for token in (self.staking_token, self.reward_token, self.polar_token):
            seen.setdefault(id(token), token)
        return list(seen.values())

    @contextmanager
    def _operation(self, name: str) -> Iterator[int]:
        with self._guard.enter(name):
            book = self._state_body()
            ledgers = [
                (t, t.checkpoint()) for t in self._tokens() if hasattr(t, "checkpoint")
            ]
            try:
                yield self._clock()
            except Exception as exc:
                self._load_body(book)
                for token, cp in ledgers:
                    token.rollback(cp)
                self.events.discard()
                log.info("%s aborted: %s: %s", name, type(exc).__name__, exc)
                raise
        # published outside the guard so subscribers may call back in
        self.events.commit()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self._access.owner

    def total_staked(self) -> int:
        return self._staking_pool.balance()

    def total_staked_for(self, user: str) -> int:
        return tokens_for_shares(
            self.ledger.shares_of(user), self.total_staking_shares, self.total_staked()
        )

    def total_locked(self) -> int:
        return self._locked_pool.balance()

    def total_unlocked(self) -> int:
        return self._unlocked_pool.balance()

    def polar_balance(self) -> int:
        return self.polar_token.balance_of(self.address)

    def funding_count(self) -> int:
        return len(self.fundings)

    def funding(self, index: int) -> Funding:
        return self.fundings[index]

    def stake_count(self, user: str) -> int:
        return self.ledger.count(user)

    def stakes_of(self, user: str) -> List[Stake]:
        return self.ledger.stakes_of(user)

    def user_totals(self, user: str) -> UserTotals:
        return self.ledger.totals(user)

    def time_bonus(self, age: int) -> int:
        return self.time_bonus_curve(age)

    def polar_bonus(self, amount: int) -> int:
        return polar_bonus(amount, self.total_polar_rewards, self.total_rewards)

    def ratio(self) -> int:
        return polar_ratio(self.total_polar_rewards, self.total_rewards)

    def unlockable(self, index: int) -> int:
        return self.fundings.unlockable(index, self._clock())

    def unlock_amount_by_sec(self, timestamp: int) -> int:
        """Reward tokens per second released by schedules running at `timestamp`."""
        if self.total_locked_shares == 0:
            return 0
        return mul_div(self.fundings.rate_at(timestamp), self.total_locked(), self.total_locked_shares)

    def preview(self, user: str, amount: int = 0, polar: int = 0) -> PreviewResult:
        """
        Simulate unstake(user, amount, polar) at the current clock reading
        without changing any state.
        """
        _require_int(amount, "unstake amount")
        _require_int(polar, "polar amount")
        now = self._clock()
        unlocked = checked_add(self.total_unlocked(), self._pending_unlock(now))
        if amount == 0:
            return PreviewResult(reward=0, bonus=0, share_seconds=0, unlocked=unlocked)

        shares = self._shares_to_burn(user, amount)
        multiplier = self.polar_bonus(polar)
        burn = self.ledger.plan_burn(user, shares, now, self.time_bonus)

        elapsed = checked_mul(checked_sub(now, self.last_updated), self.total_staking_shares)
        remaining = checked_sub(
            checked_add(self.total_staking_share_seconds, elapsed), burn.raw_share_seconds
        )
        boosted, reward = self._reward_for(unlocked, burn.bonus_share_seconds, multiplier, remaining)
        bonus = mul_div(SCALE, boosted, burn.raw_share_seconds) if burn.raw_share_seconds else 0
        return PreviewResult(
            reward=reward, bonus=bonus, share_seconds=burn.raw_share_seconds, unlocked=unlocked
        )

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def stake(self, caller: str, amount: int) -> int:
        return self.stake_for(caller, caller, amount)

    def stake_for(self, caller: str, user: str, amount: int) -> int:
        """Pull `amount` staking tokens from `caller` and stake them for `user`."""
        with self._operation("stake") as now:
            _require_int(amount, "stake amount")
            _require(amount > 0, "stake amount is zero")
            _require(not is_zero_address(user), "cannot stake to zero address")
            minted = shares_for_deposit(self.total_staking_shares, self.total_staked(), amount)
            _require(minted > 0, "stake amount too small")

            self._update(user, now)
            self.ledger.push(user, minted, now)
            self.total_staking_shares = checked_add(self.total_staking_shares, minted)

            safe_transfer_from(
                self.staking_token, self.address, caller, self._staking_pool.address, amount
            )
            total = self.total_staked_for(user)
            self.events.emit(Staked(timestamp=now, user=user, amount=amount, total=total))

        log.info("staked user=%s amount=%s shares=%s total=%s", user, amount, minted, total)
        return minted

    def unstake(self, caller: str, amount: int, polar: int = 0) -> int:
        """Unstake `amount` tokens, optionally spending `polar`; returns the reward paid."""
        with self._operation("unstake") as now:
            _require_int(amount, "unstake amount")
            _require_int(polar, "polar amount")
            _require(amount > 0, "unstake amount is zero")
            shares = self._shares_to_burn(caller, amount)
            multiplier = self.polar_bonus(polar)

            self._update(caller, now)
            burn = self.ledger.burn(caller, shares, now, self.time_bonus)
            self.total_staking_share_seconds = checked_sub(
                self.total_staking_share_seconds, burn.raw_share_seconds
            )
            self.total_staking_shares = checked_sub(self.total_staking_shares, shares)

            _, reward = self._reward_for(
                self.total_unlocked(),
                burn.bonus_share_seconds,
                multiplier,
                self.total_staking_share_seconds,
            )

            if polar > 0:
                safe_transfer_from(self.polar_token, self.address, caller, self.address, polar)
                self.events.emit(PolarSpent(timestamp=now, user=caller, amount=polar))

            self._staking_pool.transfer(caller, amount)
            remaining = self.total_staked_for(caller)
            self.events.emit(Unstaked(timestamp=now, user=caller, amount=amount, total=remaining))

            if reward > 0:
                self._unlocked_pool.transfer(caller, reward)
                self.total_rewards = checked_add(self.total_rewards, reward)
                if polar > 0:
                    self.total_polar_rewards = checked_add(self.total_polar_rewards, reward)
                self.events.emit(RewardsDistributed(timestamp=now, user=caller, amount=reward))

        log.info(
            "unstaked user=%s amount=%s shares=%s polar=%s reward=%s",
            caller, amount, shares, polar, reward,
        )
        return reward

    def update(self, caller: str) -> None:
        with self._operation("update") as now:
            self._update(caller, now)

    def fund(self, caller: str, amount: int, duration: int, start: Optional[int] = None) -> int:
        """Lock `amount` reward tokens to unlock linearly over `duration` seconds."""
        with self._operation("fund") as now:
            self._access.ensure_owner(caller, action="fund")
            _require_int(amount, "funding amount")
            _require_int(duration, "funding duration")
            if start is not None:
                _require_int(start, "funding start")
            start = now if start is None else start
            _require(not self.fundings.full, "exceeds max active funding schedules", FundingLimitExceeded)
            _require(amount > 0, "funding amount is zero")
            _require(duration >= 0, "funding duration is negative")
            _require(start >= now, "funding start is past")

            self._update(caller, now)
            minted = shares_for_deposit(self.total_locked_shares, self.total_locked(), amount)
            _require(minted > 0, "funding amount too small")
            self.total_locked_shares = checked_add(self.total_locked_shares, minted)
            self.fundings.add(amount, minted, start, duration)

            safe_transfer_from(
                self.reward_token, self.address, caller, self._locked_pool.address, amount
            )
            self.events.emit(
                RewardsFunded(
                    timestamp=now, amount=amount, duration=duration, start=start, total=self.total_locked()
                )
            )

        log.info("funded amount=%s duration=%s start=%s shares=%s", amount, duration, start, minted)
        return minted

    def clean(self, caller: str) -> int:
        """Remove fully unlocked, ended schedules. Reorders the schedule list."""
        with self._operation("clean") as now:
            self._access.ensure_owner(caller, action="clean")
            self._update(caller, now)
            removed = self.fundings.remove_expired(now)
            for funding in removed:
                self.events.emit(
                    RewardsExpired(
                        timestamp=now, amount=funding.amount, duration=funding.duration, start=funding.start
                    )
                )
        if removed:
            log.info("cleaned %d expired funding schedules", len(removed))
        return len(removed)

    def withdraw(self, caller: str, amount: int) -> None:
        """Withdraw spent polar: half is burned, half goes to the owner."""
        with self._operation("withdraw") as now:
            self._access.ensure_owner(caller, action="withdraw")
            _require_int(amount, "withdraw amount")
            _require(amount > 0, "withdraw amount is zero")
            _require(amount <= self.polar_balance(), "withdraw amount exceeds balance", InsufficientBalance)

            self._update(caller, now)
            burned = amount // 2
            safe_transfer(self.polar_token, self.address, DEAD_ADDRESS, burned)
            safe_transfer(self.polar_token, self.address, caller, amount - burned)
            self.events.emit(PolarWithdrawn(timestamp=now, amount=amount))

        log.info("withdrew polar amount=%s burned=%s", amount, burned)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._operation("transfer_ownership") as now:
            previous, new = self._access.transfer_ownership(caller, new_owner)
            self.events.emit(OwnershipTransferred(timestamp=now, previous_owner=previous, new_owner=new))
        log.info("ownership transferred %s -> %s", previous, new)

    def renounce_ownership(self, caller: str) -> None:
        with self._operation("renounce_ownership") as now:
            previous, new = self._access.renounce_ownership(caller)
            self.events.emit(OwnershipTransferred(timestamp=now, previous_owner=previous, new_owner=new))
        log.info("ownership renounced by %s", previous)

    # ------------------------------------------------------------------
    # Update engine
    # ------------------------------------------------------------------

    def _update(self, user: str, now: int) -> None:
        self._unlock_tokens(now)

        delta = checked_mul(checked_sub(now, self.last_updated), self.total_staking_shares)
        self.total_staking_share_seconds = checked_add(self.total_staking_share_seconds, delta)
        self.last_updated = now

        self.ledger.accrue(user, now)

    def _unlock_tokens(self, now: int) -> int:
        locked = self.total_locked()
        if self.total_locked_shares == 0:
            # leftover rounding dust with no schedule behind it
            tokens = locked
        else:
            shares = self.fundings.unlock(now)
            tokens = mul_div(shares, locked, self.total_locked_shares)
            self.total_locked_shares = checked_sub(self.total_locked_shares, shares)

        if tokens > 0:
            self._locked_pool.transfer(self._unlocked_pool.address, tokens)
            total = self.total_unlocked()
            self.events.emit(RewardsUnlocked(timestamp=now, amount=tokens, total=total))
            log.debug("unlocked %s reward tokens, %s now distributable", tokens, total)
        return tokens

    def _pending_unlock(self, now: int) -> int:
        """Tokens _unlock_tokens(now) would move, computed without side effects."""
        locked = self.total_locked()
        if self.total_locked_shares == 0:
            return locked
        return mul_div(self.fundings.pending_shares(now), locked, self.total_locked_shares)

    # ------------------------------------------------------------------
    # Distribution
    # ------------------------------------------------------------------

    def _shares_to_burn(self, user: str, amount: int) -> int:
        _require(
            amount <= self.total_staked_for(user), "unstake amount exceeds balance", InsufficientBalance
        )
        shares = mul_div(self.total_staking_shares, amount, self.total_staked())
        _require(shares > 0, "unstake amount too small")
        return shares

    @staticmethod
    def _reward_for(unlocked: int, bonus_share_seconds: int, multiplier: int, live_share_seconds: int):
        """
        Pro-rata payout for burned share-seconds.

        The boosted share-seconds are counted as if briefly added back to the
        live total, which must already exclude the raw share-seconds burned.
        """
        boosted = mul_div(multiplier, bonus_share_seconds, SCALE)
        denominator = checked_add(live_share_seconds, boosted)
        if denominator == 0:
            return boosted, 0
        return boosted, mul_div(unlocked, boosted, denominator)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _state_body(self) -> Dict[str, Any]:
        return {
            "owner": self._access.owner,
            "totals": {
                "locked_shares": self.total_locked_shares,
                "staking_shares": self.total_staking_shares,
                "staking_share_seconds": self.total_staking_share_seconds,
                "rewards": self.total_rewards,
                "polar_rewards": self.total_polar_rewards,
                "last_updated": self.last_updated,
            },
            "fundings": self.fundings.to_list(),
            "ledger": self.ledger.to_dict(),
        }

    def _load_body(self, body: Dict[str, Any]) -> None:
        self._access.restore_owner(str(body.get("owner") or ""))
        totals = body.get("totals") or {}
        self.total_locked_shares = int(totals.get("locked_shares", 0))
        self.total_staking_shares = int(totals.get("staking_shares", 0))
        self.total_staking_share_seconds = int(totals.get("staking_share_seconds", 0))
        self.total_rewards = int(totals.get("rewards", 0))
        self.total_polar_rewards = int(totals.get("polar_rewards", 0))
        self.last_updated = int(totals.get("last_updated", 0))
        self.fundings.load(body.get("fundings") or [])
        self.ledger.load(body.get("ledger"))

    def to_state(self) -> Dict[str, Any]:
        state = self._state_body()
        state.update(
            {
                "version": STATE_VERSION,
                "address": self.address,
                "bonus": {
                    "min": self.time_bonus_curve.bonus_min,
                    "max": self.time_bonus_curve.bonus_max,
                    "period": self.time_bonus_curve.bonus_period,
                },
                "max_active_fundings": self.fundings.max_active,
                "tokens": {
                    "staking": self.staking_token.symbol,
                    "reward": self.reward_token.symbol,
                    "polar": self.polar_token.symbol,
                },
            }
        )
        return state

    @classmethod
    def from_state(
        cls,
        state: Dict[str, Any],
        staking_token: TokenLedger,
        reward_token: TokenLedger,
        polar_token: TokenLedger,
        *,
        clock: Optional[Callable[[], int]] = None,
    ) -> "SuperNovaPool":
        version = int(state.get("version", 0))
        _require(version == STATE_VERSION, f"unsupported pool state version {version}")
        bonus = state.get("bonus") or {}
        owner = str(state.get("owner") or "")
        pool = cls(
            staking_token,
            reward_token,
            polar_token,
            # placeholder owner, the persisted one (possibly renounced) is loaded below
            owner=owner if not is_zero_address(owner) else "restoring",
            bonus_min=int(bonus.get("min", 0)),
            bonus_max=int(bonus.get("max", 0)),
            bonus_period=int(bonus.get("period", 0)),
            address=str(state.get("address") or "supernova"),
            clock=clock,
            max_active_fundings=int(state.get("max_active_fundings", MAX_ACTIVE_FUNDINGS)),
        )
        pool._load_body(state)
        return pool
