"""
supernova_pool/staking_runtime/stakes.py
----------------------------------------

Per-user stake stacks and share-second accounting.

Every deposit pushes a Stake onto the user's stack. Unstaking burns
shares first-in-last-out: the most recent stake is consumed first, older
stakes only once newer ones are exhausted. While burning, two
share-second totals are collected:

- raw: shares * age
- bonus-weighted: shares * age * time_bonus(age) / SCALE, floored per stake

plan_burn() computes both without mutating anything; burn() applies the
same walk. Preview and unstake share this code so their numbers agree.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .errors import InsufficientShares
from .fixed_point import SCALE, checked_add, checked_mul, checked_sub, mul_div


@dataclass
class Stake:
    shares: int
    timestamp: int


@dataclass
class UserTotals:
    shares: int = 0
    share_seconds: int = 0
    last_updated: int = 0


@dataclass(frozen=True)
class BurnResult:
    shares: int
    raw_share_seconds: int
    bonus_share_seconds: int
    # (index, shares taken) per stake consumed, newest first
    consumed: List[tuple] = field(default_factory=list, compare=False)


class StakeLedger:
    def __init__(self) -> None:
        self.users: Dict[str, UserTotals] = {}
        self.stakes: Dict[str, List[Stake]] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def totals(self, user: str) -> UserTotals:
        return self.users.get(user) or UserTotals()

    def shares_of(self, user: str) -> int:
        return self.totals(user).shares

    def stakes_of(self, user: str) -> List[Stake]:
        return list(self.stakes.get(user, []))

    def count(self, user: str) -> int:
        return len(self.stakes.get(user, []))

    def total_shares(self) -> int:
        return sum(u.shares for u in self.users.values())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _user(self, user: str) -> UserTotals:
        totals = self.users.get(user)
        if totals is None:
            totals = self.users[user] = UserTotals()
        return totals

    def accrue(self, user: str, now: int) -> int:
        """Advance the user's share-seconds to `now`; returns the delta."""
        totals = self._user(user)
        delta = checked_mul(checked_sub(now, totals.last_updated), totals.shares)
        totals.share_seconds = checked_add(totals.share_seconds, delta)
        totals.last_updated = now
        return delta

    def push(self, user: str, shares: int, now: int) -> Stake:
        stake = Stake(shares=shares, timestamp=now)
        self.stakes.setdefault(user, []).append(stake)
        totals = self._user(user)
        totals.shares = checked_add(totals.shares, shares)
        return stake

    def plan_burn(
        self,
        user: str,
        shares: int,
        now: int,
        time_bonus: Callable[[int], int],
    ) -> BurnResult:
        stack = self.stakes.get(user, [])
        remaining = shares
        raw = 0
        weighted = 0
        consumed = []
        i = len(stack) - 1
        while remaining > 0:
            if i < 0:
                raise InsufficientShares(
                    f"{user} has no stakes left with {remaining} shares still to burn"
                )
            stake = stack[i]
            age = checked_sub(now, stake.timestamp)
            take = min(stake.shares, remaining)
            share_seconds = checked_mul(take, age)
            raw = checked_add(raw, share_seconds)
            weighted = checked_add(weighted, mul_div(share_seconds, time_bonus(age), SCALE))
            consumed.append((i, take))
            remaining -= take
            i -= 1
        return BurnResult(shares=shares, raw_share_seconds=raw, bonus_share_seconds=weighted, consumed=consumed)

    def burn(
        self,
        user: str,
        shares: int,
        now: int,
        time_bonus: Callable[[int], int],
    ) -> BurnResult:
        totals = self._user(user)
        if shares > totals.shares:
            raise InsufficientShares(f"{user} holds {totals.shares} shares, cannot burn {shares}")
        result = self.plan_burn(user, shares, now, time_bonus)

        stack = self.stakes[user] if result.consumed else []
        for index, take in result.consumed:
            stake = stack[index]
            if take == stake.shares:
                stack.pop()
            else:
                stake.shares = checked_sub(stake.shares, take)

        totals.share_seconds = checked_sub(totals.share_seconds, result.raw_share_seconds)
        totals.shares = checked_sub(totals.shares, shares)
        return result

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": {addr: asdict(t) for addr, t in self.users.items()},
            "stakes": {
                addr: [asdict(s) for s in stack] for addr, stack in self.stakes.items()
            },
        }

    def load(self, raw: Optional[Dict[str, Any]]) -> None:
        raw = raw or {}
        self.users = {
            str(addr): UserTotals(**{k: int(v) for k, v in t.items()})
            for addr, t in (raw.get("users") or {}).items()
        }
        self.stakes = {
            str(addr): [Stake(shares=int(s["shares"]), timestamp=int(s["timestamp"])) for s in stack]
            for addr, stack in (raw.get("stakes") or {}).items()
        }
