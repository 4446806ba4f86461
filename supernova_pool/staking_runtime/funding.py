from __future__ import annotations

"""
Funding schedule manager.

Each call to fund() adds one Funding record whose locked shares unlock
linearly between `start` and `end`. At most MAX_ACTIVE_FUNDINGS records
are live at once; fully unlocked records past their end are compacted
away by remove_expired().

Compaction swaps the removed record with the last one and truncates, so
schedule indices are NOT stable across a remove_expired() call.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, List

from .fixed_point import checked_add, checked_sub, mul_div

MAX_ACTIVE_FUNDINGS: int = 16


@dataclass
class Funding:
    amount: int
    shares: int
    unlocked: int
    last_updated: int
    start: int
    end: int
    duration: int

    @property
    def fully_unlocked(self) -> bool:
        return self.unlocked >= self.shares

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Funding":
        return cls(**{k: int(raw[k]) for k in cls.__dataclass_fields__})


def unlockable_shares(funding: Funding, now: int) -> int:
    """Locked shares of `funding` that can be released at time `now`."""
    if now < funding.start:
        return 0
    if funding.unlocked >= funding.shares:
        return 0
    if now >= funding.end:
        # flush the remainder, absorbing rounding dust from earlier ticks
        return checked_sub(funding.shares, funding.unlocked)
    return mul_div(checked_sub(now, funding.last_updated), funding.shares, funding.duration)


class FundingSchedules:
    def __init__(self, max_active: int = MAX_ACTIVE_FUNDINGS) -> None:
        self.max_active = int(max_active)
        self._items: List[Funding] = []

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Funding:
        return self._items[index]

    def __iter__(self) -> Iterator[Funding]:
        return iter(self._items)

    @property
    def full(self) -> bool:
        return len(self._items) >= self.max_active

    def add(self, amount: int, shares: int, start: int, duration: int) -> Funding:
        funding = Funding(
            amount=amount,
            shares=shares,
            unlocked=0,
            last_updated=start,
            start=start,
            end=checked_add(start, duration),
            duration=duration,
        )
        self._items.append(funding)
        return funding

    def unlockable(self, index: int, now: int) -> int:
        return unlockable_shares(self._items[index], now)

    def pending_shares(self, now: int) -> int:
        """Shares an unlock at `now` would release, without touching state."""
        total = 0
        for funding in self._items:
            total = checked_add(total, unlockable_shares(funding, now))
        return total

    def unlock(self, now: int) -> int:
        """Advance every schedule to `now`; returns the shares released."""
        released = 0
        for funding in self._items:
            shares = unlockable_shares(funding, now)
            if shares > 0:
                funding.unlocked = checked_add(funding.unlocked, shares)
                funding.last_updated = now
                released = checked_add(released, shares)
        return released

    def remove_expired(self, now: int) -> List[Funding]:
        """Drop fully unlocked schedules whose window has ended."""
        removed: List[Funding] = []
        for i in range(len(self._items) - 1, -1, -1):
            funding = self._items[i]
            if now > funding.end and funding.fully_unlocked:
                removed.append(funding)
                self._items[i] = self._items[-1]
                self._items.pop()
        return removed

    def rate_at(self, timestamp: int) -> int:
        """Locked shares released per second by schedules running at `timestamp`."""
        rate = 0
        for funding in self._items:
            if funding.start <= timestamp < funding.end:
                rate = checked_add(rate, funding.shares // funding.duration)
        return rate

    def to_list(self) -> List[Dict[str, int]]:
        return [f.to_dict() for f in self._items]

    def load(self, raw: List[Dict[str, Any]]) -> None:
        self._items = [Funding.from_dict(item) for item in raw]
