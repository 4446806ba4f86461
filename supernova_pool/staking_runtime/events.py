"""
supernova_pool/staking_runtime/events.py
----------------------------------------

Structured notifications emitted by mutating operations.

Events raised during an operation are buffered and only published once
the operation commits. An aborted operation publishes nothing.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, List, Literal

from pydantic import BaseModel, Field

log = logging.getLogger(__name__)


class PoolEvent(BaseModel):
    name: str
    timestamp: int = Field(..., description="Engine clock reading when the event was raised.")


class Staked(PoolEvent):
    name: Literal["Staked"] = "Staked"
    user: str
    amount: int
    total: int = Field(..., description="User's staked balance after the deposit.")


class Unstaked(PoolEvent):
    name: Literal["Unstaked"] = "Unstaked"
    user: str
    amount: int
    total: int = Field(..., description="User's staked balance after the withdrawal.")


class RewardsDistributed(PoolEvent):
    name: Literal["RewardsDistributed"] = "RewardsDistributed"
    user: str
    amount: int


class RewardsFunded(PoolEvent):
    name: Literal["RewardsFunded"] = "RewardsFunded"
    amount: int
    duration: int
    start: int
    total: int = Field(..., description="Locked reward balance after funding.")


class RewardsUnlocked(PoolEvent):
    name: Literal["RewardsUnlocked"] = "RewardsUnlocked"
    amount: int
    total: int = Field(..., description="Unlocked reward balance after the release.")


class RewardsExpired(PoolEvent):
    name: Literal["RewardsExpired"] = "RewardsExpired"
    amount: int
    duration: int
    start: int


class PolarSpent(PoolEvent):
    name: Literal["PolarSpent"] = "PolarSpent"
    user: str
    amount: int


class PolarWithdrawn(PoolEvent):
    name: Literal["PolarWithdrawn"] = "PolarWithdrawn"
    amount: int = Field(..., description="Gross amount withdrawn, before the burn split.")


class OwnershipTransferred(PoolEvent):
    name: Literal["OwnershipTransferred"] = "OwnershipTransferred"
    previous_owner: str
    new_owner: str


Subscriber = Callable[[PoolEvent], None]


class EventLog:
    def __init__(self, keep: int = 1000) -> None:
        self.recent: Deque[PoolEvent] = deque(maxlen=keep)
        self._pending: List[PoolEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, fn: Subscriber) -> None:
        self._subscribers.append(fn)

    def unsubscribe(self, fn: Subscriber) -> None:
        if fn in self._subscribers:
            self._subscribers.remove(fn)

    def emit(self, event: PoolEvent) -> None:
        self._pending.append(event)

    def commit(self) -> List[PoolEvent]:
        """
        Publish buffered events. The operation is already final here, so a
        failing subscriber is logged and the remaining ones still run.
        """
        published, self._pending = self._pending, []
        self.recent.extend(published)
        for event in published:
            for fn in list(self._subscribers):
                try:
                    fn(event)
                except Exception:
                    log.exception("subscriber %r failed on %s", fn, event.name)
        return published

    def discard(self) -> None:
        if self._pending:
            log.debug("dropping %d buffered events", len(self._pending))
        self._pending = []

    def named(self, name: str) -> List[PoolEvent]:
        return [e for e in self.recent if e.name == name]
