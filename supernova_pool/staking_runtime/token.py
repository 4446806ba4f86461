from __future__ import annotations

"""
Token ledger collaborator.

The engine never owns balances. It only needs three calls from whatever
ledger custodies an asset:

    balance_of(holder) -> int
    transfer(sender, to, amount) -> bool
    transfer_from(spender, owner, to, amount) -> bool

A False return (or an exception) is a failed transfer and aborts the
whole engine operation.

InMemoryToken is a complete in-process implementation used by
simulations and tests. It also supports checkpoint/rollback so the
engine can undo collaborator side effects of an aborted operation, and
transfer hooks that stand in for token callbacks into the engine.
"""

import copy
import logging
from typing import Any, Callable, Dict, List, Protocol, runtime_checkable

log = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"

TransferHook = Callable[[str, str, int], None]


def is_zero_address(addr: str) -> bool:
    return not addr or addr == ZERO_ADDRESS


@runtime_checkable
class TokenLedger(Protocol):
    symbol: str

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...


class InMemoryToken:
    """ERC20-shaped ledger kept in plain dicts."""

    def __init__(self, symbol: str, decimals: int = 18) -> None:
        self.symbol = symbol
        self.decimals = int(decimals)
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[str, Dict[str, int]] = {}
        self.total_supply = 0
        self._hooks: List[TransferHook] = []

    def __repr__(self) -> str:
        return f"InMemoryToken({self.symbol!r})"

    # ------------------------------------------------------------------
    # ERC20-ish surface
    # ------------------------------------------------------------------

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(owner, {}).get(spender, 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        if amount < 0 or is_zero_address(spender):
            return False
        self.allowances.setdefault(owner, {})[spender] = int(amount)
        return True

    def mint(self, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("mint amount must be non-negative")
        if is_zero_address(to):
            raise ValueError("mint to the zero address")
        self.balances[to] = self.balance_of(to) + amount
        self.total_supply += amount

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        if amount < 0 or is_zero_address(to):
            return False
        if self.balance_of(sender) < amount:
            log.debug("%s transfer rejected: %s has %s < %s", self.symbol, sender, self.balance_of(sender), amount)
            return False
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            log.debug("%s transfer_from rejected: allowance %s < %s", self.symbol, allowed, amount)
            return False
        if not self.transfer(owner, to, amount):
            return False
        self.allowances[owner][spender] = allowed - amount
        return True

    def _move(self, sender: str, to: str, amount: int) -> None:
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[to] = self.balance_of(to) + amount
        for hook in list(self._hooks):
            hook(sender, to, amount)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def add_transfer_hook(self, hook: TransferHook) -> None:
        self._hooks.append(hook)

    def remove_transfer_hook(self, hook: TransferHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    # ------------------------------------------------------------------
    # Checkpoints + persistence
    # ------------------------------------------------------------------

    def to_state(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "balances": dict(self.balances),
            "allowances": copy.deepcopy(self.allowances),
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "InMemoryToken":
        token = cls(str(state["symbol"]), int(state.get("decimals", 18)))
        token._load(state)
        return token

    def _load(self, state: Dict[str, Any]) -> None:
        self.total_supply = int(state.get("total_supply", 0))
        self.balances = {str(k): int(v) for k, v in (state.get("balances") or {}).items()}
        self.allowances = {
            str(owner): {str(spender): int(v) for spender, v in spenders.items()}
            for owner, spenders in (state.get("allowances") or {}).items()
        }

    def checkpoint(self) -> Dict[str, Any]:
        return self.to_state()

    def rollback(self, checkpoint: Dict[str, Any]) -> None:
        self._load(checkpoint)
