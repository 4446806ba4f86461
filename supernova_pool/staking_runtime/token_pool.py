"""
supernova_pool/staking_runtime/token_pool.py
--------------------------------------------

Custody wrappers and share math.

A TokenPool is a named holder on a token ledger. Its balance is always
read from the ledger, never cached. The engine keeps one pool each for
staked tokens, locked rewards and unlocked rewards.

Shares are the engine's internal unit of account for a pool. The first
deposit into an empty pool mints INITIAL_SHARES_PER_TOKEN shares per
token; later deposits mint at the pool's prevailing rate so reward
accruals never dilute earlier depositors.
"""

from __future__ import annotations

import logging

from .errors import InsufficientBalance, TransferFailed
from .fixed_point import checked_mul, mul_div
from .token import TokenLedger

log = logging.getLogger(__name__)

INITIAL_SHARES_PER_TOKEN: int = 10**6


def safe_transfer(token: TokenLedger, sender: str, to: str, amount: int) -> None:
    if not token.transfer(sender, to, amount):
        raise TransferFailed(f"{token.symbol} transfer of {amount} from {sender} to {to} failed")


def safe_transfer_from(token: TokenLedger, spender: str, owner: str, to: str, amount: int) -> None:
    if not token.transfer_from(spender, owner, to, amount):
        raise TransferFailed(f"{token.symbol} transfer_from of {amount} from {owner} to {to} failed")


def shares_for_deposit(total_shares: int, pool_balance: int, amount: int) -> int:
    """Shares minted for depositing `amount` tokens."""
    if total_shares == 0 or pool_balance == 0:
        return checked_mul(amount, INITIAL_SHARES_PER_TOKEN)
    return mul_div(total_shares, amount, pool_balance)


def tokens_for_shares(shares: int, total_shares: int, pool_balance: int) -> int:
    """Tokens represented by `shares` at the pool's current rate."""
    if total_shares == 0:
        return 0
    return mul_div(shares, pool_balance, total_shares)


class TokenPool:
    def __init__(self, token: TokenLedger, address: str) -> None:
        self.token = token
        self.address = address

    def __repr__(self) -> str:
        return f"TokenPool({self.token.symbol!r}, {self.address!r})"

    def balance(self) -> int:
        return self.token.balance_of(self.address)

    def transfer(self, to: str, amount: int) -> None:
        available = self.balance()
        if amount > available:
            raise InsufficientBalance(
                f"pool {self.address} holds {available} {self.token.symbol}, cannot send {amount}"
            )
        safe_transfer(self.token, self.address, to, amount)
        log.debug("pool %s sent %s %s to %s", self.address, amount, self.token.symbol, to)
