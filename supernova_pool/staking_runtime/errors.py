"""
supernova_pool/staking_runtime/errors.py
----------------------------------------

Typed errors raised by the staking engine.

Every mutating operation is all-or-nothing: any of these escaping an
operation means nothing was committed and the caller must resubmit.
"""

from __future__ import annotations


class StakingError(Exception):
    """Base class for every engine failure."""


class ValidationError(StakingError, ValueError):
    """Bad input: zero amounts, zero address, dust, past start, ..."""


class InsufficientBalance(ValidationError):
    pass


class FundingLimitExceeded(ValidationError):
    pass


class InsufficientShares(StakingError):
    """
    Raised when a FILO walk runs past the bottom of a stake stack.

    The balance checks in front of every burn make this unreachable in a
    consistent engine, so seeing it means an invariant broke.
    """


class AuthorizationError(StakingError):
    def __init__(self, message: str, caller: str = "", action: str = ""):
        super().__init__(message)
        self.caller = caller
        self.action = action


class ReentrancyError(StakingError, RuntimeError):
    pass


class ArithmeticFault(StakingError, ArithmeticError):
    pass


class TransferFailed(StakingError):
    pass
