from __future__ import annotations

"""
Access helpers for the staking engine.

- Ownable: a single stored owner identity checked explicitly by privileged
  operations. Ownership can be transferred or renounced.
- ReentrancyGuard: rejects (never queues) a mutating call made while
  another one is still running, e.g. from inside a token transfer hook.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from .errors import AuthorizationError, ReentrancyError, ValidationError
from .token import ZERO_ADDRESS, is_zero_address


class Ownable:
    def __init__(self, owner: str) -> None:
        if is_zero_address(owner):
            raise ValidationError("owner cannot be the zero address")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def ensure_owner(self, caller: str, action: str = "unknown") -> None:
        if is_zero_address(caller) or caller != self._owner:
            raise AuthorizationError(
                f"'{action}' is restricted to the owner", caller=caller, action=action
            )

    def transfer_ownership(self, caller: str, new_owner: str) -> Tuple[str, str]:
        self.ensure_owner(caller, action="transfer_ownership")
        if is_zero_address(new_owner):
            raise ValidationError("new owner is the zero address")
        previous, self._owner = self._owner, new_owner
        return previous, new_owner

    def restore_owner(self, owner: str) -> None:
        """Reinstate a persisted owner (the zero address means renounced)."""
        self._owner = owner or ZERO_ADDRESS

    def renounce_ownership(self, caller: str) -> Tuple[str, str]:
        self.ensure_owner(caller, action="renounce_ownership")
        previous, self._owner = self._owner, ZERO_ADDRESS
        return previous, ZERO_ADDRESS


class ReentrancyGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: Optional[str] = None

    @property
    def entered(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def enter(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise ReentrancyError(
                f"reentrant call to '{operation}' while '{self._active}' is running"
            )
        self._active = operation
        try:
            yield
        finally:
            self._active = None
            self._lock.release()
