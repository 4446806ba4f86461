# supernova_pool/staking_runtime/__init__.py
from __future__ import annotations

"""
SuperNova staking runtime (lazy import).

Submodules are exposed through __getattr__ (PEP 562) so importing the
package does not pull in pydantic or the engine until something asks
for it.
"""

from importlib import import_module
from typing import Any

__all__ = [
    "access",
    "atomic_store",
    "bonus",
    "clock",
    "errors",
    "events",
    "fixed_point",
    "funding",
    "pool",
    "stakes",
    "token",
    "token_pool",
]

_LAZY_MAP = {name: f"supernova_pool.staking_runtime.{name}" for name in __all__}


def __getattr__(name: str) -> Any:
    mod_path = _LAZY_MAP.get(name)
    if not mod_path:
        raise AttributeError(name)
    return import_module(mod_path)


def __dir__() -> list[str]:
    return sorted(set(globals().keys()) | set(_LAZY_MAP.keys()))
