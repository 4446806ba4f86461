"""
SuperNova staking pool package initializer

Keep this module lightweight. The engine lives in
supernova_pool.staking_runtime.pool; configuration in supernova_pool.config.
"""

__version__ = "0.1.0"

__all__ = []
