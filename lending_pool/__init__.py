"""Lending pool accounting and risk engine."""
from .errors import LendingPoolError
from .models import AccountSnapshot, AssetConfig, PoolState, Position
from .pool import LendingPool

__all__ = [
    "AccountSnapshot",
    "AssetConfig",
    "LendingPool",
    "LendingPoolError",
    "PoolState",
    "Position",
]
