"""Wires config into a ready-to-use pool with its collaborators."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from .bridge import ReceiptTokenBridge
from .config import AppConfig
from .errors import AlreadyInitialized
from .interfaces.state_store import StateStore
from .oracles import InMemoryPriceOracle, PythPriceFeed
from .pool import LendingPool
from .storage import JsonStateStore, MemoryStateStore
from .tokens import InMemoryReceiptTokenLedger

logger = logging.getLogger(__name__)


@dataclass
class PoolContext:
    """Everything one process needs to operate the pool."""

    config: AppConfig
    store: StateStore
    oracle: InMemoryPriceOracle
    pool: LendingPool
    price_feed: PythPriceFeed

    def receipt_ledger(self, symbol: str) -> InMemoryReceiptTokenLedger:
        return InMemoryReceiptTokenLedger(self.store, symbol, self.config.pool.pool_id)


def build_store(config: AppConfig) -> StateStore:
    if config.storage.backend == "json":
        return JsonStateStore(config.storage.path)
    return MemoryStateStore()


def build_context(config: AppConfig, clock: Callable[[], int] | None = None) -> PoolContext:
    clock = clock or (lambda: int(time.time()))
    store = build_store(config)
    pool_id = config.pool.pool_id

    oracle = InMemoryPriceOracle(store, clock)
    bridge = ReceiptTokenBridge(
        pool_id, lambda symbol: InMemoryReceiptTokenLedger(store, symbol, pool_id)
    )
    pool = LendingPool(
        store,
        oracle,
        bridge,
        clock=clock,
        max_price_age=config.oracle.max_price_age_seconds,
    )
    return PoolContext(
        config=config,
        store=store,
        oracle=oracle,
        pool=pool,
        price_feed=PythPriceFeed(config.oracle.pyth),
    )


def initialize_from_config(ctx: PoolContext) -> None:
    """Initialize pool and oracle, then configure the assets listed in config.

    Assets that are already configured are left alone so that re-running
    does not reset their pool totals.
    """
    cfg = ctx.config
    with ctx.store.transaction():
        try:
            ctx.pool.initialize(cfg.pool.admin, cfg.pool.bridge_authority or None)
        except AlreadyInitialized:
            logger.info("Lending pool already initialized")
        try:
            ctx.oracle.initialize(cfg.pool.admin)
        except AlreadyInitialized:
            logger.info("Price oracle already initialized")

        existing = set(ctx.pool.configured_assets())
        for asset in cfg.assets:
            if asset.symbol in existing:
                logger.info("Asset %s already configured, skipping", asset.symbol)
                continue
            ctx.pool.configure_asset(
                cfg.pool.admin,
                asset.symbol,
                asset.ltv_ratio,
                asset.liquidation_threshold,
                asset.reserve_factor,
            )
