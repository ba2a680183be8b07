"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from lending_pool.bridge import ReceiptTokenBridge
from lending_pool.oracles import InMemoryPriceOracle
from lending_pool.pool import LendingPool
from lending_pool.storage import MemoryStateStore
from lending_pool.tokens import InMemoryReceiptTokenLedger

ADMIN = "GADMIN"
BRIDGE = "GBRIDGE"
POOL_ID = "lending-pool"

# 7-decimal fixed-point USD
SAMPLE_PRICES = {
    "XLM": 1200000,  # $0.12
    "USDC": 1_0000000,  # $1.00
    "stETH": 1500_0000000,  # $1500
}


class FakeClock:
    """Deterministic unix-seconds clock."""

    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture()
def oracle(store: MemoryStateStore, clock: FakeClock) -> InMemoryPriceOracle:
    o = InMemoryPriceOracle(store, clock)
    o.initialize(ADMIN)
    o.batch_set_prices(ADMIN, SAMPLE_PRICES)
    return o


@pytest.fixture()
def receipt_ledger(store: MemoryStateStore):
    def _ledger(symbol: str) -> InMemoryReceiptTokenLedger:
        return InMemoryReceiptTokenLedger(store, symbol, POOL_ID)

    return _ledger


@pytest.fixture()
def bridge(receipt_ledger) -> ReceiptTokenBridge:
    return ReceiptTokenBridge(POOL_ID, receipt_ledger)


@pytest.fixture()
def pool(
    store: MemoryStateStore,
    oracle: InMemoryPriceOracle,
    bridge: ReceiptTokenBridge,
    clock: FakeClock,
) -> LendingPool:
    p = LendingPool(store, oracle, bridge, clock=clock)
    p.initialize(ADMIN, BRIDGE)
    return p


@pytest.fixture()
def configured_pool(pool: LendingPool) -> LendingPool:
    pool.configure_asset(ADMIN, "XLM", 6000, 8000, 1000)
    pool.configure_asset(ADMIN, "USDC", 8000, 8500, 500)
    pool.configure_asset(ADMIN, "stETH", 7000, 8000, 1000)
    return pool


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    pool:
      admin: GADMIN
      pool_id: lending-pool
      bridge_authority: GBRIDGE
    storage:
      backend: memory
    oracle:
      max_price_age_seconds: 600
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {XLM: "aaa", USDC: "bbb"}
    assets:
      XLM:
        ltv_ratio: 6000
        liquidation_threshold: 8000
        reserve_factor: 1000
      USDC:
        ltv_ratio: 8000
        liquidation_threshold: 8500
        reserve_factor: 500
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
