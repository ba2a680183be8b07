"""Integration tests for pool operations — full flow over the in-memory store."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from lending_pool.bridge import ReceiptTokenBridge
from lending_pool.errors import (
    AmountTooSmall,
    AssetInactive,
    AssetNotCollateralEligible,
    AssetNotConfigured,
    InsufficientBalance,
    InsufficientCollateral,
    InsufficientLiquidity,
    InvalidAmount,
    LiquidationRisk,
    Unauthorized,
)
from lending_pool.models import Position
from lending_pool.pool import LendingPool
from lending_pool.units import HEALTH_FACTOR_MAX


def _assert_pool_invariants(pool: LendingPool, users: list[str]) -> None:
    for symbol in pool.configured_assets():
        supplied, borrowed, _ = pool.get_pool_info(symbol)
        assert 0 <= borrowed <= supplied
        for user in users:
            position = pool.get_position(user, symbol)
            assert position.debt_amount >= 0
            assert position.collateral_amount >= 0
            assert position.supplied_amount >= 0


class TestDeposit:
    def test_scenario_supply_mints_receipts(self, configured_pool: LendingPool, receipt_ledger) -> None:
        shares = configured_pool.deposit("alice", "XLM", 1000_0000000)

        assert shares == 1000_0000000
        assert configured_pool.get_pool_info("XLM") == (1000_0000000, 0, 0)
        assert receipt_ledger("XLM").balance("alice") == 1000_0000000
        assert configured_pool.get_position("alice", "XLM").supplied_amount == 1000_0000000

    def test_recomputes_rates(self, configured_pool: LendingPool, clock) -> None:
        clock.advance(30)
        configured_pool.deposit("alice", "XLM", 1000_0000000)
        state = configured_pool.get_pool_state("XLM")
        assert state.borrow_rate == 2_0000000
        assert state.supply_rate == 0
        assert state.last_update_timestamp == clock.now

    @pytest.mark.parametrize("amount", [0, -5])
    def test_invalid_amount(self, configured_pool: LendingPool, amount: int) -> None:
        with pytest.raises(InvalidAmount):
            configured_pool.deposit("alice", "XLM", amount)

    def test_unconfigured_asset(self, configured_pool: LendingPool) -> None:
        with pytest.raises(AssetNotConfigured):
            configured_pool.deposit("alice", "DOGE", 1)

    def test_inactive_asset(self, configured_pool: LendingPool) -> None:
        configured_pool.set_asset_status("GADMIN", "XLM", is_active=False)
        with pytest.raises(AssetInactive):
            configured_pool.deposit("alice", "XLM", 1)

    def test_mint_failure_rolls_back(self, store, oracle, clock) -> None:
        ledger = MagicMock()
        ledger.exchange_rate.return_value = 1_0000000
        ledger.mint.side_effect = Unauthorized("ledger rejected mint")
        pool = LendingPool(store, oracle, ReceiptTokenBridge("lending-pool", lambda s: ledger), clock=clock)
        pool.initialize("GADMIN")
        pool.configure_asset("GADMIN", "XLM", 6000, 8000, 1000)

        with pytest.raises(Unauthorized):
            pool.deposit("alice", "XLM", 100)

        assert pool.get_pool_info("XLM") == (0, 0, 0)
        assert pool.get_position("alice", "XLM") == Position()


class TestBridgeDeposit:
    def test_bridge_authority_deposits_for_user(self, configured_pool: LendingPool, receipt_ledger) -> None:
        configured_pool.bridge_deposit("GBRIDGE", "alice", "XLM", 50_0000000, lock_id=7)
        assert configured_pool.get_pool_info("XLM")[0] == 50_0000000
        assert receipt_ledger("XLM").balance("alice") == 50_0000000

    def test_other_caller_rejected(self, configured_pool: LendingPool) -> None:
        with pytest.raises(Unauthorized):
            configured_pool.bridge_deposit("alice", "alice", "XLM", 50_0000000, lock_id=7)
        assert configured_pool.get_pool_info("XLM")[0] == 0

    def test_no_authority_registered(self, store, oracle, bridge, clock) -> None:
        pool = LendingPool(store, oracle, bridge, clock=clock)
        pool.initialize("GADMIN")
        pool.configure_asset("GADMIN", "XLM", 6000, 8000, 1000)
        with pytest.raises(Unauthorized):
            pool.bridge_deposit("GBRIDGE", "alice", "XLM", 1, lock_id=1)


class TestWithdraw:
    def test_deposit_then_withdraw_is_net_zero(self, configured_pool: LendingPool, receipt_ledger) -> None:
        configured_pool.deposit("bob", "XLM", 300_0000000)
        before = configured_pool.get_pool_info("XLM")[0]

        configured_pool.deposit("alice", "XLM", 100_0000000)
        burned = configured_pool.withdraw("alice", "XLM", 100_0000000)

        assert burned == 100_0000000
        assert configured_pool.get_pool_info("XLM")[0] == before
        assert receipt_ledger("XLM").balance("alice") == 0

    def test_cannot_withdraw_other_users_supply(self, configured_pool: LendingPool) -> None:
        configured_pool.deposit("alice", "XLM", 100_0000000)
        configured_pool.deposit("bob", "XLM", 100_0000000)
        with pytest.raises(InsufficientBalance):
            configured_pool.withdraw("alice", "XLM", 150_0000000)
        assert configured_pool.get_pool_info("XLM")[0] == 200_0000000

    def test_borrowed_liquidity_is_not_withdrawable(self, configured_pool: LendingPool) -> None:
        pool = configured_pool
        pool.deposit("lender", "USDC", 100_0000000)
        pool.deposit_collateral("alice", "stETH", 1_0000000)
        pool.borrow("alice", "USDC", 80_0000000)

        with pytest.raises(InsufficientLiquidity):
            pool.withdraw("lender", "USDC", 50_0000000)
        pool.withdraw("lender", "USDC", 20_0000000)
        assert pool.get_pool_info("USDC")[:2] == (80_0000000, 80_0000000)

    def test_burn_failure_rolls_back(self, store, oracle, clock) -> None:
        ledger = MagicMock()
        ledger.exchange_rate.return_value = 1_0000000
        ledger.balance.return_value = 100
        ledger.burn.side_effect = InsufficientBalance("receipts moved away")
        pool = LendingPool(store, oracle, ReceiptTokenBridge("lending-pool", lambda s: ledger), clock=clock)
        pool.initialize("GADMIN")
        pool.configure_asset("GADMIN", "XLM", 6000, 8000, 1000)
        pool.deposit("alice", "XLM", 100)

        with pytest.raises(InsufficientBalance):
            pool.withdraw("alice", "XLM", 100)
        assert pool.get_pool_info("XLM")[0] == 100
        assert pool.get_position("alice", "XLM").supplied_amount == 100


class TestExchangeRate:
    def test_full_withdraw_after_rate_rise_clears_shares(
        self, configured_pool: LendingPool, receipt_ledger
    ) -> None:
        configured_pool.deposit("alice", "USDC", 100_0000000)
        receipt_ledger("USDC").update_exchange_rate("lending-pool", 2_0000000)

        burned = configured_pool.withdraw("alice", "USDC", 100_0000000)

        assert burned == 100_0000000
        assert receipt_ledger("USDC").balance("alice") == 0
        assert configured_pool.get_pool_info("USDC") == (0, 0, 0)

    def test_full_withdraw_after_rate_drop(self, configured_pool: LendingPool, receipt_ledger) -> None:
        configured_pool.deposit("alice", "USDC", 100_0000000)
        receipt_ledger("USDC").update_exchange_rate("lending-pool", 5000000)

        assert configured_pool.withdraw("alice", "USDC", 100_0000000) == 100_0000000
        assert receipt_ledger("USDC").balance("alice") == 0
        assert configured_pool.get_position("alice", "USDC").supplied_amount == 0

    def test_partial_withdraw_burns_proportional_shares(
        self, configured_pool: LendingPool, receipt_ledger
    ) -> None:
        ledger = receipt_ledger("USDC")
        ledger.update_exchange_rate("lending-pool", 2_0000000)
        assert configured_pool.deposit("alice", "USDC", 100_0000000) == 50_0000000
        ledger.update_exchange_rate("lending-pool", 4_0000000)

        assert configured_pool.withdraw("alice", "USDC", 40_0000000) == 20_0000000
        assert ledger.balance("alice") == 30_0000000
        assert configured_pool.withdraw("alice", "USDC", 60_0000000) == 30_0000000
        assert ledger.balance("alice") == 0

    def test_deposit_below_one_share_rejected(
        self, configured_pool: LendingPool, receipt_ledger
    ) -> None:
        receipt_ledger("USDC").update_exchange_rate("lending-pool", 2_0000000)

        with pytest.raises(AmountTooSmall):
            configured_pool.deposit("alice", "USDC", 1)

        assert configured_pool.get_pool_info("USDC") == (0, 0, 0)
        assert configured_pool.get_position("alice", "USDC") == Position()


class TestCollateral:
    def test_scenario_steth_collateral_value(self, configured_pool: LendingPool) -> None:
        configured_pool.deposit_collateral("alice", "stETH", 1_0000000)

        data = configured_pool.get_user_account_data("alice")
        assert data.total_collateral_usd == 1500_0000000
        assert data.health_factor == HEALTH_FACTOR_MAX
        assert configured_pool.is_position_healthy("alice", "stETH", "stETH") is True

    def test_does_not_touch_pool_totals(self, configured_pool: LendingPool) -> None:
        configured_pool.deposit_collateral("alice", "XLM", 100_0000000)
        assert configured_pool.get_pool_info("XLM") == (0, 0, 0)

    def test_not_collateral_eligible(self, configured_pool: LendingPool) -> None:
        configured_pool.set_asset_status("GADMIN", "XLM", is_collateral=False)
        with pytest.raises(AssetNotCollateralEligible):
            configured_pool.deposit_collateral("alice", "XLM", 1)

    def test_withdraw_without_debt(self, configured_pool: LendingPool) -> None:
        configured_pool.deposit_collateral("alice", "XLM", 100_0000000)
        position = configured_pool.withdraw_collateral("alice", "XLM", 100_0000000)
        assert position.collateral_amount == 0

    def test_withdraw_more_than_held(self, configured_pool: LendingPool) -> None:
        configured_pool.deposit_collateral("alice", "XLM", 10)
        with pytest.raises(InsufficientCollateral):
            configured_pool.withdraw_collateral("alice", "XLM", 11)

    def test_withdraw_that_breaks_health_factor(self, configured_pool: LendingPool) -> None:
        pool = configured_pool
        pool.deposit("lender", "XLM", 1000_0000000)
        pool.deposit_collateral("alice", "XLM", 100_0000000)
        pool.borrow("alice", "XLM", 40_0000000)

        with pytest.raises(LiquidationRisk):
            pool.withdraw_collateral("alice", "XLM", 60_0000000)
        assert pool.get_position("alice", "XLM").collateral_amount == 100_0000000

        pool.withdraw_collateral("alice", "XLM", 50_0000000)
        assert pool.get_user_account_data("alice").health_factor == 1_0000000


class TestBorrow:
    @pytest.fixture()
    def funded_pool(self, configured_pool: LendingPool) -> LendingPool:
        configured_pool.deposit("lender", "XLM", 1000_0000000)
        configured_pool.deposit_collateral("alice", "XLM", 100_0000000)
        return configured_pool

    def test_scenario_borrow_up_to_threshold(self, funded_pool: LendingPool) -> None:
        snapshot = funded_pool.borrow("alice", "XLM", 80_0000000)

        assert snapshot.total_collateral_usd == 12_0000000
        assert snapshot.total_debt_usd == 9_6000000
        assert snapshot.health_factor == 1_0000000
        assert funded_pool.is_position_healthy("alice", "XLM", "XLM") is True

    def test_scenario_borrow_beyond_threshold(self, funded_pool: LendingPool) -> None:
        with pytest.raises(InsufficientCollateral):
            funded_pool.borrow("alice", "XLM", 81_0000000)

    def test_dust_over_threshold_is_rejected(self, funded_pool: LendingPool) -> None:
        with pytest.raises(LiquidationRisk):
            funded_pool.borrow("alice", "XLM", 80_0000001)
        assert funded_pool.get_position("alice", "XLM").debt_amount == 0

    def test_failed_borrow_has_no_effect(self, funded_pool: LendingPool) -> None:
        pool_before = funded_pool.get_pool_state("XLM")
        position_before = funded_pool.get_position("alice", "XLM")

        with pytest.raises(LiquidationRisk):
            funded_pool.borrow("alice", "XLM", 81_0000000)

        assert funded_pool.get_pool_state("XLM") == pool_before
        assert funded_pool.get_position("alice", "XLM") == position_before

    def test_without_collateral(self, funded_pool: LendingPool) -> None:
        with pytest.raises(InsufficientCollateral):
            funded_pool.borrow("bob", "XLM", 1_0000000)
        assert funded_pool.get_position("bob", "XLM") == Position()

    def test_insufficient_liquidity(self, funded_pool: LendingPool) -> None:
        with pytest.raises(InsufficientLiquidity):
            funded_pool.borrow("alice", "XLM", 1000_0000001)

    def test_inactive_asset(self, funded_pool: LendingPool) -> None:
        funded_pool.set_asset_status("GADMIN", "XLM", is_active=False)
        with pytest.raises(AssetInactive):
            funded_pool.borrow("alice", "XLM", 1_0000000)

    def test_updates_rates(self, configured_pool: LendingPool) -> None:
        pool = configured_pool
        pool.deposit("lender", "USDC", 1000_0000000)
        pool.deposit_collateral("alice", "stETH", 1_0000000)
        pool.borrow("alice", "USDC", 250_0000000)

        state = pool.get_pool_state("USDC")
        assert state.utilization_rate == 2500
        assert state.borrow_rate == 3_2500000
        assert state.supply_rate == 8125000

    def test_invariants_hold(self, funded_pool: LendingPool) -> None:
        funded_pool.borrow("alice", "XLM", 50_0000000)
        with pytest.raises(InsufficientCollateral):
            funded_pool.borrow("alice", "XLM", 50_0000000)
        funded_pool.repay("alice", "XLM", 10_0000000)
        _assert_pool_invariants(funded_pool, ["alice", "lender"])


class TestRepay:
    def test_scenario_overpayment_is_capped(self, configured_pool: LendingPool) -> None:
        pool = configured_pool
        pool.deposit("lender", "USDC", 100_0000000)
        pool.deposit_collateral("alice", "stETH", 1_0000000)
        pool.borrow("alice", "USDC", 40_0000000)

        repaid = pool.repay("alice", "USDC", 100_0000000)

        assert repaid == 40_0000000
        assert pool.get_position("alice", "USDC").debt_amount == 0
        assert pool.get_pool_info("USDC") == (100_0000000, 0, 0)
        _assert_pool_invariants(pool, ["alice", "lender"])

    def test_partial_repay(self, configured_pool: LendingPool) -> None:
        pool = configured_pool
        pool.deposit("lender", "USDC", 100_0000000)
        pool.deposit_collateral("alice", "stETH", 1_0000000)
        pool.borrow("alice", "USDC", 40_0000000)

        assert pool.repay("alice", "USDC", 15_0000000) == 15_0000000
        assert pool.get_position("alice", "USDC").debt_amount == 25_0000000
        assert pool.get_pool_info("USDC")[1] == 25_0000000

    def test_repay_without_debt(self, configured_pool: LendingPool) -> None:
        assert configured_pool.repay("alice", "USDC", 5) == 0

    def test_invalid_amount(self, configured_pool: LendingPool) -> None:
        with pytest.raises(InvalidAmount):
            configured_pool.repay("alice", "USDC", 0)

    def test_allowed_on_inactive_asset(self, configured_pool: LendingPool) -> None:
        pool = configured_pool
        pool.deposit("lender", "USDC", 100_0000000)
        pool.deposit_collateral("alice", "stETH", 1_0000000)
        pool.borrow("alice", "USDC", 10_0000000)
        pool.set_asset_status("GADMIN", "USDC", is_active=False)
        assert pool.repay("alice", "USDC", 10_0000000) == 10_0000000

    def test_after_reconfigure_never_negative(self, configured_pool: LendingPool) -> None:
        pool = configured_pool
        pool.deposit("lender", "USDC", 100_0000000)
        pool.deposit_collateral("alice", "stETH", 1_0000000)
        pool.borrow("alice", "USDC", 10_0000000)
        pool.configure_asset("GADMIN", "USDC", 8000, 8500, 500)

        assert pool.repay("alice", "USDC", 10_0000000) == 10_0000000
        assert pool.get_pool_info("USDC") == (0, 0, 0)
        assert pool.get_position("alice", "USDC").debt_amount == 0

    def test_reconfigure_leaves_earlier_supply_withdrawable(self, configured_pool: LendingPool) -> None:
        pool = configured_pool
        pool.deposit("alice", "USDC", 100_0000000)
        pool.configure_asset("GADMIN", "USDC", 8000, 8500, 500)
        pool.deposit("bob", "USDC", 100_0000000)

        # alice's principal outlives the reset and draws on bob's liquidity
        pool.withdraw("alice", "USDC", 100_0000000)
        with pytest.raises(InsufficientLiquidity):
            pool.withdraw("bob", "USDC", 100_0000000)
