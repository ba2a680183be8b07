"""Utilization-driven interest rate model — pure, integer arithmetic."""
from __future__ import annotations

from dataclasses import dataclass

from .units import BASE_BORROW_RATE, BPS, RATE_SLOPE, SCALE, SECONDS_PER_YEAR


@dataclass(frozen=True)
class RateQuote:
    utilization_rate: int
    borrow_rate: int
    supply_rate: int


@dataclass(frozen=True)
class InterestRateModel:
    """Linear rate curve: ``borrow = base + slope * utilization``.

    Rates are fixed-point percentages (``1_0000000`` == 1%); utilization is in
    basis points. Every division floors, so results are deterministic.
    """

    base_borrow_rate: int = BASE_BORROW_RATE
    rate_slope: int = RATE_SLOPE

    @staticmethod
    def utilization(total_supplied: int, total_borrowed: int) -> int:
        if total_supplied <= 0:
            return 0
        return total_borrowed * BPS // total_supplied

    def quote(self, total_supplied: int, total_borrowed: int) -> RateQuote:
        utilization = self.utilization(total_supplied, total_borrowed)
        borrow_rate = self.base_borrow_rate + self.rate_slope * utilization // BPS
        supply_rate = borrow_rate * utilization // BPS
        return RateQuote(
            utilization_rate=utilization,
            borrow_rate=borrow_rate,
            supply_rate=supply_rate,
        )


def projected_interest(principal: int, rate: int, seconds: int) -> int:
    """Simple (non-compounded) interest on ``principal`` over ``seconds``.

    ``rate`` is an annual fixed-point percentage as produced by
    ``InterestRateModel``. Informational only; balances never accrue.
    """
    if principal <= 0 or seconds <= 0:
        return 0
    return principal * rate * seconds // (100 * SCALE * SECONDS_PER_YEAR)
