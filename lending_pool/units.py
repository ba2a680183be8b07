"""Fixed-point and basis-point units used across the pool."""
from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation

# 1.0 in 7-decimal fixed point
SCALE = 10_000_000
# 100% in basis points
BPS = 10_000

MAX_LTV_RATIO = 9500
MAX_LIQUIDATION_THRESHOLD = 9500
MAX_RESERVE_FACTOR = 5000

# Rates are percentages in fixed point: 1_0000000 == 1%
INITIAL_BORROW_RATE = 5_0000000
INITIAL_SUPPLY_RATE = 1_0000000
BASE_BORROW_RATE = 2_0000000
RATE_SLOPE = 5_0000000

HEALTH_FACTOR_ONE = SCALE
HEALTH_FACTOR_MAX = 2**127 - 1

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


def to_fixed(value: str | int | Decimal) -> int:
    """Convert a human decimal amount into 7-decimal fixed point.

    Extra precision is truncated toward zero::

        to_fixed("1000") == 1000_0000000
        to_fixed("0.12") == 1200000
    """
    try:
        dec = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e
    if not dec.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return int((dec * SCALE).to_integral_value(rounding=ROUND_DOWN))


def from_fixed(value: int) -> Decimal:
    """Convert a 7-decimal fixed-point integer back to a Decimal."""
    return Decimal(value) / SCALE


def format_fixed(value: int, places: int = 7) -> str:
    quant = Decimal(1).scaleb(-places)
    return f"{from_fixed(value).quantize(quant, rounding=ROUND_DOWN):,}"


def format_bps(value: int) -> str:
    return f"{Decimal(value) / 100:.2f}%"
