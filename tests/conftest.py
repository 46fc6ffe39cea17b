from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from fractions import Fraction

import pytest

from app.domain.entities.position import CurrencyAmount, PositionSnapshot, Price, Token


@pytest.fixture
def usdc() -> Token:
    return Token(
        chain_id=1,
        address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        decimals=6,
        symbol="USDC",
        name="USD Coin",
    )


@pytest.fixture
def weth() -> Token:
    return Token(
        chain_id=1,
        address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        decimals=18,
        symbol="WETH",
        name="Wrapped Ether",
    )


@pytest.fixture
def snapshot(usdc: Token, weth: Token) -> PositionSnapshot:
    def pair(amount0: int, amount1: int) -> tuple[CurrencyAmount, CurrencyAmount]:
        return CurrencyAmount.from_raw(usdc, amount0), CurrencyAmount.from_raw(weth, amount1)

    price = Price(base=usdc, quote=weth, raw=Fraction(1, 3000) * Fraction(10**18, 10**6))
    return PositionSnapshot(
        position_id=123456,
        chain="ethereum",
        lower_tick_price=Price(base=usdc, quote=weth, raw=price.raw * Fraction(9, 10)),
        upper_tick_price=Price(base=usdc, quote=weth, raw=price.raw * Fraction(11, 10)),
        current_price=price,
        uncollected=pair(1_500_000, 500_000_000_000_000),
        current=(CurrencyAmount(token=usdc, raw=Fraction(1000_000_001, 3)), CurrencyAmount.from_raw(weth, 10**17)),
        deposited=pair(1_000_000_000, 3 * 10**17),
        avg_deposit_price=price,
        withdrawn=pair(0, 0),
        avg_withdrawn_price=None,
        collected=pair(2_000_000, 10**15),
        avg_collected_price=price,
        total_yield=pair(3_500_000, 15 * 10**14),
        avg_yield_price=price,
        date_opened=datetime(2024, 1, 1, tzinfo=timezone.utc),
        date_closed=None,
        duration_held_ms=10 * 86_400_000,
        yield_per_day=pair(350_000, 15 * 10**13),
        apr=(Fraction(511, 4000), Fraction(73, 400)),
        impermanent_loss_lower=Decimal("-0.0013"),
        impermanent_loss_upper=Decimal("-0.0011"),
        break_even_days_lower=Decimal("Infinity"),
        break_even_days_upper=Decimal("12.5"),
        daily_collected=pair(0, 0),
        daily_apr=(Fraction(0), Fraction(0)),
    )
