from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal
from fractions import Fraction

from app.domain.entities.position import CurrencyAmount, Price, fraction_to_decimal


MS_PER_DAY = 86_400_000
SECONDS_PER_DAY = 86_400
DAYS_PER_YEAR = 365
MIN_YIELD_PER_DAY = Decimal("0.0000001")
INFINITE_DAYS = Decimal("Infinity")


def duration_held_ms(*, date_opened: datetime, date_closed: datetime | None, now: datetime) -> int:
    """Milliseconds between opening and close (or now), never below one day."""
    end = date_closed or now
    elapsed = (end - date_opened) // timedelta(milliseconds=1)
    return max(elapsed, MS_PER_DAY)


def yield_per_day(*, total_yield: CurrencyAmount, duration_ms: int) -> CurrencyAmount:
    duration_ms = max(duration_ms, MS_PER_DAY)
    return total_yield.multiply(MS_PER_DAY).divide(duration_ms)


def annualized_rate(*, amount_per_day: CurrencyAmount, deposited: CurrencyAmount) -> Fraction:
    """``amount_per_day / deposited * 365``; zero for dust deposits."""
    if deposited.raw < 1:
        return Fraction(0)
    return amount_per_day.raw / deposited.raw * DAYS_PER_YEAR


def to_quote_amount(amounts: Sequence[CurrencyAmount], price: Price) -> CurrencyAmount:
    """Value of ``amounts`` in the price quote token."""
    if not any(amount.token == price.quote for amount in amounts):
        raise ValueError(f"Quote token {price.quote.symbol} not found in amounts.")

    total = CurrencyAmount.zero(price.quote)
    for amount in amounts:
        if amount.token == price.quote:
            total = total.add(amount)
        else:
            total = total.add(price.quote_amount(amount))
    return total


def blend_yield_price(
    *,
    collected: Sequence[CurrencyAmount],
    uncollected: Sequence[CurrencyAmount],
    avg_collected_price: Price | None,
    current_price: Price,
) -> Price:
    """Average price of the total yield, weighted by quote value of each part."""
    if avg_collected_price is None:
        return current_price

    collected_quote = to_quote_amount(collected, avg_collected_price)
    uncollected_quote = to_quote_amount(uncollected, current_price)
    total_quote = collected_quote.add(uncollected_quote)
    if total_quote.raw == 0:
        return current_price

    raw = (
        avg_collected_price.raw * collected_quote.raw + current_price.raw * uncollected_quote.raw
    ) / total_quote.raw
    return Price(base=avg_collected_price.base, quote=avg_collected_price.quote, raw=raw)


def impermanent_loss_for_ratio(ratio: Decimal) -> Decimal:
    if ratio <= 0:
        return Decimal("0")
    return (2 * ratio.sqrt()) / (1 + ratio) - 1


def impermanent_loss(*, deposit_price: Price | None, boundary_price: Price | None) -> Decimal:
    """IL of a full-range style position if the price moves from deposit to boundary.

    Returns 0 when either price is missing or non-positive.
    """
    if deposit_price is None or boundary_price is None:
        return Decimal("0")
    if deposit_price.raw <= 0 or boundary_price.raw <= 0:
        return Decimal("0")
    if boundary_price.base != deposit_price.base:
        boundary_price = boundary_price.invert()
    return impermanent_loss_for_ratio(fraction_to_decimal(boundary_price.raw / deposit_price.raw))


def break_even_days(
    *,
    impermanent_loss: Decimal,
    yield_per_day_quote: Decimal,
    deposited_quote: Decimal,
) -> Decimal:
    if impermanent_loss >= 0:
        return Decimal("0")
    if yield_per_day_quote <= MIN_YIELD_PER_DAY:
        return INFINITE_DAYS
    days = deposited_quote * abs(impermanent_loss) / yield_per_day_quote
    return max(Decimal("0"), days)
