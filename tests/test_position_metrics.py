from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from fractions import Fraction
import unittest

from app.domain.entities.position import CurrencyAmount, Price, Token
from app.domain.services.position_metrics import (
    MS_PER_DAY,
    annualized_rate,
    blend_yield_price,
    break_even_days,
    duration_held_ms,
    impermanent_loss,
    impermanent_loss_for_ratio,
    to_quote_amount,
    yield_per_day,
)


TOKEN0 = Token(chain_id=1, address="0x1000000000000000000000000000000000000000", decimals=18, symbol="AAA")
TOKEN1 = Token(chain_id=1, address="0x2000000000000000000000000000000000000000", decimals=18, symbol="BBB")
TOLERANCE = Decimal("0.0001")


def _price(raw: int | Fraction) -> Price:
    return Price(base=TOKEN0, quote=TOKEN1, raw=Fraction(raw))


class ImpermanentLossTests(unittest.TestCase):
    def test_halving_or_doubling_price(self):
        deposit = _price(1000)
        for boundary in (500, 2000):
            loss = impermanent_loss(deposit_price=deposit, boundary_price=_price(boundary))
            self.assertLessEqual(abs(loss - Decimal("-0.0572")), TOLERANCE)

    def test_quartering_or_quadrupling_price(self):
        deposit = _price(1000)
        for boundary in (250, 4000):
            loss = impermanent_loss(deposit_price=deposit, boundary_price=_price(boundary))
            self.assertLessEqual(abs(loss - Decimal("-0.2")), TOLERANCE)

    def test_unchanged_price_has_no_loss(self):
        for raw in (Fraction(1), Fraction(12345, 7), Fraction(1, 10**12)):
            loss = impermanent_loss(deposit_price=_price(raw), boundary_price=_price(raw))
            self.assertEqual(loss, Decimal("0"))

    def test_boundary_in_opposite_orientation_is_inverted(self):
        boundary = Price(base=TOKEN1, quote=TOKEN0, raw=Fraction(1, 500))
        loss = impermanent_loss(deposit_price=_price(1000), boundary_price=boundary)
        expected = impermanent_loss(deposit_price=_price(1000), boundary_price=_price(500))
        self.assertEqual(loss, expected)

    def test_missing_or_zero_prices_have_no_loss(self):
        self.assertEqual(impermanent_loss(deposit_price=None, boundary_price=_price(2)), Decimal("0"))
        self.assertEqual(impermanent_loss(deposit_price=_price(2), boundary_price=None), Decimal("0"))
        self.assertEqual(impermanent_loss(deposit_price=_price(0), boundary_price=_price(2)), Decimal("0"))
        self.assertEqual(impermanent_loss_for_ratio(Decimal("0")), Decimal("0"))


class BreakEvenDaysTests(unittest.TestCase):
    def test_days_to_recover_loss(self):
        self.assertEqual(
            break_even_days(
                impermanent_loss=Decimal("-0.05"),
                yield_per_day_quote=Decimal("2"),
                deposited_quote=Decimal("1000"),
            ),
            Decimal("25"),
        )
        self.assertEqual(
            break_even_days(
                impermanent_loss=Decimal("-0.1"),
                yield_per_day_quote=Decimal("5"),
                deposited_quote=Decimal("2000"),
            ),
            Decimal("40"),
        )

    def test_no_loss_is_zero_days(self):
        for loss in (Decimal("0"), Decimal("0.01")):
            self.assertEqual(
                break_even_days(
                    impermanent_loss=loss,
                    yield_per_day_quote=Decimal("0"),
                    deposited_quote=Decimal("1000"),
                ),
                Decimal("0"),
            )

    def test_negligible_yield_never_breaks_even(self):
        for yield_quote in (Decimal("0"), Decimal("0.0000001")):
            days = break_even_days(
                impermanent_loss=Decimal("-0.5"),
                yield_per_day_quote=yield_quote,
                deposited_quote=Decimal("1000"),
            )
            self.assertTrue(days.is_infinite())


class RateTests(unittest.TestCase):
    def test_dust_deposit_yields_zero_rate(self):
        per_day = CurrencyAmount.from_raw(TOKEN0, 10**18)
        self.assertEqual(annualized_rate(amount_per_day=per_day, deposited=CurrencyAmount.zero(TOKEN0)), 0)
        self.assertEqual(
            annualized_rate(amount_per_day=per_day, deposited=CurrencyAmount.from_raw(TOKEN0, Fraction(1, 2))),
            0,
        )

    def test_annualized_rate(self):
        rate = annualized_rate(
            amount_per_day=CurrencyAmount.from_raw(TOKEN0, 10),
            deposited=CurrencyAmount.from_raw(TOKEN0, 1000),
        )
        self.assertEqual(rate, Fraction(73, 20))

    def test_yield_per_day(self):
        per_day = yield_per_day(total_yield=CurrencyAmount.from_raw(TOKEN1, 100), duration_ms=2 * MS_PER_DAY)
        self.assertEqual(per_day.raw, 50)

    def test_yield_per_day_with_zero_duration_uses_one_day(self):
        per_day = yield_per_day(total_yield=CurrencyAmount.from_raw(TOKEN1, 100), duration_ms=0)
        self.assertEqual(per_day.raw, 100)


class DurationTests(unittest.TestCase):
    NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_duration_is_at_least_one_day(self):
        opened = self.NOW - timedelta(hours=1)
        self.assertEqual(duration_held_ms(date_opened=opened, date_closed=None, now=self.NOW), MS_PER_DAY)

    def test_open_position_runs_until_now(self):
        opened = self.NOW - timedelta(days=10)
        self.assertEqual(duration_held_ms(date_opened=opened, date_closed=None, now=self.NOW), 10 * MS_PER_DAY)

    def test_closed_position_stops_at_close(self):
        opened = self.NOW - timedelta(days=10)
        closed = self.NOW - timedelta(days=4)
        self.assertEqual(duration_held_ms(date_opened=opened, date_closed=closed, now=self.NOW), 6 * MS_PER_DAY)

    def test_opened_at_now_is_one_day(self):
        self.assertEqual(duration_held_ms(date_opened=self.NOW, date_closed=None, now=self.NOW), MS_PER_DAY)

    def test_closed_in_the_opening_second_is_one_day(self):
        opened = self.NOW - timedelta(days=2)
        self.assertEqual(duration_held_ms(date_opened=opened, date_closed=opened, now=self.NOW), MS_PER_DAY)


class QuoteValueTests(unittest.TestCase):
    def test_to_quote_amount_converts_base_side(self):
        amounts = (CurrencyAmount.from_raw(TOKEN0, 2), CurrencyAmount.from_raw(TOKEN1, 3))
        self.assertEqual(to_quote_amount(amounts, _price(5)).raw, 13)

    def test_to_quote_amount_requires_quote_token(self):
        with self.assertRaises(ValueError):
            to_quote_amount((CurrencyAmount.from_raw(TOKEN0, 2),), _price(5))

    def test_blend_weights_collected_and_uncollected_value(self):
        collected = (CurrencyAmount.zero(TOKEN0), CurrencyAmount.from_raw(TOKEN1, 10))
        uncollected = (CurrencyAmount.zero(TOKEN0), CurrencyAmount.from_raw(TOKEN1, 30))

        price = blend_yield_price(
            collected=collected,
            uncollected=uncollected,
            avg_collected_price=_price(2),
            current_price=_price(4),
        )

        self.assertEqual(price.raw, Fraction(7, 2))

    def test_blend_falls_back_to_current_price(self):
        zeros = (CurrencyAmount.zero(TOKEN0), CurrencyAmount.zero(TOKEN1))
        current = _price(4)

        self.assertEqual(
            blend_yield_price(collected=zeros, uncollected=zeros, avg_collected_price=None, current_price=current),
            current,
        )
        self.assertEqual(
            blend_yield_price(collected=zeros, uncollected=zeros, avg_collected_price=_price(2), current_price=current),
            current,
        )
