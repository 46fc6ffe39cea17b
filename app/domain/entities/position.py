from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from fractions import Fraction


def fraction_to_decimal(value: Fraction) -> Decimal:
    return Decimal(value.numerator) / Decimal(value.denominator)


@dataclass(frozen=True, eq=False)
class Token:
    chain_id: int
    address: str
    decimals: int
    symbol: str
    name: str = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return self.chain_id == other.chain_id and self.address.lower() == other.address.lower()

    def __hash__(self) -> int:
        return hash((self.chain_id, self.address.lower()))

    def sorts_before(self, other: Token) -> bool:
        if self.chain_id != other.chain_id:
            raise ValueError("Tokens must be on the same chain to be sorted.")
        if self == other:
            raise ValueError("Cannot sort a token against itself.")
        return int(self.address, 16) < int(other.address, 16)


@dataclass(frozen=True)
class CurrencyAmount:
    """Exact amount of a token in its smallest unit."""

    token: Token
    raw: Fraction

    @classmethod
    def from_raw(cls, token: Token, raw: int | Fraction) -> CurrencyAmount:
        return cls(token=token, raw=Fraction(raw))

    @classmethod
    def zero(cls, token: Token) -> CurrencyAmount:
        return cls(token=token, raw=Fraction(0))

    def _check_token(self, other: CurrencyAmount) -> None:
        if self.token != other.token:
            raise ValueError(
                f"Token mismatch: {self.token.symbol} ({self.token.address}) "
                f"vs {other.token.symbol} ({other.token.address})"
            )

    def add(self, other: CurrencyAmount) -> CurrencyAmount:
        self._check_token(other)
        return CurrencyAmount(token=self.token, raw=self.raw + other.raw)

    def subtract(self, other: CurrencyAmount) -> CurrencyAmount:
        self._check_token(other)
        return CurrencyAmount(token=self.token, raw=self.raw - other.raw)

    def multiply(self, factor: int | Fraction) -> CurrencyAmount:
        return CurrencyAmount(token=self.token, raw=self.raw * factor)

    def divide(self, divisor: int | Fraction) -> CurrencyAmount:
        return CurrencyAmount(token=self.token, raw=self.raw / divisor)

    def to_decimal(self) -> Decimal:
        return fraction_to_decimal(self.raw) / (Decimal(10) ** self.token.decimals)


@dataclass(frozen=True)
class Price:
    """Raw units of ``quote`` paid for one raw unit of ``base``."""

    base: Token
    quote: Token
    raw: Fraction

    @property
    def scalar(self) -> Fraction:
        return Fraction(10**self.base.decimals, 10**self.quote.decimals)

    @property
    def adjusted(self) -> Fraction:
        return self.raw * self.scalar

    def quote_amount(self, amount: CurrencyAmount) -> CurrencyAmount:
        if amount.token != self.base:
            raise ValueError(f"Amount token {amount.token.symbol} is not the price base.")
        return CurrencyAmount(token=self.quote, raw=amount.raw * self.raw)

    def invert(self) -> Price:
        return Price(base=self.quote, quote=self.base, raw=1 / self.raw)

    def to_decimal(self) -> Decimal:
        return fraction_to_decimal(self.adjusted)


@dataclass(frozen=True)
class PositionInfo:
    position_id: int
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    liquidity: int


@dataclass(frozen=True)
class PositionSnapshot:
    position_id: int
    chain: str
    lower_tick_price: Price
    upper_tick_price: Price
    current_price: Price
    uncollected: tuple[CurrencyAmount, CurrencyAmount]
    current: tuple[CurrencyAmount, CurrencyAmount]
    deposited: tuple[CurrencyAmount, CurrencyAmount]
    avg_deposit_price: Price
    withdrawn: tuple[CurrencyAmount, CurrencyAmount]
    avg_withdrawn_price: Price | None
    collected: tuple[CurrencyAmount, CurrencyAmount]
    avg_collected_price: Price | None
    total_yield: tuple[CurrencyAmount, CurrencyAmount]
    avg_yield_price: Price
    date_opened: datetime
    date_closed: datetime | None
    duration_held_ms: int
    yield_per_day: tuple[CurrencyAmount, CurrencyAmount]
    apr: tuple[Fraction, Fraction]
    impermanent_loss_lower: Decimal
    impermanent_loss_upper: Decimal
    break_even_days_lower: Decimal
    break_even_days_upper: Decimal
    daily_collected: tuple[CurrencyAmount, CurrencyAmount]
    daily_apr: tuple[Fraction, Fraction]

    @property
    def token0(self) -> Token:
        return self.current[0].token

    @property
    def token1(self) -> Token:
        return self.current[1].token
