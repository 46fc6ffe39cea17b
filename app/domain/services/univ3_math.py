from __future__ import annotations

import math
from fractions import Fraction

from app.domain.entities.position import Price, Token


Q96 = 2**96
Q192 = 2**192
MAX_UINT256 = 2**256 - 1

MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Q128.128 multipliers for sqrt(1.0001)^-(2^i), same table as TickMath.sol.
_TICK_RATIO_STEPS = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """sqrt(1.0001^tick) as a Q64.96, bit-exact with the pool contracts."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"tick out of range: {tick}")

    abs_tick = abs(tick)
    ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001 if abs_tick & 0x1 else 1 << 128
    for mask, multiplier in _TICK_RATIO_STEPS:
        if abs_tick & mask:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up.
    return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)


def get_tick_at_sqrt_ratio(sqrt_ratio_x96: int) -> int:
    """Greatest tick whose sqrt ratio is <= ``sqrt_ratio_x96``."""
    if sqrt_ratio_x96 < MIN_SQRT_RATIO or sqrt_ratio_x96 >= MAX_SQRT_RATIO:
        raise ValueError(f"sqrt ratio out of range: {sqrt_ratio_x96}")

    low, high = MIN_TICK, MAX_TICK
    while low < high:
        mid = (low + high + 1) // 2
        if get_sqrt_ratio_at_tick(mid) <= sqrt_ratio_x96:
            low = mid
        else:
            high = mid - 1
    return low


def encode_sqrt_ratio_x96(amount1: int, amount0: int) -> int:
    if amount0 <= 0 or amount1 < 0:
        raise ValueError("amounts must be positive.")
    return math.isqrt((amount1 << 192) // amount0)


def sqrt_price_x96_to_price(sqrt_price_x96: int, base: Token, quote: Token) -> Price:
    """Pool price token1/token0 from slot0, oriented as ``base`` -> ``quote``."""
    if sqrt_price_x96 <= 0:
        raise ValueError("Invalid sqrt_price_x96.")
    raw = Fraction(sqrt_price_x96 * sqrt_price_x96, Q192)
    if base.sorts_before(quote):
        return Price(base=base, quote=quote, raw=raw)
    return Price(base=base, quote=quote, raw=1 / raw)


def tick_to_price(base: Token, quote: Token, tick: int) -> Price:
    return sqrt_price_x96_to_price(get_sqrt_ratio_at_tick(tick), base, quote)


def price_to_closest_tick(price: Price) -> int:
    sorted_pair = price.base.sorts_before(price.quote)
    ratio = price.raw
    if sorted_pair:
        sqrt_ratio_x96 = encode_sqrt_ratio_x96(ratio.numerator, ratio.denominator)
    else:
        sqrt_ratio_x96 = encode_sqrt_ratio_x96(ratio.denominator, ratio.numerator)

    tick = get_tick_at_sqrt_ratio(sqrt_ratio_x96)
    if tick >= MAX_TICK:
        return tick

    next_tick_price = tick_to_price(price.base, price.quote, tick + 1)
    if sorted_pair:
        if price.raw >= next_tick_price.raw:
            tick += 1
    elif price.raw <= next_tick_price.raw:
        tick += 1
    return tick
