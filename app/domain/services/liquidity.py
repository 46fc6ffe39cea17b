from __future__ import annotations

from fractions import Fraction

from app.domain.entities.position import CurrencyAmount, Token
from app.domain.services.univ3_math import Q96, get_sqrt_ratio_at_tick


def current_amounts(
    *,
    liquidity: int,
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    token0: Token,
    token1: Token,
) -> tuple[CurrencyAmount, CurrencyAmount]:
    """Token amounts held by ``liquidity`` at the given pool price.

    The price is clamped to the position range first, so an out-of-range
    position is fully in token0 (below) or fully in token1 (above).
    """
    if tick_lower >= tick_upper:
        raise ValueError("tick_lower must be lower than tick_upper.")

    sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
    sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)
    sqrt_clamped = min(max(sqrt_price_x96, sqrt_lower), sqrt_upper)

    amount0 = Fraction(liquidity * (sqrt_upper - sqrt_clamped) * Q96, sqrt_clamped * sqrt_upper)
    amount1 = Fraction(liquidity * (sqrt_clamped - sqrt_lower), Q96)
    return (
        CurrencyAmount(token=token0, raw=amount0),
        CurrencyAmount(token=token1, raw=amount1),
    )


def _max_liquidity_for_amount0_imprecise(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    intermediate = (sqrt_a * sqrt_b) // Q96
    return (amount0 * intermediate) // (sqrt_b - sqrt_a)


def _max_liquidity_for_amount0_precise(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    numerator = amount0 * sqrt_a * sqrt_b
    denominator = Q96 * (sqrt_b - sqrt_a)
    return numerator // denominator


def _max_liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return (amount1 * Q96) // (sqrt_b - sqrt_a)


def max_liquidity_for_amounts(
    *,
    sqrt_price_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    amount0: int,
    amount1: int,
    use_full_precision: bool,
) -> int:
    """Largest liquidity the given amounts can back in the range [a, b]."""
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    if sqrt_ratio_a_x96 == sqrt_ratio_b_x96:
        raise ValueError("sqrt ratio bounds must differ.")

    for_amount0 = (
        _max_liquidity_for_amount0_precise
        if use_full_precision
        else _max_liquidity_for_amount0_imprecise
    )

    if sqrt_price_x96 <= sqrt_ratio_a_x96:
        return for_amount0(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount0)
    if sqrt_price_x96 < sqrt_ratio_b_x96:
        liquidity0 = for_amount0(sqrt_price_x96, sqrt_ratio_b_x96, amount0)
        liquidity1 = _max_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_price_x96, amount1)
        return min(liquidity0, liquidity1)
    return _max_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount1)
