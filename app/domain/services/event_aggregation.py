from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace

from app.domain.entities.liquidity_event import (
    CollectEvent,
    DecreaseLiquidityEvent,
    EventAggregate,
    IncreaseLiquidityEvent,
    LiquidityEvent,
    event_sort_key,
)
from app.domain.services.liquidity import max_liquidity_for_amounts


SqrtPriceAtBlock = Callable[[int], int]
TimestampForBlock = Callable[[int], int]


def aggregate_liquidity_events(
    events: Sequence[IncreaseLiquidityEvent | DecreaseLiquidityEvent],
    *,
    sqrt_price_at_block: SqrtPriceAtBlock,
) -> EventAggregate:
    """Totals and liquidity weighted sqrt price of increase or decrease events."""
    amount0 = 0
    amount1 = 0
    total_liquidity = 0
    total_weighted = 0
    for event in events:
        amount0 += event.amount0
        amount1 += event.amount1
        total_liquidity += event.liquidity
        total_weighted += sqrt_price_at_block(event.block_number) * event.liquidity

    return EventAggregate(
        amount0=amount0,
        amount1=amount1,
        total_liquidity=total_liquidity,
        total_weighted_sqrt_price=total_weighted,
        first_block=events[0].block_number if events else None,
        last_block=events[-1].block_number if events else None,
    )


def aggregate_collect_events(
    collects: Sequence[CollectEvent],
    decreases: Sequence[DecreaseLiquidityEvent],
    *,
    sqrt_price_at_block: SqrtPriceAtBlock,
    sqrt_ratio_lower_x96: int,
    sqrt_ratio_upper_x96: int,
) -> EventAggregate:
    """Fee-only ledger: collected amounts minus the principal removed by decreases.

    Collect logs carry no liquidity, so each one is weighted by the liquidity
    its amounts would back in the position range at the pool price of its block.
    """
    amount0 = 0
    amount1 = 0
    total_liquidity = 0
    total_weighted = 0
    for event in collects:
        sqrt_price = sqrt_price_at_block(event.block_number)
        liquidity = max_liquidity_for_amounts(
            sqrt_price_x96=sqrt_price,
            sqrt_ratio_a_x96=sqrt_ratio_lower_x96,
            sqrt_ratio_b_x96=sqrt_ratio_upper_x96,
            amount0=event.amount0,
            amount1=event.amount1,
            use_full_precision=True,
        )
        amount0 += event.amount0
        amount1 += event.amount1
        total_liquidity += liquidity
        total_weighted += sqrt_price * liquidity

    for event in decreases:
        amount0 -= event.amount0
        amount1 -= event.amount1
        total_liquidity -= event.liquidity
        total_weighted -= sqrt_price_at_block(event.block_number) * event.liquidity

    return EventAggregate(
        amount0=amount0,
        amount1=amount1,
        total_liquidity=total_liquidity,
        total_weighted_sqrt_price=total_weighted,
        first_block=collects[0].block_number if collects else None,
        last_block=collects[-1].block_number if collects else None,
    )


def sum_amounts_in_window(
    events: Sequence[LiquidityEvent],
    *,
    timestamp_for_block: TimestampForBlock,
    since_timestamp: int,
) -> tuple[int, int]:
    """Sum of amounts for events whose block timestamp is >= ``since_timestamp``.

    ``events`` must be ordered ascending; the scan walks backwards and stops at
    the first event older than the window.
    """
    amount0 = 0
    amount1 = 0
    for event in reversed(events):
        if timestamp_for_block(event.block_number) < since_timestamp:
            break
        amount0 += event.amount0
        amount1 += event.amount1
    return amount0, amount1


def collect_fee_events(
    collects: Sequence[CollectEvent],
    decreases: Sequence[DecreaseLiquidityEvent],
) -> list[CollectEvent]:
    """Collects with the principal released by earlier decreases taken out.

    A decrease only credits tokens owed to the position; the following collects
    pay that principal out first and whatever exceeds it is fees. Principal is
    matched per token in chain order, regardless of when the decrease happened.
    """
    owed0 = 0
    owed1 = 0
    fees: list[CollectEvent] = []
    for event in sorted([*collects, *decreases], key=event_sort_key):
        if isinstance(event, DecreaseLiquidityEvent):
            owed0 += event.amount0
            owed1 += event.amount1
            continue
        principal0 = min(owed0, event.amount0)
        principal1 = min(owed1, event.amount1)
        owed0 -= principal0
        owed1 -= principal1
        fees.append(replace(event, amount0=event.amount0 - principal0, amount1=event.amount1 - principal1))
    return fees
