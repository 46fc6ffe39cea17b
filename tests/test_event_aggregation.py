from __future__ import annotations

from fractions import Fraction

from app.domain.entities.liquidity_event import (
    CollectEvent,
    DecreaseLiquidityEvent,
    IncreaseLiquidityEvent,
)
from app.domain.services.event_aggregation import (
    aggregate_collect_events,
    aggregate_liquidity_events,
    collect_fee_events,
    sum_amounts_in_window,
)
from app.domain.services.liquidity import max_liquidity_for_amounts
from app.domain.services.univ3_math import Q96, get_sqrt_ratio_at_tick


SQRT_LOWER = get_sqrt_ratio_at_tick(-600)
SQRT_UPPER = get_sqrt_ratio_at_tick(600)


def _constant_price(_block_number: int) -> int:
    return Q96


class TestAggregateLiquidityEvents:
    def test_no_events_has_no_average_price(self):
        aggregate = aggregate_liquidity_events([], sqrt_price_at_block=_constant_price)

        assert aggregate.amount0 == 0
        assert aggregate.amount1 == 0
        assert aggregate.first_block is None
        assert aggregate.avg_sqrt_price_x96 is None

    def test_single_event_average_is_its_block_price(self):
        event = IncreaseLiquidityEvent(block_number=100, log_index=0, liquidity=1000, amount0=5, amount1=7)

        aggregate = aggregate_liquidity_events([event], sqrt_price_at_block=lambda _block: 3 * Q96)

        assert aggregate.amount0 == 5
        assert aggregate.amount1 == 7
        assert aggregate.avg_sqrt_price_x96 == 3 * Q96
        assert aggregate.first_block == aggregate.last_block == 100

    def test_average_is_weighted_by_liquidity(self):
        prices = {100: Q96, 200: 2 * Q96}
        events = [
            IncreaseLiquidityEvent(block_number=100, log_index=0, liquidity=3, amount0=1, amount1=1),
            IncreaseLiquidityEvent(block_number=200, log_index=4, liquidity=1, amount0=2, amount1=2),
        ]

        aggregate = aggregate_liquidity_events(events, sqrt_price_at_block=prices.__getitem__)

        assert aggregate.total_liquidity == 4
        assert aggregate.avg_sqrt_price_x96 == Fraction(5 * Q96, 4)
        assert aggregate.first_block == 100
        assert aggregate.last_block == 200


class TestAggregateCollectEvents:
    def test_principal_from_decreases_is_subtracted(self):
        collects = [CollectEvent(block_number=10, log_index=2, recipient="0xowner", amount0=1000, amount1=2000)]
        decreases = [DecreaseLiquidityEvent(block_number=10, log_index=1, liquidity=50, amount0=400, amount1=900)]

        aggregate = aggregate_collect_events(
            collects,
            decreases,
            sqrt_price_at_block=_constant_price,
            sqrt_ratio_lower_x96=SQRT_LOWER,
            sqrt_ratio_upper_x96=SQRT_UPPER,
        )

        synthetic = max_liquidity_for_amounts(
            sqrt_price_x96=Q96,
            sqrt_ratio_a_x96=SQRT_LOWER,
            sqrt_ratio_b_x96=SQRT_UPPER,
            amount0=1000,
            amount1=2000,
            use_full_precision=True,
        )
        assert aggregate.amount0 == 600
        assert aggregate.amount1 == 1100
        assert aggregate.total_liquidity == synthetic - 50

    def test_fee_only_collects_average_at_pool_price(self):
        collects = [
            CollectEvent(block_number=10, log_index=0, recipient="0xowner", amount0=10**15, amount1=2 * 10**15),
            CollectEvent(block_number=20, log_index=0, recipient="0xowner", amount0=10**14, amount1=10**14),
        ]

        aggregate = aggregate_collect_events(
            collects,
            [],
            sqrt_price_at_block=_constant_price,
            sqrt_ratio_lower_x96=SQRT_LOWER,
            sqrt_ratio_upper_x96=SQRT_UPPER,
        )

        assert aggregate.avg_sqrt_price_x96 == Q96
        assert aggregate.first_block == 10
        assert aggregate.last_block == 20

    def test_collects_that_only_return_principal_have_no_average_price(self):
        synthetic = max_liquidity_for_amounts(
            sqrt_price_x96=Q96,
            sqrt_ratio_a_x96=SQRT_LOWER,
            sqrt_ratio_b_x96=SQRT_UPPER,
            amount0=1000,
            amount1=2000,
            use_full_precision=True,
        )
        collects = [CollectEvent(block_number=10, log_index=2, recipient="0xowner", amount0=1000, amount1=2000)]
        decreases = [
            DecreaseLiquidityEvent(block_number=10, log_index=1, liquidity=synthetic, amount0=1000, amount1=2000)
        ]

        aggregate = aggregate_collect_events(
            collects,
            decreases,
            sqrt_price_at_block=_constant_price,
            sqrt_ratio_lower_x96=SQRT_LOWER,
            sqrt_ratio_upper_x96=SQRT_UPPER,
        )

        assert aggregate.amount0 == 0
        assert aggregate.amount1 == 0
        assert aggregate.avg_sqrt_price_x96 is None


class TestCollectFeeEvents:
    def test_principal_is_paid_out_before_fees(self):
        decreases = [DecreaseLiquidityEvent(block_number=5, log_index=0, liquidity=1, amount0=100, amount1=50)]
        collects = [
            CollectEvent(block_number=5, log_index=1, recipient="0xowner", amount0=60, amount1=80),
            CollectEvent(block_number=9, log_index=0, recipient="0xowner", amount0=70, amount1=10),
        ]

        fees = collect_fee_events(collects, decreases)

        assert [(e.block_number, e.amount0, e.amount1) for e in fees] == [(5, 0, 30), (9, 30, 10)]

    def test_decrease_after_a_collect_does_not_reduce_it(self):
        collects = [CollectEvent(block_number=5, log_index=0, recipient="0xowner", amount0=60, amount1=80)]
        decreases = [DecreaseLiquidityEvent(block_number=6, log_index=0, liquidity=1, amount0=100, amount1=50)]

        fees = collect_fee_events(collects, decreases)

        assert fees == collects


class TestSumAmountsInWindow:
    def test_only_events_inside_window_are_summed(self):
        timestamps = {1: 100, 2: 200, 3: 300}
        seen: list[int] = []

        def timestamp_for_block(block_number: int) -> int:
            seen.append(block_number)
            return timestamps[block_number]

        events = [
            CollectEvent(block_number=1, log_index=0, recipient="0xowner", amount0=1, amount1=10),
            CollectEvent(block_number=2, log_index=0, recipient="0xowner", amount0=2, amount1=20),
            CollectEvent(block_number=3, log_index=0, recipient="0xowner", amount0=4, amount1=40),
        ]

        result = sum_amounts_in_window(events, timestamp_for_block=timestamp_for_block, since_timestamp=200)

        assert result == (6, 60)
        assert seen == [3, 2, 1]

    def test_window_older_than_every_event_is_empty(self):
        events = [IncreaseLiquidityEvent(block_number=1, log_index=0, liquidity=1, amount0=5, amount1=5)]

        result = sum_amounts_in_window(events, timestamp_for_block=lambda _block: 100, since_timestamp=101)

        assert result == (0, 0)
