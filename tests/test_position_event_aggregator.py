from __future__ import annotations

import pytest

from app.application.services.position_event_aggregator import (
    PoolSqrtPriceMemo,
    PositionEventAggregator,
)
from app.domain.entities.liquidity_event import (
    CollectEvent,
    DecreaseLiquidityEvent,
    IncreaseLiquidityEvent,
    LiquidityEventKind,
)
from app.domain.services.univ3_math import Q96


class FakePositionPort:
    def __init__(self, events_by_kind: dict):
        self._events_by_kind = events_by_kind

    def get_events(self, *, position_id: int, kind: LiquidityEventKind):
        _ = position_id
        return list(self._events_by_kind.get(kind, []))


class FakeBlockPort:
    def __init__(self, timestamps: dict[int, int]):
        self._timestamps = timestamps
        self.calls: list[int] = []

    def get_block_number(self) -> int:
        return max(self._timestamps)

    def get_block_timestamp(self, *, block_number: int) -> int:
        self.calls.append(block_number)
        return self._timestamps[block_number]


class FakePoolPort:
    def __init__(self):
        self.calls: list[int | None] = []

    def get_sqrt_price_x96(self, *, pool_address: str, block_number: int | None = None) -> int:
        _ = pool_address
        self.calls.append(block_number)
        return Q96


def _aggregator(events_by_kind: dict, timestamps: dict[int, int] | None = None) -> PositionEventAggregator:
    return PositionEventAggregator(
        position_port=FakePositionPort(events_by_kind),
        block_port=FakeBlockPort(timestamps or {}),
    )


def test_fetch_history_orders_events_by_block_and_log_index():
    increases = [
        IncreaseLiquidityEvent(block_number=20, log_index=1, liquidity=1, amount0=1, amount1=1),
        IncreaseLiquidityEvent(block_number=10, log_index=5, liquidity=1, amount0=1, amount1=1),
        IncreaseLiquidityEvent(block_number=20, log_index=0, liquidity=1, amount0=1, amount1=1),
    ]
    aggregator = _aggregator({LiquidityEventKind.INCREASE: increases})

    history = aggregator.fetch_history(position_id=1)

    assert [(e.block_number, e.log_index) for e in history.increases] == [(10, 5), (20, 0), (20, 1)]
    assert history.decreases == []
    assert history.collects == []


def test_fetch_history_rejects_events_of_the_wrong_kind():
    wrong = [CollectEvent(block_number=1, log_index=0, recipient="0xowner", amount0=1, amount1=1)]
    aggregator = _aggregator({LiquidityEventKind.INCREASE: wrong})

    with pytest.raises(TypeError):
        aggregator.fetch_history(position_id=1)


def test_pool_price_memo_reads_each_block_once():
    pool_port = FakePoolPort()
    memo = PoolSqrtPriceMemo(pool_port=pool_port, pool_address="0xpool")

    assert memo(100) == Q96
    assert memo(100) == Q96
    assert memo(200) == Q96

    assert pool_port.calls == [100, 200]
    assert memo.reads == 2


def test_deposits_and_withdrawals_resolve_open_and_close_timestamps():
    increases = [
        IncreaseLiquidityEvent(block_number=10, log_index=0, liquidity=5, amount0=1, amount1=1),
        IncreaseLiquidityEvent(block_number=30, log_index=0, liquidity=5, amount0=1, amount1=1),
    ]
    decreases = [
        DecreaseLiquidityEvent(block_number=40, log_index=0, liquidity=2, amount0=1, amount1=1),
        DecreaseLiquidityEvent(block_number=50, log_index=0, liquidity=8, amount0=1, amount1=1),
    ]
    aggregator = _aggregator({}, timestamps={10: 1_000, 30: 3_000, 40: 4_000, 50: 5_000})
    memo = PoolSqrtPriceMemo(pool_port=FakePoolPort(), pool_address="0xpool")

    deposits = aggregator.deposits(events=increases, sqrt_price_at_block=memo)
    withdrawals = aggregator.withdrawals(events=decreases, sqrt_price_at_block=memo)

    assert deposits.first_timestamp == 1_000
    assert deposits.last_timestamp is None
    assert withdrawals.last_timestamp == 5_000
    assert withdrawals.total_liquidity == 10


def test_withdrawals_without_events_do_not_touch_block_port():
    block_port = FakeBlockPort({})
    aggregator = PositionEventAggregator(position_port=FakePositionPort({}), block_port=block_port)
    memo = PoolSqrtPriceMemo(pool_port=FakePoolPort(), pool_address="0xpool")

    withdrawals = aggregator.withdrawals(events=[], sqrt_price_at_block=memo)

    assert withdrawals.avg_sqrt_price_x96 is None
    assert withdrawals.last_timestamp is None
    assert block_port.calls == []


def test_daily_collected_subtracts_principal_paid_by_the_collect():
    collects = [
        CollectEvent(block_number=1, log_index=0, recipient="0xowner", amount0=500, amount1=500),
        CollectEvent(block_number=3, log_index=1, recipient="0xowner", amount0=300, amount1=100),
    ]
    decreases = [
        DecreaseLiquidityEvent(block_number=3, log_index=0, liquidity=10, amount0=200, amount1=400),
    ]
    aggregator = _aggregator({}, timestamps={1: 100, 3: 10_000})

    daily = aggregator.daily_collected(collects=collects, decreases=decreases, since_timestamp=5_000)

    assert daily == (100, 0)


def test_daily_collected_excludes_principal_withdrawn_before_the_window():
    decreases = [
        DecreaseLiquidityEvent(block_number=2, log_index=0, liquidity=10, amount0=1_000, amount1=2_000),
    ]
    collects = [
        CollectEvent(block_number=4, log_index=0, recipient="0xowner", amount0=1_050, amount1=2_020),
    ]
    aggregator = _aggregator({}, timestamps={2: 100, 4: 10_000})

    daily = aggregator.daily_collected(collects=collects, decreases=decreases, since_timestamp=5_000)

    assert daily == (50, 20)
