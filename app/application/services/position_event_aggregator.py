from __future__ import annotations

import logging
from dataclasses import replace
from threading import Lock

from app.application.ports.block_port import BlockPort
from app.application.ports.pool_port import PoolPort
from app.application.ports.position_port import PositionPort
from app.domain.entities.liquidity_event import (
    CollectEvent,
    DecreaseLiquidityEvent,
    EventAggregate,
    IncreaseLiquidityEvent,
    LiquidityEvent,
    LiquidityEventKind,
    PositionEventHistory,
    event_sort_key,
)
from app.domain.services.event_aggregation import (
    aggregate_collect_events,
    aggregate_liquidity_events,
    collect_fee_events,
    sum_amounts_in_window,
)
from app.domain.services.univ3_math import get_sqrt_ratio_at_tick


logger = logging.getLogger(__name__)


class PoolSqrtPriceMemo:
    """Pool sqrt price per block, one read per distinct block for a single stats call."""

    def __init__(self, *, pool_port: PoolPort, pool_address: str):
        self._pool_port = pool_port
        self._pool_address = pool_address
        self._prices: dict[int, int] = {}
        self._lock = Lock()

    def __call__(self, block_number: int) -> int:
        with self._lock:
            cached = self._prices.get(block_number)
        if cached is not None:
            return cached

        sqrt_price = self._pool_port.get_sqrt_price_x96(
            pool_address=self._pool_address,
            block_number=block_number,
        )
        with self._lock:
            self._prices[block_number] = sqrt_price
        return sqrt_price

    @property
    def reads(self) -> int:
        with self._lock:
            return len(self._prices)


class PositionEventAggregator:
    def __init__(self, *, position_port: PositionPort, block_port: BlockPort):
        self._position_port = position_port
        self._block_port = block_port

    def fetch_history(self, *, position_id: int) -> PositionEventHistory:
        history = PositionEventHistory(
            increases=self._fetch(position_id, LiquidityEventKind.INCREASE, IncreaseLiquidityEvent),
            decreases=self._fetch(position_id, LiquidityEventKind.DECREASE, DecreaseLiquidityEvent),
            collects=self._fetch(position_id, LiquidityEventKind.COLLECT, CollectEvent),
        )
        logger.info(
            "position_event_aggregator: fetched position_id=%s increases=%s decreases=%s collects=%s",
            position_id,
            len(history.increases),
            len(history.decreases),
            len(history.collects),
        )
        return history

    def deposits(
        self,
        *,
        events: list[IncreaseLiquidityEvent],
        sqrt_price_at_block: PoolSqrtPriceMemo,
    ) -> EventAggregate:
        aggregate = aggregate_liquidity_events(events, sqrt_price_at_block=sqrt_price_at_block)
        if aggregate.first_block is None:
            return aggregate
        return replace(
            aggregate,
            first_timestamp=self._block_port.get_block_timestamp(block_number=aggregate.first_block),
        )

    def withdrawals(
        self,
        *,
        events: list[DecreaseLiquidityEvent],
        sqrt_price_at_block: PoolSqrtPriceMemo,
    ) -> EventAggregate:
        aggregate = aggregate_liquidity_events(events, sqrt_price_at_block=sqrt_price_at_block)
        if aggregate.last_block is None:
            return aggregate
        return replace(
            aggregate,
            last_timestamp=self._block_port.get_block_timestamp(block_number=aggregate.last_block),
        )

    def collects(
        self,
        *,
        collects: list[CollectEvent],
        decreases: list[DecreaseLiquidityEvent],
        sqrt_price_at_block: PoolSqrtPriceMemo,
        tick_lower: int,
        tick_upper: int,
    ) -> EventAggregate:
        return aggregate_collect_events(
            collects,
            decreases,
            sqrt_price_at_block=sqrt_price_at_block,
            sqrt_ratio_lower_x96=get_sqrt_ratio_at_tick(tick_lower),
            sqrt_ratio_upper_x96=get_sqrt_ratio_at_tick(tick_upper),
        )

    def daily_collected(
        self,
        *,
        collects: list[CollectEvent],
        decreases: list[DecreaseLiquidityEvent],
        since_timestamp: int,
    ) -> tuple[int, int]:
        """Fees collected since ``since_timestamp``, without principal paid out by those collects."""

        def timestamp_for_block(block_number: int) -> int:
            return self._block_port.get_block_timestamp(block_number=block_number)

        return sum_amounts_in_window(
            collect_fee_events(collects, decreases),
            timestamp_for_block=timestamp_for_block,
            since_timestamp=since_timestamp,
        )

    def _fetch(self, position_id: int, kind: LiquidityEventKind, expected: type) -> list:
        events: list[LiquidityEvent] = self._position_port.get_events(position_id=position_id, kind=kind)
        for event in events:
            if not isinstance(event, expected):
                raise TypeError(f"Unexpected {type(event).__name__} for kind={kind.value}")
        return sorted(events, key=event_sort_key)
