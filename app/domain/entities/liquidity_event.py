from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import ClassVar, Union


class LiquidityEventKind(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    COLLECT = "collect"


@dataclass(frozen=True)
class IncreaseLiquidityEvent:
    block_number: int
    log_index: int
    liquidity: int
    amount0: int
    amount1: int

    kind: ClassVar[LiquidityEventKind] = LiquidityEventKind.INCREASE


@dataclass(frozen=True)
class DecreaseLiquidityEvent:
    block_number: int
    log_index: int
    liquidity: int
    amount0: int
    amount1: int

    kind: ClassVar[LiquidityEventKind] = LiquidityEventKind.DECREASE


@dataclass(frozen=True)
class CollectEvent:
    block_number: int
    log_index: int
    recipient: str
    amount0: int
    amount1: int

    kind: ClassVar[LiquidityEventKind] = LiquidityEventKind.COLLECT


LiquidityEvent = Union[IncreaseLiquidityEvent, DecreaseLiquidityEvent, CollectEvent]


def event_sort_key(event: LiquidityEvent) -> tuple[int, int]:
    return (event.block_number, event.log_index)


@dataclass(frozen=True)
class EventAggregate:
    amount0: int = 0
    amount1: int = 0
    total_liquidity: int = 0
    total_weighted_sqrt_price: int = 0
    first_block: int | None = None
    last_block: int | None = None
    first_timestamp: int | None = None
    last_timestamp: int | None = None

    @property
    def avg_sqrt_price_x96(self) -> Fraction | None:
        # No liquidity means the event class never happened, not a zero price.
        if self.total_liquidity == 0:
            return None
        return Fraction(self.total_weighted_sqrt_price, self.total_liquidity)


@dataclass(frozen=True)
class PositionEventHistory:
    increases: list[IncreaseLiquidityEvent]
    decreases: list[DecreaseLiquidityEvent]
    collects: list[CollectEvent]
