from __future__ import annotations

from typing import Protocol

from app.domain.entities.liquidity_event import LiquidityEvent, LiquidityEventKind
from app.domain.entities.position import PositionInfo


class PositionPort(Protocol):
    def get_owner(self, *, position_id: int) -> str:
        ...

    def get_position(self, *, position_id: int) -> PositionInfo:
        ...

    def get_uncollected_fees(self, *, position_id: int, owner: str) -> tuple[int, int]:
        ...

    def get_events(self, *, position_id: int, kind: LiquidityEventKind) -> list[LiquidityEvent]:
        ...

    def has_events_since(self, *, position_id: int, from_block: int, to_block: int) -> bool:
        ...
