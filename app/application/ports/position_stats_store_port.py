from __future__ import annotations

from datetime import datetime
from typing import Protocol

from app.domain.entities.position import PositionSnapshot


class PositionStatsStorePort(Protocol):
    def get(self, *, key: str, now: datetime) -> PositionSnapshot | None:
        ...

    def set(self, *, key: str, snapshot: PositionSnapshot, expires_at: datetime) -> None:
        ...

    def delete(self, *, key: str) -> None:
        ...

    def clear(self) -> None:
        ...
