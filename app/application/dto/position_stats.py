from __future__ import annotations

from dataclasses import dataclass

from app.domain.entities.position import PositionSnapshot
from app.domain.exceptions import PositionStatsError, PositionStatsErrorKind


@dataclass(frozen=True)
class GetPositionStatsInput:
    chain: str
    position_id: int


@dataclass(frozen=True)
class GetCachedPositionStatsInput:
    chain: str
    position_id: int
    refresh: bool = False


@dataclass(frozen=True)
class PositionStatsFailure:
    kind: PositionStatsErrorKind
    message: str
    chain: str
    position_id: int

    @classmethod
    def from_error(cls, exc: PositionStatsError, *, chain: str, position_id: int) -> PositionStatsFailure:
        return cls(kind=exc.kind, message=str(exc), chain=chain, position_id=position_id)


@dataclass(frozen=True)
class PositionStatsOutput:
    snapshot: PositionSnapshot | None = None
    error: PositionStatsFailure | None = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.snapshot is not None
