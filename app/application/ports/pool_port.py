from __future__ import annotations

from typing import Protocol


class PoolPort(Protocol):
    def get_pool_address(self, *, token0: str, token1: str, fee: int) -> str:
        ...

    def get_sqrt_price_x96(self, *, pool_address: str, block_number: int | None = None) -> int:
        ...
