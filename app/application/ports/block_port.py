from __future__ import annotations

from typing import Protocol


class BlockPort(Protocol):
    def get_block_number(self) -> int:
        ...

    def get_block_timestamp(self, *, block_number: int) -> int:
        ...
