from __future__ import annotations

from threading import Lock

from app.application.ports.block_port import BlockPort


class BlockTimestampCache(BlockPort):
    """Process-wide block -> timestamp memo in front of a ``BlockPort``."""

    def __init__(self, block_port: BlockPort, max_entries: int = 100_000):
        self._block_port = block_port
        self._max_entries = max(1, max_entries)
        self._timestamps: dict[int, int] = {}
        self._lock = Lock()

    def get_block_number(self) -> int:
        return self._block_port.get_block_number()

    def get_block_timestamp(self, *, block_number: int) -> int:
        with self._lock:
            cached = self._timestamps.get(block_number)
        if cached is not None:
            return cached

        timestamp = self._block_port.get_block_timestamp(block_number=block_number)
        with self._lock:
            if len(self._timestamps) >= self._max_entries:
                # Drop the oldest insertion.
                self._timestamps.pop(next(iter(self._timestamps)))
            self._timestamps[block_number] = timestamp
        return timestamp

    def __len__(self) -> int:
        with self._lock:
            return len(self._timestamps)
