from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from threading import Lock

from app.application.ports.position_stats_store_port import PositionStatsStorePort
from app.domain.entities.position import PositionSnapshot


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


def fingerprint(chain: str, position_id: int) -> str:
    return f"position_{chain}_{position_id}"


class PositionStatsCache:
    """Two-tier snapshot cache: process memory first, then an optional store.

    Store failures never escape; they are logged and treated as a miss.
    Also tracks the last block at which each key was checked for new events.
    """

    def __init__(
        self,
        *,
        store: PositionStatsStorePort | None = None,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ):
        self._store = store
        self._default_ttl_seconds = default_ttl_seconds
        self._memory: dict[str, tuple[float, PositionSnapshot]] = {}
        self._checked_blocks: dict[str, int] = {}
        self._lock = Lock()

    @property
    def default_ttl_seconds(self) -> float:
        return self._default_ttl_seconds

    def get(self, key: str) -> PositionSnapshot | None:
        snapshot = self._memory_get(key)
        if snapshot is not None:
            logger.info("position_stats_cache: memory_hit key=%s", key)
            return snapshot

        if self._store is None:
            return None

        try:
            snapshot = self._store.get(key=key, now=datetime.now(timezone.utc))
        except Exception as exc:  # noqa: BLE001
            logger.warning("position_stats_cache: store_get_failed key=%s error=%s", key, exc)
            return None

        if snapshot is None:
            return None
        logger.info("position_stats_cache: store_hit key=%s", key)
        self._memory_set(key, snapshot, self._default_ttl_seconds)
        return snapshot

    def set(self, key: str, snapshot: PositionSnapshot, ttl_seconds: float | None = None) -> None:
        ttl = self._default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        self._memory_set(key, snapshot, ttl)

        if self._store is None:
            return
        try:
            self._store.set(
                key=key,
                snapshot=snapshot,
                expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("position_stats_cache: store_set_failed key=%s error=%s", key, exc)

    def delete(self, key: str) -> None:
        with self._lock:
            self._memory.pop(key, None)
            self._checked_blocks.pop(key, None)
        if self._store is None:
            return
        try:
            self._store.delete(key=key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("position_stats_cache: store_delete_failed key=%s error=%s", key, exc)

    def clear(self) -> None:
        with self._lock:
            self._memory.clear()
            self._checked_blocks.clear()
        if self._store is None:
            return
        try:
            self._store.clear()
        except Exception as exc:  # noqa: BLE001
            logger.warning("position_stats_cache: store_clear_failed error=%s", exc)

    def last_checked_block(self, key: str) -> int:
        with self._lock:
            return self._checked_blocks.get(key, 0)

    def mark_checked(self, key: str, block_number: int) -> None:
        with self._lock:
            self._checked_blocks[key] = block_number

    def _memory_get(self, key: str) -> PositionSnapshot | None:
        now = time.monotonic()
        with self._lock:
            cached = self._memory.get(key)
            if cached is None:
                return None
            expires_at, snapshot = cached
            if expires_at <= now:
                self._memory.pop(key, None)
                return None
            return snapshot

    def _memory_set(self, key: str, snapshot: PositionSnapshot, ttl_seconds: float) -> None:
        expires_at = time.monotonic() + ttl_seconds
        with self._lock:
            self._memory[key] = (expires_at, snapshot)
