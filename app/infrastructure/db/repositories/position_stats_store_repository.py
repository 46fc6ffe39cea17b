from __future__ import annotations

import json
import logging
from datetime import datetime

from sqlalchemy import text

from app.application.ports.position_stats_store_port import PositionStatsStorePort
from app.domain.entities.position import PositionSnapshot
from app.infrastructure.db.engine import Base
from app.infrastructure.db.mappers.position_stats_mapper import (
    map_row_to_position_snapshot,
    position_snapshot_to_payload,
)
from app.infrastructure.db.models.position_stats_cache import PositionStatsCacheModel


logger = logging.getLogger(__name__)


class SqlPositionStatsStoreRepository(PositionStatsStorePort):
    def __init__(self, engine):
        self._engine = engine

    def ensure_schema(self) -> None:
        Base.metadata.create_all(self._engine, tables=[PositionStatsCacheModel.__table__])

    def get(self, *, key: str, now: datetime) -> PositionSnapshot | None:
        sql = """
            SELECT payload
            FROM public.position_stats_cache
            WHERE cache_key = :cache_key
              AND expires_at > :now
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"cache_key": key, "now": now}).mappings().first()
        if row is None:
            return None
        return map_row_to_position_snapshot(row)

    def set(self, *, key: str, snapshot: PositionSnapshot, expires_at: datetime) -> None:
        sql = """
            INSERT INTO public.position_stats_cache (
                cache_key, chain, position_id, payload, expires_at, updated_at
            )
            VALUES (:cache_key, :chain, :position_id, CAST(:payload AS jsonb), :expires_at, now())
            ON CONFLICT (cache_key) DO UPDATE
            SET payload = EXCLUDED.payload,
                expires_at = EXCLUDED.expires_at,
                updated_at = now()
        """
        params = {
            "cache_key": key,
            "chain": snapshot.chain,
            "position_id": str(snapshot.position_id),
            "payload": json.dumps(position_snapshot_to_payload(snapshot)),
            "expires_at": expires_at,
        }
        with self._engine.begin() as conn:
            conn.execute(text(sql), params)
        logger.info("position_stats_store_repo: stored key=%s expires_at=%s", key, expires_at.isoformat())

    def delete(self, *, key: str) -> None:
        sql = "DELETE FROM public.position_stats_cache WHERE cache_key = :cache_key"
        with self._engine.begin() as conn:
            conn.execute(text(sql), {"cache_key": key})

    def clear(self) -> None:
        with self._engine.begin() as conn:
            conn.execute(text("DELETE FROM public.position_stats_cache"))
