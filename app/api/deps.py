from __future__ import annotations

from functools import lru_cache
import logging

from app.application.services.position_stats_cache import PositionStatsCache
from app.application.use_cases.get_cached_position_stats import GetCachedPositionStatsUseCase
from app.application.use_cases.get_position_stats import GetPositionStatsUseCase
from app.infrastructure.clients.chain_ports_provider import EvmChainPortsProvider
from app.infrastructure.db.engine import get_engine
from app.infrastructure.db.repositories.position_stats_store_repository import (
    SqlPositionStatsStoreRepository,
)
from app.shared.config import get_settings


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _get_chain_ports_provider() -> EvmChainPortsProvider:
    return EvmChainPortsProvider(get_settings())


def _get_position_stats_store() -> SqlPositionStatsStoreRepository | None:
    settings = get_settings()
    if not settings.postgres_dsn:
        return None
    store = SqlPositionStatsStoreRepository(get_engine(settings.postgres_dsn))
    try:
        store.ensure_schema()
    except Exception as exc:  # noqa: BLE001
        logger.warning("deps: position_stats_store_unavailable error=%s", exc)
    return store


@lru_cache(maxsize=1)
def get_position_stats_cache() -> PositionStatsCache:
    settings = get_settings()
    return PositionStatsCache(
        store=_get_position_stats_store(),
        default_ttl_seconds=settings.position_cache_ttl_seconds,
    )


def get_position_stats_use_case() -> GetPositionStatsUseCase:
    return GetPositionStatsUseCase(chain_ports_provider=_get_chain_ports_provider())


def get_cached_position_stats_use_case() -> GetCachedPositionStatsUseCase:
    settings = get_settings()
    return GetCachedPositionStatsUseCase(
        stats_use_case=get_position_stats_use_case(),
        cache=get_position_stats_cache(),
        chain_ports_provider=_get_chain_ports_provider(),
        ttl_seconds=settings.position_cache_ttl_seconds,
        update_check_max_blocks=settings.position_cache_update_max_blocks,
    )
