from __future__ import annotations

import logging

from app.application.dto.position_stats import (
    GetCachedPositionStatsInput,
    GetPositionStatsInput,
    PositionStatsFailure,
    PositionStatsOutput,
)
from app.application.ports.chain_ports_port import ChainPorts, ChainPortsProviderPort
from app.application.services.position_stats_cache import PositionStatsCache, fingerprint
from app.application.use_cases.get_position_stats import GetPositionStatsUseCase
from app.domain.exceptions import PositionStatsError


logger = logging.getLogger(__name__)

DEFAULT_UPDATE_CHECK_MAX_BLOCKS = 10_000


class GetCachedPositionStatsUseCase:
    """Serves snapshots from the cache until the position emits new events."""

    def __init__(
        self,
        *,
        stats_use_case: GetPositionStatsUseCase,
        cache: PositionStatsCache,
        chain_ports_provider: ChainPortsProviderPort,
        ttl_seconds: float | None = None,
        update_check_max_blocks: int = DEFAULT_UPDATE_CHECK_MAX_BLOCKS,
    ):
        self._stats_use_case = stats_use_case
        self._cache = cache
        self._chain_ports_provider = chain_ports_provider
        self._ttl_seconds = ttl_seconds
        self._update_check_max_blocks = update_check_max_blocks

    def execute(self, command: GetCachedPositionStatsInput) -> PositionStatsOutput:
        key = fingerprint(command.chain, command.position_id)
        try:
            ports = self._chain_ports_provider.get_ports(chain=command.chain)
        except PositionStatsError as exc:
            return PositionStatsOutput(
                error=PositionStatsFailure.from_error(
                    exc,
                    chain=command.chain,
                    position_id=command.position_id,
                )
            )

        current_block = self._current_block(ports, key)
        cached = None if command.refresh else self._cache.get(key)
        if cached is not None:
            last_checked = self._cache.last_checked_block(key)
            if not self._has_updates(
                ports,
                position_id=command.position_id,
                last_checked_block=last_checked,
                current_block=current_block,
            ):
                logger.info(
                    "get_cached_position_stats: cache_hit key=%s last_checked_block=%s",
                    key,
                    last_checked,
                )
                return PositionStatsOutput(snapshot=cached, from_cache=True)
            logger.info(
                "get_cached_position_stats: stale key=%s last_checked_block=%s current_block=%s",
                key,
                last_checked,
                current_block,
            )

        result = self._stats_use_case.execute(
            GetPositionStatsInput(chain=command.chain, position_id=command.position_id)
        )
        if not result.ok:
            return result

        self._cache.set(key, result.snapshot, self._ttl_seconds)
        self._cache.mark_checked(key, current_block)
        logger.info("get_cached_position_stats: stored key=%s block=%s", key, current_block)
        return result

    def _current_block(self, ports: ChainPorts, key: str) -> int:
        try:
            return ports.block_port.get_block_number()
        except RuntimeError as exc:
            logger.warning("get_cached_position_stats: block_number_failed key=%s error=%s", key, exc)
            return 0

    def _has_updates(
        self,
        ports: ChainPorts,
        *,
        position_id: int,
        last_checked_block: int,
        current_block: int,
    ) -> bool:
        if last_checked_block == 0 or current_block == 0:
            return True
        if current_block - last_checked_block > self._update_check_max_blocks:
            return True
        try:
            return ports.position_port.has_events_since(
                position_id=position_id,
                from_block=last_checked_block,
                to_block=current_block,
            )
        except RuntimeError as exc:
            logger.warning(
                "get_cached_position_stats: update_check_failed position_id=%s error=%s",
                position_id,
                exc,
            )
            return True
