from __future__ import annotations

import logging
from threading import Lock

from app.application.ports.chain_ports_port import ChainPorts, ChainPortsProviderPort
from app.domain.exceptions import UnsupportedChainError
from app.infrastructure.clients.block_timestamp_cache import BlockTimestampCache
from app.infrastructure.clients.erc20_token_client import Erc20TokenClient
from app.infrastructure.clients.evm_rpc_client import EvmRpcClient, EvmRpcClientSettings
from app.infrastructure.clients.univ3_pool_client import Univ3PoolClient
from app.infrastructure.clients.univ3_position_manager_client import Univ3PositionManagerClient
from app.shared.config import Settings


logger = logging.getLogger(__name__)


class EvmChainPortsProvider(ChainPortsProviderPort):
    """Builds the chain adapters once per configured chain and reuses them."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._ports: dict[str, ChainPorts] = {}
        self._lock = Lock()

    def get_ports(self, *, chain: str) -> ChainPorts:
        key = chain.strip().lower()
        with self._lock:
            cached = self._ports.get(key)
            if cached is not None:
                return cached

            chain_settings = self._settings.chains.get(key)
            if chain_settings is None:
                raise UnsupportedChainError(
                    f"Unsupported chain '{chain}'. Configured: {sorted(self._settings.chains)}",
                    chain=chain,
                )

            rpc_client = EvmRpcClient(
                EvmRpcClientSettings(
                    rpc_url=chain_settings.rpc_url,
                    timeout_seconds=self._settings.rpc_timeout_seconds,
                    max_retries=self._settings.rpc_max_retries,
                    min_interval_ms=self._settings.rpc_min_interval_ms,
                    logs_block_range=self._settings.rpc_logs_block_range,
                )
            )
            ports = ChainPorts(
                chain=key,
                chain_id=chain_settings.chain_id,
                block_port=BlockTimestampCache(rpc_client),
                position_port=Univ3PositionManagerClient(
                    rpc_client=rpc_client,
                    position_manager_address=chain_settings.position_manager_address,
                    start_block=chain_settings.start_block,
                ),
                pool_port=Univ3PoolClient(
                    rpc_client=rpc_client,
                    factory_address=chain_settings.factory_address,
                ),
                token_port=Erc20TokenClient(rpc_client=rpc_client, chain_id=chain_settings.chain_id),
            )
            self._ports[key] = ports
            logger.info(
                "chain_ports_provider: built chain=%s chain_id=%s position_manager=%s",
                key,
                chain_settings.chain_id,
                chain_settings.position_manager_address,
            )
            return ports
