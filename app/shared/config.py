from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


CHAIN_IDS = {
    "ethereum": 1,
    "arbitrum": 42161,
    "base": 8453,
    "polygon": 137,
}

DEFAULT_FACTORY_ADDRESSES = {
    "ethereum": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
    "arbitrum": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
    "polygon": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
    "base": "0x33128a8fC17869897dcE68Ed026d694621f6FDfD",
}

DEFAULT_POSITION_MANAGER_ADDRESSES = {
    "ethereum": "0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
    "arbitrum": "0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
    "polygon": "0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
    "base": "0x03a520b32C04BF3bEEf7BEb72E919cf822Ed34f1",
}

# First block to scan for position manager logs.
DEFAULT_START_BLOCKS = {
    "ethereum": 12369621,
    "arbitrum": 0,
    "polygon": 0,
    "base": 0,
}


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class ChainSettings:
    chain: str
    chain_id: int
    rpc_url: str
    factory_address: str
    position_manager_address: str
    start_block: int


@dataclass(frozen=True)
class Settings:
    chains: dict
    rpc_timeout_seconds: float
    rpc_max_retries: int
    rpc_min_interval_ms: int
    rpc_logs_block_range: int
    position_cache_ttl_seconds: float
    position_cache_update_max_blocks: int
    postgres_dsn: str


def _chain_settings(chain: str) -> ChainSettings | None:
    key = chain.upper()
    rpc_url = (_env(f"RPC_URL_{key}", "") or "").strip()
    if not rpc_url:
        return None
    return ChainSettings(
        chain=chain,
        chain_id=CHAIN_IDS[chain],
        rpc_url=rpc_url,
        factory_address=_env(f"FACTORY_ADDRESS_{key}", DEFAULT_FACTORY_ADDRESSES[chain]),
        position_manager_address=_env(
            f"POSITION_MANAGER_ADDRESS_{key}",
            DEFAULT_POSITION_MANAGER_ADDRESSES[chain],
        ),
        start_block=int(_env(f"POSITION_MANAGER_START_BLOCK_{key}", str(DEFAULT_START_BLOCKS[chain]))),
    )


def get_settings() -> Settings:
    chains = {}
    for chain in CHAIN_IDS:
        chain_settings = _chain_settings(chain)
        if chain_settings is not None:
            chains[chain] = chain_settings
    return Settings(
        chains=chains,
        rpc_timeout_seconds=float(_env("RPC_TIMEOUT_SECONDS", "15")),
        rpc_max_retries=int(_env("RPC_MAX_RETRIES", "3")),
        rpc_min_interval_ms=int(_env("RPC_MIN_INTERVAL_MS", "0")),
        rpc_logs_block_range=int(_env("RPC_LOGS_BLOCK_RANGE", "50000")),
        position_cache_ttl_seconds=float(_env("POSITION_CACHE_TTL_SECONDS", "3600")),
        position_cache_update_max_blocks=int(_env("POSITION_CACHE_UPDATE_MAX_BLOCKS", "10000")),
        postgres_dsn=_env("POSTGRES_DSN", ""),
    )
