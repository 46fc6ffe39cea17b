from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from app.application.ports.block_port import BlockPort
from app.application.ports.pool_port import PoolPort
from app.application.ports.position_port import PositionPort
from app.application.ports.token_port import TokenPort


@dataclass(frozen=True)
class ChainPorts:
    chain: str
    chain_id: int
    block_port: BlockPort
    position_port: PositionPort
    pool_port: PoolPort
    token_port: TokenPort


class ChainPortsProviderPort(Protocol):
    def get_ports(self, *, chain: str) -> ChainPorts:
        ...
