from __future__ import annotations

from app.application.ports.pool_port import PoolPort
from app.infrastructure.clients.abi import (
    SELECTORS,
    ZERO_ADDRESS,
    decode_address,
    decode_uint,
    encode_address,
    encode_call,
    encode_uint256,
)
from app.infrastructure.clients.evm_rpc_client import EvmRpcClient


class Univ3PoolClient(PoolPort):
    def __init__(self, *, rpc_client: EvmRpcClient, factory_address: str):
        self._rpc = rpc_client
        self._factory_address = factory_address

    def get_pool_address(self, *, token0: str, token1: str, fee: int) -> str:
        data = encode_call(
            SELECTORS["getPool"],
            encode_address(token0),
            encode_address(token1),
            encode_uint256(fee),
        )
        result = self._rpc.call(to=self._factory_address, data=data)
        if len(result) <= 2:
            return ZERO_ADDRESS
        return decode_address(result)

    def get_sqrt_price_x96(self, *, pool_address: str, block_number: int | None = None) -> int:
        result = self._rpc.call(to=pool_address, data=SELECTORS["slot0"], block_number=block_number)
        # slot0: sqrtPriceX96, tick, observationIndex, ...
        return decode_uint(result, 0)
