from __future__ import annotations

import logging
from threading import Lock

from app.application.ports.token_port import TokenPort
from app.domain.entities.position import Token
from app.infrastructure.clients.abi import SELECTORS, decode_string, decode_uint
from app.infrastructure.clients.evm_rpc_client import EvmRpcClient, RpcCallRevertedError


logger = logging.getLogger(__name__)


class Erc20TokenClient(TokenPort):
    """ERC-20 metadata reader; token metadata never changes, so lookups are memoized."""

    def __init__(self, *, rpc_client: EvmRpcClient, chain_id: int):
        self._rpc = rpc_client
        self._chain_id = chain_id
        self._tokens: dict[str, Token] = {}
        self._lock = Lock()

    def get_token(self, *, address: str) -> Token:
        key = address.lower()
        with self._lock:
            cached = self._tokens.get(key)
        if cached is not None:
            return cached

        decimals = decode_uint(self._rpc.call(to=address, data=SELECTORS["decimals"]))
        token = Token(
            chain_id=self._chain_id,
            address=address,
            decimals=decimals,
            symbol=self._read_text(address, "symbol"),
            name=self._read_text(address, "name"),
        )
        with self._lock:
            self._tokens[key] = token
        logger.info(
            "erc20_token_client: loaded chain_id=%s address=%s symbol=%s decimals=%s",
            self._chain_id,
            address,
            token.symbol,
            decimals,
        )
        return token

    def _read_text(self, address: str, field: str) -> str:
        try:
            return decode_string(self._rpc.call(to=address, data=SELECTORS[field]))
        except RpcCallRevertedError:
            logger.warning("erc20_token_client: missing_%s address=%s", field, address)
            return ""
