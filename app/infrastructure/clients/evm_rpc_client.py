from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock
import time

import httpx


logger = logging.getLogger(__name__)


class RpcError(RuntimeError):
    pass


class RpcCallRevertedError(RpcError):
    pass


@dataclass(frozen=True)
class EvmRpcClientSettings:
    rpc_url: str
    timeout_seconds: float
    max_retries: int
    min_interval_ms: int
    logs_block_range: int


class EvmRpcClient:
    def __init__(self, settings: EvmRpcClientSettings, transport: httpx.BaseTransport | None = None):
        self._settings = settings
        self._transport = transport
        self._lock = Lock()
        self._last_request_at = 0.0
        self._request_id = 0

    def get_block_number(self) -> int:
        return int(self._post_rpc(method="eth_blockNumber", params=[]), 16)

    def get_block_timestamp(self, *, block_number: int) -> int:
        block = self._post_rpc(method="eth_getBlockByNumber", params=[hex(block_number), False])
        if not block:
            raise RpcError(f"Block not found: {block_number}")
        return int(block["timestamp"], 16)

    def call(
        self,
        *,
        to: str,
        data: str,
        from_address: str | None = None,
        block_number: int | None = None,
    ) -> str:
        tx: dict[str, str] = {"to": to, "data": data}
        if from_address:
            tx["from"] = from_address
        block_tag = hex(block_number) if block_number is not None else "latest"
        result = self._post_rpc(method="eth_call", params=[tx, block_tag])
        if not isinstance(result, str):
            raise RpcError(f"Unexpected eth_call result: {result!r}")
        return result

    def get_logs(
        self,
        *,
        address: str,
        topics: list,
        from_block: int,
        to_block: int | None = None,
    ) -> list[dict]:
        """``eth_getLogs`` split into ``logs_block_range`` sized windows."""
        end_block = self.get_block_number() if to_block is None else to_block
        if from_block > end_block:
            return []

        step = max(1, self._settings.logs_block_range)
        logs: list[dict] = []
        chunk_start = from_block
        chunks = 0
        while chunk_start <= end_block:
            chunk_end = min(chunk_start + step - 1, end_block)
            result = self._post_rpc(
                method="eth_getLogs",
                params=[
                    {
                        "address": address,
                        "topics": topics,
                        "fromBlock": hex(chunk_start),
                        "toBlock": hex(chunk_end),
                    }
                ],
            )
            logs.extend(result or [])
            chunks += 1
            chunk_start = chunk_end + 1

        logger.info(
            "evm_rpc_client: fetched_logs address=%s from_block=%s to_block=%s chunks=%s logs=%s",
            address,
            from_block,
            end_block,
            chunks,
            len(logs),
        )
        return logs

    def _post_rpc(self, *, method: str, params: list):
        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            self._respect_rate_limit()
            try:
                with httpx.Client(
                    timeout=self._settings.timeout_seconds,
                    transport=self._transport,
                ) as client:
                    response = client.post(
                        self._settings.rpc_url,
                        json={
                            "jsonrpc": "2.0",
                            "id": self._next_request_id(),
                            "method": method,
                            "params": params,
                        },
                    )
                    response.raise_for_status()
                    payload = response.json()

                error = payload.get("error")
                if error:
                    message = str(error.get("message", error)) if isinstance(error, dict) else str(error)
                    if "revert" in message.lower():
                        raise RpcCallRevertedError(f"{method} reverted: {message}")
                    raise RpcError(f"{method} failed: {message}")

                return payload.get("result")
            except RpcCallRevertedError:
                raise
            except (httpx.HTTPError, RpcError, ValueError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "evm_rpc_client: rpc_retry method=%s attempt=%s/%s error=%s",
                    method,
                    attempt,
                    attempts,
                    exc,
                )
                time.sleep(delay)
                delay *= 2

        raise RpcError(f"JSON-RPC {method} failed after retries: {last_exc}") from last_exc

    def _next_request_id(self) -> int:
        with self._lock:
            self._request_id += 1
            return self._request_id

    def _respect_rate_limit(self) -> None:
        min_interval = max(0, self._settings.min_interval_ms) / 1000.0
        if min_interval <= 0:
            return

        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_at
            if elapsed < min_interval:
                time.sleep(min_interval - elapsed)
            self._last_request_at = time.monotonic()
