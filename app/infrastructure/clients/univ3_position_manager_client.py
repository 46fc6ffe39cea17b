from __future__ import annotations

import logging

from app.application.ports.position_port import PositionPort
from app.domain.entities.liquidity_event import (
    CollectEvent,
    DecreaseLiquidityEvent,
    IncreaseLiquidityEvent,
    LiquidityEvent,
    LiquidityEventKind,
)
from app.domain.entities.position import PositionInfo
from app.domain.exceptions import PositionDataError, PositionNotFoundError
from app.infrastructure.clients.abi import (
    EVENT_TOPICS,
    MAX_UINT128,
    SELECTORS,
    ZERO_ADDRESS,
    decode_address,
    decode_int,
    decode_uint,
    encode_address,
    encode_call,
    encode_uint256,
    uint256_topic,
    word_count,
)
from app.infrastructure.clients.evm_rpc_client import EvmRpcClient, RpcCallRevertedError


logger = logging.getLogger(__name__)

POSITIONS_WORDS = 12
KIND_TO_EVENT = {
    LiquidityEventKind.INCREASE: "IncreaseLiquidity",
    LiquidityEventKind.DECREASE: "DecreaseLiquidity",
    LiquidityEventKind.COLLECT: "Collect",
}


def parse_position_log(log: dict, kind: LiquidityEventKind) -> LiquidityEvent:
    """Typed event from a raw ``eth_getLogs`` entry of the position manager."""
    topics = log.get("topics") or []
    if not topics or topics[0].lower() != EVENT_TOPICS[KIND_TO_EVENT[kind]]:
        raise ValueError(f"Log is not a {KIND_TO_EVENT[kind]} event.")

    data = log["data"]
    if word_count(data) < 3:
        raise ValueError(f"{KIND_TO_EVENT[kind]} log data too short.")

    block_number = int(log["blockNumber"], 16)
    log_index = int(log.get("logIndex") or "0x0", 16)
    if kind == LiquidityEventKind.COLLECT:
        return CollectEvent(
            block_number=block_number,
            log_index=log_index,
            recipient=decode_address(data, 0),
            amount0=decode_uint(data, 1),
            amount1=decode_uint(data, 2),
        )

    event_type = IncreaseLiquidityEvent if kind == LiquidityEventKind.INCREASE else DecreaseLiquidityEvent
    return event_type(
        block_number=block_number,
        log_index=log_index,
        liquidity=decode_uint(data, 0),
        amount0=decode_uint(data, 1),
        amount1=decode_uint(data, 2),
    )


class Univ3PositionManagerClient(PositionPort):
    def __init__(
        self,
        *,
        rpc_client: EvmRpcClient,
        position_manager_address: str,
        start_block: int = 0,
    ):
        self._rpc = rpc_client
        self._address = position_manager_address
        self._start_block = start_block

    def get_owner(self, *, position_id: int) -> str:
        data = encode_call(SELECTORS["ownerOf"], encode_uint256(position_id))
        try:
            result = self._rpc.call(to=self._address, data=data)
            owner = decode_address(result)
        except (RpcCallRevertedError, ValueError) as exc:
            raise PositionNotFoundError(
                f"Position {position_id} not found: {exc}",
                position_id=position_id,
            ) from exc
        if owner == ZERO_ADDRESS:
            raise PositionNotFoundError(f"Position {position_id} has no owner.", position_id=position_id)
        return owner

    def get_position(self, *, position_id: int) -> PositionInfo:
        data = encode_call(SELECTORS["positions"], encode_uint256(position_id))
        try:
            result = self._rpc.call(to=self._address, data=data)
            if word_count(result) < POSITIONS_WORDS:
                raise ValueError(f"expected {POSITIONS_WORDS} words, got {word_count(result)}")
            # nonce, operator, token0, token1, fee, tickLower, tickUpper, liquidity, ...
            return PositionInfo(
                position_id=position_id,
                token0=decode_address(result, 2),
                token1=decode_address(result, 3),
                fee=decode_uint(result, 4),
                tick_lower=decode_int(result, 5),
                tick_upper=decode_int(result, 6),
                liquidity=decode_uint(result, 7),
            )
        except (RpcCallRevertedError, ValueError) as exc:
            raise PositionDataError(
                f"Could not read position {position_id}: {exc}",
                position_id=position_id,
            ) from exc

    def get_uncollected_fees(self, *, position_id: int, owner: str) -> tuple[int, int]:
        # Static collect of max amounts, sent from the owner so the call is authorized.
        data = encode_call(
            SELECTORS["collect"],
            encode_uint256(position_id),
            encode_address(owner),
            encode_uint256(MAX_UINT128),
            encode_uint256(MAX_UINT128),
        )
        result = self._rpc.call(to=self._address, data=data, from_address=owner)
        return decode_uint(result, 0), decode_uint(result, 1)

    def get_events(self, *, position_id: int, kind: LiquidityEventKind) -> list[LiquidityEvent]:
        logs = self._rpc.get_logs(
            address=self._address,
            topics=[EVENT_TOPICS[KIND_TO_EVENT[kind]], uint256_topic(position_id)],
            from_block=self._start_block,
        )
        events = [parse_position_log(log, kind) for log in logs if not log.get("removed")]
        logger.info(
            "univ3_position_manager_client: events position_id=%s kind=%s from_block=%s count=%s",
            position_id,
            kind.value,
            self._start_block,
            len(events),
        )
        return events

    def has_events_since(self, *, position_id: int, from_block: int, to_block: int) -> bool:
        token_topic = uint256_topic(position_id)
        liquidity_logs = self._rpc.get_logs(
            address=self._address,
            topics=[
                [
                    EVENT_TOPICS["Collect"],
                    EVENT_TOPICS["IncreaseLiquidity"],
                    EVENT_TOPICS["DecreaseLiquidity"],
                ],
                token_topic,
            ],
            from_block=from_block,
            to_block=to_block,
        )
        if liquidity_logs:
            return True
        transfer_logs = self._rpc.get_logs(
            address=self._address,
            topics=[EVENT_TOPICS["Transfer"], None, None, token_topic],
            from_block=from_block,
            to_block=to_block,
        )
        return bool(transfer_logs)
