"""ABI word helpers for the handful of contract calls and logs the service reads.

Every value travels as 32-byte words in hex. Helpers here take and return hex
strings without the ``0x`` prefix unless stated otherwise.
"""

from __future__ import annotations


WORD_HEX = 64
ADDRESS_PAD_HEX = 24
SIGN_BIT = 1 << 255
Q256 = 2**256
MAX_UINT128 = 2**128 - 1
ZERO_ADDRESS = "0x" + "0" * 40

SELECTORS: dict[str, str] = {
    # NonfungiblePositionManager
    "positions": "0x99fbab88",  # positions(uint256)
    "ownerOf": "0x6352211e",  # ownerOf(uint256)
    "collect": "0xfc6f7865",  # collect((uint256,address,uint128,uint128))
    # UniswapV3Factory
    "getPool": "0x1698ee82",  # getPool(address,address,uint24)
    # UniswapV3Pool
    "slot0": "0x3850c7bd",  # slot0()
    # ERC-20 metadata
    "decimals": "0x313ce567",
    "symbol": "0x95d89b41",
    "name": "0x06fdde03",
}

EVENT_TOPICS: dict[str, str] = {
    # IncreaseLiquidity(uint256 indexed tokenId, uint128 liquidity, uint256 amount0, uint256 amount1)
    "IncreaseLiquidity": "0x3067048beee31b25b2f1681f88dac838c8bba36af25bfb2b7cf7473a5847e35f",
    # DecreaseLiquidity(uint256 indexed tokenId, uint128 liquidity, uint256 amount0, uint256 amount1)
    "DecreaseLiquidity": "0x26f6a048ee9138f2c0ce266f322cb99228e8d619ae2bff30c67f8dcf9d2377b4",
    # Collect(uint256 indexed tokenId, address recipient, uint256 amount0, uint256 amount1)
    "Collect": "0x40d0efd1a53d60ecbf40971b9daf7dc90178c3aadc7aab1765632738fa8b8f01",
    # Transfer(address indexed from, address indexed to, uint256 indexed tokenId)
    "Transfer": "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef",
}


def strip_0x(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def encode_uint256(value: int) -> str:
    if value < 0 or value >= Q256:
        raise ValueError(f"uint256 out of range: {value}")
    return format(value, f"0{WORD_HEX}x")


def encode_address(address: str) -> str:
    raw = strip_0x(address).lower()
    if len(raw) != 40:
        raise ValueError(f"Invalid address: {address}")
    return raw.zfill(WORD_HEX)


def encode_call(selector: str, *words: str) -> str:
    return selector + "".join(words)


def uint256_topic(value: int) -> str:
    return "0x" + encode_uint256(value)


def word_count(hex_data: str) -> int:
    return len(strip_0x(hex_data)) // WORD_HEX


def decode_uint(hex_data: str, slot: int = 0) -> int:
    data = strip_0x(hex_data)
    start = slot * WORD_HEX
    word = data[start : start + WORD_HEX]
    if len(word) != WORD_HEX:
        raise ValueError(f"ABI data too short for slot {slot}")
    return int(word, 16)


def decode_int(hex_data: str, slot: int = 0) -> int:
    value = decode_uint(hex_data, slot)
    if value >= SIGN_BIT:
        return value - Q256
    return value


def decode_address(hex_data: str, slot: int = 0) -> str:
    data = strip_0x(hex_data)
    start = slot * WORD_HEX
    word = data[start : start + WORD_HEX]
    if len(word) != WORD_HEX:
        raise ValueError(f"ABI data too short for slot {slot}")
    return "0x" + word[ADDRESS_PAD_HEX:]


def decode_string(hex_data: str) -> str:
    """Dynamic ``string`` return value, falling back to ``bytes32`` tokens (e.g. MKR)."""
    data = strip_0x(hex_data)
    if word_count(data) >= 2:
        offset = decode_uint(data, 0)
        if offset % 32 == 0 and offset // 32 < word_count(data):
            length = decode_uint(data, offset // 32)
            start = (offset // 32 + 1) * WORD_HEX
            raw = data[start : start + length * 2]
            if len(raw) == length * 2:
                return bytes.fromhex(raw).decode("utf-8", errors="replace").strip("\x00")

    raw = bytes.fromhex(data[:WORD_HEX])
    return raw.decode("utf-8", errors="replace").strip("\x00").strip()
