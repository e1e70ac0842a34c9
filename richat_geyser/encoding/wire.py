"""Protocol buffer wire-format primitives."""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import Iterable, Optional

from richat_geyser.replica import Reward, RewardType

_U64_MAX = (1 << 64) - 1
_U32_MAX = (1 << 32) - 1
_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1
_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1
_MIN_TAG = 1
_MAX_TAG = (1 << 29) - 1


class WireType(IntEnum):
    VARINT = 0
    SIXTY_FOUR_BIT = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    THIRTY_TWO_BIT = 5


def _check_range(kind: str, value: int, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{kind} value must be an integer, got {type(value).__name__}")
    if not low <= value <= high:
        raise ValueError(f"{value} is out of range for {kind}")


def encode_varint(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as a base-128 varint."""
    _check_range("varint", value, 0, _U64_MAX)
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def encoded_len_varint(value: int) -> int:
    _check_range("varint", value, 0, _U64_MAX)
    return max(1, (value.bit_length() + 6) // 7)


def _check_tag(tag: int) -> None:
    _check_range("tag", tag, _MIN_TAG, _MAX_TAG)


def key_len(tag: int) -> int:
    _check_tag(tag)
    return encoded_len_varint(tag << 3)


def encode_key(tag: int, wire_type: WireType) -> bytes:
    _check_tag(tag)
    return encode_varint((tag << 3) | int(WireType(wire_type)))


def bytes_field(tag: int, value: bytes) -> bytes:
    value = bytes(value)
    return encode_key(tag, WireType.LENGTH_DELIMITED) + encode_varint(len(value)) + value


def string_field(tag: int, value: str) -> bytes:
    return bytes_field(tag, value.encode("utf-8"))


def uint64_field(tag: int, value: int) -> bytes:
    _check_range("uint64", value, 0, _U64_MAX)
    return encode_key(tag, WireType.VARINT) + encode_varint(value)


def uint32_field(tag: int, value: int) -> bytes:
    _check_range("uint32", value, 0, _U32_MAX)
    return encode_key(tag, WireType.VARINT) + encode_varint(value)


def int64_field(tag: int, value: int) -> bytes:
    _check_range("int64", value, _I64_MIN, _I64_MAX)
    return encode_key(tag, WireType.VARINT) + encode_varint(value & _U64_MAX)


def int32_field(tag: int, value: int) -> bytes:
    # Negative int32 values are sign-extended to ten-byte varints.
    _check_range("int32", value, _I32_MIN, _I32_MAX)
    return encode_key(tag, WireType.VARINT) + encode_varint(value & _U64_MAX)


def bool_field(tag: int, value: bool) -> bytes:
    return encode_key(tag, WireType.VARINT) + encode_varint(1 if value else 0)


def double_field(tag: int, value: float) -> bytes:
    return encode_key(tag, WireType.SIXTY_FOUR_BIT) + struct.pack("<d", float(value))


def message_field(tag: int, payload: bytes) -> bytes:
    """Wrap an already encoded message body as a length-delimited field."""
    return bytes_field(tag, payload)


def packed_uint64_field(tag: int, values: Iterable[int]) -> bytes:
    values = list(values)
    if not values:
        return b""
    body = b"".join(encode_varint(value) for value in values)
    return bytes_field(tag, body)


def reward_type_as_i32(reward_type: Optional[RewardType]) -> int:
    return 0 if reward_type is None else int(RewardType(reward_type))


def encode_reward(reward: Reward) -> bytes:
    """Encode the body of a ``Reward`` message, omitting default values."""
    parts = []
    if reward.pubkey:
        parts.append(string_field(1, reward.pubkey))
    if reward.lamports != 0:
        parts.append(int64_field(2, reward.lamports))
    if reward.post_balance != 0:
        parts.append(uint64_field(3, reward.post_balance))
    if reward.reward_type is not None:
        parts.append(int32_field(4, reward_type_as_i32(reward.reward_type)))
    if reward.commission is not None:
        parts.append(bytes_field(5, str(reward.commission).encode("ascii")))
    return b"".join(parts)