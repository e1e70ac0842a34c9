"""Encoding of block metadata updates."""

from __future__ import annotations

from richat_geyser.encoding.wire import (
    encode_reward,
    int64_field,
    message_field,
    string_field,
    uint64_field,
)
from richat_geyser.replica import ReplicaBlockInfo, RewardsAndNumPartitions


def _uint64_wrapper(value: int) -> bytes:
    """Body of a single-field message holding one uint64 at tag 1."""
    return uint64_field(1, value) if value != 0 else b""


def _timestamp(value: int) -> bytes:
    return int64_field(1, value) if value != 0 else b""


def encode_rewards(rewards: RewardsAndNumPartitions) -> bytes:
    """Encode the body of a rewards message with its optional partition count."""
    parts = [message_field(1, encode_reward(reward)) for reward in rewards.rewards]
    if rewards.num_partitions is not None:
        parts.append(message_field(2, _uint64_wrapper(rewards.num_partitions)))
    return b"".join(parts)


def encode_block_meta(blockinfo: ReplicaBlockInfo) -> bytes:
    """Encode the body of a block meta update message."""
    parts = []
    if blockinfo.slot != 0:
        parts.append(uint64_field(1, blockinfo.slot))
    if blockinfo.blockhash:
        parts.append(string_field(2, blockinfo.blockhash))
    parts.append(message_field(3, encode_rewards(blockinfo.rewards)))
    if blockinfo.block_time is not None:
        parts.append(message_field(4, _timestamp(blockinfo.block_time)))
    if blockinfo.block_height is not None:
        parts.append(message_field(5, _uint64_wrapper(blockinfo.block_height)))
    if blockinfo.parent_slot != 0:
        parts.append(uint64_field(6, blockinfo.parent_slot))
    if blockinfo.parent_blockhash:
        parts.append(string_field(7, blockinfo.parent_blockhash))
    if blockinfo.executed_transaction_count != 0:
        parts.append(uint64_field(8, blockinfo.executed_transaction_count))
    if blockinfo.entry_count != 0:
        parts.append(uint64_field(9, blockinfo.entry_count))
    return b"".join(parts)