import pytest

from richat_geyser.encoding.block_meta import encode_block_meta, encode_rewards
from richat_geyser.encoding.wire import encode_reward
from richat_geyser.replica import (
    ReplicaBlockInfo,
    Reward,
    RewardsAndNumPartitions,
    RewardType,
)


def _read_varint(buf, pos):
    result = 0
    shift = 0
    while True:
        byte = buf[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if byte < 0x80:
            return result, pos
        shift += 7


def _parse(buf):
    fields = []
    pos = 0
    while pos < len(buf):
        key, pos = _read_varint(buf, pos)
        tag, wire_type = key >> 3, key & 7
        if wire_type == 0:
            value, pos = _read_varint(buf, pos)
        elif wire_type == 2:
            size, pos = _read_varint(buf, pos)
            value = bytes(buf[pos:pos + size])
            pos += size
        else:
            raise AssertionError(f"unexpected wire type {wire_type}")
        fields.append((tag, value))
    return fields


def _to_signed(value):
    return value - (1 << 64) if value >= 1 << 63 else value


REWARDS = (
    Reward("pubkey-a", 100, 2000, RewardType.FEE, None),
    Reward("pubkey-b", -7, 0, None, 42),
    Reward("", 0, 0, RewardType.VOTING, 255),
)


def _block(**overrides):
    values = dict(
        parent_slot=0,
        parent_blockhash="",
        slot=0,
        blockhash="",
        rewards=RewardsAndNumPartitions(),
        block_time=None,
        block_height=None,
        executed_transaction_count=0,
        entry_count=0,
    )
    values.update(overrides)
    return ReplicaBlockInfo(**values)


def test_empty_block_meta_still_writes_rewards():
    assert encode_block_meta(_block()) == b"\x1a\x00"


def test_empty_rewards_encode_to_nothing():
    assert encode_rewards(RewardsAndNumPartitions()) == b""


def test_rewards_are_repeated_messages():
    fields = _parse(encode_rewards(RewardsAndNumPartitions(REWARDS)))
    assert [tag for tag, _ in fields] == [1, 1, 1]
    assert [body for _, body in fields] == [encode_reward(r) for r in REWARDS]


@pytest.mark.parametrize("num_partitions", [1, 42, (1 << 64) - 1])
def test_num_partitions_wrapped(num_partitions):
    fields = _parse(encode_rewards(RewardsAndNumPartitions((), num_partitions)))
    assert len(fields) == 1
    tag, body = fields[0]
    assert tag == 2
    assert _parse(body) == [(1, num_partitions)]


def test_zero_num_partitions_keeps_empty_wrapper():
    fields = _parse(encode_rewards(RewardsAndNumPartitions((), 0)))
    assert fields == [(2, b"")]


def test_full_block_meta_fields():
    rewards = RewardsAndNumPartitions(REWARDS, 4)
    block = _block(
        parent_slot=310629079,
        parent_blockhash="parent-hash",
        slot=310629080,
        blockhash="block-hash",
        rewards=rewards,
        block_time=1700000000,
        block_height=289000000,
        executed_transaction_count=1234,
        entry_count=42,
    )
    fields = _parse(encode_block_meta(block))
    assert [tag for tag, _ in fields] == [1, 2, 3, 4, 5, 6, 7, 8, 9]
    values = dict(fields)
    assert values[1] == 310629080
    assert values[2] == b"block-hash"
    assert values[3] == encode_rewards(rewards)
    assert _parse(values[4]) == [(1, 1700000000)]
    assert _parse(values[5]) == [(1, 289000000)]
    assert values[6] == 310629079
    assert values[7] == b"parent-hash"
    assert values[8] == 1234
    assert values[9] == 42


def test_negative_block_time_round_trips():
    fields = dict(_parse(encode_block_meta(_block(block_time=-5))))
    inner = _parse(fields[4])
    assert inner[0][0] == 1
    assert _to_signed(inner[0][1]) == -5


def test_zero_block_time_and_height_keep_empty_wrappers():
    fields = _parse(encode_block_meta(_block(block_time=0, block_height=0)))
    assert fields[1:] == [(4, b""), (5, b"")]


def test_unicode_blockhash_is_utf8():
    fields = dict(_parse(encode_block_meta(_block(blockhash="hash-\u00e9"))))
    assert fields[2].decode("utf-8") == "hash-\u00e9"