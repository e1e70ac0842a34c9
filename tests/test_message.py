import itertools
from datetime import datetime, timezone

import pytest

from richat_geyser.encoding.slot import encode_slot
from richat_geyser.encoding.wire import message_field
from richat_geyser.message import (
    AccountMessage,
    BlockMetaMessage,
    EntryMessage,
    PluginNotification,
    ProtobufEncoder,
    SlotMessage,
    TransactionMessage,
)
from richat_geyser.replica import (
    Dead,
    ReplicaAccountInfo,
    ReplicaBlockInfo,
    ReplicaEntryInfo,
    Reward,
    RewardsAndNumPartitions,
    RewardType,
    SlotStatus,
)
from richat_geyser.transaction_types import (
    CompiledInstruction,
    InnerInstruction,
    InnerInstructions,
    InstructionError,
    InstructionErrorKind,
    LegacyMessage,
    LoadedAddresses,
    MessageAddressTableLookup,
    MessageHeader,
    ReplicaTransactionInfo,
    SanitizedTransaction,
    TransactionError,
    TransactionErrorKind,
    TransactionReturnData,
    TransactionStatusMeta,
    TransactionTokenBalance,
    UiTokenAmount,
    V0Message,
)

CREATED_AT = (1_700_000_000, 123_456_789)
PUBKEY = bytes(range(32))
OWNER = bytes([7] * 32)
SIGNATURE = bytes([9] * 64)


def _same_both_ways(message):
    prost = message.encode_with_timestamp(ProtobufEncoder.PROST, CREATED_AT)
    raw = message.encode_with_timestamp(ProtobufEncoder.RAW, CREATED_AT)
    assert prost == raw, repr(message)


def test_encode_account():
    for lamports, executable, rent_epoch, data, write_version, txn, slot in itertools.product(
        [0, 8123],
        [True, False],
        [0, 4242],
        [b"", bytes([42] * 165), bytes([42] * 1024)],
        [0, 1],
        [None, SIGNATURE],
        [0, 310639056],
    ):
        account = ReplicaAccountInfo(
            pubkey=PUBKEY,
            lamports=lamports,
            owner=OWNER,
            executable=executable,
            rent_epoch=rent_epoch,
            data=data,
            write_version=write_version,
            txn_signature=txn,
        )
        _same_both_ways(AccountMessage(slot, account))


def test_encode_slot():
    statuses = list(SlotStatus) + [Dead(""), Dead("42")]
    for slot, parent, status in itertools.product(
        [0, 42, 310629080], [None, 0, 42], statuses
    ):
        _same_both_ways(SlotMessage(slot, parent, status))


def test_encode_entry():
    hashes = [bytes([b] * 32) for b in (0, 42, 98, 255)]
    for slot, index, num_hashes, hash_, executed, starting in itertools.product(
        [0, 42, 310629080], [0, 42], [0, 128], hashes, [0, 32], [0, 96, 1067]
    ):
        entry = ReplicaEntryInfo(slot, index, num_hashes, hash_, executed, starting)
        _same_both_ways(EntryMessage(entry))


def test_encode_block_meta():
    rewards_options = [
        (),
        (
            Reward("stake", 100, 2000, RewardType.STAKING, 5),
            Reward("", -7, 0, None, None),
            Reward("fee", 0, 1, RewardType.FEE, 0),
        ),
    ]
    for rewards, partitions, block_time, block_height, blockhash, entry_count in itertools.product(
        rewards_options, [None, 0, 3], [None, 0, -5], [None, 0, 10], ["", "abc"], [0, 42]
    ):
        blockinfo = ReplicaBlockInfo(
            parent_slot=41,
            parent_blockhash=blockhash,
            slot=42,
            blockhash=blockhash,
            rewards=RewardsAndNumPartitions(rewards, partitions),
            block_time=block_time,
            block_height=block_height,
            executed_transaction_count=3,
            entry_count=entry_count,
        )
        _same_both_ways(BlockMetaMessage(blockinfo))


def _full_meta(status):
    balance = TransactionTokenBalance(
        account_index=1,
        mint="mint",
        ui_token_amount=UiTokenAmount(1.5, 6, "1500000", "1.5"),
        owner="owner",
        program_id="program",
    )
    return TransactionStatusMeta(
        status=status,
        fee=5000,
        pre_balances=(10, 0, 3),
        post_balances=(5, 0, 3),
        inner_instructions=(
            InnerInstructions(
                0,
                (
                    InnerInstruction(CompiledInstruction(2, b"\x00\x01", b"data"), 2),
                    InnerInstruction(CompiledInstruction(0), None),
                ),
            ),
        ),
        log_messages=("log one", ""),
        pre_token_balances=(balance,),
        post_token_balances=(TransactionTokenBalance(0, "", UiTokenAmount()),),
        rewards=(Reward("pk", 1, 2, RewardType.VOTING, 10),),
        loaded_addresses=LoadedAddresses((PUBKEY,), (OWNER,)),
        return_data=TransactionReturnData(PUBKEY, b"ret"),
        compute_units_consumed=0,
    )


def test_encode_transaction():
    errors = [
        None,
        TransactionError(TransactionErrorKind.ACCOUNT_IN_USE),
        TransactionError(
            TransactionErrorKind.INSTRUCTION_ERROR,
            instruction_index=2,
            instruction_error=InstructionError(InstructionErrorKind.CUSTOM, custom=17),
        ),
        TransactionError(
            TransactionErrorKind.INSTRUCTION_ERROR,
            instruction_index=0,
            instruction_error=InstructionError(
                InstructionErrorKind.BORSH_IO_ERROR, message="io"
            ),
        ),
        TransactionError(TransactionErrorKind.DUPLICATE_INSTRUCTION, instruction_index=1),
        TransactionError(TransactionErrorKind.INSUFFICIENT_FUNDS_FOR_RENT, account_index=3),
    ]
    messages = [
        LegacyMessage(),
        LegacyMessage(
            header=MessageHeader(1, 0, 1),
            account_keys=(PUBKEY, OWNER),
            recent_blockhash=bytes([5] * 32),
            instructions=(CompiledInstruction(1, b"\x00", b"\x01\x02"),),
        ),
        V0Message(
            header=MessageHeader(2, 1, 0),
            account_keys=(PUBKEY,),
            instructions=(CompiledInstruction(0),),
            address_table_lookups=(
                MessageAddressTableLookup(OWNER, b"\x01", b""),
                MessageAddressTableLookup(PUBKEY),
            ),
        ),
    ]
    for error, message, full, is_vote, index, slot in itertools.product(
        errors, messages, [False, True], [False, True], [0, 7], [0, 310629080]
    ):
        meta = _full_meta(error) if full else TransactionStatusMeta(status=error)
        info = ReplicaTransactionInfo(
            signature=SIGNATURE,
            is_vote=is_vote,
            transaction=SanitizedTransaction(message, (SIGNATURE, bytes(64))),
            transaction_status_meta=meta,
            index=index,
        )
        _same_both_ways(TransactionMessage(slot, info))


def test_minimal_slot_wire_bytes():
    message = SlotMessage(0, None, SlotStatus.PROCESSED)
    assert message.encode_raw((0, 0)) == b"\x1a\x00\x5a\x00"
    assert message.encode_prost((0, 0)) == b"\x1a\x00\x5a\x00"


def test_encode_uses_body_then_timestamp():
    message = SlotMessage(5, 4, SlotStatus.CONFIRMED)
    body = message_field(3, encode_slot(5, 4, SlotStatus.CONFIRMED))
    for encoder in ProtobufEncoder:
        assert message.encode(encoder).startswith(body)


def test_encoder_accepts_names():
    message = SlotMessage(5, None, SlotStatus.ROOTED)
    assert message.encode_with_timestamp("raw", CREATED_AT) == message.encode_raw(CREATED_AT)
    assert message.encode_with_timestamp("prost", CREATED_AT) == message.encode_prost(
        CREATED_AT
    )


def test_unknown_encoder_rejected():
    with pytest.raises(ValueError):
        SlotMessage(1, None, SlotStatus.ROOTED).encode_with_timestamp("json", CREATED_AT)


def test_datetime_matches_tuple():
    message = SlotMessage(1, None, SlotStatus.COMPLETED)
    moment = datetime.fromtimestamp(CREATED_AT[0], tz=timezone.utc)
    assert message.encode_raw(moment) == message.encode_raw((CREATED_AT[0], 0))


def test_naive_datetime_is_utc():
    message = SlotMessage(1, None, SlotStatus.COMPLETED)
    naive = datetime(2024, 1, 1)
    aware = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert message.encode_prost(naive) == message.encode_prost(aware)


def test_nanos_are_normalized():
    message = SlotMessage(1, None, SlotStatus.COMPLETED)
    assert message.encode_raw((1, 1_500_000_000)) == message.encode_raw((2, 500_000_000))


def test_bad_timestamp_rejected():
    with pytest.raises(TypeError):
        SlotMessage(1, None, SlotStatus.COMPLETED).encode_raw(1.5)


def test_plugin_notifications_and_slots():
    entry = ReplicaEntryInfo(9, 0, 0, bytes(32), 0, 0)
    blockinfo = ReplicaBlockInfo(7, "", 8, "", RewardsAndNumPartitions(), None, None, 0, 0)
    account = ReplicaAccountInfo(PUBKEY, 0, OWNER, False, 0, b"", 0)
    cases = [
        (AccountMessage(3, account), PluginNotification.ACCOUNT, 3),
        (SlotMessage(4, None, SlotStatus.PROCESSED), PluginNotification.SLOT, 4),
        (EntryMessage(entry), PluginNotification.ENTRY, 9),
        (BlockMetaMessage(blockinfo), PluginNotification.BLOCK_META, 8),
    ]
    for message, notification, slot in cases:
        assert message.plugin_notification() is notification
        assert message.slot == slot