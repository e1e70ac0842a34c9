"""Updates sent to subscribers and their protobuf encodings."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, List, NamedTuple, Optional, Tuple, Union

from richat_geyser.encoding.account import encode_account
from richat_geyser.encoding.block_meta import encode_block_meta
from richat_geyser.encoding.entry import encode_entry
from richat_geyser.encoding.slot import encode_slot, slot_status_as_i32
from richat_geyser.encoding.transaction import encode_transaction
from richat_geyser.encoding.transaction_meta import serialize_transaction_error
from richat_geyser.encoding.wire import (
    bool_field,
    bytes_field,
    double_field,
    int32_field,
    int64_field,
    message_field,
    packed_uint64_field,
    reward_type_as_i32,
    string_field,
    uint32_field,
    uint64_field,
)
from richat_geyser.replica import (
    AnySlotStatus,
    Dead,
    ReplicaAccountInfo,
    ReplicaBlockInfo,
    ReplicaEntryInfo,
    Reward,
)
from richat_geyser.transaction_types import (
    ReplicaTransactionInfo,
    TransactionStatusMeta,
    V0Message,
)

_NANOS_PER_SECOND = 1_000_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

CreatedAt = Union[datetime, Tuple[int, int]]


class ProtobufEncoder(Enum):
    PROST = "prost"
    RAW = "raw"


class PluginNotification(Enum):
    SLOT = "slot"
    ACCOUNT = "account"
    TRANSACTION = "transaction"
    ENTRY = "entry"
    BLOCK_META = "block_meta"


def _timestamp_parts(created_at: CreatedAt) -> Tuple[int, int]:
    """Return ``(seconds, nanos)`` since the epoch with nanos in ``[0, 1e9)``."""
    if isinstance(created_at, datetime):
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        delta = created_at - _EPOCH
        return delta.days * 86_400 + delta.seconds, delta.microseconds * 1000
    if isinstance(created_at, tuple) and len(created_at) == 2:
        seconds, nanos = created_at
        if all(isinstance(v, int) and not isinstance(v, bool) for v in created_at):
            extra, nanos = divmod(nanos, _NANOS_PER_SECOND)
            return seconds + extra, nanos
    raise TypeError(
        f"created_at must be a datetime or a (seconds, nanos) tuple, got {created_at!r}"
    )


def _raw_timestamp(seconds: int, nanos: int) -> bytes:
    parts = []
    if seconds != 0:
        parts.append(int64_field(1, seconds))
    if nanos != 0:
        parts.append(int32_field(2, nanos))
    return b"".join(parts)


# A schema-driven proto3 serializer: fields are described, then written with
# the default-omission rules of the format.


class _Field(NamedTuple):
    number: int
    kind: str
    value: Any
    repeated: bool = False
    explicit: bool = False


_SCALARS = {
    "uint64": uint64_field,
    "uint32": uint32_field,
    "int64": int64_field,
    "int32": int32_field,
    "bool": bool_field,
    "double": double_field,
    "string": string_field,
    "bytes": bytes_field,
}
_DEFAULTS = {
    "uint64": 0,
    "uint32": 0,
    "int64": 0,
    "int32": 0,
    "bool": False,
    "double": 0.0,
    "string": "",
    "bytes": b"",
}


def _serialize(fields: List[_Field]) -> bytes:
    return b"".join(_serialize_field(item) for item in fields)


def _serialize_value(number: int, kind: str, value: Any) -> bytes:
    if kind == "message":
        return message_field(number, _serialize(value))
    return _SCALARS[kind](number, value)


def _serialize_field(item: _Field) -> bytes:
    if item.kind == "packed_uint64":
        return packed_uint64_field(item.number, item.value)
    if item.repeated:
        return b"".join(_serialize_value(item.number, item.kind, v) for v in item.value)
    if item.value is None:
        return b""
    if item.kind != "message" and not item.explicit and item.value == _DEFAULTS[item.kind]:
        return b""
    return _serialize_value(item.number, item.kind, item.value)


def _reward_fields(reward: Reward) -> List[_Field]:
    return [
        _Field(1, "string", reward.pubkey),
        _Field(2, "int64", reward.lamports),
        _Field(3, "uint64", reward.post_balance),
        _Field(4, "int32", reward_type_as_i32(reward.reward_type)),
        _Field(5, "string", "" if reward.commission is None else str(reward.commission)),
    ]


def _account_fields(slot: int, account: ReplicaAccountInfo) -> List[_Field]:
    info = [
        _Field(1, "bytes", account.pubkey),
        _Field(2, "uint64", account.lamports),
        _Field(3, "bytes", account.owner),
        _Field(4, "bool", account.executable),
        _Field(5, "uint64", account.rent_epoch),
        _Field(6, "bytes", account.data),
        _Field(7, "uint64", account.write_version),
        _Field(8, "bytes", account.txn_signature, explicit=True),
    ]
    return [
        _Field(1, "message", info),
        _Field(2, "uint64", slot),
        _Field(3, "bool", False),
    ]


def _slot_fields(slot: int, parent: Optional[int], status: AnySlotStatus) -> List[_Field]:
    dead_error = status.error if isinstance(status, Dead) else None
    return [
        _Field(1, "uint64", slot),
        _Field(2, "uint64", parent, explicit=True),
        _Field(3, "int32", slot_status_as_i32(status)),
        _Field(4, "string", dead_error, explicit=True),
    ]


def _message_fields(message: Any) -> List[_Field]:
    header = message.header
    lookups = message.address_table_lookups if isinstance(message, V0Message) else ()
    return [
        _Field(
            1,
            "message",
            [
                _Field(1, "uint32", header.num_required_signatures),
                _Field(2, "uint32", header.num_readonly_signed_accounts),
                _Field(3, "uint32", header.num_readonly_unsigned_accounts),
            ],
        ),
        _Field(2, "bytes", message.account_keys, repeated=True),
        _Field(3, "bytes", message.recent_blockhash),
        _Field(
            4,
            "message",
            [
                [
                    _Field(1, "uint32", instruction.program_id_index),
                    _Field(2, "bytes", instruction.accounts),
                    _Field(3, "bytes", instruction.data),
                ]
                for instruction in message.instructions
            ],
            repeated=True,
        ),
        _Field(5, "bool", message.is_versioned),
        _Field(
            6,
            "message",
            [
                [
                    _Field(1, "bytes", lookup.account_key),
                    _Field(2, "bytes", lookup.writable_indexes),
                    _Field(3, "bytes", lookup.readonly_indexes),
                ]
                for lookup in lookups
            ],
            repeated=True,
        ),
    ]


def _token_balance_fields(balance: Any) -> List[_Field]:
    amount = balance.ui_token_amount
    ui_amount = amount.ui_amount if amount.ui_amount is not None else 0.0
    return [
        _Field(1, "uint32", balance.account_index),
        _Field(2, "string", balance.mint),
        _Field(
            3,
            "message",
            [
                _Field(1, "double", ui_amount),
                _Field(2, "uint32", amount.decimals),
                _Field(3, "string", amount.amount),
                _Field(4, "string", amount.ui_amount_string),
            ],
        ),
        _Field(4, "string", balance.owner),
        _Field(5, "string", balance.program_id),
    ]


def _meta_fields(meta: TransactionStatusMeta) -> List[_Field]:
    error = None
    if meta.status is not None:
        error = [_Field(1, "bytes", serialize_transaction_error(meta.status))]
    inner = [
        [
            _Field(1, "uint32", group.index),
            _Field(
                2,
                "message",
                [
                    [
                        _Field(1, "uint32", item.instruction.program_id_index),
                        _Field(2, "bytes", item.instruction.accounts),
                        _Field(3, "bytes", item.instruction.data),
                        _Field(4, "uint32", item.stack_height, explicit=True),
                    ]
                    for item in group.instructions
                ],
                repeated=True,
            ),
        ]
        for group in meta.inner_instructions or ()
    ]
    return_data = None
    if meta.return_data is not None:
        return_data = [
            _Field(1, "bytes", meta.return_data.program_id),
            _Field(2, "bytes", meta.return_data.data),
        ]
    return [
        _Field(1, "message", error),
        _Field(2, "uint64", meta.fee),
        _Field(3, "packed_uint64", meta.pre_balances),
        _Field(4, "packed_uint64", meta.post_balances),
        _Field(5, "message", inner, repeated=True),
        _Field(6, "string", meta.log_messages or (), repeated=True),
        _Field(
            7,
            "message",
            [_token_balance_fields(b) for b in meta.pre_token_balances or ()],
            repeated=True,
        ),
        _Field(
            8,
            "message",
            [_token_balance_fields(b) for b in meta.post_token_balances or ()],
            repeated=True,
        ),
        _Field(9, "message", [_reward_fields(r) for r in meta.rewards or ()], repeated=True),
        _Field(10, "bool", meta.inner_instructions is None),
        _Field(11, "bool", meta.log_messages is None),
        _Field(12, "bytes", meta.loaded_addresses.writable, repeated=True),
        _Field(13, "bytes", meta.loaded_addresses.readonly, repeated=True),
        _Field(14, "message", return_data),
        _Field(15, "bool", meta.return_data is None),
        _Field(16, "uint64", meta.compute_units_consumed, explicit=True),
    ]


def _transaction_fields(slot: int, transaction: ReplicaTransactionInfo) -> List[_Field]:
    tx = transaction.transaction
    info = [
        _Field(1, "bytes", transaction.signature),
        _Field(2, "bool", transaction.is_vote),
        _Field(
            3,
            "message",
            [
                _Field(1, "bytes", tx.signatures, repeated=True),
                _Field(2, "message", _message_fields(tx.message)),
            ],
        ),
        _Field(4, "message", _meta_fields(transaction.transaction_status_meta)),
        _Field(5, "uint64", transaction.index),
    ]
    return [_Field(1, "message", info), _Field(2, "uint64", slot)]


def _block_meta_fields(blockinfo: ReplicaBlockInfo) -> List[_Field]:
    rewards = blockinfo.rewards
    partitions = None
    if rewards.num_partitions is not None:
        partitions = [_Field(1, "uint64", rewards.num_partitions)]
    block_time = None
    if blockinfo.block_time is not None:
        block_time = [_Field(1, "int64", blockinfo.block_time)]
    block_height = None
    if blockinfo.block_height is not None:
        block_height = [_Field(1, "uint64", blockinfo.block_height)]
    return [
        _Field(1, "uint64", blockinfo.slot),
        _Field(2, "string", blockinfo.blockhash),
        _Field(
            3,
            "message",
            [
                _Field(1, "message", [_reward_fields(r) for r in rewards.rewards], repeated=True),
                _Field(2, "message", partitions),
            ],
        ),
        _Field(4, "message", block_time),
        _Field(5, "message", block_height),
        _Field(6, "uint64", blockinfo.parent_slot),
        _Field(7, "string", blockinfo.parent_blockhash),
        _Field(8, "uint64", blockinfo.executed_transaction_count),
        _Field(9, "uint64", blockinfo.entry_count),
    ]


def _entry_fields(entry: ReplicaEntryInfo) -> List[_Field]:
    return [
        _Field(1, "uint64", entry.slot),
        _Field(2, "uint64", entry.index),
        _Field(3, "uint64", entry.num_hashes),
        _Field(4, "bytes", entry.hash),
        _Field(5, "uint64", entry.executed_transaction_count),
        _Field(6, "uint64", entry.starting_transaction_index),
    ]


class ProtobufMessage:
    """An update for subscribers, encodable as a ``SubscribeUpdate``."""

    _update_tag: ClassVar[int]
    _notification: ClassVar[PluginNotification]
    slot: int

    def plugin_notification(self) -> PluginNotification:
        return self._notification

    def _raw_body(self) -> bytes:
        raise NotImplementedError

    def _prost_fields(self) -> List[_Field]:
        raise NotImplementedError

    def encode(self, encoder: Union[ProtobufEncoder, str]) -> bytes:
        """Encode with the current time as the creation timestamp."""
        return self.encode_with_timestamp(
            encoder, divmod(time.time_ns(), _NANOS_PER_SECOND)
        )

    def encode_with_timestamp(
        self, encoder: Union[ProtobufEncoder, str], created_at: CreatedAt
    ) -> bytes:
        if ProtobufEncoder(encoder) is ProtobufEncoder.PROST:
            return self.encode_prost(created_at)
        return self.encode_raw(created_at)

    def encode_prost(self, created_at: CreatedAt) -> bytes:
        """Encode by describing the full update and serializing it generically."""
        seconds, nanos = _timestamp_parts(created_at)
        update = [
            _Field(1, "string", (), repeated=True),
            _Field(self._update_tag, "message", self._prost_fields()),
            _Field(
                11,
                "message",
                [_Field(1, "int64", seconds), _Field(2, "int32", nanos)],
            ),
        ]
        return _serialize(update)

    def encode_raw(self, created_at: CreatedAt) -> bytes:
        """Encode directly from the update's own fields."""
        seconds, nanos = _timestamp_parts(created_at)
        return message_field(self._update_tag, self._raw_body()) + message_field(
            11, _raw_timestamp(seconds, nanos)
        )


@dataclass(frozen=True)
class AccountMessage(ProtobufMessage):
    _update_tag: ClassVar[int] = 2
    _notification: ClassVar[PluginNotification] = PluginNotification.ACCOUNT

    slot: int
    account: ReplicaAccountInfo

    def _raw_body(self) -> bytes:
        return encode_account(self.slot, self.account)

    def _prost_fields(self) -> List[_Field]:
        return _account_fields(self.slot, self.account)


@dataclass(frozen=True)
class SlotMessage(ProtobufMessage):
    _update_tag: ClassVar[int] = 3
    _notification: ClassVar[PluginNotification] = PluginNotification.SLOT

    slot: int
    parent: Optional[int]
    status: AnySlotStatus

    def _raw_body(self) -> bytes:
        return encode_slot(self.slot, self.parent, self.status)

    def _prost_fields(self) -> List[_Field]:
        return _slot_fields(self.slot, self.parent, self.status)


@dataclass(frozen=True)
class TransactionMessage(ProtobufMessage):
    _update_tag: ClassVar[int] = 4
    _notification: ClassVar[PluginNotification] = PluginNotification.TRANSACTION

    slot: int
    transaction: ReplicaTransactionInfo

    def _raw_body(self) -> bytes:
        return encode_transaction(self.slot, self.transaction)

    def _prost_fields(self) -> List[_Field]:
        return _transaction_fields(self.slot, self.transaction)


@dataclass(frozen=True)
class EntryMessage(ProtobufMessage):
    _update_tag: ClassVar[int] = 8
    _notification: ClassVar[PluginNotification] = PluginNotification.ENTRY

    entry: ReplicaEntryInfo

    @property
    def slot(self) -> int:
        return self.entry.slot

    def _raw_body(self) -> bytes:
        return encode_entry(self.entry)

    def _prost_fields(self) -> List[_Field]:
        return _entry_fields(self.entry)


@dataclass(frozen=True)
class BlockMetaMessage(ProtobufMessage):
    _update_tag: ClassVar[int] = 7
    _notification: ClassVar[PluginNotification] = PluginNotification.BLOCK_META

    blockinfo: ReplicaBlockInfo

    @property
    def slot(self) -> int:
        return self.blockinfo.slot

    def _raw_body(self) -> bytes:
        return encode_block_meta(self.blockinfo)

    def _prost_fields(self) -> List[_Field]:
        return _block_meta_fields(self.blockinfo)