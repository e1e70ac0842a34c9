"""Encoding of an account update."""

from __future__ import annotations

from richat_geyser.encoding.wire import (
    bool_field,
    bytes_field,
    message_field,
    uint64_field,
)
from richat_geyser.replica import ReplicaAccountInfo


def encode_account_info(account: ReplicaAccountInfo) -> bytes:
    """Encode the body of an account info message.

    The pubkey and owner are always written; other fields only when they
    differ from their protobuf defaults.
    """
    parts = [bytes_field(1, account.pubkey)]
    if account.lamports != 0:
        parts.append(uint64_field(2, account.lamports))
    parts.append(bytes_field(3, account.owner))
    if account.executable:
        parts.append(bool_field(4, True))
    if account.rent_epoch != 0:
        parts.append(uint64_field(5, account.rent_epoch))
    if account.data:
        parts.append(bytes_field(6, account.data))
    if account.write_version != 0:
        parts.append(uint64_field(7, account.write_version))
    if account.txn_signature is not None:
        parts.append(bytes_field(8, account.txn_signature))
    return b"".join(parts)


def encode_account(slot: int, account: ReplicaAccountInfo) -> bytes:
    """Encode the body of an account update message."""
    parts = [message_field(1, encode_account_info(account))]
    if slot != 0:
        parts.append(uint64_field(2, slot))
    return b"".join(parts)