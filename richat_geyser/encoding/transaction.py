"""Encoding of a transaction update."""

from __future__ import annotations

from richat_geyser.encoding.transaction_meta import encode_status_meta
from richat_geyser.encoding.wire import (
    bool_field,
    bytes_field,
    message_field,
    uint32_field,
    uint64_field,
)
from richat_geyser.transaction_types import (
    CompiledInstruction,
    LegacyMessage,
    MessageAddressTableLookup,
    MessageHeader,
    ReplicaTransactionInfo,
    SanitizedTransaction,
    V0Message,
)


def encode_message_header(header: MessageHeader) -> bytes:
    """Encode the body of a message header, omitting zero counts."""
    parts = []
    if header.num_required_signatures != 0:
        parts.append(uint32_field(1, header.num_required_signatures))
    if header.num_readonly_signed_accounts != 0:
        parts.append(uint32_field(2, header.num_readonly_signed_accounts))
    if header.num_readonly_unsigned_accounts != 0:
        parts.append(uint32_field(3, header.num_readonly_unsigned_accounts))
    return b"".join(parts)


def encode_compiled_instruction(instruction: CompiledInstruction) -> bytes:
    parts = []
    if instruction.program_id_index != 0:
        parts.append(uint32_field(1, instruction.program_id_index))
    if instruction.accounts:
        parts.append(bytes_field(2, instruction.accounts))
    if instruction.data:
        parts.append(bytes_field(3, instruction.data))
    return b"".join(parts)


def encode_address_table_lookup(lookup: MessageAddressTableLookup) -> bytes:
    """Encode an address table lookup; the account key is always written."""
    parts = [bytes_field(1, lookup.account_key)]
    if lookup.writable_indexes:
        parts.append(bytes_field(2, lookup.writable_indexes))
    if lookup.readonly_indexes:
        parts.append(bytes_field(3, lookup.readonly_indexes))
    return b"".join(parts)


def encode_sanitized_message(message: LegacyMessage | V0Message) -> bytes:
    """Encode the body of a transaction message, legacy or versioned."""
    if not isinstance(message, (LegacyMessage, V0Message)):
        raise TypeError(f"not a transaction message: {message!r}")
    lookups = message.address_table_lookups if isinstance(message, V0Message) else ()
    parts = [message_field(1, encode_message_header(message.header))]
    parts.extend(bytes_field(2, key) for key in message.account_keys)
    parts.append(bytes_field(3, message.recent_blockhash))
    parts.extend(
        message_field(4, encode_compiled_instruction(instruction))
        for instruction in message.instructions
    )
    if message.is_versioned:
        parts.append(bool_field(5, True))
    parts.extend(
        message_field(6, encode_address_table_lookup(lookup)) for lookup in lookups
    )
    return b"".join(parts)


def encode_sanitized_transaction(transaction: SanitizedTransaction) -> bytes:
    parts = [bytes_field(1, signature) for signature in transaction.signatures]
    parts.append(message_field(2, encode_sanitized_message(transaction.message)))
    return b"".join(parts)


def encode_transaction_info(transaction: ReplicaTransactionInfo) -> bytes:
    """Encode the body of a transaction info message."""
    parts = [bytes_field(1, transaction.signature)]
    if transaction.is_vote:
        parts.append(bool_field(2, True))
    parts.append(message_field(3, encode_sanitized_transaction(transaction.transaction)))
    parts.append(message_field(4, encode_status_meta(transaction.transaction_status_meta)))
    if transaction.index != 0:
        parts.append(uint64_field(5, transaction.index))
    return b"".join(parts)


def encode_transaction(slot: int, transaction: ReplicaTransactionInfo) -> bytes:
    """Encode the body of a transaction update message."""
    parts = [message_field(1, encode_transaction_info(transaction))]
    if slot != 0:
        parts.append(uint64_field(2, slot))
    return b"".join(parts)