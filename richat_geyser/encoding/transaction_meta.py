"""Encoding of a transaction's execution status and its parts."""

from __future__ import annotations

import struct

from richat_geyser.encoding.wire import (
    bool_field,
    bytes_field,
    double_field,
    encode_reward,
    message_field,
    packed_uint64_field,
    string_field,
    uint32_field,
    uint64_field,
)
from richat_geyser.transaction_types import (
    InnerInstruction,
    InnerInstructions,
    InstructionError,
    InstructionErrorKind,
    TransactionError,
    TransactionErrorKind,
    TransactionReturnData,
    TransactionStatusMeta,
    TransactionTokenBalance,
    UiTokenAmount,
)

_ACCOUNT_INDEXED = (
    TransactionErrorKind.INSUFFICIENT_FUNDS_FOR_RENT,
    TransactionErrorKind.PROGRAM_EXECUTION_TEMPORARILY_RESTRICTED,
)


def _variant(index: int) -> bytes:
    return struct.pack("<I", index)


def _serialize_instruction_error(error: InstructionError) -> bytes:
    out = _variant(error.kind)
    if error.kind is InstructionErrorKind.CUSTOM:
        out += struct.pack("<I", error.custom)
    elif error.kind is InstructionErrorKind.BORSH_IO_ERROR:
        data = error.message.encode("utf-8")
        out += struct.pack("<Q", len(data)) + data
    return out


def serialize_transaction_error(error: TransactionError) -> bytes:
    """Serialize an error in the compact binary layout used on the wire.

    Variants are written as little-endian 32-bit indexes, followed by their
    payloads; strings carry a 64-bit length prefix.
    """
    out = _variant(error.kind)
    if error.kind is TransactionErrorKind.INSTRUCTION_ERROR:
        out += bytes([error.instruction_index])
        out += _serialize_instruction_error(error.instruction_error)
    elif error.kind is TransactionErrorKind.DUPLICATE_INSTRUCTION:
        out += bytes([error.instruction_index])
    elif error.kind in _ACCOUNT_INDEXED:
        out += bytes([error.account_index])
    return out


def encode_transaction_error(error: TransactionError) -> bytes:
    """Encode the body of a transaction error message."""
    data = serialize_transaction_error(error)
    return bytes_field(1, data) if data else b""


def encode_inner_instruction(inner: InnerInstruction) -> bytes:
    instruction = inner.instruction
    parts = []
    if instruction.program_id_index != 0:
        parts.append(uint32_field(1, instruction.program_id_index))
    if instruction.accounts:
        parts.append(bytes_field(2, instruction.accounts))
    if instruction.data:
        parts.append(bytes_field(3, instruction.data))
    if inner.stack_height is not None:
        parts.append(uint32_field(4, inner.stack_height))
    return b"".join(parts)


def encode_inner_instructions(inner_instructions: InnerInstructions) -> bytes:
    parts = []
    if inner_instructions.index != 0:
        parts.append(uint32_field(1, inner_instructions.index))
    parts.extend(
        message_field(2, encode_inner_instruction(inner))
        for inner in inner_instructions.instructions
    )
    return b"".join(parts)


def encode_ui_token_amount(amount: UiTokenAmount) -> bytes:
    ui_amount = amount.ui_amount if amount.ui_amount is not None else 0.0
    parts = []
    if ui_amount != 0.0:
        parts.append(double_field(1, ui_amount))
    if amount.decimals != 0:
        parts.append(uint32_field(2, amount.decimals))
    if amount.amount:
        parts.append(string_field(3, amount.amount))
    if amount.ui_amount_string:
        parts.append(string_field(4, amount.ui_amount_string))
    return b"".join(parts)


def encode_token_balance(balance: TransactionTokenBalance) -> bytes:
    parts = []
    if balance.account_index != 0:
        parts.append(uint32_field(1, balance.account_index))
    if balance.mint:
        parts.append(string_field(2, balance.mint))
    parts.append(message_field(3, encode_ui_token_amount(balance.ui_token_amount)))
    if balance.owner:
        parts.append(string_field(4, balance.owner))
    if balance.program_id:
        parts.append(string_field(5, balance.program_id))
    return b"".join(parts)


def encode_return_data(return_data: TransactionReturnData) -> bytes:
    parts = [bytes_field(1, return_data.program_id)]
    if return_data.data:
        parts.append(bytes_field(2, return_data.data))
    return b"".join(parts)


def encode_status_meta(meta: TransactionStatusMeta) -> bytes:
    """Encode the body of a transaction status meta message."""
    parts = []
    if meta.status is not None:
        parts.append(message_field(1, encode_transaction_error(meta.status)))
    if meta.fee != 0:
        parts.append(uint64_field(2, meta.fee))
    parts.append(packed_uint64_field(3, meta.pre_balances))
    parts.append(packed_uint64_field(4, meta.post_balances))
    if meta.inner_instructions is not None:
        parts.extend(
            message_field(5, encode_inner_instructions(inner))
            for inner in meta.inner_instructions
        )
    if meta.log_messages is not None:
        parts.extend(string_field(6, line) for line in meta.log_messages)
    if meta.pre_token_balances is not None:
        parts.extend(
            message_field(7, encode_token_balance(balance))
            for balance in meta.pre_token_balances
        )
    if meta.post_token_balances is not None:
        parts.extend(
            message_field(8, encode_token_balance(balance))
            for balance in meta.post_token_balances
        )
    if meta.rewards is not None:
        parts.extend(message_field(9, encode_reward(reward)) for reward in meta.rewards)
    if meta.inner_instructions is None:
        parts.append(bool_field(10, True))
    if meta.log_messages is None:
        parts.append(bool_field(11, True))
    parts.extend(bytes_field(12, key) for key in meta.loaded_addresses.writable)
    parts.extend(bytes_field(13, key) for key in meta.loaded_addresses.readonly)
    if meta.return_data is not None:
        parts.append(message_field(14, encode_return_data(meta.return_data)))
    else:
        parts.append(bool_field(15, True))
    if meta.compute_units_consumed is not None:
        parts.append(uint64_field(16, meta.compute_units_consumed))
    return b"".join(parts)