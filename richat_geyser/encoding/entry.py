"""Encoding of a ledger entry update."""

from __future__ import annotations

from richat_geyser.encoding.wire import bytes_field, uint64_field
from richat_geyser.replica import ReplicaEntryInfo


def encode_entry(entry: ReplicaEntryInfo) -> bytes:
    """Encode the body of an entry update message; the hash is always written."""
    parts = []
    if entry.slot != 0:
        parts.append(uint64_field(1, entry.slot))
    if entry.index != 0:
        parts.append(uint64_field(2, entry.index))
    if entry.num_hashes != 0:
        parts.append(uint64_field(3, entry.num_hashes))
    parts.append(bytes_field(4, entry.hash))
    if entry.executed_transaction_count != 0:
        parts.append(uint64_field(5, entry.executed_transaction_count))
    if entry.starting_transaction_index != 0:
        parts.append(uint64_field(6, entry.starting_transaction_index))
    return b"".join(parts)