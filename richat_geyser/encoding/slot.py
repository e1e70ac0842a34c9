"""Encoding of a slot status update."""

from __future__ import annotations

from typing import Optional

from richat_geyser.encoding.wire import int32_field, string_field, uint64_field
from richat_geyser.replica import AnySlotStatus, Dead, SlotStatus

_STATUS_CODES = {
    SlotStatus.PROCESSED: 0,
    SlotStatus.CONFIRMED: 1,
    SlotStatus.ROOTED: 2,
    SlotStatus.FIRST_SHRED_RECEIVED: 3,
    SlotStatus.COMPLETED: 4,
    SlotStatus.CREATED_BANK: 5,
}
_DEAD_CODE = 6
_DEFAULT_STATUS = 0


def slot_status_as_i32(status: AnySlotStatus) -> int:
    if isinstance(status, Dead):
        return _DEAD_CODE
    if isinstance(status, SlotStatus):
        return _STATUS_CODES[status]
    raise TypeError(f"not a slot status: {status!r}")


def encode_slot(slot: int, parent: Optional[int], status: AnySlotStatus) -> bytes:
    """Encode the body of a slot update message."""
    code = slot_status_as_i32(status)
    parts = []
    if slot != 0:
        parts.append(uint64_field(1, slot))
    if parent is not None:
        parts.append(uint64_field(2, parent))
    if code != _DEFAULT_STATUS:
        parts.append(int32_field(3, code))
    if isinstance(status, Dead):
        parts.append(string_field(4, status.error))
    return b"".join(parts)