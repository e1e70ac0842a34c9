"""A bounded broadcast buffer of encoded updates with slot-based replay."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from richat_geyser import metrics
from richat_geyser.config import ConfigChannel
from richat_geyser.message import (
    PluginNotification,
    ProtobufEncoder,
    ProtobufMessage,
    SlotMessage,
)
from richat_geyser.replica import SlotStatus

logger = logging.getLogger(__name__)

_Waker = Tuple[asyncio.AbstractEventLoop, "asyncio.Future[None]"]


@dataclass(frozen=True)
class RichatFilter:
    """Kinds of updates a subscriber does not want to receive."""

    disable_accounts: bool = False
    disable_transactions: bool = False
    disable_entries: bool = False


class SubscribeError(Exception):
    """A subscription could not be created."""


class SlotNotAvailable(SubscribeError):
    def __init__(self, first_available: int):
        super().__init__(f"slot is not available, first available: {first_available}")
        self.first_available = first_available


class NotInitialized(SubscribeError):
    def __init__(self) -> None:
        super().__init__("channel is not initialized yet")


class RecvError(Exception):
    """A receiver can not continue."""


class Lagged(RecvError):
    def __init__(self) -> None:
        super().__init__("receiver lagged behind the channel")


class Closed(RecvError):
    def __init__(self) -> None:
        super().__init__("channel closed")


@dataclass
class _SlotInfo:
    head: int
    parent_slot: Optional[int] = None
    confirmed: bool = False
    finalized: bool = False


@dataclass
class _Item:
    pos: int
    slot: int = 0
    data: Optional[Tuple[PluginNotification, bytes]] = None
    closed: bool = False


def _resolve(future: "asyncio.Future[None]") -> None:
    if not future.done():
        future.set_result(None)


def _wake(wakers: List[_Waker]) -> None:
    for loop, future in wakers:
        try:
            loop.call_soon_threadsafe(_resolve, future)
        except RuntimeError:
            pass  # the loop is closed; nobody is waiting any more


@dataclass
class _Shared:
    capacity: int
    bytes_max: int
    lock: threading.Lock = field(default_factory=threading.Lock)
    head: int = 0
    tail: int = 0
    bytes_total: int = 0
    slots: Dict[int, _SlotInfo] = field(default_factory=dict)
    wakers: List[_Waker] = field(default_factory=list)
    buffer: List[_Item] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.mask = self.capacity - 1
        self.head = self.tail = self.capacity
        self.buffer = [_Item(pos=i) for i in range(self.capacity)]

    def item(self, pos: int) -> _Item:
        return self.buffer[pos & self.mask]

    def remove_slots(self, remove_upto: int) -> None:
        for slot in [slot for slot in self.slots if slot <= remove_upto]:
            del self.slots[slot]

    def take_wakers(self) -> List[_Waker]:
        wakers, self.wakers = self.wakers, []
        return wakers


def _next_power_of_two(value: int) -> int:
    return 1 if value <= 1 else 1 << (value - 1).bit_length()


class Sender:
    """Producer side of the channel; copies share the same buffer."""

    def __init__(self, config: ConfigChannel):
        self._shared = _Shared(
            capacity=_next_power_of_two(config.max_messages), bytes_max=config.max_bytes
        )

    def push(self, message: ProtobufMessage, encoder: Union[ProtobufEncoder, str]) -> None:
        """Encode and append a message, waking every waiting receiver."""
        data = message.encode(encoder)
        shared = self._shared
        with shared.lock:
            messages = [(message, data)]
            if isinstance(message, SlotMessage):
                messages.extend(self._missed_parents(message, encoder))
            for item_message, item_data in reversed(messages):
                self._push_msg(item_message, item_data)
            wakers = shared.take_wakers()
        _wake(wakers)

    def _missed_parents(
        self, message: SlotMessage, encoder: Union[ProtobufEncoder, str]
    ) -> List[Tuple[ProtobufMessage, bytes]]:
        # Parents sometimes never get a confirmed/finalized update; emit them.
        slots = self._shared.slots
        status = message.status
        missed = []
        pending = [message.slot]
        while pending:
            info = slots.get(pending.pop())
            if info is None or info.parent_slot is None:
                break
            parent = info.parent_slot
            entry = slots.get(parent)
            if entry is None:
                break
            if (status is SlotStatus.CONFIRMED and not entry.confirmed) or (
                status is SlotStatus.ROOTED and not entry.finalized
            ):
                pending.append(parent)
                parent_message = SlotMessage(parent, entry.parent_slot, status)
                missed.append((parent_message, parent_message.encode(encoder)))
                logger.error("missed slot status update for %s (%s)", parent, status)
                metrics.geyser_missed_slot_status_inc(status)
        return missed

    def _push_msg(self, message: ProtobufMessage, data: bytes) -> None:
        shared = self._shared
        pos = shared.tail
        slot = message.slot

        entry = shared.slots.setdefault(slot, _SlotInfo(head=pos))
        if isinstance(message, SlotMessage):
            if message.parent is not None:
                entry.parent_slot = message.parent
            if message.status is SlotStatus.CONFIRMED:
                entry.confirmed = True
            elif message.status is SlotStatus.ROOTED:
                entry.finalized = True

        shared.bytes_total += len(data)
        removed_max_slot: Optional[int] = None
        while shared.bytes_total >= shared.bytes_max:
            if not shared.head < shared.tail:
                raise RuntimeError("head overflow tail on remove process by bytes limit")
            item = shared.item(shared.head)
            if item.data is None:
                raise RuntimeError("nothing to remove to keep bytes under limit")
            removed = item.data
            item.data = None
            shared.head += 1
            shared.bytes_total -= len(removed[1])
            removed_max_slot = (
                item.slot if removed_max_slot is None else max(item.slot, removed_max_slot)
            )

        shared.tail += 1

        item = shared.item(pos)
        if item.data is not None:
            shared.head += 1
            shared.bytes_total -= len(item.data[1])
            removed_max_slot = (
                item.slot if removed_max_slot is None else max(item.slot, removed_max_slot)
            )
        item.pos = pos
        item.slot = slot
        item.data = (message.plugin_notification(), data)

        if removed_max_slot is not None:
            shared.remove_slots(removed_max_slot)

        if isinstance(message, SlotMessage):
            metrics.geyser_slot_status_set(slot, message.status)
            if message.status is SlotStatus.PROCESSED:
                messages = shared.tail - shared.head
                logger.debug(
                    "new processed %s / %s messages / %s slots / %s bytes",
                    slot,
                    messages,
                    len(shared.slots),
                    shared.bytes_total,
                )
                metrics.channel_messages_set(messages)
                metrics.channel_slots_set(len(shared.slots))
                metrics.channel_bytes_set(shared.bytes_total)

    def close(self) -> None:
        """Mark the channel closed; receivers then fail with ``Closed``."""
        shared = self._shared
        with shared.lock:
            for item in shared.buffer:
                item.closed = True
            wakers = shared.take_wakers()
        _wake(wakers)

    def subscribe(
        self,
        replay_from_slot: Optional[int] = None,
        filter: Optional[RichatFilter] = None,
    ) -> "Receiver":
        """Create a receiver starting at a stored slot, or at the end of the buffer."""
        shared = self._shared
        with shared.lock:
            if replay_from_slot is None:
                start = shared.tail
            else:
                info = shared.slots.get(replay_from_slot)
                if info is None:
                    if shared.slots:
                        raise SlotNotAvailable(min(shared.slots))
                    raise NotInitialized()
                start = info.head
        return Receiver(shared, start, filter or RichatFilter())


class Receiver:
    """Consumer side of the channel, yielding encoded updates in order."""

    def __init__(self, shared: _Shared, start: int, filter: RichatFilter):
        self._shared = shared
        self._next = start
        self._finished = False
        self._enable_accounts = not filter.disable_accounts
        self._enable_transactions = not filter.disable_transactions
        self._enable_entries = not filter.disable_entries

    def _wanted(self, notification: PluginNotification) -> bool:
        if notification is PluginNotification.ACCOUNT:
            return self._enable_accounts
        if notification is PluginNotification.TRANSACTION:
            return self._enable_transactions
        if notification is PluginNotification.ENTRY:
            return self._enable_entries
        return True

    def _recv_ref(self, waker: Optional[_Waker]) -> Optional[bytes]:
        shared = self._shared
        with shared.lock:
            while True:
                item = shared.item(self._next)
                if item.closed:
                    raise Closed()
                if item.pos != self._next:
                    if item.pos < self._next:
                        if waker is not None:
                            shared.wakers.append(waker)
                        return None
                    raise Lagged()
                self._next += 1
                if item.data is None:
                    raise Lagged()
                notification, data = item.data
                if self._wanted(notification):
                    return data

    def try_recv(self) -> Optional[bytes]:
        """Return the next update, or ``None`` if nothing new is available."""
        return self._recv_ref(None)

    async def recv(self) -> bytes:
        """Wait for the next update."""
        loop = asyncio.get_running_loop()
        while True:
            future: "asyncio.Future[None]" = loop.create_future()
            value = self._recv_ref((loop, future))
            if value is not None:
                return value
            await future

    def __aiter__(self) -> "Receiver":
        return self

    async def __anext__(self) -> bytes:
        if self._finished:
            raise StopAsyncIteration
        try:
            return await self.recv()
        except RecvError:
            self._finished = True
            raise