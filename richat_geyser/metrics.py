"""Process-wide metrics for the plugin, rendered in the Prometheus text format."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from richat_geyser.replica import AnySlotStatus, SlotStatus

_lock = threading.Lock()

_SLOT_STATUS_LABELS = {
    SlotStatus.PROCESSED: "processed",
    SlotStatus.ROOTED: "finalized",
    SlotStatus.CONFIRMED: "confirmed",
    SlotStatus.FIRST_SHRED_RECEIVED: "first_shred_received",
    SlotStatus.COMPLETED: "completed",
    SlotStatus.CREATED_BANK: "created_bank",
}
_MISSED_STATUS_LABELS = {
    SlotStatus.CONFIRMED: "confirmed",
    SlotStatus.ROOTED: "finalized",
}


@dataclass(frozen=True)
class MetricFamily:
    """A snapshot of one metric; sample keys are the label values."""

    name: str
    help: str
    kind: str
    label: Optional[str]
    samples: Dict[Tuple[str, ...], int]


class _Metric:
    def __init__(self, name: str, help: str, kind: str, label: Optional[str] = None):
        self.name = name
        self.help = help
        self.kind = kind
        self.label = label
        self._values: Dict[Tuple[str, ...], int] = {} if label else {(): 0}

    def _key(self, label_value: Optional[str]) -> Tuple[str, ...]:
        if self.label is None:
            return ()
        if label_value is None:
            raise ValueError(f"metric {self.name} needs a `{self.label}` label")
        return (label_value,)

    def set(self, value: int, label_value: Optional[str] = None) -> None:
        with _lock:
            self._values[self._key(label_value)] = int(value)

    def add(self, delta: int, label_value: Optional[str] = None) -> None:
        key = self._key(label_value)
        with _lock:
            self._values[key] = self._values.get(key, 0) + delta

    def snapshot(self) -> MetricFamily:
        with _lock:
            samples = dict(self._values)
        return MetricFamily(self.name, self.help, self.kind, self.label, samples)


_GEYSER_SLOT_STATUS = _Metric(
    "geyser_slot_status", "Latest slot received from Geyser", "gauge", "status"
)
_GEYSER_MISSED_SLOT_STATUS = _Metric(
    "geyser_missed_slot_status_total",
    "Number of missed slot status updates",
    "counter",
    "status",
)
_CHANNEL_MESSAGES_TOTAL = _Metric(
    "channel_messages_total", "Total number of messages in channel", "gauge"
)
_CHANNEL_SLOTS_TOTAL = _Metric(
    "channel_slots_total", "Total number of slots in channel", "gauge"
)
_CHANNEL_BYTES_TOTAL = _Metric(
    "channel_bytes_total", "Total size of all messages in channel", "gauge"
)
_CONNECTIONS_TOTAL = _Metric(
    "connections_total", "Total number of connections", "gauge", "transport"
)

_REGISTRY: List[_Metric] = [
    _GEYSER_SLOT_STATUS,
    _GEYSER_MISSED_SLOT_STATUS,
    _CHANNEL_MESSAGES_TOTAL,
    _CHANNEL_SLOTS_TOTAL,
    _CHANNEL_BYTES_TOTAL,
    _CONNECTIONS_TOTAL,
]


class ConnectionsTransport(Enum):
    GRPC = "grpc"
    QUIC = "quic"
    TCP = "tcp"


def geyser_slot_status_set(slot: int, status: AnySlotStatus) -> None:
    """Record the latest slot seen for a status; dead slots are not tracked."""
    label = _SLOT_STATUS_LABELS.get(status) if isinstance(status, SlotStatus) else None
    if label is not None:
        _GEYSER_SLOT_STATUS.set(slot, label)


def geyser_missed_slot_status_inc(status: AnySlotStatus) -> None:
    label = _MISSED_STATUS_LABELS.get(status) if isinstance(status, SlotStatus) else None
    if label is not None:
        _GEYSER_MISSED_SLOT_STATUS.add(1, label)


def channel_messages_set(count: int) -> None:
    _CHANNEL_MESSAGES_TOTAL.set(count)


def channel_slots_set(count: int) -> None:
    _CHANNEL_SLOTS_TOTAL.set(count)


def channel_bytes_set(count: int) -> None:
    _CHANNEL_BYTES_TOTAL.set(count)


def connections_add(transport: ConnectionsTransport) -> None:
    _CONNECTIONS_TOTAL.add(1, ConnectionsTransport(transport).value)


def connections_dec(transport: ConnectionsTransport) -> None:
    _CONNECTIONS_TOTAL.add(-1, ConnectionsTransport(transport).value)


def gather() -> Dict[str, MetricFamily]:
    """Return a snapshot of every registered metric keyed by name."""
    return {metric.name: metric.snapshot() for metric in _REGISTRY}


def render() -> str:
    """Render all metrics in the Prometheus text exposition format."""
    lines = []
    for family in gather().values():
        lines.append(f"# HELP {family.name} {family.help}")
        lines.append(f"# TYPE {family.name} {family.kind}")
        for labels, value in sorted(family.samples.items()):
            if family.label is None:
                lines.append(f"{family.name} {value}")
            else:
                lines.append(f'{family.name}{{{family.label}="{labels[0]}"}} {value}')
    return "\n".join(lines) + "\n"