import pytest

from richat_geyser import metrics
from richat_geyser.metrics import ConnectionsTransport
from richat_geyser.replica import Dead, SlotStatus


def _samples(name):
    return metrics.gather()[name].samples


def test_slot_status_labels():
    metrics.geyser_slot_status_set(10, SlotStatus.PROCESSED)
    metrics.geyser_slot_status_set(11, SlotStatus.ROOTED)
    metrics.geyser_slot_status_set(12, SlotStatus.CREATED_BANK)
    samples = _samples("geyser_slot_status")
    assert samples[("processed",)] == 10
    assert samples[("finalized",)] == 11
    assert samples[("created_bank",)] == 12


def test_dead_slot_status_is_ignored():
    before = _samples("geyser_slot_status")
    metrics.geyser_slot_status_set(99, Dead("boom"))
    assert _samples("geyser_slot_status") == before


@pytest.mark.parametrize(
    "status,label",
    [(SlotStatus.CONFIRMED, "confirmed"), (SlotStatus.ROOTED, "finalized")],
)
def test_missed_slot_status_counts(status, label):
    before = _samples("geyser_missed_slot_status_total").get((label,), 0)
    metrics.geyser_missed_slot_status_inc(status)
    metrics.geyser_missed_slot_status_inc(status)
    after = _samples("geyser_missed_slot_status_total")[(label,)]
    assert after - before == 2


def test_missed_slot_status_ignores_other_statuses():
    before = _samples("geyser_missed_slot_status_total")
    metrics.geyser_missed_slot_status_inc(SlotStatus.PROCESSED)
    metrics.geyser_missed_slot_status_inc(Dead(""))
    assert _samples("geyser_missed_slot_status_total") == before


def test_channel_gauges():
    metrics.channel_messages_set(5)
    metrics.channel_slots_set(6)
    metrics.channel_bytes_set(7)
    assert _samples("channel_messages_total") == {(): 5}
    assert _samples("channel_slots_total") == {(): 6}
    assert _samples("channel_bytes_total") == {(): 7}


def test_connections_add_and_dec():
    before = _samples("connections_total").get(("quic",), 0)
    metrics.connections_add(ConnectionsTransport.QUIC)
    metrics.connections_add(ConnectionsTransport.QUIC)
    metrics.connections_dec(ConnectionsTransport.QUIC)
    assert _samples("connections_total")[("quic",)] - before == 1


@pytest.mark.parametrize(
    "transport,label",
    [
        (ConnectionsTransport.GRPC, "grpc"),
        (ConnectionsTransport.QUIC, "quic"),
        (ConnectionsTransport.TCP, "tcp"),
    ],
)
def test_transport_names(transport, label):
    before = _samples("connections_total").get((label,), 0)
    metrics.connections_add(transport)
    assert _samples("connections_total")[(label,)] - before == 1
    metrics.connections_dec(transport)
    assert _samples("connections_total")[(label,)] == before


def test_render_text_format():
    metrics.channel_bytes_set(123)
    metrics.connections_add(ConnectionsTransport.TCP)
    text = metrics.render()
    assert "channel_bytes_total 123\n" in text
    assert "# TYPE geyser_missed_slot_status_total counter" in text
    assert "# HELP channel_slots_total Total number of slots in channel" in text
    assert 'connections_total{transport="tcp"}' in text
    assert text.endswith("\n")


def test_gather_returns_copies():
    metrics.channel_messages_set(17)
    snapshot = metrics.gather()["channel_messages_total"]
    snapshot.samples[()] = -1
    assert metrics.gather()["channel_messages_total"].samples[()] == 17