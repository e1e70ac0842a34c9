import pytest

from richat_geyser.encoding.slot import encode_slot, slot_status_as_i32
from richat_geyser.replica import Dead, SlotStatus


def _read_varint(data, pos):
    result = 0
    shift = 0
    while True:
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7


def _fields(data):
    out = []
    pos = 0
    while pos < len(data):
        key, pos = _read_varint(data, pos)
        tag, wire = key >> 3, key & 7
        if wire == 0:
            value, pos = _read_varint(data, pos)
        elif wire == 2:
            size, pos = _read_varint(data, pos)
            value, pos = data[pos : pos + size], pos + size
        else:
            raise AssertionError(f"unexpected wire type {wire}")
        out.append((tag, wire, value))
    return out


ALL_STATUSES = list(SlotStatus) + [Dead(""), Dead("42")]


def test_status_codes_follow_source():
    assert slot_status_as_i32(SlotStatus.PROCESSED) == 0
    assert slot_status_as_i32(SlotStatus.CONFIRMED) == 1
    assert slot_status_as_i32(SlotStatus.ROOTED) == 2
    assert slot_status_as_i32(Dead("x")) == 6


def test_status_codes_are_distinct():
    codes = {slot_status_as_i32(status) for status in list(SlotStatus) + [Dead()]}
    assert len(codes) == len(SlotStatus) + 1


def test_invalid_status_type():
    with pytest.raises(TypeError):
        slot_status_as_i32("processed")


def test_all_defaults_encode_empty():
    assert encode_slot(0, None, SlotStatus.PROCESSED) == b""


def test_dead_with_empty_error_keeps_every_field():
    fields = _fields(encode_slot(42, 0, Dead("")))
    assert fields == [
        (1, 0, 42),
        (2, 0, 0),
        (3, 0, slot_status_as_i32(Dead(""))),
        (4, 2, b""),
    ]


@pytest.mark.parametrize("slot", [0, 42, 310629080])
@pytest.mark.parametrize("parent", [None, 0, 42])
@pytest.mark.parametrize("status", ALL_STATUSES)
def test_fields_decode_back(slot, parent, status):
    decoded = {tag: value for tag, _, value in _fields(encode_slot(slot, parent, status))}
    assert decoded.get(1, 0) == slot
    assert decoded.get(2) == parent
    assert decoded.get(3, 0) == slot_status_as_i32(status)
    if isinstance(status, Dead):
        assert decoded[4] == status.error.encode()
    else:
        assert 4 not in decoded


def test_fields_are_in_tag_order():
    tags = [tag for tag, _, _ in _fields(encode_slot(310629080, 42, Dead("42")))]
    assert tags == sorted(tags)


def test_negative_slot_rejected():
    with pytest.raises(ValueError):
        encode_slot(-1, None, SlotStatus.PROCESSED)