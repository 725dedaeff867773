import numpy as np
import pytest

from netsdr_sdk import ClientConfig
from netsdr_sdk.framing import (
    MAX_DATA_ITEM_LENGTH,
    MessageType,
    decode_frame,
    decode_header,
    encode_frame,
    encode_header,
)
from netsdr_sdk.messages import (
    ControlItem,
    MessageKind,
    is_nak,
    parse_control_message,
    parse_datagram,
    set_frequency_message,
    setup_messages,
    start_iq_message,
    stop_iq_message,
)


def test_header_packs_length_and_type():
    header = encode_header(MessageType.SET_CONTROL_ITEM, 8)
    assert header == bytes([0x0A, 0x00])

    header = encode_header(MessageType.CURRENT_CONTROL_ITEM, 2)
    assert header == bytes([0x04, 0x20])
    assert decode_header(header) == (MessageType.CURRENT_CONTROL_ITEM, 4)


def test_max_size_data_item_uses_zero_length():
    header = encode_header(MessageType.DATA_ITEM_0, MAX_DATA_ITEM_LENGTH - 2)
    assert header == bytes([0x00, 0x80])
    assert decode_header(header) == (MessageType.DATA_ITEM_0, MAX_DATA_ITEM_LENGTH)


def test_oversized_control_message_rejected():
    with pytest.raises(ValueError):
        encode_header(MessageType.SET_CONTROL_ITEM, 8190)


def test_decode_frame_checks_length():
    frame = encode_frame(MessageType.SET_CONTROL_ITEM, b"\x18\x00\x01")
    assert decode_frame(frame) == (MessageType.SET_CONTROL_ITEM, b"\x18\x00\x01")

    with pytest.raises(ValueError):
        decode_frame(frame[:-1])
    with pytest.raises(ValueError):
        decode_frame(b"\x05")


def test_setup_messages_follow_config():
    config = ClientConfig(sample_rate=200_000, rf_filter=0x0B, ad_mode=0x01)
    messages = setup_messages(config)

    assert len(messages) == 3
    assert all(m.kind is MessageKind.SETUP for m in messages)
    assert len({m.payload for m in messages}) == 3

    _, item, params = parse_control_message(messages[0].payload)
    assert item == ControlItem.IQ_OUTPUT_SAMPLE_RATE
    assert int.from_bytes(params[1:5], "little") == 200_000

    assert parse_control_message(messages[1].payload)[2] == bytes([0, 0x0B])
    assert parse_control_message(messages[2].payload)[2] == bytes([0, 0x01])


def test_start_and_stop_iq_payloads():
    start = start_iq_message()
    stop = stop_iq_message()

    assert start.kind is MessageKind.START_IQ
    assert stop.kind is MessageKind.STOP_IQ
    assert parse_control_message(start.payload)[2] == bytes([0x80, 0x02, 0x01, 0x01])
    assert parse_control_message(stop.payload)[2] == bytes([0x00, 0x01, 0x00, 0x00])
    assert parse_control_message(start_iq_message(24).payload)[2][2] == 0x81


def test_set_frequency_layout():
    message = set_frequency_message(14_100_000, 1)

    assert message.kind is MessageKind.SET_FREQUENCY
    assert len(message.payload) == 10
    msg_type, item, params = parse_control_message(message.payload)
    assert msg_type is MessageType.SET_CONTROL_ITEM
    assert item == ControlItem.RECEIVER_FREQUENCY
    assert params == bytes([1]) + (14_100_000).to_bytes(5, "little")


def test_set_frequency_differs_per_channel_and_frequency():
    payloads = {
        set_frequency_message(7_100_000, 0).payload,
        set_frequency_message(7_100_000, 1).payload,
        set_frequency_message(14_100_000, 0).payload,
    }
    assert len(payloads) == 3


@pytest.mark.parametrize("frequency, channel", [(-1, 0), (1 << 40, 0), (0, -1), (0, 256)])
def test_set_frequency_out_of_range(frequency, channel):
    with pytest.raises(ValueError):
        set_frequency_message(frequency, channel)


def test_nak_detection():
    assert is_nak(encode_header(MessageType.SET_CONTROL_ITEM, 0))
    assert not is_nak(set_frequency_message(0).payload)
    msg_type, item, params = parse_control_message(bytes([0x02, 0x00]))
    assert item is None and params == b""


def test_parse_16bit_datagram():
    samples = np.array([100, -100, 32767, -32768], dtype="<i2")
    datagram = bytes([0x04, 0x84]) + (7).to_bytes(2, "little") + samples.tobytes()

    batch = parse_datagram(datagram)

    assert batch is not None
    assert batch.sequence == 7
    assert len(batch) == 2
    assert list(batch.samples) == [100, -100, 32767, -32768]
    assert batch.iq[0] == np.complex64(100 - 100j)


def test_parse_24bit_datagram():
    body = (
        (1).to_bytes(3, "little", signed=True)
        + (-2).to_bytes(3, "little", signed=True)
        + (8388607).to_bytes(3, "little", signed=True)
        + (-8388608).to_bytes(3, "little", signed=True)
    )
    batch = parse_datagram(bytes([0x84, 0x81, 0x01, 0x00]) + body, sample_bits=24)

    assert batch is not None
    assert list(batch.samples) == [1, -2, 8388607, -8388608]


def test_short_datagrams_yield_nothing():
    assert parse_datagram(b"") is None
    assert parse_datagram(b"\x04\x84\x00") is None
    # header only, and a body without a complete I/Q pair
    assert parse_datagram(b"\x04\x84\x00\x00") is None
    assert parse_datagram(b"\x04\x84\x00\x00\x01\x02") is None


def test_trailing_partial_sample_ignored():
    batch = parse_datagram(bytes(range(8)) + b"\xff")
    assert batch is not None
    assert len(batch) == 1
