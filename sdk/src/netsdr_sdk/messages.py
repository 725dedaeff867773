"""Control message builders and IQ datagram parser."""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Optional, Tuple

import numpy as np

from .config import ClientConfig
from .framing import HEADER_SIZE, MessageType, decode_frame, encode_frame

# header + 16-bit sequence number
DATAGRAM_HEADER_SIZE = HEADER_SIZE + 2

MAX_CHANNEL = 0xFF
MAX_FREQUENCY_HZ = (1 << 40) - 1
FREQUENCY_BYTES = 5


class ControlItem(IntEnum):
    RECEIVER_STATE = 0x0018
    RECEIVER_FREQUENCY = 0x0020
    RF_FILTER = 0x0044
    AD_MODES = 0x008A
    IQ_OUTPUT_SAMPLE_RATE = 0x00B8


class MessageKind(Enum):
    SETUP = "setup"
    START_IQ = "start_iq"
    STOP_IQ = "stop_iq"
    SET_FREQUENCY = "set_frequency"


# ReceiverState parameters
IQ_DATA_COMPLEX = 0x80
RUN = 0x02
IDLE = 0x01
CAPTURE_24BIT = 0x80
CAPTURE_FIFO = 0x01
FIFO_COUNT = 1


@dataclass(frozen=True)
class ControlMessage:
    kind: MessageKind
    payload: bytes


def build_control_message(
    kind: MessageKind, item: ControlItem, params: bytes
) -> ControlMessage:
    body = int(item).to_bytes(2, "little") + params
    return ControlMessage(kind, encode_frame(MessageType.SET_CONTROL_ITEM, body))


def setup_messages(config: ClientConfig) -> List[ControlMessage]:
    """The three receiver setup messages sent by ``connect()``, in order."""
    return [
        build_control_message(
            MessageKind.SETUP,
            ControlItem.IQ_OUTPUT_SAMPLE_RATE,
            bytes([0]) + config.sample_rate.to_bytes(4, "little"),
        ),
        build_control_message(
            MessageKind.SETUP, ControlItem.RF_FILTER, bytes([0, config.rf_filter])
        ),
        build_control_message(
            MessageKind.SETUP, ControlItem.AD_MODES, bytes([0, config.ad_mode])
        ),
    ]


def start_iq_message(sample_bits: int = 16) -> ControlMessage:
    capture_mode = CAPTURE_FIFO | (CAPTURE_24BIT if sample_bits == 24 else 0)
    return build_control_message(
        MessageKind.START_IQ,
        ControlItem.RECEIVER_STATE,
        bytes([IQ_DATA_COMPLEX, RUN, capture_mode, FIFO_COUNT]),
    )


def stop_iq_message() -> ControlMessage:
    return build_control_message(
        MessageKind.STOP_IQ, ControlItem.RECEIVER_STATE, bytes([0x00, IDLE, 0x00, 0x00])
    )


def set_frequency_message(frequency_hz: int, channel: int = 0) -> ControlMessage:
    """Encode a tuning request.

    Parameters are one channel byte followed by the frequency in Hz as a
    40-bit unsigned little-endian integer.

    Raises:
        ValueError: If the channel or frequency does not fit the layout
    """
    if not 0 <= channel <= MAX_CHANNEL:
        raise ValueError(f"Channel out of range: {channel}")
    if not 0 <= frequency_hz <= MAX_FREQUENCY_HZ:
        raise ValueError(f"Frequency out of range: {frequency_hz} Hz")
    params = bytes([channel]) + frequency_hz.to_bytes(FREQUENCY_BYTES, "little")
    return build_control_message(
        MessageKind.SET_FREQUENCY, ControlItem.RECEIVER_FREQUENCY, params
    )


def parse_control_message(message: bytes) -> Tuple[MessageType, Optional[int], bytes]:
    """Split a control-channel message into (type, item code, parameters).

    The item code is None for header-only messages (NAK) and data items.

    Raises:
        ValueError: If the header is short or disagrees with the message size
    """
    msg_type, body = decode_frame(message)
    if msg_type.is_data_item or len(body) < 2:
        return msg_type, None, body
    return msg_type, int.from_bytes(body[:2], "little"), body[2:]


def is_nak(message: bytes) -> bool:
    return len(message) == HEADER_SIZE


@dataclass(frozen=True, eq=False)
class SampleBatch:
    """Samples carried by one IQ datagram, interleaved I, Q, I, Q, ..."""

    sequence: int
    samples: np.ndarray

    def __len__(self) -> int:
        return len(self.samples) // 2

    @property
    def iq(self) -> np.ndarray:
        return (self.samples[0::2] + 1j * self.samples[1::2]).astype(np.complex64)


def parse_datagram(data: bytes, sample_bits: int = 16) -> Optional[SampleBatch]:
    """Decode an IQ datagram, or return None if it carries no usable samples."""
    if len(data) < DATAGRAM_HEADER_SIZE:
        return None

    sequence = int.from_bytes(data[HEADER_SIZE:DATAGRAM_HEADER_SIZE], "little")
    body = data[DATAGRAM_HEADER_SIZE:]

    pair_size = 2 * (sample_bits // 8)
    n_pairs = len(body) // pair_size
    if n_pairs == 0:
        return None
    body = body[: n_pairs * pair_size]

    if sample_bits == 24:
        raw = np.frombuffer(body, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        samples = raw[:, 0] | (raw[:, 1] << 8) | (raw[:, 2] << 16)
        samples = np.where(samples & 0x800000, samples - 0x1000000, samples)
    else:
        samples = np.frombuffer(body, dtype="<i2")

    return SampleBatch(sequence=sequence, samples=samples)
