"""NetSDR message framing: 16-bit length/type header."""

from enum import IntEnum
from typing import Tuple

HEADER_SIZE = 2
MAX_MESSAGE_LENGTH = 8191
MAX_DATA_ITEM_LENGTH = 8194


class MessageType(IntEnum):
    SET_CONTROL_ITEM = 0
    CURRENT_CONTROL_ITEM = 1
    CONTROL_ITEM_RANGE = 2
    ACK = 3
    DATA_ITEM_0 = 4
    DATA_ITEM_1 = 5
    DATA_ITEM_2 = 6
    DATA_ITEM_3 = 7

    @property
    def is_data_item(self) -> bool:
        return self >= MessageType.DATA_ITEM_0


def encode_header(msg_type: MessageType, body_length: int) -> bytes:
    """Build the header word for a message with ``body_length`` bytes after it.

    The low 13 bits carry the total length including the header, the high 3
    bits the message type. A maximum-size data item is sent with length 0.
    """
    total = body_length + HEADER_SIZE
    if msg_type.is_data_item and total == MAX_DATA_ITEM_LENGTH:
        total = 0
    elif body_length < 0 or total > MAX_MESSAGE_LENGTH:
        raise ValueError(f"Message length out of range: {total} bytes")
    return (total | (int(msg_type) << 13)).to_bytes(2, "little")


def decode_header(header: bytes) -> Tuple[MessageType, int]:
    """Return (message type, total length including header)."""
    if len(header) < HEADER_SIZE:
        raise ValueError("Header too short")
    word = int.from_bytes(header[:HEADER_SIZE], "little")
    msg_type = MessageType(word >> 13)
    length = word & 0x1FFF
    if msg_type.is_data_item and length == 0:
        length = MAX_DATA_ITEM_LENGTH
    return msg_type, length


def encode_frame(msg_type: MessageType, body: bytes) -> bytes:
    return encode_header(msg_type, len(body)) + body


def decode_frame(message: bytes) -> Tuple[MessageType, bytes]:
    msg_type, length = decode_header(message)
    body = message[HEADER_SIZE:]
    if length != len(message):
        raise ValueError("Length mismatch")
    return msg_type, body
