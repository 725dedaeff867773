"""NetSDR receiver SDK.

A fully async SDK for controlling NetSDR/CloudSDR style receivers over a TCP
control channel and collecting IQ samples from the UDP data channel.
"""

import logging
import os

from .base import ControlTransport, DataTransport
from .client import AckTimeoutError, ConnectionState, NetSdrClient, NetSdrError, Session
from .config import ClientConfig
from .framing import MessageType, decode_frame, encode_frame
from .messages import ControlMessage, MessageKind, SampleBatch, parse_datagram
from .pipeline import SampleFileWriter, SamplePipeline
from .transports import AsyncTcpControl, AsyncUdpData

# Debug output can be enabled via the NETSDR_DEBUG env var
if os.getenv("NETSDR_DEBUG", "").lower() in ("1", "true", "yes"):
    logging.getLogger("netsdr_sdk").setLevel(logging.DEBUG)

__all__ = [
    # High-level
    "NetSdrClient",
    "NetSdrError",
    "AckTimeoutError",
    "ClientConfig",
    "ConnectionState",
    "Session",
    # Transports
    "ControlTransport",
    "DataTransport",
    "AsyncTcpControl",
    "AsyncUdpData",
    # Messages and samples
    "ControlMessage",
    "MessageKind",
    "MessageType",
    "SampleBatch",
    "SamplePipeline",
    "SampleFileWriter",
    "parse_datagram",
    # Framing utilities
    "encode_frame",
    "decode_frame",
]

__version__ = "0.1.0"
