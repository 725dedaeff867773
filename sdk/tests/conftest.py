"""Pytest configuration for NetSDR SDK tests"""
import logging
import os
import sys
from typing import List

import pytest

SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from netsdr_sdk import ControlTransport, DataTransport, NetSdrClient  # noqa: E402

ACK = bytes([0x01])


def pytest_configure(config):
    """Enable debug logging if NETSDR_DEBUG is set"""
    if os.getenv("NETSDR_DEBUG", "").lower() in ("1", "true", "yes"):
        config.option.log_cli = True
        config.option.log_cli_level = "DEBUG"


@pytest.fixture(scope="session", autouse=True)
def setup_logging():
    """Setup test logging"""
    test_logger = logging.getLogger("test")

    debug_enabled = os.getenv("NETSDR_DEBUG", "").lower() in ("1", "true", "yes")
    test_logger.setLevel(logging.DEBUG if debug_enabled else logging.INFO)

    sdk_logger = logging.getLogger("netsdr_sdk")
    sdk_logger.setLevel(logging.DEBUG if debug_enabled else logging.INFO)

    if debug_enabled:
        test_logger.info("Debug logging enabled (NETSDR_DEBUG=1)")

    yield test_logger


class FakeControl(ControlTransport):
    """In-memory control channel.

    With ``auto_ack`` set, every send is answered by one notification fired
    from inside ``send()``, before it returns.
    """

    def __init__(self, auto_ack: bool = True):
        super().__init__()
        self.auto_ack = auto_ack
        self.is_open = False
        self.sent: List[bytes] = []
        self.connect_calls = 0
        self.disconnect_calls = 0

    @property
    def connected(self) -> bool:
        return self.is_open

    async def connect(self) -> None:
        self.connect_calls += 1
        self.is_open = True

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.is_open = False

    async def send(self, message: bytes) -> None:
        if not self.is_open:
            raise ConnectionError("Not connected")
        self.sent.append(message)
        if self.auto_ack:
            self.reply(ACK)

    def reply(self, message: bytes) -> None:
        self._notify(message)


class FakeData(DataTransport):
    """In-memory data channel; ``inject`` plays the part of the network."""

    def __init__(self):
        super().__init__()
        self.is_listening = False
        self.start_calls = 0
        self.stop_calls = 0

    @property
    def listening(self) -> bool:
        return self.is_listening

    async def start_listening(self) -> None:
        self.start_calls += 1
        self.is_listening = True

    def stop_listening(self) -> None:
        self.stop_calls += 1
        self.is_listening = False

    def inject(self, datagram: bytes) -> None:
        self._notify(datagram)


@pytest.fixture
def control():
    return FakeControl()


@pytest.fixture
def data():
    return FakeData()


@pytest.fixture
def batches():
    return []


@pytest.fixture
def client(control, data, batches):
    return NetSdrClient(control, data, consumer=batches.append)
