"""NetSDR protocol engine: session lifecycle, commands and IQ streaming."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .base import ControlTransport, DataTransport
from .config import ClientConfig
from .messages import (
    ControlMessage,
    is_nak,
    parse_control_message,
    set_frequency_message,
    setup_messages,
    start_iq_message,
    stop_iq_message,
)
from .pipeline import SampleConsumer, SamplePipeline
from .transports import AsyncTcpControl, AsyncUdpData

# Replies beyond this many while a request is in flight are discarded
ACK_QUEUE_SIZE = 16


class NetSdrError(Exception):
    """Base class for protocol failures reported by the client."""


class AckTimeoutError(NetSdrError, TimeoutError):
    """Raised when no control-channel reply arrives in time."""


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@dataclass
class Session:
    """In-memory connection and streaming state for one receiver."""

    state: ConnectionState = ConnectionState.DISCONNECTED
    iq_streaming: bool = False
    active_frequencies: Dict[int, int] = field(default_factory=dict)
    sample_bits: int = 16

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED


class NetSdrClient:
    """Async client for a NetSDR-style receiver.

    Commands go out on the control transport one at a time; each is
    acknowledged by whatever control message arrives next. IQ samples arrive
    on the data transport and are handed to the registered consumers.

    Usage::

        client = NetSdrClient.from_config(ClientConfig(host="192.168.1.20"))
        async with client:
            await client.change_frequency(14_100_000, channel=0)
            client.add_sample_consumer(print)
            await client.start_iq()
            ...
            await client.stop_iq()

    Operations that need a connection quietly do nothing while disconnected.
    """

    def __init__(
        self,
        control: ControlTransport,
        data: DataTransport,
        config: Optional[ClientConfig] = None,
        consumer: Optional[SampleConsumer] = None,
    ):
        self.config = config or ClientConfig()
        self.session = Session(sample_bits=self.config.sample_bits)
        self.pipeline = SamplePipeline(consumer, sample_bits=self.session.sample_bits)
        self.logger = logging.getLogger(f"netsdr_sdk.{self.__class__.__name__}")

        self._control = control
        self._data = data
        self._lock = asyncio.Lock()
        self._replies: asyncio.Queue = asyncio.Queue(maxsize=ACK_QUEUE_SIZE)
        self._in_flight: Optional[ControlMessage] = None
        # bumped by disconnect(); operations compare it after each await
        self._generation = 0

        self._control.add_message_handler(self._on_control_message)
        self._data.add_datagram_handler(self.pipeline.handle_datagram)

    @classmethod
    def from_config(
        cls, config: ClientConfig, consumer: Optional[SampleConsumer] = None
    ) -> "NetSdrClient":
        """Build a client with TCP control and UDP data transports."""
        control = AsyncTcpControl(
            config.host, config.control_port, connect_timeout=config.connect_timeout
        )
        data = AsyncUdpData(port=config.data_port)
        return cls(control, data, config=config, consumer=consumer)

    @property
    def connected(self) -> bool:
        return self.session.connected and self._control.connected

    @property
    def iq_streaming(self) -> bool:
        return self.session.iq_streaming

    def add_sample_consumer(self, consumer: SampleConsumer) -> None:
        self.pipeline.add_consumer(consumer)

    def remove_sample_consumer(self, consumer: SampleConsumer) -> None:
        self.pipeline.remove_consumer(consumer)

    # -- connection --

    async def connect(self, timeout: Optional[float] = None) -> None:
        """Open the control channel and send the receiver setup messages.

        Does nothing if already connected. If the setup exchange fails the
        control channel is closed again and the session stays disconnected.

        Args:
            timeout: Per-message acknowledgement timeout in seconds

        Raises:
            AckTimeoutError: If a setup message is not acknowledged in time
            ConnectionError: If the control channel cannot be opened
        """
        async with self._lock:
            if self.connected:
                self.logger.debug("connect() ignored: already connected")
                return

            self._reset_session()
            generation = self._generation
            if not self._control.connected:
                await self._control.connect()

            try:
                for message in setup_messages(self.config):
                    await self._exchange(message, timeout)
                    if generation != self._generation:
                        raise ConnectionError("Disconnected during receiver setup")
            except BaseException:
                self.logger.warning("Receiver setup failed, closing control channel")
                self._control.disconnect()
                self.session.state = ConnectionState.DISCONNECTED
                raise

            self.session.state = ConnectionState.CONNECTED
            self.logger.info("Connected")

    def disconnect(self) -> None:
        """Close the control channel and stop streaming. Safe in any state."""
        self._generation += 1
        self._control.disconnect()
        self._reset_session()
        if self.session.connected:
            self.logger.info("Disconnected")
        self.session.state = ConnectionState.DISCONNECTED

    def _reset_session(self) -> None:
        """Forget streaming and tuning state left from an earlier connection."""
        if self.session.iq_streaming or self._data.listening:
            self._data.stop_listening()
        self.session.iq_streaming = False
        self.session.active_frequencies.clear()

    # -- streaming --

    async def start_iq(self, timeout: Optional[float] = None) -> None:
        """Ask the receiver to stream IQ data, then start listening for it."""
        async with self._lock:
            if not self.connected:
                self.logger.debug("start_iq() ignored: not connected")
                return
            if self.session.iq_streaming:
                self.logger.debug("start_iq() ignored: already streaming")
                return

            generation = self._generation
            await self._exchange(start_iq_message(self.session.sample_bits), timeout)
            if generation != self._generation:
                self.logger.debug("start_iq() abandoned: disconnected while waiting")
                return
            self.pipeline.sample_bits = self.session.sample_bits
            await self._data.start_listening()
            if generation != self._generation:
                self.logger.debug("start_iq() abandoned: disconnected while starting listener")
                self._data.stop_listening()
                return
            self.session.iq_streaming = True
            self.logger.info("IQ streaming started")

    async def stop_iq(self, timeout: Optional[float] = None) -> None:
        """Ask the receiver to stop streaming, then stop listening."""
        async with self._lock:
            if not self.connected:
                self.logger.debug("stop_iq() ignored: not connected")
                return

            generation = self._generation
            await self._exchange(stop_iq_message(), timeout)
            if generation != self._generation:
                return
            self._data.stop_listening()
            self.session.iq_streaming = False
            self.logger.info("IQ streaming stopped")

    # -- tuning --

    async def change_frequency(
        self, frequency_hz: int, channel: int = 0, timeout: Optional[float] = None
    ) -> None:
        """Tune ``channel`` to ``frequency_hz``.

        Raises:
            ValueError: If the channel or frequency cannot be encoded
            AckTimeoutError: If the receiver does not answer in time
        """
        async with self._lock:
            if not self.connected:
                self.logger.debug("change_frequency() ignored: not connected")
                return

            message = set_frequency_message(frequency_hz, channel)
            generation = self._generation
            await self._exchange(message, timeout)
            if generation != self._generation:
                self.logger.debug("change_frequency() abandoned: disconnected while waiting")
                return
            self.session.active_frequencies[channel] = frequency_hz
            self.logger.info(f"Channel {channel} tuned to {frequency_hz:,} Hz")

    # -- request/acknowledgement --

    async def _exchange(
        self, message: ControlMessage, timeout: Optional[float] = None
    ) -> bytes:
        """Send one message and wait for the next control-channel message.

        Must be called with ``_lock`` held. The reply content is only logged;
        any message arriving after the send counts as the acknowledgement.
        """
        if timeout is None:
            timeout = self.config.ack_timeout

        self._drain_stale_replies()
        self._in_flight = message
        try:
            self.logger.debug(
                f"→ {message.kind.name} ({len(message.payload)} bytes) {message.payload.hex()}"
            )
            await self._control.send(message.payload)
            try:
                reply = await asyncio.wait_for(self._replies.get(), timeout=timeout)
            except asyncio.TimeoutError:
                raise AckTimeoutError(
                    f"No acknowledgement for {message.kind.name} within {timeout}s"
                ) from None
        finally:
            self._in_flight = None

        self._log_reply(message, reply)
        return reply

    def _on_control_message(self, message: bytes) -> None:
        if self._in_flight is None:
            self.logger.debug(f"← unsolicited control message ignored ({len(message)} bytes)")
            return
        try:
            self._replies.put_nowait(message)
        except asyncio.QueueFull:
            self.logger.warning("Reply queue full, dropping control message")

    def _drain_stale_replies(self) -> None:
        skipped = 0
        while not self._replies.empty():
            self._replies.get_nowait()
            skipped += 1
        if skipped:
            self.logger.debug(f"Discarded {skipped} stale control message(s)")

    def _log_reply(self, message: ControlMessage, reply: bytes) -> None:
        if is_nak(reply):
            self.logger.warning(f"Receiver sent NAK for {message.kind.name}")
            return
        try:
            msg_type, item, params = parse_control_message(reply)
        except ValueError as e:
            self.logger.debug(f"← ACK {message.kind.name}: unparsed reply {reply.hex()} ({e})")
            return
        item_text = f"0x{item:04X}" if item is not None else "-"
        self.logger.debug(
            f"← ACK {message.kind.name}: type={msg_type.name} item={item_text} params={params.hex()}"
        )

    async def __aenter__(self):
        """Async context manager entry - connects to the receiver."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit - disconnects."""
        self.disconnect()
        return False
