"""Abstract base classes for the control and data transports."""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List

MessageHandler = Callable[[bytes], None]


class _NotifyingTransport(ABC):
    """Handler registry shared by both transports.

    Handlers are called on the event loop thread, once per inbound message
    or datagram, in registration order.
    """

    def __init__(self):
        self._handlers: List[MessageHandler] = []
        self.logger = logging.getLogger(f"netsdr_sdk.{self.__class__.__name__}")

    def _add_handler(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def _remove_handler(self, handler: MessageHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def _notify(self, data: bytes) -> None:
        for handler in list(self._handlers):
            try:
                handler(data)
            except Exception:
                self.logger.exception(f"Handler {handler!r} failed on {len(data)} bytes")


class ControlTransport(_NotifyingTransport):
    """Reliable, connection-oriented command channel."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        pass

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection to the device.

        Raises:
            ConnectionError: If connection fails
            TimeoutError: If connection times out
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection. Safe to call when already closed."""
        pass

    @abstractmethod
    async def send(self, message: bytes) -> None:
        """Write one complete control message.

        Raises:
            ConnectionError: If not connected or the write fails
        """
        pass

    def add_message_handler(self, handler: MessageHandler) -> None:
        self._add_handler(handler)

    def remove_message_handler(self, handler: MessageHandler) -> None:
        self._remove_handler(handler)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return False


class DataTransport(_NotifyingTransport):
    """Connectionless channel delivering streamed sample datagrams."""

    @property
    @abstractmethod
    def listening(self) -> bool:
        pass

    @abstractmethod
    async def start_listening(self) -> None:
        """Begin delivering datagrams to the registered handlers."""
        pass

    @abstractmethod
    def stop_listening(self) -> None:
        """Stop delivering datagrams. Safe to call when not listening."""
        pass

    def add_datagram_handler(self, handler: MessageHandler) -> None:
        self._add_handler(handler)

    def remove_datagram_handler(self, handler: MessageHandler) -> None:
        self._remove_handler(handler)
