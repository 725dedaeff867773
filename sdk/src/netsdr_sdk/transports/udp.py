"""Async UDP data transport."""

import asyncio
from typing import Optional, Tuple

from ..base import DataTransport
from ..config import DEFAULT_DATA_PORT


class _DatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: "AsyncUdpData"):
        self._owner = owner

    def datagram_received(self, data: bytes, addr) -> None:
        self._owner._notify(data)

    def error_received(self, exc: Exception) -> None:
        self._owner.logger.warning(f"UDP receive error: {exc}")


class AsyncUdpData(DataTransport):
    """Data channel bound to a local UDP port.

    Each received datagram is passed to the handlers unchanged.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = DEFAULT_DATA_PORT):
        super().__init__()
        self.host = host
        self.port = port
        self._transport: Optional[asyncio.DatagramTransport] = None

    @property
    def listening(self) -> bool:
        return self._transport is not None

    @property
    def local_address(self) -> Optional[Tuple[str, int]]:
        if self._transport is None:
            return None
        return self._transport.get_extra_info("sockname")[:2]

    async def start_listening(self) -> None:
        if self._transport is not None:
            return

        loop = asyncio.get_running_loop()
        self._transport, _ = await loop.create_datagram_endpoint(
            lambda: _DatagramProtocol(self),
            local_addr=(self.host, self.port),
        )
        self.logger.info(f"AsyncUdpData listening on UDP {self.local_address}")

    def stop_listening(self) -> None:
        if self._transport is None:
            return
        self._transport.close()
        self._transport = None
        self.logger.info("AsyncUdpData stopped listening")
