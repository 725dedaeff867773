"""Async TCP control transport."""

import asyncio
from typing import Optional

from ..base import ControlTransport
from ..config import DEFAULT_CONTROL_PORT
from ..framing import HEADER_SIZE, decode_header


class AsyncTcpControl(ControlTransport):
    """Control channel over a TCP stream.

    A background reader task splits the stream into messages using the
    length field of each header and notifies the handlers once per message.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_CONTROL_PORT,
        connect_timeout: float = 5.0,
    ):
        super().__init__()
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._reader_task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self) -> None:
        """Open the TCP connection and start the reader task."""
        if self.connected:
            return

        self.logger.debug(
            f"Connecting to {self.host}:{self.port} (timeout={self.connect_timeout}s)"
        )
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"TCP connect to {self.host}:{self.port} timed out after {self.connect_timeout}s"
            ) from None
        except OSError as e:
            raise ConnectionError(f"Cannot connect to {self.host}:{self.port}: {e}") from e

        self._reader_task = asyncio.create_task(self._read_loop(self._reader))
        self.logger.info(f"AsyncTcpControl connected to {self.host}:{self.port}")

    def disconnect(self) -> None:
        """Close the connection and stop the reader task."""
        if self._reader_task is not None:
            self._reader_task.cancel()
            self._reader_task = None
        self._close_writer()

    async def send(self, message: bytes) -> None:
        """Write one message and wait for the socket buffer to drain."""
        if not self.connected:
            raise ConnectionError("Not connected")

        assert self._writer is not None
        self._writer.write(message)
        await self._writer.drain()

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        try:
            while True:
                header = await reader.readexactly(HEADER_SIZE)
                msg_type, length = decode_header(header)
                if length < HEADER_SIZE:
                    self.logger.error(
                        f"Invalid message length {length} in header {header.hex()}, "
                        f"stream may be out of sync"
                    )
                    break
                body = await reader.readexactly(length - HEADER_SIZE)
                self.logger.debug(f"← {msg_type.name} ({length} bytes)")
                self._notify(header + body)
        except asyncio.IncompleteReadError:
            self.logger.warning("TCP connection closed by receiver")
        except OSError as e:
            self.logger.error(f"TCP recv error: {e}")

        self._reader_task = None
        self._close_writer()

    def _close_writer(self) -> None:
        if self._writer is None:
            return
        self.logger.debug(f"Closing connection to {self.host}:{self.port}")
        self._writer.close()
        self._writer = None
        self._reader = None
        self.logger.info("AsyncTcpControl disconnected")
