"""Transport modules for the NetSDR SDK."""

from .tcp import AsyncTcpControl
from .udp import AsyncUdpData

__all__ = [
    "AsyncTcpControl",
    "AsyncUdpData",
]
