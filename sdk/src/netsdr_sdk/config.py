"""Client configuration, with environment variable overrides."""

import os
from dataclasses import dataclass

DEFAULT_CONTROL_PORT = 50000
DEFAULT_DATA_PORT = 60000
SUPPORTED_SAMPLE_BITS = (16, 24)


@dataclass
class ClientConfig:
    """Connection parameters and the receiver settings sent during setup.

    The three setup messages are built from ``sample_rate``, ``rf_filter``
    and ``ad_mode``; ``sample_bits`` selects the capture format requested by
    ``start_iq()`` and used to decode incoming datagrams.
    """

    host: str = "127.0.0.1"
    control_port: int = DEFAULT_CONTROL_PORT
    data_port: int = DEFAULT_DATA_PORT
    sample_rate: int = 100_000
    rf_filter: int = 0x00  # automatic
    ad_mode: int = 0x03
    sample_bits: int = 16
    ack_timeout: float = 5.0
    connect_timeout: float = 5.0

    def __post_init__(self):
        if self.sample_bits not in SUPPORTED_SAMPLE_BITS:
            raise ValueError(
                f"Unsupported sample size: {self.sample_bits} bits "
                f"(expected one of {SUPPORTED_SAMPLE_BITS})"
            )

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        """Build a config from NETSDR_* variables; keyword overrides win."""
        values = {}
        if os.getenv("NETSDR_HOST"):
            values["host"] = os.environ["NETSDR_HOST"]
        if os.getenv("NETSDR_PORT"):
            values["control_port"] = int(os.environ["NETSDR_PORT"])
        if os.getenv("NETSDR_DATA_PORT"):
            values["data_port"] = int(os.environ["NETSDR_DATA_PORT"])
        if os.getenv("NETSDR_SAMPLE_RATE"):
            values["sample_rate"] = int(os.environ["NETSDR_SAMPLE_RATE"])
        if os.getenv("NETSDR_ACK_TIMEOUT"):
            values["ack_timeout"] = float(os.environ["NETSDR_ACK_TIMEOUT"])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
