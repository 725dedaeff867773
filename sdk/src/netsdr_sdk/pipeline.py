"""Decode inbound IQ datagrams and hand sample batches to consumers."""

import logging
from typing import BinaryIO, Callable, List, Optional, Union

import numpy as np

from .messages import SampleBatch, parse_datagram

SampleConsumer = Callable[[SampleBatch], None]

logger = logging.getLogger("netsdr_sdk.SamplePipeline")


class SamplePipeline:
    """Turns data-channel notifications into ``SampleBatch`` deliveries.

    Short or otherwise undecodable datagrams are dropped and counted; nothing
    here raises on bad input. The sample size is the only format state and
    is set by the client from its session.
    """

    def __init__(self, consumer: Optional[SampleConsumer] = None, sample_bits: int = 16):
        self.sample_bits = sample_bits
        self._consumers: List[SampleConsumer] = []
        if consumer is not None:
            self._consumers.append(consumer)
        self.received = 0
        self.delivered = 0
        self.dropped = 0

    def add_consumer(self, consumer: SampleConsumer) -> None:
        self._consumers.append(consumer)

    def remove_consumer(self, consumer: SampleConsumer) -> None:
        if consumer in self._consumers:
            self._consumers.remove(consumer)

    def handle_datagram(self, data: bytes) -> Optional[SampleBatch]:
        self.received += 1
        batch = parse_datagram(data, self.sample_bits)
        if batch is None:
            self.dropped += 1
            logger.debug(f"Dropped datagram ({len(data)} bytes, total drops: {self.dropped})")
            return None

        for consumer in list(self._consumers):
            try:
                consumer(batch)
            except Exception:
                logger.exception(f"Sample consumer {consumer!r} failed")
        self.delivered += 1
        return batch


class SampleFileWriter:
    """Consumer that appends raw little-endian samples to a binary file.

    16-bit captures are written as int16, 24-bit captures as int32.

    Usage::

        with SampleFileWriter("samples.bin") as writer:
            client.add_sample_consumer(writer)
            ...
    """

    def __init__(self, target: Union[str, BinaryIO]):
        if isinstance(target, str):
            self._file = open(target, "ab")
            self._owns_file = True
        else:
            self._file = target
            self._owns_file = False
        self.samples_written = 0

    def __call__(self, batch: SampleBatch) -> None:
        dtype = "<i2" if batch.samples.dtype.itemsize == 2 else "<i4"
        self._file.write(np.asarray(batch.samples, dtype=dtype).tobytes())
        self.samples_written += len(batch.samples)

    def close(self) -> None:
        if self._owns_file:
            self._file.close()
        else:
            self._file.flush()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
