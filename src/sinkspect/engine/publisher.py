# src/sinkspect/engine/publisher.py
"""Producer-side endpoint: one parallel sink instance.

An OutputPublisher speaks the producer half of the protocol: OPEN once,
REC per element, CLOSE once with the number of records it sent.

Usage:
    with OutputPublisher(channel.publisher(), producer_index=0, parallelism=2,
                         serializer=RecordSerializer.json()) as sink:
        for row in rows:
            sink.send(row)
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

import structlog

from sinkspect.contracts.messages import Close, Open, Record
from sinkspect.core.channel import ChannelPublisher
from sinkspect.core.codec import encode
from sinkspect.core.serialization import RecordSerializer

logger = structlog.get_logger(__name__)


class OutputPublisher:
    """Emits OPEN/REC/CLOSE frames for one producer.

    Attributes:
        producer_index: Index of this producer (0-based)
        parallelism: Number of producers in the run
        records_sent: Records sent so far (reported in CLOSE)
    """

    def __init__(
        self,
        endpoint: ChannelPublisher,
        producer_index: int,
        parallelism: int,
        serializer: RecordSerializer,
        *,
        share_descriptor: bool = True,
    ) -> None:
        """Initialize the publisher.

        Args:
            endpoint: Channel endpoint to publish on
            producer_index: Index of this producer
            parallelism: Total number of producers
            serializer: Serializer for elements
            share_descriptor: Include the serializer descriptor in OPEN.
                At least one producer must share it before records can be
                decoded.
        """
        self._endpoint = endpoint
        self.producer_index = producer_index
        self.parallelism = parallelism
        self._serializer = serializer
        self._share_descriptor = share_descriptor
        self.records_sent = 0
        self._opened = False
        self._closed = False

    def open(self) -> None:
        """Announce this producer.

        Raises:
            RuntimeError: If already opened
            ProtocolError: If producer_index/parallelism are out of range
        """
        if self._opened:
            raise RuntimeError(f"Producer {self.producer_index} already opened")
        descriptor = self._serializer.descriptor.to_bytes() if self._share_descriptor else None
        self._endpoint.send(encode(Open(self.producer_index, self.parallelism, descriptor)))
        self._opened = True

    def send(self, element: Any) -> None:
        """Serialize and publish one element.

        Raises:
            RuntimeError: If not open, or already closed
        """
        if not self._opened or self._closed:
            raise RuntimeError(f"Producer {self.producer_index} is not open")
        self._endpoint.send(encode(Record(self._serializer.serialize(element))))
        self.records_sent += 1

    def close(self) -> None:
        """Report the number of records sent and stop.

        Raises:
            RuntimeError: If not open, or already closed
        """
        if not self._opened or self._closed:
            raise RuntimeError(f"Producer {self.producer_index} is not open")
        self._endpoint.send(encode(Close(self.producer_index, self.records_sent)))
        self._closed = True

    def __enter__(self) -> OutputPublisher:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        # A failing producer still reports what it sent
        if exc_type is not None:
            logger.warning(
                "Producer failed, closing with partial count",
                producer_index=self.producer_index,
                records_sent=self.records_sent,
                error=str(exc_val),
            )
        if not self._closed:
            self.close()
