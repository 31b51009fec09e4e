"""Protocol messages exchanged between producers and the collector.

Every producer (sink instance) emits exactly one Open, one Record per
element, and exactly one Close. The three message types form a closed
tagged union; the wire encoding lives in sinkspect.core.codec.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from sinkspect.contracts.enums import MessageKind


@dataclass(frozen=True, slots=True)
class Open:
    """Announces a producer and the parallelism it was started with.

    Attributes:
        producer_index: Index of the announcing producer (0-based)
        parallelism: Number of producers the announcer believes exist
        serializer_descriptor: Encoded SerializerDescriptor, if shared
    """

    kind: ClassVar[MessageKind] = MessageKind.OPEN

    producer_index: int
    parallelism: int
    serializer_descriptor: bytes | None = None


@dataclass(frozen=True, slots=True)
class Record:
    """One serialized output element. The payload is opaque until decoded."""

    kind: ClassVar[MessageKind] = MessageKind.RECORD

    payload: bytes


@dataclass(frozen=True, slots=True)
class Close:
    """Signals that a producer is done and how many records it sent."""

    kind: ClassVar[MessageKind] = MessageKind.CLOSE

    producer_index: int
    record_count: int


Message = Open | Record | Close
