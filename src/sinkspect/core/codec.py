# src/sinkspect/core/codec.py
"""Wire codec for protocol frames.

Frame layout:

    <TAG> [<field> ...]\\n<payload>

The header is ASCII, whitespace-delimited and terminated by the first
newline. Everything after that newline is the binary payload. A frame
without a newline is a header-only frame with an empty payload.

    OPEN <producer_index> <parallelism>\\n<serializer descriptor or nothing>
    REC\\n<serialized record>
    CLOSE <producer_index> <record_count>\\n

decode() is the exact inverse of encode(). An empty Open descriptor is
written as an empty payload and therefore decodes as None.
"""

from __future__ import annotations

from sinkspect.contracts.enums import MessageKind
from sinkspect.contracts.errors import ProtocolError
from sinkspect.contracts.messages import Close, Message, Open, Record

HEADER_TERMINATOR = b"\n"

# Number of integer fields following the tag
_FIELD_COUNTS: dict[MessageKind, int] = {
    MessageKind.OPEN: 2,
    MessageKind.RECORD: 0,
    MessageKind.CLOSE: 2,
}


def _parse_field(name: str, raw: str) -> int:
    """Parse one non-negative decimal header field."""
    if not (raw.isascii() and raw.isdigit()):
        raise ProtocolError(f"Header field '{name}' must be a non-negative integer, got {raw!r}")
    return int(raw)


def _check_field(name: str, value: object) -> int:
    # bool is an int subclass; True is not a valid producer index
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"Field '{name}' must be an int, got {type(value).__name__}")
    if value < 0:
        raise ProtocolError(f"Field '{name}' must be non-negative, got {value}")
    return value


def _check_open(producer_index: int, parallelism: int) -> None:
    if parallelism < 1:
        raise ProtocolError(f"OPEN parallelism must be >= 1, got {parallelism}")
    if producer_index >= parallelism:
        raise ProtocolError(f"OPEN producer_index {producer_index} is out of range for parallelism {parallelism}")


def decode(frame: bytes) -> Message:
    """Decode one frame into a message.

    Args:
        frame: Raw frame as received from the channel

    Returns:
        The decoded Open, Record or Close

    Raises:
        ProtocolError: If the tag is unknown or the header is malformed
    """
    if not isinstance(frame, bytes):
        raise ProtocolError(f"Frame must be bytes, got {type(frame).__name__}")
    if not frame:
        raise ProtocolError("Empty frame")

    raw_header, _, payload = frame.partition(HEADER_TERMINATOR)
    try:
        header = raw_header.decode("ascii")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Frame header is not ASCII: {raw_header[:32]!r}") from e

    fields = header.split()
    if not fields:
        raise ProtocolError("Frame header has no tag")

    tag, *values = fields
    try:
        kind = MessageKind(tag)
    except ValueError:
        raise ProtocolError(f"Unrecognized message tag {tag!r}") from None

    if len(values) != _FIELD_COUNTS[kind]:
        raise ProtocolError(f"{kind} header expects {_FIELD_COUNTS[kind]} fields, got {len(values)}: {header!r}")

    match kind:
        case MessageKind.OPEN:
            producer_index = _parse_field("producer_index", values[0])
            parallelism = _parse_field("parallelism", values[1])
            _check_open(producer_index, parallelism)
            return Open(
                producer_index=producer_index,
                parallelism=parallelism,
                serializer_descriptor=payload or None,
            )
        case MessageKind.RECORD:
            return Record(payload=payload)
        case MessageKind.CLOSE:
            if payload:
                raise ProtocolError(f"CLOSE must not carry a payload, got {len(payload)} bytes")
            return Close(
                producer_index=_parse_field("producer_index", values[0]),
                record_count=_parse_field("record_count", values[1]),
            )


def encode(message: Message) -> bytes:
    """Encode a message into one frame.

    Raises:
        ProtocolError: If a header field is out of range
        TypeError: If message is not an Open, Record or Close
    """
    match message:
        case Open(producer_index=producer_index, parallelism=parallelism, serializer_descriptor=descriptor):
            _check_field("producer_index", producer_index)
            _check_field("parallelism", parallelism)
            _check_open(producer_index, parallelism)
            header = f"{MessageKind.OPEN} {producer_index} {parallelism}".encode("ascii")
            return header + HEADER_TERMINATOR + (descriptor or b"")
        case Record(payload=payload):
            return MessageKind.RECORD.encode("ascii") + HEADER_TERMINATOR + payload
        case Close(producer_index=producer_index, record_count=record_count):
            _check_field("producer_index", producer_index)
            _check_field("record_count", record_count)
            return f"{MessageKind.CLOSE} {producer_index} {record_count}".encode("ascii") + HEADER_TERMINATOR
        case _:
            raise TypeError(f"Cannot encode {type(message).__name__}; expected Open, Record or Close")
