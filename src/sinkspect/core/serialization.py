# src/sinkspect/core/serialization.py
"""Record serializers and the descriptor that lets the collector rebuild them.

Producers serialize each element with a RecordSerializer and share its
SerializerDescriptor in the payload of their OPEN frame. The collector
builds its decoder from the first descriptor it sees (build_decoder is the
default DecoderFactory).

Formats:
- json: UTF-8 (or configured encoding) JSON. NaN/Infinity are rejected.
- text: str encoded with the configured encoding
- bytes: payload passed through unchanged
"""

from __future__ import annotations

import codecs
import json
from typing import Any, Literal

from pydantic import BaseModel, ValidationError, field_validator

from sinkspect.contracts.errors import DecodeError


class SerializerDescriptor(BaseModel):
    """Describes how record payloads are encoded.

    Example wire form (OPEN payload):
        {"format":"json","encoding":"utf-8"}
    """

    model_config = {"frozen": True, "extra": "forbid"}

    format: Literal["json", "text", "bytes"]
    encoding: str = "utf-8"

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Encoding must be known to the codecs registry."""
        try:
            return codecs.lookup(v).name
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v!r}") from e

    def to_bytes(self) -> bytes:
        """Wire form carried in an OPEN payload."""
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> SerializerDescriptor:
        """Parse the wire form.

        Raises:
            DecodeError: If raw is not a valid descriptor
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise DecodeError(f"Invalid serializer descriptor: {e.error_count()} validation error(s)") from e


class RecordSerializer:
    """Serializes elements for the wire and decodes them back.

    Satisfies RecordDecoder, so the same object serves both sides of the
    protocol.
    """

    def __init__(self, descriptor: SerializerDescriptor) -> None:
        self.descriptor = descriptor

    @classmethod
    def json(cls, encoding: str = "utf-8") -> RecordSerializer:
        return cls(SerializerDescriptor(format="json", encoding=encoding))

    @classmethod
    def text(cls, encoding: str = "utf-8") -> RecordSerializer:
        return cls(SerializerDescriptor(format="text", encoding=encoding))

    @classmethod
    def raw(cls) -> RecordSerializer:
        return cls(SerializerDescriptor(format="bytes"))

    def serialize(self, element: Any) -> bytes:
        """Encode one element.

        Raises:
            TypeError: If the element does not fit the format
            ValueError: If a JSON element contains NaN or Infinity
        """
        match self.descriptor.format:
            case "json":
                return json.dumps(element, allow_nan=False, separators=(",", ":")).encode(self.descriptor.encoding)
            case "text":
                if not isinstance(element, str):
                    raise TypeError(f"text serializer expects str, got {type(element).__name__}")
                return element.encode(self.descriptor.encoding)
            case "bytes":
                if not isinstance(element, bytes):
                    raise TypeError(f"bytes serializer expects bytes, got {type(element).__name__}")
                return element

    def deserialize(self, payload: bytes) -> Any:
        """Decode one payload.

        Raises:
            DecodeError: If the payload does not match the format
        """
        match self.descriptor.format:
            case "json":
                try:
                    return json.loads(payload.decode(self.descriptor.encoding), parse_constant=_reject_constant)
                except (UnicodeDecodeError, ValueError) as e:
                    raise DecodeError(f"Record payload is not valid JSON: {e}") from e
            case "text":
                try:
                    return payload.decode(self.descriptor.encoding)
                except UnicodeDecodeError as e:
                    raise DecodeError(f"Record payload is not valid {self.descriptor.encoding}: {e}") from e
            case "bytes":
                return payload

    def __repr__(self) -> str:
        return f"RecordSerializer(format={self.descriptor.format!r}, encoding={self.descriptor.encoding!r})"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite JSON constant {name} is not allowed")


def build_decoder(descriptor: bytes) -> RecordSerializer:
    """Default decoder factory: rebuild the serializer from an OPEN payload.

    Raises:
        DecodeError: If the descriptor is invalid
    """
    return RecordSerializer(SerializerDescriptor.from_bytes(descriptor))
