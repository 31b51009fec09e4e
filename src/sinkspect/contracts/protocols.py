"""Protocol definitions for the collaborators of the collector.

The collector consumes three capabilities it does not implement itself:
a verifier that asserts on the output, a trigger that can end the run
early, and a decoder built from the serializer descriptor shared by the
producers.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class VerifierProtocol(Protocol):
    """Pluggable logic that asserts on the output of a pipeline.

    Lifecycle:
        1. init() once, when the first Open is processed
        2. receive() once per decoded record, in arrival order
        3. finish() once, last, on every terminal path

    Error handling:
        - receive() signals rejection by raising (AssertionError is typical).
          Any exception is fatal for the run.
        - finish() may raise to reject the complete output. A failure in
          finish() takes precedence over any earlier error.
    """

    def init(self) -> None:
        """Prepare for a new run."""
        ...

    def receive(self, element: Any) -> None:
        """Inspect one output element.

        Records from one producer arrive in the order it sent them.
        Records from different producers interleave arbitrarily.
        """
        ...

    def finish(self) -> None:
        """Conclude verification."""
        ...


@runtime_checkable
class TriggerProtocol(Protocol):
    """Predicate pair that can end verification before all producers close.

    Both methods are evaluated after every successfully verified record.
    Either returning True stops the run with TRIGGERED. Both MUST return
    a bool; anything else is treated as a bug in the trigger.
    """

    def on_record(self, element: Any) -> bool:
        """Decide based on the element just verified."""
        ...

    def on_record_count(self, count: int) -> bool:
        """Decide based on the number of records received so far."""
        ...


@runtime_checkable
class RecordDecoder(Protocol):
    """Turns a record payload back into an element."""

    def deserialize(self, payload: bytes) -> Any:
        """Decode one payload.

        Raises:
            DecodeError: If the payload does not match the format
        """
        ...


# Builds a decoder from the serializer descriptor carried by an Open frame
DecoderFactory = Callable[[bytes], RecordDecoder]
