"""Error taxonomy for verification runs.

Every fatal condition detected by the collector is a CollectorError
subclass. The collector attaches a CollectorSnapshot of its counters
before re-raising, so callers can see how far the run got.

Hierarchy:
    CollectorError
    ├── ProtocolError            malformed frame or protocol violation
    ├── DecodeError              record payload or descriptor undecodable
    ├── ConsistencyError         counts reconciled, producers missing
    ├── VerificationFailure      verifier rejected a record or the result
    └── ChannelInterruptedError  channel closed before the run concluded

    ChannelError                 misuse of the channel itself
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from sinkspect.contracts.enums import CloseReason
    from sinkspect.contracts.results import CollectorSnapshot


class CollectorError(Exception):
    """Base class for fatal verification errors.

    Attributes:
        snapshot: Collector counters at the moment the error surfaced.
            None until the collector attaches it.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.snapshot: CollectorSnapshot | None = None


class ProtocolError(CollectorError):
    """Raised for an unrecognized or malformed frame, or a protocol violation.

    Covers bad tags, unparseable headers, out-of-range fields, duplicate
    Open/Close from one producer and rejected parallelism announcements.
    """


class DecodeError(CollectorError):
    """Raised when a record cannot be decoded.

    Either no decoder has been established yet (no Open carried a
    serializer descriptor), the descriptor itself is invalid, or the
    payload does not match the announced format.
    """


class ConsistencyError(CollectorError):
    """Raised when counts reconcile but not every producer ever registered.

    This means a producer closed without its Open being seen, which
    points at a misconfigured or crashed producer.
    """

    def __init__(self, message: str, *, missing_producers: frozenset[int]) -> None:
        super().__init__(message)
        self.missing_producers = missing_producers


class VerificationFailure(CollectorError):
    """Raised when the verifier rejects a record or the final output.

    The verifier's own exception is chained as __cause__.

    Attributes:
        phase: Lifecycle call that failed ("init", "receive" or "finish")
        record_number: 1-based number of the rejected record (receive only)
    """

    def __init__(
        self,
        message: str,
        *,
        phase: Literal["init", "receive", "finish"],
        record_number: int | None = None,
    ) -> None:
        super().__init__(message)
        self.phase = phase
        self.record_number = record_number


class ChannelInterruptedError(CollectorError):
    """Raised for an INTERRUPTED outcome at the caller boundary.

    The collector itself returns INTERRUPTED as a result state; this
    exception is produced by VerificationOutcome.raise_for_state() and by
    the run helper when interrupted runs count as failures.
    """

    def __init__(self, reason: CloseReason) -> None:
        super().__init__(f"Channel closed before verification concluded (reason: {reason})")
        self.reason = reason


class ChannelError(Exception):
    """Raised when a channel endpoint is used incorrectly (e.g. closed twice)."""
