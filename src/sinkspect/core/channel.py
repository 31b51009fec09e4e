# src/sinkspect/core/channel.py
"""Multi-publisher, single-subscriber frame channel.

Any number of ChannelPublisher endpoints push frames concurrently into one
FIFO; exactly one consumer pulls them with receive(). Frames from one
publisher keep their send order. Frames from different publishers
interleave in whatever order their threads reach the queue.

receive() returns either a frame or a ChannelClosed value. It never raises
for a closed or expired channel, so the end of delivery is an ordinary
outcome for the consumer rather than an exception:

- CloseReason.CLOSED: close() was called (by the consumer or another party)
- CloseReason.TIMEOUT: the overall deadline elapsed
- CloseReason.CANCELLED: interrupt() was called from another thread

Thread Safety:
    publisher().send(), interrupt() and close() are safe from any thread.
    receive() and release() belong to the single consumer.
"""

from __future__ import annotations

import itertools
import queue
import threading
from dataclasses import dataclass

import structlog

from sinkspect.contracts.enums import CloseReason
from sinkspect.contracts.errors import ChannelError
from sinkspect.core.clock import DEFAULT_CLOCK, Clock

logger = structlog.get_logger(__name__)

# Queued to unblock a consumer waiting in receive() after interrupt() or close()
_WAKE = object()

# Longest single wait while a deadline is pending; the deadline itself is
# read from the injected clock, which may move without real time passing
DEADLINE_POLL_SECONDS = 0.05


@dataclass(frozen=True, slots=True)
class ChannelClosed:
    """Returned by receive() once the channel delivers no more frames."""

    reason: CloseReason

    @property
    def forced(self) -> bool:
        """Whether the closure was imposed from outside (deadline or cancel)."""
        return self.reason != CloseReason.CLOSED


class ChannelPublisher:
    """Producer-side endpoint of a Channel.

    Publishers never block and never fail because the consumer went away:
    once the channel is closed or interrupted, send() drops the frame and
    returns False.
    """

    def __init__(self, channel: Channel, publisher_id: int) -> None:
        self._channel = channel
        self.publisher_id = publisher_id

    def send(self, frame: bytes) -> bool:
        """Publish one frame.

        Returns:
            True if the frame was queued, False if it was dropped

        Raises:
            TypeError: If frame is not bytes
        """
        return self._channel._publish(frame, self.publisher_id)


class Channel:
    """In-process frame channel with forced-closure support.

    Example:
        channel = Channel(deadline_seconds=30.0)
        endpoint = channel.publisher()
        endpoint.send(b"OPEN 0 1\\n")

        item = channel.receive()
        if isinstance(item, ChannelClosed):
            ...
        channel.release()
    """

    def __init__(self, *, deadline_seconds: float | None = None, clock: Clock | None = None) -> None:
        """Create an open channel.

        Args:
            deadline_seconds: Overall time budget measured from construction.
                None waits indefinitely (only interrupt() or close() end it).
            clock: Clock for deadline measurement. Defaults to system clock.

        Raises:
            ValueError: If deadline_seconds is not positive
        """
        if deadline_seconds is not None and deadline_seconds <= 0:
            raise ValueError(f"deadline_seconds must be positive, got {deadline_seconds}")
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._deadline = None if deadline_seconds is None else self._clock.monotonic() + deadline_seconds
        self._queue: queue.Queue[bytes | object] = queue.Queue()
        self._lock = threading.Lock()
        self._publisher_ids = itertools.count()
        self._forced_reason: CloseReason | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether close() or release() has been called."""
        return self._closed

    @property
    def forced_reason(self) -> CloseReason | None:
        """TIMEOUT or CANCELLED once a forced closure happened, else None."""
        return self._forced_reason

    def publisher(self) -> ChannelPublisher:
        """Create a new producer endpoint."""
        return ChannelPublisher(self, next(self._publisher_ids))

    def _publish(self, frame: bytes, publisher_id: int) -> bool:
        if not isinstance(frame, bytes):
            raise TypeError(f"Channel frames must be bytes, got {type(frame).__name__}")
        with self._lock:
            if self._closed or self._forced_reason is not None:
                logger.debug("Dropping frame on closed channel", publisher_id=publisher_id, frame_size=len(frame))
                return False
            self._queue.put_nowait(frame)
        return True

    def _remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return self._deadline - self._clock.monotonic()

    def _force(self, reason: CloseReason) -> None:
        with self._lock:
            if self._forced_reason is None and not self._closed:
                self._forced_reason = reason
                self._queue.put_nowait(_WAKE)

    def interrupt(self, reason: CloseReason = CloseReason.CANCELLED) -> None:
        """Force the channel closed from outside the consume loop.

        A consumer blocked in receive() wakes up and gets ChannelClosed.
        Later calls keep the first reason. No effect after close().

        Raises:
            ValueError: If reason is CLOSED (use close() for that)
        """
        if reason == CloseReason.CLOSED:
            raise ValueError("interrupt() requires a forced reason (TIMEOUT or CANCELLED)")
        self._force(reason)

    def receive(self) -> bytes | ChannelClosed:
        """Block until a frame is available or the channel stops delivering.

        A pending forced closure takes priority over frames still queued.
        Once closed, every call returns ChannelClosed(CLOSED) unless a forced
        closure happened first.
        """
        while True:
            if self._forced_reason is not None:
                return ChannelClosed(self._forced_reason)
            if self._closed:
                return ChannelClosed(CloseReason.CLOSED)

            timeout = self._remaining()
            if timeout is not None:
                if timeout <= 0:
                    self._force(CloseReason.TIMEOUT)
                    continue
                timeout = min(timeout, DEADLINE_POLL_SECONDS)

            try:
                item = self._queue.get(timeout=timeout)
            except queue.Empty:
                continue

            if item is _WAKE or self._forced_reason is not None or self._closed:
                continue
            assert isinstance(item, bytes)
            return item

    def close(self) -> None:
        """Close the channel. Callable once, from any thread.

        Frames still queued are discarded, a blocked receive() returns
        ChannelClosed(CLOSED), and publishers drop anything sent afterwards.

        Raises:
            ChannelError: If the channel was already closed
        """
        if not self._shut():
            raise ChannelError("Channel already closed")

    def release(self) -> bool:
        """Consumer-side close at the end of a run.

        Unlike close(), tolerates a channel another party already closed.

        Returns:
            True if this call closed the channel
        """
        return self._shut()

    def _shut(self) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._closed = True

        discarded = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not _WAKE:
                discarded += 1
        self._queue.put_nowait(_WAKE)

        if discarded:
            logger.debug("Discarded undelivered frames on close", discarded=discarded)
        return True
