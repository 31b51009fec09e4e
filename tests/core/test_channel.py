"""Tests for the multi-publisher channel."""

import threading
import time

import pytest

from sinkspect.contracts import ChannelError, CloseReason
from sinkspect.core.channel import Channel, ChannelClosed
from sinkspect.core.clock import MockClock


class TestDelivery:
    """Frames reach the single consumer."""

    def test_fifo_for_one_publisher(self, channel: Channel) -> None:
        endpoint = channel.publisher()
        for frame in (b"1", b"2", b"3"):
            assert endpoint.send(frame) is True

        assert [channel.receive() for _ in range(3)] == [b"1", b"2", b"3"]

    def test_publishers_get_distinct_ids(self, channel: Channel) -> None:
        assert channel.publisher().publisher_id != channel.publisher().publisher_id

    def test_rejects_non_bytes(self, channel: Channel) -> None:
        with pytest.raises(TypeError, match="must be bytes"):
            channel.publisher().send("text")  # type: ignore[arg-type]

    def test_concurrent_publishers_keep_per_publisher_order(self) -> None:
        channel = Channel(deadline_seconds=5.0)
        per_producer = 200
        producers = 4

        def produce(index: int) -> None:
            endpoint = channel.publisher()
            for seq in range(per_producer):
                endpoint.send(f"{index}:{seq}".encode())

        threads = [threading.Thread(target=produce, args=(i,)) for i in range(producers)]
        for thread in threads:
            thread.start()

        received: list[bytes] = []
        for _ in range(per_producer * producers):
            item = channel.receive()
            assert isinstance(item, bytes)
            received.append(item)
        for thread in threads:
            thread.join()

        for index in range(producers):
            sequence = [int(f.split(b":")[1]) for f in received if f.startswith(f"{index}:".encode())]
            assert sequence == list(range(per_producer))


class TestForcedClosure:
    """Deadline and interrupt() end a blocked receive."""

    def test_interrupt_wakes_blocked_receiver(self, channel: Channel) -> None:
        results: list[bytes | ChannelClosed] = []
        consumer = threading.Thread(target=lambda: results.append(channel.receive()))
        consumer.start()
        time.sleep(0.05)

        channel.interrupt()
        consumer.join(timeout=5.0)

        assert not consumer.is_alive()
        assert results == [ChannelClosed(CloseReason.CANCELLED)]
        assert results[0].forced is True  # type: ignore[union-attr]

    def test_forced_closure_takes_priority_over_queued_frames(self, channel: Channel) -> None:
        channel.publisher().send(b"queued")
        channel.interrupt(CloseReason.TIMEOUT)

        assert channel.receive() == ChannelClosed(CloseReason.TIMEOUT)

    def test_first_interrupt_reason_wins(self, channel: Channel) -> None:
        channel.interrupt(CloseReason.TIMEOUT)
        channel.interrupt(CloseReason.CANCELLED)

        assert channel.forced_reason == CloseReason.TIMEOUT

    def test_interrupt_requires_forced_reason(self, channel: Channel) -> None:
        with pytest.raises(ValueError, match="forced reason"):
            channel.interrupt(CloseReason.CLOSED)

    def test_expired_deadline_returns_timeout(self, mock_clock: MockClock) -> None:
        channel = Channel(deadline_seconds=10.0, clock=mock_clock)
        channel.publisher().send(b"frame")

        assert channel.receive() == b"frame"
        mock_clock.advance(10.0)
        assert channel.receive() == ChannelClosed(CloseReason.TIMEOUT)
        assert channel.forced_reason == CloseReason.TIMEOUT

    def test_real_deadline_expires_while_blocked(self) -> None:
        channel = Channel(deadline_seconds=0.1)

        started = time.monotonic()
        assert channel.receive() == ChannelClosed(CloseReason.TIMEOUT)
        assert time.monotonic() - started < 5.0

    def test_advancing_clock_expires_blocked_receiver(self, mock_clock: MockClock) -> None:
        """A receiver already waiting notices a deadline moved past on the injected clock."""
        channel = Channel(deadline_seconds=30.0, clock=mock_clock)
        results: list[bytes | ChannelClosed] = []
        consumer = threading.Thread(target=lambda: results.append(channel.receive()))
        consumer.start()
        time.sleep(0.1)

        started = time.monotonic()
        mock_clock.advance(31.0)
        consumer.join(timeout=5.0)

        assert not consumer.is_alive()
        assert results == [ChannelClosed(CloseReason.TIMEOUT)]
        assert time.monotonic() - started < 1.0

    def test_send_after_interrupt_is_dropped(self, channel: Channel) -> None:
        endpoint = channel.publisher()
        channel.interrupt()

        assert endpoint.send(b"late") is False

    def test_closed_reason_is_not_forced(self) -> None:
        assert ChannelClosed(CloseReason.CLOSED).forced is False

    @pytest.mark.parametrize("deadline", [0.0, -1.0])
    def test_rejects_non_positive_deadline(self, deadline: float) -> None:
        with pytest.raises(ValueError, match="positive"):
            Channel(deadline_seconds=deadline)


class TestClose:
    """Consumer-side close happens exactly once."""

    def test_close_twice_raises(self, channel: Channel) -> None:
        channel.close()

        with pytest.raises(ChannelError, match="already closed"):
            channel.close()

    def test_receive_after_close_returns_closed(self, channel: Channel) -> None:
        channel.publisher().send(b"queued")
        channel.close()

        item = channel.receive()

        assert item == ChannelClosed(CloseReason.CLOSED)
        assert item.forced is False  # type: ignore[union-attr]
        assert channel.receive() == ChannelClosed(CloseReason.CLOSED)

    def test_close_from_another_thread_wakes_blocked_receiver(self) -> None:
        channel = Channel(deadline_seconds=30.0)
        results: list[bytes | ChannelClosed] = []
        consumer = threading.Thread(target=lambda: results.append(channel.receive()))
        consumer.start()
        time.sleep(0.05)

        channel.close()
        consumer.join(timeout=5.0)

        assert not consumer.is_alive()
        assert results == [ChannelClosed(CloseReason.CLOSED)]

    def test_release_tolerates_earlier_close(self, channel: Channel) -> None:
        channel.close()

        assert channel.release() is False
        assert channel.closed is True

    def test_release_closes_once(self, channel: Channel) -> None:
        assert channel.release() is True

        with pytest.raises(ChannelError, match="already closed"):
            channel.close()

    def test_send_after_close_is_dropped(self, channel: Channel) -> None:
        endpoint = channel.publisher()
        channel.close()

        assert endpoint.send(b"late") is False

    def test_close_after_interrupt_is_allowed(self, channel: Channel) -> None:
        channel.interrupt()
        channel.close()

        assert channel.closed is True

    def test_interrupt_after_close_has_no_effect(self, channel: Channel) -> None:
        channel.close()
        channel.interrupt()

        assert channel.forced_reason is None


class TestMockClock:
    def test_advance(self, mock_clock: MockClock) -> None:
        mock_clock.advance(2.5)

        assert mock_clock.monotonic() == 2.5

    def test_negative_advance_rejected(self, mock_clock: MockClock) -> None:
        with pytest.raises(ValueError, match="negative"):
            mock_clock.advance(-1.0)
