# tests/property/engine/test_collector_properties.py
"""Property-based tests for OutputCollector over arbitrary interleavings.

Producers interleave freely on the channel; only per-producer order is
preserved. Whatever the interleaving, the run must end the same way.

Properties tested:
- Complete output from every producer always ends in SUCCESS
- Every record reaches the verifier exactly once, in per-producer order
- init() and finish() run exactly once
- A CountTrigger at k stops the run after exactly k records
- A producer that never sent OPEN always surfaces as ConsistencyError
"""

from __future__ import annotations

from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sinkspect.contracts import ConsistencyError, ResultState
from sinkspect.core.channel import Channel
from sinkspect.engine.collector import OutputCollector
from sinkspect.engine.triggers import CountTrigger
from tests.helpers.collector_fakes import RecordingVerifier, close_frame, feed, producer_frames, record_frame
from tests.property.settings import INTERLEAVING_SETTINGS, STANDARD_SETTINGS

# =============================================================================
# Strategies
# =============================================================================

# Records per producer; each element is tagged [producer_index, sequence]
record_counts = st.lists(st.integers(min_value=0, max_value=15), min_size=1, max_size=5)


def _tagged(index: int, count: int) -> list[list[int]]:
    return [[index, seq] for seq in range(count)]


@st.composite
def interleavings(draw: st.DrawFn) -> tuple[list[int], list[bytes]]:
    """Per-producer record counts and a merged frame order preserving each producer's sequence."""
    counts = draw(record_counts)
    parallelism = len(counts)
    streams = [producer_frames(i, parallelism, _tagged(i, n)) for i, n in enumerate(counts)]

    owners = [i for i, stream in enumerate(streams) for _ in stream]
    order = draw(st.permutations(owners))

    cursors = [0] * parallelism
    merged: list[bytes] = []
    for owner in order:
        merged.append(streams[owner][cursors[owner]])
        cursors[owner] += 1
    return counts, merged


def _run(frames: list[bytes], verifier: RecordingVerifier, trigger: Any = None) -> Any:
    channel = Channel(deadline_seconds=5.0)
    feed(channel, frames)
    return OutputCollector(channel, verifier, trigger).run()


# =============================================================================
# Properties
# =============================================================================


class TestInterleavingProperties:
    @given(case=interleavings())
    @INTERLEAVING_SETTINGS
    def test_complete_output_succeeds(self, case: tuple[list[int], list[bytes]]) -> None:
        """Property: any interleaving of complete producer output ends in SUCCESS."""
        counts, frames = case
        verifier = RecordingVerifier()

        outcome = _run(frames, verifier)

        assert outcome.state == ResultState.SUCCESS
        assert outcome.snapshot.records_received == sum(counts)
        assert outcome.snapshot.expected_records == sum(counts)
        assert outcome.snapshot.closed_producers == frozenset(range(len(counts)))

    @given(case=interleavings())
    @INTERLEAVING_SETTINGS
    def test_records_delivered_once_in_producer_order(self, case: tuple[list[int], list[bytes]]) -> None:
        """Property: each producer's records arrive exactly once and in send order."""
        counts, frames = case
        verifier = RecordingVerifier()

        _run(frames, verifier)

        for index, count in enumerate(counts):
            from_producer = [element for element in verifier.received if element[0] == index]
            assert from_producer == _tagged(index, count)

    @given(case=interleavings())
    @STANDARD_SETTINGS
    def test_lifecycle_calls_once(self, case: tuple[list[int], list[bytes]]) -> None:
        """Property: init() first, finish() last, each exactly once."""
        _, frames = case
        verifier = RecordingVerifier()

        _run(frames, verifier)

        assert verifier.init_calls == 1
        assert verifier.finish_calls == 1
        assert verifier.calls[0] == "init"
        assert verifier.calls[-1] == "finish"

    @given(case=interleavings(), data=st.data())
    @STANDARD_SETTINGS
    def test_count_trigger_stops_at_threshold(self, case: tuple[list[int], list[bytes]], data: st.DataObject) -> None:
        """Property: CountTrigger(k) with k <= total records stops after exactly k records."""
        counts, frames = case
        total = sum(counts)
        if total == 0:
            return
        threshold = data.draw(st.integers(min_value=1, max_value=total))
        verifier = RecordingVerifier()

        outcome = _run(frames, verifier, CountTrigger(threshold))

        assert outcome.state == ResultState.TRIGGERED
        assert outcome.snapshot.records_received == threshold
        assert len(verifier.received) == threshold


class TestMissingOpenProperties:
    @given(
        counts=st.lists(st.integers(min_value=0, max_value=5), min_size=2, max_size=5),
        data=st.data(),
    )
    @STANDARD_SETTINGS
    def test_producer_without_open_is_inconsistent(self, counts: list[int], data: st.DataObject) -> None:
        """Property: closing and reconciling without an OPEN names the silent producer."""
        parallelism = len(counts)
        silent = data.draw(st.integers(min_value=0, max_value=parallelism - 1))
        frames = [
            frame
            for index, count in enumerate(counts)
            if index != silent
            for frame in producer_frames(index, parallelism, _tagged(index, count))
        ]
        frames += [record_frame(element) for element in _tagged(silent, counts[silent])]
        frames.append(close_frame(silent, counts[silent]))

        with pytest.raises(ConsistencyError) as exc_info:
            _run(frames, RecordingVerifier())

        assert exc_info.value.missing_producers == frozenset({silent})
