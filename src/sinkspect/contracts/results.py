"""Verification outcomes.

These types answer: "How did a verification run end?"
"""

from __future__ import annotations

from dataclasses import dataclass

from sinkspect.contracts.enums import CloseReason, ResultState
from sinkspect.contracts.errors import ChannelInterruptedError


@dataclass(frozen=True, slots=True)
class CollectorSnapshot:
    """Immutable copy of the collector's counters.

    Attributes:
        records_received: Records decoded and handed to the verifier
        expected_records: Sum of record counts reported by Close messages
        parallelism: Announced producer count (None before the first Open)
        participating_producers: Indexes seen in Open messages
        closed_producers: Indexes seen in Close messages
    """

    records_received: int
    expected_records: int
    parallelism: int | None
    participating_producers: frozenset[int]
    closed_producers: frozenset[int]


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    """Result of a verification run that did not raise.

    Attributes:
        state: SUCCESS, TRIGGERED or INTERRUPTED
        snapshot: Final collector counters
        close_reason: Why the channel closed (INTERRUPTED only)
    """

    state: ResultState
    snapshot: CollectorSnapshot
    close_reason: CloseReason | None = None

    def __post_init__(self) -> None:
        if self.state == ResultState.FAILURE:
            raise ValueError("FAILURE is surfaced as an exception, not as an outcome")
        if (self.state == ResultState.INTERRUPTED) != (self.close_reason is not None):
            raise ValueError(f"close_reason must be set exactly when state is INTERRUPTED, got state={self.state}")

    @property
    def passed(self) -> bool:
        """Whether verification concluded normally (finished or triggered)."""
        return self.state in (ResultState.SUCCESS, ResultState.TRIGGERED)

    def raise_for_state(self) -> None:
        """Raise ChannelInterruptedError for an INTERRUPTED outcome."""
        if self.state == ResultState.INTERRUPTED:
            assert self.close_reason is not None
            error = ChannelInterruptedError(self.close_reason)
            error.snapshot = self.snapshot
            raise error
