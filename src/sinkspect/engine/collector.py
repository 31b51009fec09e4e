# src/sinkspect/engine/collector.py
"""OutputCollector drives one verification run to its terminal state.

The collector is the single consumer of a Channel. Parallel producers
(sink instances) publish OPEN, REC and CLOSE frames onto that channel; the
collector pulls them one at a time, feeds decoded records to the verifier
and the trigger, and decides when verification is over:

    Idle --first OPEN--> Active --trigger fired-------------> Stopped  (TRIGGERED)
                                --all closed, counts match--> Finished (SUCCESS)
                                --fatal error---------------> Failed   (raises)
                                --channel closed/forced-----> Interrupted (INTERRUPTED)

Termination requires every announced producer to have closed and the
number of records received to equal the sum of the counts they reported.
Producers interleave arbitrarily; only per-producer order is guaranteed.

Lifecycle guarantees on every exit path:
- verifier.init() runs once, when the first OPEN is processed
- the channel is released exactly once, even if another party closed it
- verifier.finish() runs exactly once, last; if it raises, its failure
  supersedes any earlier error

Thread Safety:
    run() executes entirely on the calling thread. Aggregation state is a
    local CollectorState owned by that call, so no locking is needed.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from sinkspect.contracts.enums import ParallelismPolicy, ResultState
from sinkspect.contracts.errors import (
    CollectorError,
    ConsistencyError,
    DecodeError,
    ProtocolError,
    VerificationFailure,
)
from sinkspect.contracts.messages import Close, Message, Open, Record
from sinkspect.contracts.protocols import DecoderFactory, RecordDecoder, TriggerProtocol, VerifierProtocol
from sinkspect.contracts.results import CollectorSnapshot, VerificationOutcome
from sinkspect.core.channel import Channel, ChannelClosed
from sinkspect.core.codec import decode
from sinkspect.core.config import CollectorSettings
from sinkspect.core.logging import run_context
from sinkspect.core.serialization import build_decoder
from sinkspect.engine.triggers import NeverTrigger, require_bool

logger = structlog.get_logger(__name__)


class _Action(Enum):
    """Next step after processing one message."""

    CONTINUE = "continue"
    STOP = "stop"
    FINISH = "finish"


@dataclass
class CollectorState:
    """Aggregation state of one run. Owned by OutputCollector.run()."""

    participating_producers: set[int] = field(default_factory=set)
    closed_producers: set[int] = field(default_factory=set)
    parallelism: int | None = None
    records_received: int = 0
    expected_records: int = 0
    decoder: RecordDecoder | None = None
    initialized: bool = False

    def snapshot(self) -> CollectorSnapshot:
        return CollectorSnapshot(
            records_received=self.records_received,
            expected_records=self.expected_records,
            parallelism=self.parallelism,
            participating_producers=frozenset(self.participating_producers),
            closed_producers=frozenset(self.closed_producers),
        )


class OutputCollector:
    """Consumes producer output from a channel and verifies it.

    Example:
        channel = Channel(deadline_seconds=30.0)
        collector = OutputCollector(channel, verifier, CountTrigger(100))
        # ... start producers publishing onto channel.publisher() endpoints ...
        outcome = collector.run()
        outcome.raise_for_state()
    """

    def __init__(
        self,
        channel: Channel,
        verifier: VerifierProtocol,
        trigger: TriggerProtocol | None = None,
        *,
        settings: CollectorSettings | None = None,
        decoder_factory: DecoderFactory = build_decoder,
        run_id: str | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            channel: Channel to consume. The collector releases it when done.
            verifier: Verification capability fed with decoded records
            trigger: Early-stop trigger. Defaults to NeverTrigger.
            settings: Collector settings (parallelism policy). Defaults apply if None.
            decoder_factory: Builds the record decoder from the first
                serializer descriptor seen in an OPEN frame
            run_id: Bound to every log event of the run. Generated if None.
        """
        self.run_id = run_id if run_id is not None else uuid.uuid4().hex[:12]
        self._channel = channel
        self._verifier = verifier
        self._trigger: TriggerProtocol = trigger if trigger is not None else NeverTrigger()
        self._settings = settings if settings is not None else CollectorSettings()
        self._decoder_factory = decoder_factory
        self._started = False

    def run(self) -> VerificationOutcome:
        """Consume frames until verification concludes.

        Returns:
            Outcome with state SUCCESS, TRIGGERED or INTERRUPTED

        Raises:
            ProtocolError, DecodeError, ConsistencyError, VerificationFailure:
                The fatal error that stopped the run, with snapshot attached.
                A VerificationFailure from finish() supersedes any of them.
            RuntimeError: If run() is called a second time
        """
        if self._started:
            raise RuntimeError("OutputCollector.run() can only be called once per collector")
        self._started = True

        state = CollectorState()
        with run_context(self.run_id):
            try:
                outcome = self._consume(state)
            except BaseException as e:
                self._conclude(state, e)
                if isinstance(e, CollectorError) and e.snapshot is None:
                    e.snapshot = state.snapshot()
                logger.error(
                    "Verification failed",
                    error_type=type(e).__name__,
                    error=str(e),
                    records_received=state.records_received,
                    expected_records=state.expected_records,
                )
                raise

            self._conclude(state, None)
            logger.info(
                "Verification concluded",
                state=str(outcome.state),
                records_received=outcome.snapshot.records_received,
                expected_records=outcome.snapshot.expected_records,
                parallelism=outcome.snapshot.parallelism,
            )
            return outcome

    def _conclude(self, state: CollectorState, error: BaseException | None) -> None:
        """Release the channel and run finish(); a finish() failure replaces error."""
        self._channel.release()
        try:
            self._verifier.finish()
        except Exception as e:
            failure = VerificationFailure(f"Verifier rejected the output in finish(): {e}", phase="finish")
            failure.snapshot = state.snapshot()
            if error is not None:
                logger.warning(
                    "finish() failure supersedes earlier error",
                    superseded_type=type(error).__name__,
                    superseded_error=str(error),
                )
                failure.add_note(f"Superseded earlier error: {type(error).__name__}: {error}")
            raise failure from e

    def _consume(self, state: CollectorState) -> VerificationOutcome:
        while True:
            item = self._channel.receive()
            if isinstance(item, ChannelClosed):
                logger.warning(
                    "Channel closed before verification concluded",
                    reason=str(item.reason),
                    records_received=state.records_received,
                    expected_records=state.expected_records,
                    closed_producers=len(state.closed_producers),
                    parallelism=state.parallelism,
                )
                return VerificationOutcome(ResultState.INTERRUPTED, state.snapshot(), close_reason=item.reason)

            action = self._process(state, decode(item))
            if action is _Action.STOP:
                return VerificationOutcome(ResultState.TRIGGERED, state.snapshot())
            if action is _Action.FINISH:
                return VerificationOutcome(ResultState.SUCCESS, state.snapshot())

    def _process(self, state: CollectorState, message: Message) -> _Action:
        match message:
            case Open():
                self._on_open(state, message)
            case Record():
                if self._on_record(state, message):
                    return _Action.STOP
            case Close():
                self._on_close(state, message)
        return self._check_termination(state)

    def _on_open(self, state: CollectorState, message: Open) -> None:
        if not state.initialized:
            state.initialized = True
            logger.info("Verification started", parallelism=message.parallelism)
            try:
                self._verifier.init()
            except Exception as e:
                raise VerificationFailure(f"Verifier failed in init(): {e}", phase="init") from e

        index = message.producer_index
        if index in state.participating_producers:
            raise ProtocolError(f"Producer {index} sent OPEN twice")

        if state.parallelism is not None and message.parallelism != state.parallelism:
            if self._settings.parallelism_policy == ParallelismPolicy.STRICT:
                raise ProtocolError(
                    f"Producer {index} announced parallelism {message.parallelism}, "
                    f"but {state.parallelism} was already announced"
                )
            logger.warning(
                "Parallelism announcement changed",
                producer_index=index,
                previous=state.parallelism,
                announced=message.parallelism,
            )
        state.parallelism = message.parallelism

        # CLOSE frames may precede every OPEN; validate them now that the range is known
        out_of_range = sorted(i for i in state.closed_producers if i >= state.parallelism)
        if out_of_range:
            raise ProtocolError(f"Producers {out_of_range} closed but parallelism is {state.parallelism}")
        # A lowered parallelism must still cover every producer already registered
        stranded = sorted(i for i in state.participating_producers if i >= state.parallelism)
        if stranded:
            raise ProtocolError(f"Producers {stranded} sent OPEN but parallelism is now {state.parallelism}")

        state.participating_producers.add(index)

        if state.decoder is None and message.serializer_descriptor is not None:
            state.decoder = self._build_decoder(message.serializer_descriptor)

        logger.debug(
            "Producer opened",
            producer_index=index,
            parallelism=state.parallelism,
            participating=len(state.participating_producers),
        )

    def _build_decoder(self, descriptor: bytes) -> RecordDecoder:
        try:
            return self._decoder_factory(descriptor)
        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(f"Could not build decoder from serializer descriptor: {e}") from e

    def _decode_record(self, decoder: RecordDecoder, payload: bytes) -> Any:
        try:
            return decoder.deserialize(payload)
        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(f"Could not decode record payload: {e}") from e

    def _on_record(self, state: CollectorState, message: Record) -> bool:
        """Verify one record. Returns True if the trigger fired."""
        if state.decoder is None:
            raise DecodeError("Received a record before any OPEN shared a serializer descriptor")

        element = self._decode_record(state.decoder, message.payload)
        state.records_received += 1
        record_number = state.records_received

        try:
            self._verifier.receive(element)
        except Exception as e:
            raise VerificationFailure(
                f"Verifier rejected record {record_number}: {e}",
                phase="receive",
                record_number=record_number,
            ) from e

        fired = require_bool(self._trigger.on_record(element), "trigger.on_record") or require_bool(
            self._trigger.on_record_count(record_number), "trigger.on_record_count"
        )
        if fired:
            logger.info("Trigger fired", record_number=record_number, trigger=repr(self._trigger))
        return fired

    def _on_close(self, state: CollectorState, message: Close) -> None:
        index = message.producer_index
        if index in state.closed_producers:
            raise ProtocolError(f"Producer {index} sent CLOSE twice")
        if state.parallelism is not None and index >= state.parallelism:
            raise ProtocolError(f"Producer {index} closed but parallelism is {state.parallelism}")

        state.expected_records += message.record_count
        state.closed_producers.add(index)
        logger.debug(
            "Producer closed",
            producer_index=index,
            record_count=message.record_count,
            closed=len(state.closed_producers),
            expected_records=state.expected_records,
        )

    def _check_termination(self, state: CollectorState) -> _Action:
        if state.parallelism is None:
            return _Action.CONTINUE
        if len(state.closed_producers) != state.parallelism or state.records_received != state.expected_records:
            return _Action.CONTINUE

        if len(state.participating_producers) < state.parallelism:
            missing = frozenset(range(state.parallelism)) - state.participating_producers
            raise ConsistencyError(
                f"All {state.parallelism} producers closed and {state.records_received} records reconciled, "
                f"but only {len(state.participating_producers)} producers ever sent OPEN",
                missing_producers=missing,
            )
        return _Action.FINISH
