# src/sinkspect/engine/harness.py
"""Run helper: parallel producer tasks against one collector.

VerificationRun wires a Channel, an OutputCollector and a thread pool for
the producer tasks. The collector runs on the calling thread; producers
run concurrently and never wait for it. The channel deadline from
CollectorSettings bounds the whole run.

Example:
    run = VerificationRun(PredicateVerifier(lambda xs: sorted(xs) == [1, 2, 3]))
    serializer = RecordSerializer.json()

    def producer(index: int) -> Callable[[], None]:
        def task() -> None:
            with run.publisher(index, 2, serializer) as sink:
                for value in data[index]:
                    sink.send(value)
        return task

    outcome = run.execute([producer(0), producer(1)])
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor

import structlog

from sinkspect.contracts.enums import CloseReason, ResultState
from sinkspect.contracts.protocols import DecoderFactory, TriggerProtocol, VerifierProtocol
from sinkspect.contracts.results import VerificationOutcome
from sinkspect.core.channel import Channel
from sinkspect.core.clock import Clock
from sinkspect.core.config import CollectorSettings, SinkspectSettings
from sinkspect.core.logging import configure_from_settings, run_context
from sinkspect.core.serialization import RecordSerializer, build_decoder
from sinkspect.engine.collector import OutputCollector
from sinkspect.engine.publisher import OutputPublisher

logger = structlog.get_logger(__name__)


class VerificationRun:
    """One verification run: a channel, its collector and its producers."""

    def __init__(
        self,
        verifier: VerifierProtocol,
        trigger: TriggerProtocol | None = None,
        *,
        settings: CollectorSettings | None = None,
        clock: Clock | None = None,
        decoder_factory: DecoderFactory = build_decoder,
        run_id: str | None = None,
    ) -> None:
        self._settings = settings if settings is not None else CollectorSettings()
        self.channel = Channel(deadline_seconds=self._settings.deadline_seconds, clock=clock)
        self._collector = OutputCollector(
            self.channel,
            verifier,
            trigger,
            settings=self._settings,
            decoder_factory=decoder_factory,
            run_id=run_id,
        )
        self.run_id = self._collector.run_id

    @classmethod
    def from_settings(
        cls,
        settings: SinkspectSettings,
        verifier: VerifierProtocol,
        trigger: TriggerProtocol | None = None,
        *,
        clock: Clock | None = None,
        decoder_factory: DecoderFactory = build_decoder,
        run_id: str | None = None,
    ) -> VerificationRun:
        """Build a run from loaded settings and apply their logging section.

        Example:
            run = VerificationRun.from_settings(load_settings(Path("sinkspect.yaml")), verifier)
        """
        configure_from_settings(settings.logging)
        return cls(
            verifier,
            trigger,
            settings=settings.collector,
            clock=clock,
            decoder_factory=decoder_factory,
            run_id=run_id,
        )

    def publisher(
        self,
        producer_index: int,
        parallelism: int,
        serializer: RecordSerializer,
        *,
        share_descriptor: bool = True,
    ) -> OutputPublisher:
        """Create a producer endpoint on this run's channel."""
        return OutputPublisher(
            self.channel.publisher(),
            producer_index,
            parallelism,
            serializer,
            share_descriptor=share_descriptor,
        )

    def cancel(self) -> None:
        """Force the run to end with INTERRUPTED. Safe from any thread."""
        self.channel.interrupt(CloseReason.CANCELLED)

    def execute(self, tasks: Sequence[Callable[[], None]]) -> VerificationOutcome:
        """Run producer tasks concurrently and collect their output.

        Args:
            tasks: Producer callables, one per thread

        Returns:
            The collector's outcome

        Raises:
            CollectorError: The collector's fatal error, if any
            ChannelInterruptedError: INTERRUPTED outcome while
                settings.interrupted_is_failure is True
            Exception: The first producer task exception, if the collector
                itself did not fail
        """
        pool = ThreadPoolExecutor(max_workers=max(1, len(tasks)), thread_name_prefix="sinkspect-producer")
        futures: list[Future[None]] = [pool.submit(task) for task in tasks]
        try:
            outcome = self._collector.run()
        finally:
            pool.shutdown(wait=True)
            with run_context(self.run_id):
                producer_errors = _collect_errors(futures)

        if producer_errors:
            raise producer_errors[0]

        if outcome.state == ResultState.INTERRUPTED and self._settings.interrupted_is_failure:
            outcome.raise_for_state()
        return outcome


def _collect_errors(futures: Sequence[Future[None]]) -> list[BaseException]:
    errors: list[BaseException] = []
    for index, future in enumerate(futures):
        exc = future.exception()
        if exc is not None:
            logger.error("Producer task failed", task=index, error_type=type(exc).__name__, error=str(exc))
            errors.append(exc)
    return errors
