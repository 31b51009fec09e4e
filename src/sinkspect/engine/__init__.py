"""Verification engine: the collector state machine and its partners.

This module provides:
- OutputCollector: consumes a channel and drives verification to a terminal state
- OutputPublisher: producer-side endpoint emitting OPEN/REC/CLOSE frames
- Triggers: NeverTrigger, CountTrigger, MatchTrigger, AnyTrigger
- VerificationRun: runs producer tasks concurrently against one collector

Example:
    from sinkspect.engine import CountTrigger, VerificationRun

    run = VerificationRun(verifier, CountTrigger(10))
    outcome = run.execute(producer_tasks)
"""

from sinkspect.engine.collector import CollectorState, OutputCollector
from sinkspect.engine.harness import VerificationRun
from sinkspect.engine.publisher import OutputPublisher
from sinkspect.engine.triggers import AnyTrigger, CountTrigger, MatchTrigger, NeverTrigger

__all__ = [
    "AnyTrigger",
    "CollectorState",
    "CountTrigger",
    "MatchTrigger",
    "NeverTrigger",
    "OutputCollector",
    "OutputPublisher",
    "VerificationRun",
]
