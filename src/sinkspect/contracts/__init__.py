"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes are NOT re-exported here - import them from
sinkspect.core.config.

Import patterns:
    from sinkspect.contracts import Open, Record, Close, ResultState
    from sinkspect.core.config import CollectorSettings
"""

from sinkspect.contracts.enums import CloseReason, MessageKind, ParallelismPolicy, ResultState
from sinkspect.contracts.errors import (
    ChannelError,
    ChannelInterruptedError,
    CollectorError,
    ConsistencyError,
    DecodeError,
    ProtocolError,
    VerificationFailure,
)
from sinkspect.contracts.messages import Close, Message, Open, Record
from sinkspect.contracts.protocols import DecoderFactory, RecordDecoder, TriggerProtocol, VerifierProtocol
from sinkspect.contracts.results import CollectorSnapshot, VerificationOutcome

__all__ = [
    "ChannelError",
    "ChannelInterruptedError",
    "Close",
    "CloseReason",
    "CollectorError",
    "CollectorSnapshot",
    "ConsistencyError",
    "DecodeError",
    "DecoderFactory",
    "Message",
    "MessageKind",
    "Open",
    "ParallelismPolicy",
    "ProtocolError",
    "Record",
    "RecordDecoder",
    "ResultState",
    "TriggerProtocol",
    "VerificationFailure",
    "VerificationOutcome",
    "VerifierProtocol",
]
