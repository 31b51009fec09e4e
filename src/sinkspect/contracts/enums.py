"""All status codes, modes, and kinds used across subsystem boundaries."""

from enum import StrEnum


class ResultState(StrEnum):
    """Terminal state of a verification run.

    Values:
        SUCCESS: Every announced producer closed and record counts reconciled
        TRIGGERED: A trigger ended verification early
        FAILURE: A fatal error stopped the run (surfaced by raising, never returned)
        INTERRUPTED: The channel was closed before the run could conclude
    """

    SUCCESS = "success"
    TRIGGERED = "triggered"
    FAILURE = "failure"
    INTERRUPTED = "interrupted"


class MessageKind(StrEnum):
    """Wire tag of a protocol frame.

    The value is the literal ASCII tag written at the start of the header.
    """

    OPEN = "OPEN"
    RECORD = "REC"
    CLOSE = "CLOSE"


class CloseReason(StrEnum):
    """Why a channel stopped delivering frames.

    CLOSED is the consumer's own close. TIMEOUT and CANCELLED are forced
    closures imposed from outside the consume loop.
    """

    CLOSED = "closed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class ParallelismPolicy(StrEnum):
    """How the collector treats an Open announcing a different parallelism.

    STRICT: Reject the mismatch with a ProtocolError (default)
    LAST_WRITER_WINS: Overwrite the recorded parallelism and log a warning
    """

    STRICT = "strict"
    LAST_WRITER_WINS = "last_writer_wins"
