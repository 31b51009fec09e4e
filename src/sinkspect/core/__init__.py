# src/sinkspect/core/__init__.py
"""Core infrastructure: Codec, Channel, Serialization, Configuration, Clock, Logging."""

from sinkspect.core.channel import Channel, ChannelClosed, ChannelPublisher
from sinkspect.core.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from sinkspect.core.codec import decode, encode
from sinkspect.core.config import (
    CollectorSettings,
    LoggingSettings,
    SinkspectSettings,
    load_settings,
)
from sinkspect.core.logging import configure_from_settings, configure_logging, run_context
from sinkspect.core.serialization import RecordSerializer, SerializerDescriptor, build_decoder

__all__ = [
    "DEFAULT_CLOCK",
    "Channel",
    "ChannelClosed",
    "ChannelPublisher",
    "Clock",
    "CollectorSettings",
    "LoggingSettings",
    "MockClock",
    "RecordSerializer",
    "SerializerDescriptor",
    "SinkspectSettings",
    "SystemClock",
    "build_decoder",
    "configure_from_settings",
    "configure_logging",
    "decode",
    "encode",
    "load_settings",
    "run_context",
]
