"""
Dashbridge Realtime Module

Session bootstrap, event translation and the duplex bridge between client
WebSockets and the DashScope realtime API.
"""

from .bootstrap import open_passthrough_session, open_realtime_session
from .bridge import (
    DuplexBridge,
    PassthroughBridge,
    SynthesisBridge,
    TranscriptionBridge,
    create_bridge,
)
from .protocol import UpstreamEventType, parse_upstream_event
from .transport import ClientTransport, Frame, FrameKind, Transport, UpstreamTransport
from .translator import SynthesisTranslator, TranscriptionTranslator

__all__ = [
    # Bootstrap
    "open_realtime_session",
    "open_passthrough_session",
    # Bridge
    "DuplexBridge",
    "TranscriptionBridge",
    "SynthesisBridge",
    "PassthroughBridge",
    "create_bridge",
    # Protocol
    "UpstreamEventType",
    "parse_upstream_event",
    # Transport
    "Transport",
    "ClientTransport",
    "UpstreamTransport",
    "Frame",
    "FrameKind",
    # Translation
    "TranscriptionTranslator",
    "SynthesisTranslator",
]
