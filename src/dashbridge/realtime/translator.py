"""
Event Translator

Maps between the minimal client protocol (binary audio in / text out for
transcription, text in / binary audio out for synthesis) and the upstream
JSON events.
"""

import base64
import binascii

import structlog

from dashbridge.core.exceptions import MalformedEventError
from dashbridge.text import TextPreparer
from .protocol import (
    AudioDeltaEvent,
    ErrorEvent,
    InputAudioBufferAppendEvent,
    InputTextBufferAppendEvent,
    InputTextBufferCommitEvent,
    OutboundEvent,
    TranscriptionFailedEvent,
    TranscriptionTextEvent,
    UpstreamEvent,
    parse_upstream_event,
)

logger = structlog.get_logger()


class EventTranslator:
    """Shared upstream decoding with the recoverable-error policy."""

    def __init__(self, log=None) -> None:
        self.log = log or logger

    def decode(self, raw: str | bytes) -> UpstreamEvent | None:
        """Parse an upstream payload, or log and return None if malformed."""
        try:
            return parse_upstream_event(raw)
        except MalformedEventError as e:
            self.log.warning("Failed to parse upstream event", error=str(e), raw=raw)
            return None


class TranscriptionTranslator(EventTranslator):
    """Audio-to-text direction."""

    def audio_event(self, audio: bytes) -> InputAudioBufferAppendEvent:
        """Wrap one binary client frame as a base64 append event."""
        return InputAudioBufferAppendEvent(audio=base64.b64encode(audio).decode("ascii"))

    def to_client(self, event: UpstreamEvent) -> str | None:
        """Transcript increment to forward as a text frame, if any."""
        if isinstance(event, TranscriptionTextEvent):
            if event.text is None:
                return None
            self.log.debug("Transcript", text=event.text)
            return event.text

        if isinstance(event, TranscriptionFailedEvent):
            self.log.error("Audio transcription failed", payload=event.model_dump())
        elif isinstance(event, ErrorEvent):
            self.log.error("Upstream error", payload=event.model_dump())
        else:
            self.log.debug("Ignoring upstream event", type=event.type)
        return None


class SynthesisTranslator(EventTranslator):
    """Text-to-audio direction."""

    def __init__(self, preparer: TextPreparer | None = None, log=None) -> None:
        super().__init__(log)
        self.preparer = preparer or TextPreparer()

    def text_events(self, raw: str) -> list[OutboundEvent]:
        """
        Events for one client utterance: an append per chunk, then a commit.

        Text that sanitizes to nothing produces no events.
        """
        chunks = self.preparer.prepare(raw)
        if not chunks:
            self.log.debug("Client text empty after sanitization", raw=raw)
            return []

        events: list[OutboundEvent] = [
            InputTextBufferAppendEvent(text=chunk) for chunk in chunks
        ]
        events.append(InputTextBufferCommitEvent())
        return events

    def to_client(self, event: UpstreamEvent) -> bytes | None:
        """Decoded audio to forward as a binary frame, if any."""
        if not isinstance(event, AudioDeltaEvent):
            if isinstance(event, ErrorEvent):
                self.log.error("Upstream error", payload=event.model_dump())
            else:
                self.log.debug("Ignoring upstream event", type=event.type)
            return None

        if event.delta is None:
            self.log.warning("response.audio.delta without delta field")
            return None

        # b64decode raises a bare ValueError, not binascii.Error, on non-ASCII str
        if not event.delta.isascii():
            self.log.error("Failed to decode audio delta", error="non-ASCII base64 payload")
            return None

        try:
            return base64.b64decode(event.delta, validate=True)
        except binascii.Error as e:
            self.log.error("Failed to decode audio delta", error=str(e))
            return None
