"""
DashScope Realtime Protocol

Outbound and inbound event models for the upstream JSON event protocol.
Inbound payloads are decoded into a closed set of event models keyed by the
``type`` discriminator; anything unrecognised becomes an ``UnknownEvent``.
"""

from enum import Enum
from typing import Any, Literal, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from uuid6 import uuid7

from dashbridge.core.exceptions import MalformedEventError


def new_event_id() -> str:
    """Time-ordered unique id for an outbound event."""
    return str(uuid7())


class UpstreamEventType(str, Enum):
    """Discriminator values of the upstream event protocol."""

    # Gateway -> Upstream
    SESSION_UPDATE = "session.update"
    INPUT_AUDIO_BUFFER_APPEND = "input_audio_buffer.append"
    INPUT_TEXT_BUFFER_APPEND = "input_text_buffer.append"
    INPUT_TEXT_BUFFER_COMMIT = "input_text_buffer.commit"

    # Upstream -> Gateway
    SESSION_CREATED = "session.created"
    SESSION_UPDATED = "session.updated"
    TRANSCRIPTION_TEXT = "conversation.item.input_audio_transcription.text"
    TRANSCRIPTION_FAILED = "conversation.item.input_audio_transcription.failed"
    RESPONSE_AUDIO_DELTA = "response.audio.delta"
    ERROR = "error"


# ══════════════════════════════════════════════════════════════
# Outbound Events
# ══════════════════════════════════════════════════════════════


class OutboundEvent(BaseModel):
    """Base for events sent upstream. Every event carries a fresh id."""

    event_id: str = Field(default_factory=new_event_id)
    type: str

    def to_json(self) -> str:
        return orjson.dumps(self.model_dump(mode="json", exclude_none=True)).decode()


class TurnDetection(BaseModel):
    type: str = "server_vad"


class TranscriptionSessionConfig(BaseModel):
    modalities: list[str] = Field(default_factory=lambda: ["text"])
    input_audio_format: str = "pcm"
    sample_rate: int = 16000
    turn_detection: TurnDetection = Field(default_factory=TurnDetection)


class SynthesisSessionConfig(BaseModel):
    voice: str
    response_format: str = "pcm"
    sample_rate: int = 24000
    modalities: list[str] = Field(default_factory=lambda: ["text", "audio"])


class SessionUpdateEvent(OutboundEvent):
    type: Literal["session.update"] = UpstreamEventType.SESSION_UPDATE.value
    session: TranscriptionSessionConfig | SynthesisSessionConfig


class InputAudioBufferAppendEvent(OutboundEvent):
    type: Literal["input_audio_buffer.append"] = (
        UpstreamEventType.INPUT_AUDIO_BUFFER_APPEND.value
    )
    audio: str  # base64 PCM


class InputTextBufferAppendEvent(OutboundEvent):
    type: Literal["input_text_buffer.append"] = (
        UpstreamEventType.INPUT_TEXT_BUFFER_APPEND.value
    )
    text: str


class InputTextBufferCommitEvent(OutboundEvent):
    type: Literal["input_text_buffer.commit"] = (
        UpstreamEventType.INPUT_TEXT_BUFFER_COMMIT.value
    )


# ══════════════════════════════════════════════════════════════
# Inbound Events
# ══════════════════════════════════════════════════════════════


class InboundEvent(BaseModel):
    """Base for events received from upstream."""

    model_config = ConfigDict(extra="allow")

    type: str
    event_id: str | None = None


class SessionCreatedEvent(InboundEvent):
    session: dict[str, Any] = Field(default_factory=dict)


class SessionUpdatedEvent(InboundEvent):
    session: dict[str, Any] = Field(default_factory=dict)


class TranscriptionTextEvent(InboundEvent):
    text: str | None = None


class TranscriptionFailedEvent(InboundEvent):
    error: dict[str, Any] | None = None


class ErrorEvent(InboundEvent):
    error: dict[str, Any] | None = None


class AudioDeltaEvent(InboundEvent):
    delta: str | None = None  # base64 PCM


class UnknownEvent(InboundEvent):
    """Any discriminator the gateway does not route."""


UpstreamEvent = Union[
    SessionCreatedEvent,
    SessionUpdatedEvent,
    TranscriptionTextEvent,
    TranscriptionFailedEvent,
    ErrorEvent,
    AudioDeltaEvent,
    UnknownEvent,
]

INBOUND_EVENT_TYPES: dict[str, type[InboundEvent]] = {
    UpstreamEventType.SESSION_CREATED.value: SessionCreatedEvent,
    UpstreamEventType.SESSION_UPDATED.value: SessionUpdatedEvent,
    UpstreamEventType.TRANSCRIPTION_TEXT.value: TranscriptionTextEvent,
    UpstreamEventType.TRANSCRIPTION_FAILED.value: TranscriptionFailedEvent,
    UpstreamEventType.ERROR.value: ErrorEvent,
    UpstreamEventType.RESPONSE_AUDIO_DELTA.value: AudioDeltaEvent,
}


def parse_upstream_event(raw: str | bytes) -> UpstreamEvent:
    """
    Decode an upstream payload into its event model.

    Raises:
        MalformedEventError: payload is not a JSON object
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise MalformedEventError(f"Invalid JSON: {e}", raw) from e

    if not isinstance(data, dict):
        raise MalformedEventError("Event is not a JSON object", raw)

    discriminator = data.get("type")
    if not isinstance(discriminator, str):
        discriminator = ""
    data["type"] = discriminator

    model = INBOUND_EVENT_TYPES.get(discriminator, UnknownEvent)
    try:
        return model.model_validate(data)
    except ValidationError:
        # Known discriminator with an unexpected payload shape: keep the
        # routing key, drop the payload fields that failed to validate.
        return model.model_validate({"type": discriminator})
