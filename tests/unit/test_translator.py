"""
Unit tests for event translation between client and upstream protocols.
"""

import base64
import json
from unittest.mock import MagicMock

import pytest

from dashbridge.realtime.protocol import (
    InputAudioBufferAppendEvent,
    InputTextBufferAppendEvent,
    InputTextBufferCommitEvent,
    parse_upstream_event,
)
from dashbridge.realtime.translator import (
    EventTranslator,
    SynthesisTranslator,
    TranscriptionTranslator,
)
from dashbridge.text import TextPreparer


def _event(**payload):
    return parse_upstream_event(json.dumps(payload))


# ============================================================
# Decoding
# ============================================================


class TestDecode:
    """Test recoverable decoding."""

    def test_decode_valid(self):
        translator = EventTranslator()
        event = translator.decode('{"type": "session.created"}')
        assert event.type == "session.created"

    def test_decode_malformed_logs_warning(self):
        log = MagicMock()
        translator = EventTranslator(log=log)

        assert translator.decode("{broken") is None
        log.warning.assert_called_once()


# ============================================================
# Transcription
# ============================================================


class TestTranscriptionTranslator:
    """Test the audio-to-text direction."""

    def test_audio_event_is_base64(self):
        translator = TranscriptionTranslator()
        event = translator.audio_event(b"\x00\x01\x02\xff")

        assert isinstance(event, InputAudioBufferAppendEvent)
        assert base64.b64decode(event.audio) == b"\x00\x01\x02\xff"

    def test_transcript_text_forwarded_unmodified(self):
        translator = TranscriptionTranslator()
        event = _event(
            type="conversation.item.input_audio_transcription.text",
            text="  hello, world!  ",
        )

        assert translator.to_client(event) == "  hello, world!  "

    def test_transcript_without_text_discarded(self):
        translator = TranscriptionTranslator()
        event = _event(type="conversation.item.input_audio_transcription.text")

        assert translator.to_client(event) is None

    def test_failed_transcription_logged_not_forwarded(self):
        log = MagicMock()
        translator = TranscriptionTranslator(log=log)
        event = _event(
            type="conversation.item.input_audio_transcription.failed",
            error={"message": "no speech"},
        )

        assert translator.to_client(event) is None
        log.error.assert_called_once()

    def test_error_logged_not_forwarded(self):
        log = MagicMock()
        translator = TranscriptionTranslator(log=log)

        assert translator.to_client(_event(type="error", error={"code": "x"})) is None
        log.error.assert_called_once()

    def test_other_events_ignored_at_debug(self):
        log = MagicMock()
        translator = TranscriptionTranslator(log=log)

        assert translator.to_client(_event(type="input_audio_buffer.speech_started")) is None
        log.debug.assert_called_once()
        log.error.assert_not_called()

    def test_audio_delta_ignored_for_transcription(self):
        translator = TranscriptionTranslator()
        assert translator.to_client(_event(type="response.audio.delta", delta="AA==")) is None


# ============================================================
# Synthesis
# ============================================================


class TestSynthesisTranslator:
    """Test the text-to-audio direction."""

    def test_short_text_single_append_then_commit(self):
        translator = SynthesisTranslator()
        events = translator.text_events("Hello **world**!")

        assert len(events) == 2
        assert isinstance(events[0], InputTextBufferAppendEvent)
        assert events[0].text == "Hello world"
        assert isinstance(events[1], InputTextBufferCommitEvent)

    def test_long_text_one_append_per_word(self):
        translator = SynthesisTranslator()
        words = [f"word{i}" for i in range(25)]
        events = translator.text_events(" ".join(words))

        appends = [e for e in events if isinstance(e, InputTextBufferAppendEvent)]
        assert [e.text for e in appends] == words
        assert isinstance(events[-1], InputTextBufferCommitEvent)
        assert sum(isinstance(e, InputTextBufferCommitEvent) for e in events) == 1

    def test_empty_text_produces_no_events(self):
        translator = SynthesisTranslator()
        assert translator.text_events("*** 😀 ***") == []

    def test_event_ids_unique(self):
        translator = SynthesisTranslator(TextPreparer(threshold=1))
        events = translator.text_events("a b c d")

        assert len({e.event_id for e in events}) == len(events)

    def test_markdown_policy(self):
        translator = SynthesisTranslator(TextPreparer(policy="markdown"))
        events = translator.text_events("Hello **world**!")

        assert events[0].text == "Hello world!"

    def test_audio_delta_decoded(self):
        translator = SynthesisTranslator()
        audio = bytes(range(256))
        event = _event(type="response.audio.delta", delta=base64.b64encode(audio).decode())

        assert translator.to_client(event) == audio

    def test_audio_delta_without_delta_warns(self):
        log = MagicMock()
        translator = SynthesisTranslator(log=log)

        assert translator.to_client(_event(type="response.audio.delta")) is None
        log.warning.assert_called_once()

    def test_invalid_base64_logged_and_discarded(self):
        log = MagicMock()
        translator = SynthesisTranslator(log=log)

        assert translator.to_client(_event(type="response.audio.delta", delta="@@not-b64@@")) is None
        log.error.assert_called_once()

    @pytest.mark.parametrize("delta", ["Q", "QUJDRA", "QUJD RA==", "QUJDRA==é"])
    def test_undecodable_delta_does_not_raise(self, delta):
        log = MagicMock()
        translator = SynthesisTranslator(log=log)

        assert translator.to_client(_event(type="response.audio.delta", delta=delta)) is None
        log.error.assert_called_once()

    def test_other_events_ignored(self):
        log = MagicMock()
        translator = SynthesisTranslator(log=log)

        assert translator.to_client(_event(type="response.done")) is None
        assert translator.to_client(
            _event(type="conversation.item.input_audio_transcription.text", text="x")
        ) is None
        assert log.debug.call_count == 2
