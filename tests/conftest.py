"""
Pytest Configuration and Fixtures

Shared fixtures for unit and integration tests.
"""

import asyncio
import base64
import json

import pytest

from dashbridge.config import Settings
from dashbridge.core.models import BridgeSession, Capability
from dashbridge.realtime.transport import Frame, FrameKind, Transport


# ══════════════════════════════════════════════════════════════
# Fake Transports
# ══════════════════════════════════════════════════════════════


class FakeTransport(Transport):
    """In-memory transport driven by a queue of frames or exceptions."""

    def __init__(self, name: str = "fake") -> None:
        super().__init__()
        self.name = name
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[Frame] = []
        self.close_calls: list[tuple[int, str]] = []
        self.send_error: Exception | None = None

    def feed(self, *items: Frame | Exception) -> None:
        for item in items:
            self.incoming.put_nowait(item)

    async def receive(self) -> Frame:
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        if item.kind is FrameKind.CLOSE:
            self._closed = True
        return item

    async def send_text(self, data: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(Frame.text(data))

    async def send_bytes(self, data: bytes) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(Frame.binary(data))

    async def _send_close(self, code: int, reason: str) -> None:
        self.close_calls.append((code, reason))

    # Helpers

    @property
    def sent_events(self) -> list[dict]:
        """Sent text frames decoded as JSON."""
        return [json.loads(f.data) for f in self.sent if f.kind is FrameKind.TEXT]

    @property
    def sent_text(self) -> list[str]:
        return [f.data for f in self.sent if f.kind is FrameKind.TEXT]

    @property
    def sent_bytes(self) -> list[bytes]:
        return [f.data for f in self.sent if f.kind is FrameKind.BINARY]


def upstream_event(**payload) -> Frame:
    """Text frame carrying an upstream JSON event."""
    return Frame.text(json.dumps(payload))


def audio_delta(data: bytes) -> Frame:
    return upstream_event(
        type="response.audio.delta",
        delta=base64.b64encode(data).decode(),
    )


# ══════════════════════════════════════════════════════════════
# Settings Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fake key and no pacing delays."""
    return Settings(
        _env_file=None,
        app_env="development",
        debug=True,
        dashscope_api_key="sk-test-key",
        upstream_realtime_url="wss://upstream.test/api-ws/v1/realtime",
        upstream_ws_base_url="wss://upstream.test/api-ws/v1",
        upstream_http_base_url="https://upstream.test/compatible-mode/v1",
        session_settle_mode="delay",
        session_settle_delay_ms=0,
        session_ack_timeout_ms=200,
        tts_chunk_delay_ms=0,
    )


# ══════════════════════════════════════════════════════════════
# Session Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def client_transport() -> FakeTransport:
    return FakeTransport("client")


@pytest.fixture
def upstream_transport() -> FakeTransport:
    return FakeTransport("upstream")


@pytest.fixture
def transcription_session() -> BridgeSession:
    return BridgeSession(capability=Capability.TRANSCRIPTION)


@pytest.fixture
def synthesis_session() -> BridgeSession:
    return BridgeSession(capability=Capability.SYNTHESIS, voice="Cherry")


# ══════════════════════════════════════════════════════════════
# Application Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def app(test_settings):
    """Application with settings overridden for tests."""
    from dashbridge.api.app import create_app
    from dashbridge.config import get_settings

    application = create_app()
    application.dependency_overrides[get_settings] = lambda: test_settings
    return application
