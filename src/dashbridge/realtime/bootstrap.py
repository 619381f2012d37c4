"""
Upstream Session Bootstrap

Builds the upstream realtime request, opens the connection, sends the one
``session.update`` event and waits for the upstream to settle before any
data event is forwarded.
"""

import asyncio
from dataclasses import dataclass, field
from urllib.parse import urlencode

import structlog
import websockets
from websockets.exceptions import InvalidHandshake, InvalidURI, WebSocketException

from dashbridge.config import Settings
from dashbridge.core.exceptions import (
    CredentialError,
    MalformedEventError,
    TransportError,
    UpstreamSetupError,
)
from dashbridge.core.models import Capability
from .protocol import (
    ErrorEvent,
    SessionUpdateEvent,
    SessionUpdatedEvent,
    SynthesisSessionConfig,
    TranscriptionSessionConfig,
    parse_upstream_event,
)
from .transport import FrameKind, UpstreamTransport

logger = structlog.get_logger()

# Capability negotiation header required by the transcription endpoint
REALTIME_BETA_HEADER = ("OpenAI-Beta", "realtime=v1")


@dataclass
class UpstreamRequest:
    """Everything needed to open an upstream WebSocket."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)


def bearer_header(api_key: str | None) -> str:
    """
    Build the Authorization header value for a credential.

    Raises:
        CredentialError: missing key, or one that cannot travel in a header
    """
    if not api_key:
        raise CredentialError("DashScope API key is not configured")
    if not all(0x21 <= ord(ch) <= 0x7E for ch in api_key):
        raise CredentialError("DashScope API key contains invalid characters")
    return f"Bearer {api_key}"


def build_realtime_request(
    capability: Capability,
    api_key: str | None,
    settings: Settings,
    voice: str | None = None,
) -> UpstreamRequest:
    """Upstream request for a transcription or synthesis session."""
    headers = {"Authorization": bearer_header(api_key)}

    if capability is Capability.TRANSCRIPTION:
        params = {"model": settings.asr_model}
        name, value = REALTIME_BETA_HEADER
        headers[name] = value
    elif capability is Capability.SYNTHESIS:
        if not voice:
            raise UpstreamSetupError("Synthesis sessions require a voice")
        params = {"model": settings.tts_model, "voice": voice}
    else:
        raise UpstreamSetupError(f"No realtime model for {capability.value}")

    return UpstreamRequest(
        url=f"{settings.upstream_realtime_url}?{urlencode(params)}",
        headers=headers,
    )


def build_session_update(
    capability: Capability,
    settings: Settings,
    voice: str | None = None,
) -> SessionUpdateEvent:
    """The single configuration event sent at session start."""
    if capability is Capability.TRANSCRIPTION:
        config = TranscriptionSessionConfig(sample_rate=settings.asr_sample_rate)
    else:
        config = SynthesisSessionConfig(
            voice=voice or "",
            sample_rate=settings.tts_sample_rate,
        )
    return SessionUpdateEvent(session=config)


async def connect_upstream(
    request: UpstreamRequest, settings: Settings
) -> UpstreamTransport:
    """
    Open the upstream WebSocket.

    Raises:
        UpstreamSetupError: DNS, TLS, timeout or handshake rejection
    """
    try:
        connection = await websockets.connect(
            request.url,
            additional_headers=request.headers,
            open_timeout=settings.upstream_open_timeout_s,
            max_size=settings.upstream_max_message_bytes,
            close_timeout=5,
        )
    except (InvalidURI, InvalidHandshake) as e:
        raise UpstreamSetupError(f"Upstream handshake rejected: {e}") from e
    except (OSError, TimeoutError, WebSocketException) as e:
        raise UpstreamSetupError(f"Upstream connection failed: {e}") from e

    return UpstreamTransport(connection)


async def wait_for_session_ack(upstream: UpstreamTransport, timeout: float) -> bool:
    """
    Read upstream events until ``session.updated``.

    Returns False when the timeout expires first.

    Raises:
        UpstreamSetupError: upstream reports an error or closes
    """

    async def _ack() -> None:
        while True:
            frame = await upstream.receive()
            if frame.kind is FrameKind.CLOSE:
                raise UpstreamSetupError(
                    f"Upstream closed during setup: {frame.code} {frame.reason}"
                )
            if frame.kind is not FrameKind.TEXT:
                continue
            try:
                event = parse_upstream_event(frame.data)
            except MalformedEventError as e:
                logger.warning("Malformed upstream event during setup", error=str(e))
                continue
            if isinstance(event, SessionUpdatedEvent):
                return
            if isinstance(event, ErrorEvent):
                raise UpstreamSetupError(f"Upstream rejected session: {event.error}")
            logger.debug("Ignoring event during session setup", type=event.type)

    try:
        await asyncio.wait_for(_ack(), timeout)
    except TimeoutError:
        return False
    return True


async def settle_session(upstream: UpstreamTransport, settings: Settings) -> None:
    """Give the upstream time to apply ``session.update``."""
    if settings.session_settle_mode == "ack":
        acknowledged = await wait_for_session_ack(upstream, settings.session_ack_timeout)
        if not acknowledged:
            logger.warning(
                "No session.updated acknowledgement, continuing",
                timeout_ms=settings.session_ack_timeout_ms,
            )
        return
    await asyncio.sleep(settings.session_settle_delay)


async def open_realtime_session(
    capability: Capability,
    settings: Settings,
    voice: str | None = None,
    api_key: str | None = None,
) -> UpstreamTransport:
    """
    Connect, configure and settle an upstream realtime session.

    Any failure closes the half-open connection and raises
    ``UpstreamSetupError``; nothing is retried.
    """
    request = build_realtime_request(
        capability,
        api_key if api_key is not None else settings.dashscope_api_key,
        settings,
        voice=voice,
    )
    upstream = await connect_upstream(request, settings)

    try:
        session_update = build_session_update(capability, settings, voice=voice)
        await upstream.send_text(session_update.to_json())
        logger.debug(
            "Sent session.update",
            capability=capability.value,
            event_id=session_update.event_id,
        )
        await settle_session(upstream, settings)
    except TransportError as e:
        await _discard(upstream)
        raise UpstreamSetupError(f"Session configuration failed: {e}") from e
    except (Exception, asyncio.CancelledError):
        await _discard(upstream)
        raise

    return upstream


async def open_passthrough_session(
    path: str,
    query: str | None,
    settings: Settings,
    api_key: str | None = None,
) -> UpstreamTransport:
    """Connect a raw passthrough to ``upstream_ws_base_url/<path>``."""
    url = f"{settings.upstream_ws_base_url.rstrip('/')}/{path.lstrip('/')}"
    if query:
        url = f"{url}?{query}"

    headers: dict[str, str] = {}
    key = api_key if api_key is not None else settings.dashscope_api_key
    if key:
        headers["Authorization"] = bearer_header(key)

    return await connect_upstream(UpstreamRequest(url=url, headers=headers), settings)


async def _discard(upstream: UpstreamTransport) -> None:
    try:
        await upstream.close()
    except TransportError as e:
        logger.debug("Failed to close upstream after setup error", error=str(e))
