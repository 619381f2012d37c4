"""
Realtime WebSocket Routes

Client-facing transcription and synthesis endpoints. Each connection gets
its own upstream session and duplex bridge.

Protocol:
    /realtime/asr            binary PCM16 @ 16 kHz in, transcript text out
    /realtime/tts?voice=<id> text in, binary PCM16 @ 24 kHz out
"""

from typing import Awaitable, Callable

import structlog
from fastapi import APIRouter, Depends, Query, WebSocket

from dashbridge.config import Settings, get_settings
from dashbridge.core.exceptions import TransportError, UpstreamSetupError
from dashbridge.core.models import BridgeSession, Capability
from dashbridge.realtime.bootstrap import open_realtime_session
from dashbridge.realtime.bridge import create_bridge
from dashbridge.realtime.transport import ClientTransport, UpstreamTransport

logger = structlog.get_logger()

router = APIRouter()

INTERNAL_ERROR = 1011


async def run_bridged_session(
    websocket: WebSocket,
    session: BridgeSession,
    open_upstream: Callable[[], Awaitable[UpstreamTransport]],
    settings: Settings,
) -> None:
    """
    Accept the client, open the upstream and bridge until either side ends.

    A setup failure is logged once and the client is closed with 1011;
    no duplex loop is started.
    """
    await websocket.accept()
    client = ClientTransport(websocket)
    log = logger.bind(**session.log_context())
    log.info("Client connected")

    try:
        upstream = await open_upstream()
    except UpstreamSetupError as e:
        log.error("Upstream session setup failed", error=str(e))
        session.mark_closed()
        try:
            await client.close(INTERNAL_ERROR, "upstream unavailable")
        except TransportError:
            log.debug("Client already gone after setup failure")
        return

    bridge = create_bridge(session, client, upstream, settings)
    await bridge.run()


# ══════════════════════════════════════════════════════════════
# WebSocket Endpoints
# ══════════════════════════════════════════════════════════════


@router.websocket("/asr")
async def asr_realtime(
    websocket: WebSocket,
    settings: Settings = Depends(get_settings),
):
    """Realtime speech recognition."""
    session = BridgeSession(
        capability=Capability.TRANSCRIPTION,
        model=settings.asr_model,
    )
    await run_bridged_session(
        websocket,
        session,
        lambda: open_realtime_session(Capability.TRANSCRIPTION, settings),
        settings,
    )


@router.websocket("/tts")
async def tts_realtime(
    websocket: WebSocket,
    voice: str = Query(...),
    settings: Settings = Depends(get_settings),
):
    """Realtime speech synthesis with the requested voice."""
    session = BridgeSession(
        capability=Capability.SYNTHESIS,
        voice=voice,
        model=settings.tts_model,
    )
    await run_bridged_session(
        websocket,
        session,
        lambda: open_realtime_session(Capability.SYNTHESIS, settings, voice=voice),
        settings,
    )
