"""
WebSocket API Passthrough

Bridges ``/api-ws/v1/<path>`` to the same path on the upstream WebSocket API
without touching payloads.
"""

from fastapi import APIRouter, Depends, WebSocket

from dashbridge.config import Settings, get_settings
from dashbridge.core.models import BridgeSession, Capability
from dashbridge.realtime.bootstrap import open_passthrough_session

from .realtime import run_bridged_session

router = APIRouter()


@router.websocket("/api-ws/v1/{path:path}")
async def websocket_passthrough(
    websocket: WebSocket,
    path: str,
    settings: Settings = Depends(get_settings),
):
    """Raw WebSocket proxy with the configured bearer credential."""
    query = websocket.url.query or None
    session = BridgeSession(capability=Capability.PASSTHROUGH, model=path)
    await run_bridged_session(
        websocket,
        session,
        lambda: open_passthrough_session(path, query, settings),
        settings,
    )
