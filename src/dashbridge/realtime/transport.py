"""
WebSocket Transports

Uniform frame-level view over the two sides of a bridge: the client socket
accepted by FastAPI and the upstream socket opened with ``websockets``.
Library exceptions are translated into ``TransportError``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from dashbridge.core.exceptions import TransportError

logger = structlog.get_logger()

NORMAL_CLOSURE = 1000

# Codes reserved for local reporting; never valid in a close frame.
RESERVED_CLOSE_CODES = frozenset({1005, 1006, 1015})


def sendable_close_code(code: int | None) -> int:
    if code is None or code in RESERVED_CLOSE_CODES:
        return NORMAL_CLOSURE
    return code


class FrameKind(str, Enum):
    TEXT = "text"
    BINARY = "binary"
    CLOSE = "close"
    OTHER = "other"


@dataclass(frozen=True)
class Frame:
    """A single received WebSocket message."""

    kind: FrameKind
    data: str | bytes | None = None
    code: int | None = None
    reason: str = ""

    @classmethod
    def text(cls, data: str) -> "Frame":
        return cls(FrameKind.TEXT, data)

    @classmethod
    def binary(cls, data: bytes) -> "Frame":
        return cls(FrameKind.BINARY, data)

    @classmethod
    def close(cls, code: int | None = None, reason: str = "") -> "Frame":
        return cls(FrameKind.CLOSE, None, code, reason)


class Transport(ABC):
    """One side of a bridged session."""

    name: str = "transport"

    def __init__(self) -> None:
        self._closed = False

    @property
    def closed(self) -> bool:
        """True once a close frame was sent or received."""
        return self._closed

    @abstractmethod
    async def receive(self) -> Frame:
        """Wait for the next frame. Raises TransportError on I/O failure."""

    @abstractmethod
    async def send_text(self, data: str) -> None: ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    async def close(self, code: int | None = None, reason: str = "") -> None:
        """Send a close frame once. Later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        await self._send_close(sendable_close_code(code), reason)

    @abstractmethod
    async def _send_close(self, code: int, reason: str) -> None: ...


# ══════════════════════════════════════════════════════════════
# Client Side (FastAPI / Starlette)
# ══════════════════════════════════════════════════════════════


class ClientTransport(Transport):
    """Client connection accepted by a FastAPI websocket route."""

    name = "client"

    def __init__(self, websocket: WebSocket) -> None:
        super().__init__()
        self.websocket = websocket

    async def receive(self) -> Frame:
        try:
            message = await self.websocket.receive()
        except (RuntimeError, WebSocketDisconnect, OSError) as e:
            raise TransportError(f"Client receive failed: {e}") from e

        if message["type"] == "websocket.disconnect":
            self._closed = True
            return Frame.close(message.get("code"), message.get("reason") or "")

        if message.get("bytes") is not None:
            return Frame.binary(message["bytes"])
        if message.get("text") is not None:
            return Frame.text(message["text"])
        return Frame(FrameKind.OTHER)

    async def send_text(self, data: str) -> None:
        try:
            await self.websocket.send_text(data)
        except (RuntimeError, WebSocketDisconnect, OSError) as e:
            raise TransportError(f"Client send failed: {e}") from e

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self.websocket.send_bytes(data)
        except (RuntimeError, WebSocketDisconnect, OSError) as e:
            raise TransportError(f"Client send failed: {e}") from e

    async def _send_close(self, code: int, reason: str) -> None:
        if self.websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self.websocket.close(code=code, reason=reason)
        except (RuntimeError, WebSocketDisconnect, OSError) as e:
            raise TransportError(f"Client close failed: {e}") from e


# ══════════════════════════════════════════════════════════════
# Upstream Side (websockets client)
# ══════════════════════════════════════════════════════════════


class UpstreamTransport(Transport):
    """Client connection opened against the DashScope WebSocket API."""

    name = "upstream"

    def __init__(self, connection: ClientConnection) -> None:
        super().__init__()
        self.connection = connection

    async def receive(self) -> Frame:
        try:
            message = await self.connection.recv()
        except ConnectionClosed as e:
            if e.rcvd is not None:
                self._closed = True
                return Frame.close(e.rcvd.code, e.rcvd.reason)
            raise TransportError(f"Upstream connection lost: {e}") from e
        except (WebSocketException, OSError) as e:
            raise TransportError(f"Upstream receive failed: {e}") from e

        if isinstance(message, bytes):
            return Frame.binary(message)
        return Frame.text(message)

    async def send_text(self, data: str) -> None:
        await self._send(data)

    async def send_bytes(self, data: bytes) -> None:
        await self._send(data)

    async def _send(self, data: str | bytes) -> None:
        try:
            await self.connection.send(data)
        except (WebSocketException, OSError) as e:
            raise TransportError(f"Upstream send failed: {e}") from e

    async def _send_close(self, code: int, reason: str) -> None:
        try:
            await self.connection.close(code=code, reason=reason)
        except (WebSocketException, OSError) as e:
            raise TransportError(f"Upstream close failed: {e}") from e
