"""
Duplex Bridge

Runs the two forwarding loops of a session concurrently: client -> upstream
and upstream -> client. The first loop to finish ends the session; the other
loop is cancelled and both transports are closed.

Each loop reads one transport and writes the other, so every read half and
every write half has exactly one owner and no locking is needed.
"""

import asyncio
from abc import ABC, abstractmethod

import structlog

from dashbridge.config import Settings
from dashbridge.core.exceptions import TransportError
from dashbridge.core.models import BridgeSession, Capability, SessionState
from dashbridge.text import TextPreparer
from .protocol import InputTextBufferAppendEvent, OutboundEvent
from .transport import Frame, FrameKind, Transport
from .translator import SynthesisTranslator, TranscriptionTranslator

logger = structlog.get_logger()

INTERNAL_ERROR = 1011


class DuplexBridge(ABC):
    """Owns one client transport and one upstream transport for a session."""

    def __init__(
        self,
        session: BridgeSession,
        client: Transport,
        upstream: Transport,
    ) -> None:
        self.session = session
        self.client = client
        self.upstream = upstream
        self.failed = False
        self.log = logger.bind(**session.log_context())

    @property
    def state(self) -> SessionState:
        return self.session.state

    @abstractmethod
    async def forward_client_frame(self, frame: Frame) -> None:
        """Translate one non-close client frame and send it upstream."""

    @abstractmethod
    async def forward_upstream_frame(self, frame: Frame) -> None:
        """Translate one non-close upstream frame and send it to the client."""

    async def send_event(self, event: OutboundEvent) -> None:
        await self.upstream.send_text(event.to_json())
        self.session.events_sent += 1

    # ──────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────

    async def run(self) -> None:
        """Bridge until either side finishes. The session ends CLOSED."""
        self.session.mark_bridging()
        self.log.info("Bridge started")

        client_task = asyncio.create_task(
            self._client_loop(), name=f"client->upstream:{self.session.session_id}"
        )
        upstream_task = asyncio.create_task(
            self._upstream_loop(), name=f"upstream->client:{self.session.session_id}"
        )

        try:
            done, _ = await asyncio.wait(
                {client_task, upstream_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            first_done = "client" if client_task in done else "upstream"
            self.log.info("Forwarding loop finished", first_done=first_done)
        finally:
            for task in (client_task, upstream_task):
                if not task.done():
                    task.cancel()
            results = await asyncio.gather(
                client_task, upstream_task, return_exceptions=True
            )
            for task, result in zip((client_task, upstream_task), results):
                # CancelledError is a BaseException and lands here for the loser
                if isinstance(result, Exception):
                    self.log.error(
                        "Forwarding loop crashed",
                        task=task.get_name(),
                        error=repr(result),
                    )
                    self.failed = True
            await self._release()
            self.session.mark_closed()
            self.log.info(
                "Bridge closed",
                duration_ms=self.session.duration_ms,
                client_frames=self.session.client_frames,
                upstream_frames=self.session.upstream_frames,
                events_sent=self.session.events_sent,
                frames_delivered=self.session.frames_delivered,
            )

    async def _release(self) -> None:
        code = INTERNAL_ERROR if self.failed else None
        for transport in (self.upstream, self.client):
            if transport.closed:
                continue
            try:
                await transport.close(code)
            except TransportError as e:
                self.log.debug("Transport close failed", side=transport.name, error=str(e))

    # ──────────────────────────────────────────────────────────
    # Forwarding Loops
    # ──────────────────────────────────────────────────────────

    async def _client_loop(self) -> None:
        while True:
            try:
                frame = await self.client.receive()
            except TransportError as e:
                self.log.error("Failed to receive client message", error=str(e))
                self.failed = True
                return

            if frame.kind is FrameKind.CLOSE:
                self.log.info("Client closed", code=frame.code, reason=frame.reason)
                try:
                    await self.upstream.close()
                except TransportError as e:
                    self.log.error("Failed to send close upstream", error=str(e))
                return

            self.session.client_frames += 1
            try:
                await self.forward_client_frame(frame)
            except TransportError as e:
                self.log.error("Failed to send upstream", error=str(e))
                self.failed = True
                return
            except (TypeError, ValueError) as e:
                self.log.error("Failed to serialize upstream event", error=str(e))
                self.failed = True
                return

    async def _upstream_loop(self) -> None:
        while True:
            try:
                frame = await self.upstream.receive()
            except TransportError as e:
                self.log.error("Failed to receive upstream message", error=str(e))
                self.failed = True
                return

            if frame.kind is FrameKind.CLOSE:
                self.log.info("Upstream closed", code=frame.code, reason=frame.reason)
                try:
                    await self.client.close(frame.code, frame.reason)
                except TransportError as e:
                    self.log.error("Failed to send close to client", error=str(e))
                return

            self.session.upstream_frames += 1
            try:
                await self.forward_upstream_frame(frame)
            except TransportError as e:
                self.log.error("Failed to send to client", error=str(e))
                self.failed = True
                return


class TranscriptionBridge(DuplexBridge):
    """Binary audio in, transcript text out."""

    def __init__(
        self, session: BridgeSession, client: Transport, upstream: Transport
    ) -> None:
        super().__init__(session, client, upstream)
        self.translator = TranscriptionTranslator(log=self.log)

    async def forward_client_frame(self, frame: Frame) -> None:
        if frame.kind is not FrameKind.BINARY:
            return
        await self.send_event(self.translator.audio_event(frame.data))

    async def forward_upstream_frame(self, frame: Frame) -> None:
        if frame.kind is not FrameKind.TEXT:
            return
        event = self.translator.decode(frame.data)
        if event is None:
            return
        text = self.translator.to_client(event)
        if text is not None:
            await self.client.send_text(text)
            self.session.frames_delivered += 1


class SynthesisBridge(DuplexBridge):
    """Text in, binary audio out."""

    def __init__(
        self,
        session: BridgeSession,
        client: Transport,
        upstream: Transport,
        preparer: TextPreparer | None = None,
        chunk_delay: float = 0.2,
    ) -> None:
        super().__init__(session, client, upstream)
        self.translator = SynthesisTranslator(preparer, log=self.log)
        self.chunk_delay = chunk_delay

    async def forward_client_frame(self, frame: Frame) -> None:
        if frame.kind is not FrameKind.TEXT:
            return
        for event in self.translator.text_events(frame.data):
            await self.send_event(event)
            if isinstance(event, InputTextBufferAppendEvent) and self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)

    async def forward_upstream_frame(self, frame: Frame) -> None:
        if frame.kind is not FrameKind.TEXT:
            return
        event = self.translator.decode(frame.data)
        if event is None:
            return
        audio = self.translator.to_client(event)
        if audio is not None:
            await self.client.send_bytes(audio)
            self.session.frames_delivered += 1


class PassthroughBridge(DuplexBridge):
    """Forwards text and binary frames verbatim in both directions."""

    async def forward_client_frame(self, frame: Frame) -> None:
        await self._relay(frame, self.upstream)

    async def forward_upstream_frame(self, frame: Frame) -> None:
        if await self._relay(frame, self.client):
            self.session.frames_delivered += 1

    async def _relay(self, frame: Frame, target: Transport) -> bool:
        if frame.kind is FrameKind.TEXT:
            await target.send_text(frame.data)
        elif frame.kind is FrameKind.BINARY:
            await target.send_bytes(frame.data)
        else:
            return False
        return True


def create_bridge(
    session: BridgeSession,
    client: Transport,
    upstream: Transport,
    settings: Settings,
) -> DuplexBridge:
    """Bridge implementation for the session's capability."""
    if session.capability is Capability.TRANSCRIPTION:
        return TranscriptionBridge(session, client, upstream)
    if session.capability is Capability.SYNTHESIS:
        return SynthesisBridge(
            session,
            client,
            upstream,
            preparer=TextPreparer.from_settings(settings),
            chunk_delay=settings.tts_chunk_delay,
        )
    return PassthroughBridge(session, client, upstream)
