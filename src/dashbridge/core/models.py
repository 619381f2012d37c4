"""
Dashbridge Core Domain Models

Session bookkeeping shared by the bootstrap, the duplex bridge and the routes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Capability(str, Enum):
    """Direction-specific mode of a realtime session."""

    TRANSCRIPTION = "transcription"
    SYNTHESIS = "synthesis"
    PASSTHROUGH = "passthrough"


class SessionState(str, Enum):
    """Lifecycle of a bridged session. CLOSED is terminal."""

    CONNECTING = "connecting"
    BRIDGING = "bridging"
    CLOSED = "closed"


@dataclass
class BridgeSession:
    """One client connection paired with one upstream connection."""

    capability: Capability
    session_id: UUID = field(default_factory=uuid4)
    voice: str | None = None
    model: str | None = None

    state: SessionState = SessionState.CONNECTING
    started_at: datetime = field(default_factory=_utcnow)
    bridged_at: datetime | None = None
    closed_at: datetime | None = None

    # Counters
    client_frames: int = 0
    upstream_frames: int = 0
    events_sent: int = 0
    frames_delivered: int = 0

    def mark_bridging(self) -> None:
        if self.state is not SessionState.CONNECTING:
            raise ValueError(f"Cannot start bridging from state {self.state.value}")
        self.state = SessionState.BRIDGING
        self.bridged_at = _utcnow()

    def mark_closed(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self.closed_at = _utcnow()

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def duration_ms(self) -> int:
        end = self.closed_at or _utcnow()
        return int((end - self.started_at).total_seconds() * 1000)

    def log_context(self) -> dict[str, str]:
        """Fields bound to every log line emitted for this session."""
        context = {
            "session_id": str(self.session_id),
            "capability": self.capability.value,
        }
        if self.voice:
            context["voice"] = self.voice
        return context
