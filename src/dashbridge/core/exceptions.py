"""
Dashbridge Error Taxonomy

Setup failures end a session before it starts, transport failures end the
loop that hit them, malformed payloads are logged and skipped.
"""


class DashbridgeError(Exception):
    """Base class for all gateway errors."""


class UpstreamSetupError(DashbridgeError):
    """Upstream connection or session configuration could not be established."""


class CredentialError(UpstreamSetupError):
    """The configured API key is missing or cannot be sent as a header."""


class TransportError(DashbridgeError):
    """A send or receive on a WebSocket transport failed."""


class MalformedEventError(DashbridgeError):
    """An upstream payload is not a JSON object."""

    def __init__(self, message: str, raw: str | bytes | None = None) -> None:
        super().__init__(message)
        self.raw = raw
