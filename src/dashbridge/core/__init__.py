"""Core domain models, errors and logging for Dashbridge."""

from .exceptions import (
    CredentialError,
    DashbridgeError,
    MalformedEventError,
    TransportError,
    UpstreamSetupError,
)
from .models import BridgeSession, Capability, SessionState

__all__ = [
    # Errors
    "DashbridgeError",
    "UpstreamSetupError",
    "CredentialError",
    "TransportError",
    "MalformedEventError",
    # Models
    "BridgeSession",
    "Capability",
    "SessionState",
]
