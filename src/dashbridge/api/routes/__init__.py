"""API Route modules."""

from . import health, passthrough, proxy, realtime

__all__ = ["health", "passthrough", "proxy", "realtime"]
