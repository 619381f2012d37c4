"""
Dashbridge

Realtime speech gateway bridging a minimal client protocol to the DashScope
realtime speech APIs.
"""

__version__ = "0.1.0"
