"""Dashbridge HTTP and WebSocket API."""
