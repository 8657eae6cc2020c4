"""
XSWD transport layer.

A transport moves raw text frames over one persistent socket.
"""

from xswd.transport.base import (
    Transport,
    TransportError,
    TransportEvent,
    TransportEventType,
    TransportOpenError,
)
from xswd.transport.websocket import WebSocketTransport

__all__ = [
    "Transport",
    "TransportError",
    "TransportEvent",
    "TransportEventType",
    "TransportOpenError",
    "WebSocketTransport",
]
