"""
XSWD protocol core.

Connection state machine, authorization handshake, request/response
correlation by id, fragment reassembly and push event delivery.
"""

from xswd.protocol.connection import Connection
from xswd.protocol.errors import (
    AlreadyConnectedError,
    AuthorizationRefusedError,
    AuthorizationTimeoutError,
    EventTimeoutError,
    NotAuthorizedError,
    RequestTimeoutError,
    XSWDError,
)
from xswd.protocol.events import EventSlot, EventWaiter
from xswd.protocol.messages import (
    JSONRPCError,
    JSONRPCRequest,
    JSONRPCResponse,
    MessageKind,
    PushEvent,
    classify,
    split_response,
)
from xswd.protocol.state import (
    ConnectionState,
    ConnectionStateMachine,
    InvalidStateTransition,
)
from xswd.protocol.types import AppInfo, Entity, EventType

__all__ = [
    # Types
    "AppInfo",
    "Entity",
    "EventType",
    # Messages
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCError",
    "PushEvent",
    "MessageKind",
    "classify",
    "split_response",
    # Errors
    "XSWDError",
    "AlreadyConnectedError",
    "AuthorizationTimeoutError",
    "AuthorizationRefusedError",
    "NotAuthorizedError",
    "RequestTimeoutError",
    "EventTimeoutError",
    # State
    "ConnectionState",
    "ConnectionStateMachine",
    "InvalidStateTransition",
    # Events
    "EventSlot",
    "EventWaiter",
    # Connection
    "Connection",
]
