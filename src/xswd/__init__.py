"""
Python client for the XSWD wallet protocol.

XSWD lets a local application ask a wallet for authorization over a
WebSocket, then call wallet and daemon JSON-RPC methods and receive push
events (new block height, new balance, new wallet entry).

Submodules:
- transport: WebSocket transport layer
- protocol: connection state machine, request correlation, push events
- api: subscription sequence and per-method wrappers
- config: endpoint and timeout settings
"""

from xswd.api import NodeAPI, WalletAPI, XSWD
from xswd.config import ConnectionConfig, load_config
from xswd.protocol import (
    AlreadyConnectedError,
    AppInfo,
    AuthorizationRefusedError,
    AuthorizationTimeoutError,
    Connection,
    ConnectionState,
    Entity,
    EventTimeoutError,
    EventType,
    JSONRPCResponse,
    NotAuthorizedError,
    RequestTimeoutError,
    XSWDError,
    split_response,
)
from xswd.transport import (
    Transport,
    TransportError,
    TransportOpenError,
    WebSocketTransport,
)

__version__ = "0.1.0"

__all__ = [
    # API
    "XSWD",
    "WalletAPI",
    "NodeAPI",
    # Config
    "ConnectionConfig",
    "load_config",
    # Protocol
    "Connection",
    "ConnectionState",
    "AppInfo",
    "Entity",
    "EventType",
    "JSONRPCResponse",
    "split_response",
    # Errors
    "XSWDError",
    "AlreadyConnectedError",
    "AuthorizationTimeoutError",
    "AuthorizationRefusedError",
    "NotAuthorizedError",
    "RequestTimeoutError",
    "EventTimeoutError",
    "TransportError",
    "TransportOpenError",
    # Transport
    "Transport",
    "WebSocketTransport",
]
