"""Pytest configuration and fixtures."""

import asyncio
import json
from typing import Any, AsyncIterator, Callable, Iterable

import pytest
import pytest_asyncio

from xswd.config import ConnectionConfig
from xswd.protocol.connection import Connection
from xswd.protocol.types import AppInfo
from xswd.transport.base import Transport, TransportError, TransportOpenError

# Enable async tests without marking each one
pytest_plugins = ["pytest_asyncio"]

_CLOSE = object()


class ScriptedTransport(Transport):
    """
    In-memory transport driven by the test.

    Outbound frames are recorded in `sent` (parsed). Inbound frames are
    queued with feed(). `auth_reply` answers the authorization payload
    automatically; `responder` answers requests.
    """

    def __init__(self, config: ConnectionConfig):
        super().__init__(config)
        self.sent: list[dict[str, Any]] = []
        self.auth_reply: bool | None = None
        self.responder: Callable[[dict[str, Any]], Iterable[Any]] | None = None
        self.fail_on_connect = False
        self.connect_calls = 0
        self._connected = False
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_on_connect:
            raise TransportOpenError("connection refused", cause=OSError(111, "refused"))
        self._inbound = asyncio.Queue()
        self._connected = True

    async def disconnect(self) -> None:
        if self._connected:
            self._connected = False
            self._inbound.put_nowait(_CLOSE)

    async def send(self, frame: str) -> None:
        if not self._connected:
            raise TransportError("Transport not connected")
        message = json.loads(frame)
        self.sent.append(message)

        if "jsonrpc" not in message:
            if self.auth_reply is not None:
                self.feed({"accepted": self.auth_reply})
        elif self.responder is not None:
            self.feed(*self.responder(message))

    async def receive(self) -> AsyncIterator[str]:
        inbound = self._inbound
        while True:
            item = await inbound.get()
            if item is _CLOSE:
                return
            if isinstance(item, Exception):
                self._connected = False
                raise item
            yield item

    def is_connected(self) -> bool:
        return self._connected

    def feed(self, *frames: Any) -> None:
        """Queue inbound frames; dicts are JSON encoded, str sent as-is."""
        for frame in frames:
            if not isinstance(frame, str):
                frame = json.dumps(frame)
            self._inbound.put_nowait(frame)

    def close_from_server(self) -> None:
        """Simulate a clean close initiated by the wallet."""
        self._connected = False
        self._inbound.put_nowait(_CLOSE)

    def fail(self, message: str = "connection reset") -> None:
        """Simulate an abnormal socket failure."""
        self._inbound.put_nowait(TransportError(message))

    def push_event(self, event: str, value: Any) -> None:
        """Queue a push event frame."""
        self.feed({"jsonrpc": "2.0", "id": None, "result": {"event": event, "value": value}})

    def reply_with(self, result: Any) -> None:
        """Answer every later request with the same result."""
        self.responder = lambda request: [
            {"jsonrpc": "2.0", "id": request["id"], "result": result}
        ]

    @property
    def requests(self) -> list[dict[str, Any]]:
        """Sent JSON-RPC requests, without the authorization payload."""
        return [m for m in self.sent if "jsonrpc" in m]


@pytest.fixture
def app_info():
    """Sample application identity."""
    return AppInfo(
        id="ed606a2f4c4f499618a78ff5f7c8e51cd2ca4d8bfa7e2b41a27754bb78b1df1f",
        name="test",
        description="A brief testing application",
        url="http://localhost",
    )


@pytest.fixture
def config():
    """Config with short timeouts so failing waits end quickly."""
    return ConnectionConfig(auth_timeout=0.5, request_timeout=0.3, event_timeout=0.3)


@pytest.fixture
def transport(config):
    return ScriptedTransport(config)


@pytest_asyncio.fixture
async def connection(app_info, config, transport):
    """A connection the wallet has already accepted."""
    conn = Connection(app_info, config=config, transport=transport)
    transport.auth_reply = True
    assert await conn.initialize() is True
    yield conn
    await conn.close()
