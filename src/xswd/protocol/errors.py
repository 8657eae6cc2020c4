"""Connection-level error types."""

from __future__ import annotations

from xswd.protocol.types import EventType


class XSWDError(Exception):
    """Base exception for XSWD protocol errors."""


class AlreadyConnectedError(XSWDError):
    """initialize() was called while the socket is still alive."""

    def __init__(self, message: str = "WebSocket is already alive"):
        super().__init__(message)


class AuthorizationTimeoutError(XSWDError):
    """The wallet did not accept or refuse the application in time."""

    def __init__(self, timeout: float):
        super().__init__(f"Authorization timed out after {timeout}s")
        self.timeout = timeout


class AuthorizationRefusedError(XSWDError):
    """The application was refused, or the socket closed before a decision."""

    def __init__(self, message: str = "Authorization refused"):
        super().__init__(message)


class NotAuthorizedError(XSWDError):
    """A request was attempted before the connection was accepted."""

    def __init__(self, state: object):
        super().__init__(f"Sending without being connected (state: {state})")
        self.state = state


class RequestTimeoutError(XSWDError):
    """No response arrived for a request id in time."""

    def __init__(self, request_id: int, timeout: float):
        super().__init__(f"Request {request_id} timed out after {timeout}s")
        self.request_id = request_id
        self.timeout = timeout


class EventTimeoutError(XSWDError):
    """No push event of the awaited type arrived in time."""

    def __init__(self, event: EventType, timeout: float):
        super().__init__(f"Event {event} check timed out after {timeout}s")
        self.event = event
        self.timeout = timeout
