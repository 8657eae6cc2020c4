"""Abstract message transport and transport error types."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, AsyncIterator, Callable

from xswd.config import ConnectionConfig

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base exception for transport errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class TransportOpenError(TransportError):
    """The socket could not be opened."""


class TransportEventType(Enum):
    """Lifecycle and traffic notifications emitted by a transport."""

    OPENING = auto()
    OPENED = auto()
    CLOSING = auto()
    CLOSED = auto()
    FRAME_SENT = auto()
    FRAME_RECEIVED = auto()
    ERROR = auto()


@dataclass
class TransportEvent:
    """Observability record for one transport notification."""

    type: TransportEventType
    timestamp: float
    data: dict[str, Any] | None = None
    error: Exception | None = None

    def __str__(self) -> str:
        text = f"[{self.type.name}]"
        if self.data:
            text += f" {self.data}"
        if self.error:
            text += f" error={self.error}"
        return text


class Transport(ABC):
    """
    One persistent, message-oriented socket.

    A transport moves whole text frames. It does not parse JSON; frames
    that carry only part of a document are passed through unchanged.
    """

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self._event_handlers: list[Callable[[TransportEvent], None]] = []

    def on_event(self, handler: Callable[[TransportEvent], None]) -> None:
        """Register a callback for transport events."""
        self._event_handlers.append(handler)

    def _emit_event(self, event: TransportEvent) -> None:
        for handler in self._event_handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Transport event handler failed for {event}")

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the socket.

        Raises:
            TransportOpenError: If the socket cannot be opened.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Close the socket and release it.

        Safe to call multiple times.
        """

    @abstractmethod
    async def send(self, frame: str) -> None:
        """
        Write one text frame.

        Raises:
            TransportError: If the socket is not open or the write fails.
        """

    @abstractmethod
    def receive(self) -> AsyncIterator[str]:
        """
        Yield inbound text frames until the socket closes.

        The iterator ends normally on a clean close and raises
        TransportError on an abnormal one.
        """

    @abstractmethod
    def is_connected(self) -> bool:
        """True while the socket is open."""

    async def __aenter__(self) -> "Transport":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
