"""Single-slot mailboxes for wallet push events."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from xswd.protocol.errors import EventTimeoutError
from xswd.protocol.types import EventType

logger = logging.getLogger(__name__)

INITIAL_VALUES: dict[EventType, Any] = {
    EventType.NEW_TOPOHEIGHT: 0,
    EventType.NEW_BALANCE: 0,
    EventType.NEW_ENTRY: "",
}


@dataclass
class EventSlot:
    """
    Last value seen for one event type.

    `processed` is True when the value was already consumed, or when no
    push arrived since the last consumption.
    """

    value: Any
    processed: bool = True


class EventWaiter:
    """
    Tracks the latest push per event type and lets callers wait for one.

    Each type has exactly one slot: a push that arrives before the
    previous one was consumed overwrites it. Each push is handed to a
    single waiter.
    """

    def __init__(self, timeout: float = 20.0):
        self.timeout = timeout
        self._slots = {event: EventSlot(value) for event, value in INITIAL_VALUES.items()}
        self._changed = asyncio.Condition()

    def slot(self, event: EventType | str) -> EventSlot:
        """Current slot for an event type."""
        return self._slots[EventType(event)]

    async def publish(self, event: EventType | str, value: Any) -> None:
        """Store a pushed value and wake one waiter for it."""
        event_type = EventType(event)
        async with self._changed:
            slot = self._slots[event_type]
            slot.value = value
            slot.processed = False
            logger.debug(f"Event {event_type} received: {value!r}")
            self._changed.notify_all()

    async def wait_for(self, event: EventType | str, timeout: float | None = None) -> Any:
        """
        Wait until an unconsumed push of this type is available.

        Returns immediately if one already is. Consuming marks the slot
        processed, so a later call waits for the next push.

        Raises:
            EventTimeoutError: If nothing arrives within the timeout.
        """
        event_type = EventType(event)
        effective_timeout = timeout if timeout is not None else self.timeout
        slot = self._slots[event_type]
        logger.debug(f"Checking event {event_type}")

        async def consume() -> Any:
            async with self._changed:
                await self._changed.wait_for(lambda: not slot.processed)
                slot.processed = True
                return slot.value

        try:
            value = await asyncio.wait_for(consume(), timeout=effective_timeout)
        except asyncio.TimeoutError:
            raise EventTimeoutError(event_type, effective_timeout) from None

        logger.debug(f"Checked event {event_type}")
        return value
