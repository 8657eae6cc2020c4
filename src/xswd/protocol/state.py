"""Connection state machine for the XSWD authorization lifecycle."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    State transitions:
        INITIALIZING -> WAITING_AUTH -> ACCEPTED
                                    \\-> REFUSED

    Any state can move to CLOSED on a socket error. A clean socket close,
    or a new initialize(), resets the machine to INITIALIZING.
    """

    INITIALIZING = "initializing"
    WAITING_AUTH = "waitingAuth"
    ACCEPTED = "accepted"
    REFUSED = "refused"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.name


class InvalidStateTransition(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: ConnectionState, to_state: ConnectionState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid state transition: {from_state.name} -> {to_state.name}"
        )


StateTransitionCallback = Callable[[ConnectionState, ConnectionState], None]


class ConnectionStateMachine:
    """
    Owns the state of one connection.

    Enforces valid transitions and notifies listeners when they occur.
    """

    VALID_TRANSITIONS: dict[ConnectionState, list[ConnectionState]] = {
        ConnectionState.INITIALIZING: [
            ConnectionState.WAITING_AUTH,
            ConnectionState.CLOSED,  # Socket failed to open
        ],
        ConnectionState.WAITING_AUTH: [
            ConnectionState.ACCEPTED,
            ConnectionState.REFUSED,
            ConnectionState.CLOSED,
        ],
        ConnectionState.ACCEPTED: [ConnectionState.CLOSED],
        ConnectionState.REFUSED: [ConnectionState.CLOSED],
        ConnectionState.CLOSED: [],
    }

    TERMINAL_STATES = (ConnectionState.REFUSED, ConnectionState.CLOSED)

    def __init__(self) -> None:
        self._state = ConnectionState.INITIALIZING
        self._listeners: list[StateTransitionCallback] = []

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_accepted(self) -> bool:
        """True once the wallet has authorized the application."""
        return self._state == ConnectionState.ACCEPTED

    @property
    def is_terminal(self) -> bool:
        """True in REFUSED or CLOSED, until the next reset."""
        return self._state in self.TERMINAL_STATES

    def can_transition_to(self, new_state: ConnectionState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in self.VALID_TRANSITIONS.get(self._state, [])

    def transition(self, new_state: ConnectionState) -> None:
        """
        Transition to a new state.

        Args:
            new_state: The target state.

        Raises:
            InvalidStateTransition: If the transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidStateTransition(self._state, new_state)
        self._set(new_state)

    def close(self) -> None:
        """Move to CLOSED from wherever the machine is."""
        if self._state != ConnectionState.CLOSED:
            self._set(ConnectionState.CLOSED)

    def reset(self) -> None:
        """Return to INITIALIZING, ready for a new authorization."""
        if self._state != ConnectionState.INITIALIZING:
            self._set(ConnectionState.INITIALIZING)

    def on_transition(self, callback: StateTransitionCallback) -> None:
        """
        Register a callback for state transitions.

        Args:
            callback: Function called with (old_state, new_state).
        """
        self._listeners.append(callback)

    def remove_listener(self, callback: StateTransitionCallback) -> None:
        """Remove a previously registered callback, if present."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _set(self, new_state: ConnectionState) -> None:
        old_state = self._state
        self._state = new_state
        logger.debug(f"Connection state {old_state} -> {new_state}")

        for listener in self._listeners:
            try:
                listener(old_state, new_state)
            except Exception:
                logger.exception("State transition listener failed")

    def __str__(self) -> str:
        return f"ConnectionStateMachine({self._state.name})"

    def __repr__(self) -> str:
        return f"ConnectionStateMachine(state={self._state!r})"
