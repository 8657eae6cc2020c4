"""Identity and naming types shared by the protocol layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum


class Entity(str, Enum):
    """Which side of the wallet/node pair a request is meant for."""

    WALLET = "wallet"
    DAEMON = "daemon"

    def __str__(self) -> str:
        return self.value


class EventType(str, Enum):
    """Push events the wallet can be subscribed to."""

    NEW_TOPOHEIGHT = "new_topoheight"
    NEW_BALANCE = "new_balance"
    NEW_ENTRY = "new_entry"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AppInfo:
    """
    Identity presented to the wallet during authorization.

    The wallet shows these fields to the user, who accepts or refuses
    the application.
    """

    id: str
    name: str
    description: str
    url: str

    def to_dict(self) -> dict[str, str]:
        """Authorization payload, sent as-is."""
        return asdict(self)
