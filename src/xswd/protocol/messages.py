"""XSWD wire messages and inbound frame classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class MessageKind(Enum):
    """What an inbound JSON document is, decided by its fields."""

    AUTHORIZATION = auto()
    ERROR = auto()
    EVENT = auto()
    RESULT = auto()
    UNKNOWN = auto()


@dataclass
class JSONRPCRequest:
    """
    JSON-RPC 2.0 request body.

    The id is assigned by the connection when the request is sent, so a
    body built here never carries one.
    """

    method: str
    params: Any = None
    jsonrpc: str = field(default="2.0", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable body without id."""
        msg: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
        }
        if self.params is not None:
            msg["params"] = self.params
        return msg

    def __str__(self) -> str:
        return f"Request({self.method})"


@dataclass
class JSONRPCError:
    """Error object of a failed response."""

    message: str
    code: int | None = None
    data: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> "JSONRPCError":
        """Create from the `error` field, which may not be an object."""
        if not isinstance(data, dict):
            return cls(message=str(data))
        return cls(
            message=str(data.get("message", "Unknown error")),
            code=data.get("code"),
            data=data.get("data"),
        )


@dataclass
class JSONRPCResponse:
    """
    Typed view over a response frame.

    Connection.send_sync returns the raw frame; this wrapper is for
    callers that prefer attributes to keys.
    """

    id: int | None
    result: Any = None
    error: JSONRPCError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCResponse":
        error = None
        if "error" in data:
            error = JSONRPCError.from_dict(data["error"])
        return cls(id=data.get("id"), result=data.get("result"), error=error)

    def __str__(self) -> str:
        if self.is_error:
            return f"Response(id={self.id}, error={self.error.message!r})"
        return f"Response(id={self.id}, success)"


@dataclass
class PushEvent:
    """An unsolicited `{"result": {"event": ..., "value": ...}}` frame."""

    event: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PushEvent":
        result = data["result"]
        return cls(event=result["event"], value=result.get("value"))


def classify(data: Any) -> MessageKind:
    """
    Decide how an inbound document is routed.

    `accepted` is checked first so authorization replies never reach the
    request correlator, then `error`, then `result`.
    """
    if not isinstance(data, dict):
        return MessageKind.UNKNOWN
    if "accepted" in data:
        if isinstance(data["accepted"], bool):
            return MessageKind.AUTHORIZATION
        return MessageKind.UNKNOWN
    if "error" in data:
        return MessageKind.ERROR
    if "result" in data:
        result = data["result"]
        if isinstance(result, dict) and "event" in result:
            return MessageKind.EVENT
        return MessageKind.RESULT
    return MessageKind.UNKNOWN


def response_id(data: dict[str, Any]) -> int | None:
    """Numeric id of a response frame, None when absent or not a number."""
    value = data.get("id")
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def split_response(
    response: dict[str, Any],
) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """
    Split a response into (error frame, result frame).

    Exactly one side is set for a well-formed response:

        error, ok = split_response(await api.wallet.get_address())
        if ok:
            address = ok["result"]["address"]
    """
    return (
        response if "error" in response else None,
        response if "result" in response else None,
    )
