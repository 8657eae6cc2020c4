"""Thin orjson wrapper used for every JSON frame and config file."""

from __future__ import annotations

from typing import Any

import orjson

JSONDecodeError = orjson.JSONDecodeError


def loads(data: bytes | bytearray | memoryview | str) -> Any:
    """Parse a JSON document."""
    return orjson.loads(data)


def dumps(obj: Any) -> str:
    """Serialize to a JSON string (text frames are str, not bytes)."""
    return orjson.dumps(obj).decode("utf-8")
