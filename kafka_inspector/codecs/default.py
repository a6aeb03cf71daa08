"""Plain UTF-8 passthrough codec."""
from __future__ import annotations

from kafka_inspector.core.exceptions import EncodingError


class DefaultDecoder:
    def decode(self, data: bytes) -> str:
        return bytes(data).decode("utf-8", "replace")


class DefaultEncoder:
    def encode(self, value: str) -> bytes:
        if not isinstance(value, str):
            raise EncodingError(f"expected text, got {type(value).__name__}")
        return value.encode("utf-8")
