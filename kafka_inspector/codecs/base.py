"""Common capability interface for all codecs."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Decoder(Protocol):
    def decode(self, data: bytes) -> str:
        """Render *data* as text. Raises DecodeError on malformed input."""
        ...


@runtime_checkable
class Encoder(Protocol):
    def encode(self, value: str) -> bytes:
        """Turn textual *value* into wire bytes. Raises EncodingError."""
        ...


@dataclass(frozen=True)
class DecoderPair:
    key: Decoder
    value: Decoder


@dataclass(frozen=True)
class EncoderPair:
    key: Encoder
    value: Encoder


def to_json(obj: Any) -> str:
    """Compact JSON for structured payloads; non-JSON types fall back to str().

    Map keys are rendered as strings too: JSON has no binary or composite keys.
    """
    return json.dumps(_string_keys(obj), default=_fallback, ensure_ascii=False)


def _string_keys(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {_key(k): _string_keys(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_string_keys(v) for v in obj]
    return obj


def _key(k: Any) -> Any:
    if k is None or isinstance(k, (str, int, float, bool)):
        return k
    if isinstance(k, (bytes, bytearray)):
        return bytes(k).decode("utf-8", "replace")
    return str(k)


def _fallback(obj: Any) -> Any:
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).decode("utf-8", "replace")
    return str(obj)
