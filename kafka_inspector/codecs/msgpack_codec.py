"""MessagePack codec: binary on the wire, JSON text for humans."""
from __future__ import annotations

import json

import msgpack

from kafka_inspector.codecs.base import to_json
from kafka_inspector.core.exceptions import DecodeError, EncodingError


class MsgPackDecoder:
    def decode(self, data: bytes) -> str:
        try:
            obj = msgpack.unpackb(data, raw=False, strict_map_key=False)
        except (TypeError, ValueError) as exc:  # unhashable map keys raise TypeError
            raise DecodeError(f"invalid msgpack payload: {exc}") from exc
        return to_json(obj)


class MsgPackEncoder:
    """Accepts JSON text and packs the parsed object."""

    def encode(self, value: str) -> bytes:
        try:
            obj = json.loads(value)
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"msgpack input must be JSON: {exc}") from exc
        return msgpack.packb(obj, use_bin_type=True)
