"""Message format enumeration and lenient parsing."""
from __future__ import annotations

from enum import Enum
from typing import Optional


class MessageFormat(str, Enum):
    DEFAULT = "DEFAULT"
    AVRO = "AVRO"
    PROTOBUF = "PROTOBUF"
    MSGPACK = "MSGPACK"


class Role(str, Enum):
    """Which side of a record a codec is bound to."""

    KEY = "key"
    VALUE = "value"


def parse_format(value: Optional[str]) -> MessageFormat:
    """
    Case-insensitive match against AVRO / PROTOBUF / MSGPACK.
    Anything else (None, empty, garbled) is DEFAULT, never an error.
    """
    if isinstance(value, MessageFormat):
        return value
    name = (value or "").strip().upper()
    if name in (MessageFormat.AVRO.value, MessageFormat.PROTOBUF.value, MessageFormat.MSGPACK.value):
        return MessageFormat(name)
    return MessageFormat.DEFAULT
